"""
String similarity utilities for duplicate detection.

Uses Levenshtein distance to score how close two field values are
(customer names, addresses, lead names, company names), and normalizes
phone numbers so formatting differences do not hide duplicates.

Example scores:
- "Acme Corp" vs "ACME CORP " -> 1.0 (case and padding ignored)
- "Acme Corp" vs "Acme Corp." -> 0.9
- "Acme Corp" vs "Acme Corporation" -> 0.5625
"""

import re

_NON_DIGIT = re.compile(r"[^\d]")


def normalize_phone(phone: str) -> str:
    """
    Strip every non-digit character from a phone number.

    "(555) 123-4567" -> "5551234567". May return an empty string.
    """
    return _NON_DIGIT.sub("", phone)


def levenshtein_distance(s1: str, s2: str) -> int:
    """
    Calculate the Levenshtein (edit) distance between two strings.

    The Levenshtein distance is the minimum number of single-character
    edits (insertions, deletions, substitutions) needed to transform
    one string into another.

    Args:
        s1: First string
        s2: Second string

    Returns:
        Edit distance (0 = identical)
    """
    # Keep the rolling row as short as the shorter string
    if len(s1) < len(s2):
        return levenshtein_distance(s2, s1)

    if len(s2) == 0:
        return len(s1)

    previous_row = list(range(len(s2) + 1))

    for i, c1 in enumerate(s1):
        current_row = [i + 1]

        for j, c2 in enumerate(s2):
            insertions = previous_row[j + 1] + 1
            deletions = current_row[j] + 1
            substitutions = previous_row[j] + (c1 != c2)

            current_row.append(min(insertions, deletions, substitutions))

        previous_row = current_row

    return previous_row[-1]


def similarity(s1: str, s2: str) -> float:
    """
    Similarity ratio between two field values, in [0.0, 1.0].

    Both values are lowercased and trimmed first; equal values short-cut to
    exactly 1.0. Otherwise the ratio is 1 - distance / longer length.

    Callers must not pass blank values: rules check that both fields are
    present before scoring them.
    """
    s1 = s1.lower().strip()
    s2 = s2.lower().strip()

    if s1 == s2:
        return 1.0

    distance = levenshtein_distance(s1, s2)
    max_len = max(len(s1), len(s2))

    return 1.0 - (distance / max_len)

"""
Duplicate matching rules.

Each rule compares one subject record against a candidate pool and returns
a DuplicateMatch per candidate it accepts. Rules are evaluated in a fixed
order per entity type; a rule whose subject field is blank is skipped
entirely (no hits, not zero-scored hits).

Customer rules (in order):
    Email Match                  exact email              90
    Phone Match                  digits-only phone        80
    Tax ID Match                 business tax id          95
    Name + Address Fuzzy Match   name and address >= 0.85 70

Lead rules (in order):
    Email Match                  exact email              90
    Phone Match                  digits-only phone        80
    Name Match                   full name >= 0.90 and
                                 company >= 0.85 (or blank) 75
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, List, Optional, Sequence

from crm.core.models import CustomerType
from crm.dedup.schemas import DuplicateMatch
from crm.dedup.similarity import normalize_phone, similarity

logger = logging.getLogger(__name__)


def _present(value: Optional[str]) -> bool:
    return value is not None and value.strip() != ""


class MatchRule(ABC):
    """A named matching rule with a fixed confidence and matched-field list."""

    name: str = ""
    confidence: int = 0
    matched_fields: Sequence[str] = ()

    def evaluate(self, subject: Any, candidates: Sequence[Any]) -> List[DuplicateMatch]:
        """Return one match per candidate (other than the subject) this rule accepts."""
        if not self.applies_to(subject):
            return []

        matches = []
        for candidate in candidates:
            if candidate.id == subject.id:
                continue
            if self.matches(subject, candidate):
                matches.append(
                    DuplicateMatch(
                        record_id=candidate.id,
                        match_rule=self.name,
                        confidence_score=self.confidence,
                        matched_fields=list(self.matched_fields),
                    )
                )

        if matches:
            logger.debug(f"{self.name}: {subject.id} -> {len(matches)} candidate(s)")
        return matches

    @abstractmethod
    def applies_to(self, subject: Any) -> bool:
        """False when the subject lacks the field(s) this rule needs."""

    @abstractmethod
    def matches(self, subject: Any, candidate: Any) -> bool:
        ...


class EmailRule(MatchRule):
    """Exact, case-sensitive email equality."""

    name = "Email Match"
    confidence = 90
    matched_fields = ("Email",)

    def applies_to(self, subject: Any) -> bool:
        return _present(subject.email)

    def matches(self, subject: Any, candidate: Any) -> bool:
        return candidate.email == subject.email


class PhoneRule(MatchRule):
    """Phone equality after stripping formatting."""

    name = "Phone Match"
    confidence = 80
    matched_fields = ("Phone",)

    def applies_to(self, subject: Any) -> bool:
        # A phone made only of punctuation normalizes to "" and matches nothing
        return _present(subject.phone) and normalize_phone(subject.phone) != ""

    def matches(self, subject: Any, candidate: Any) -> bool:
        if not _present(candidate.phone):
            return False
        return normalize_phone(candidate.phone) == normalize_phone(subject.phone)


class TaxIdRule(MatchRule):
    """Same tax id on two business customers."""

    name = "Tax ID Match"
    confidence = 95
    matched_fields = ("TaxId",)

    def applies_to(self, subject: Any) -> bool:
        return subject.type == CustomerType.BUSINESS and _present(subject.tax_id)

    def matches(self, subject: Any, candidate: Any) -> bool:
        return (
            candidate.type == CustomerType.BUSINESS
            and candidate.tax_id == subject.tax_id
        )


class NameAddressFuzzyRule(MatchRule):
    """Customer name and first address line both above a similarity threshold."""

    name = "Name + Address Fuzzy Match"
    confidence = 70
    matched_fields = ("Name", "Address")

    def __init__(self, name_threshold: float = 0.85, address_threshold: float = 0.85):
        self.name_threshold = name_threshold
        self.address_threshold = address_threshold

    def applies_to(self, subject: Any) -> bool:
        return _present(subject.name) and _present(subject.address_line1)

    def matches(self, subject: Any, candidate: Any) -> bool:
        if not _present(candidate.name) or not _present(candidate.address_line1):
            return False
        return (
            similarity(subject.name, candidate.name) >= self.name_threshold
            and similarity(subject.address_line1, candidate.address_line1) >= self.address_threshold
        )


class LeadNameRule(MatchRule):
    """
    Lead full name above threshold, with a company check.

    The company only vetoes the match when both leads have one and they are
    not similar enough.
    """

    name = "Name Match"
    confidence = 75
    matched_fields = ("FirstName", "LastName", "Company")

    def __init__(self, name_threshold: float = 0.90, company_threshold: float = 0.85):
        self.name_threshold = name_threshold
        self.company_threshold = company_threshold

    def applies_to(self, subject: Any) -> bool:
        return _present(subject.first_name) and _present(subject.last_name)

    def matches(self, subject: Any, candidate: Any) -> bool:
        candidate_name = f"{candidate.first_name or ''} {candidate.last_name or ''}"
        if not _present(candidate_name):
            return False

        subject_name = f"{subject.first_name} {subject.last_name}"
        if similarity(subject_name, candidate_name) < self.name_threshold:
            return False

        if not _present(subject.company_name) or not _present(candidate.company_name):
            return True
        return similarity(subject.company_name, candidate.company_name) >= self.company_threshold


class MatchRuleEngine:
    """Ordered rule set for one entity type."""

    def __init__(self, entity_type: str, rules: Sequence[MatchRule]):
        self.entity_type = entity_type
        self.rules = list(rules)

    def evaluate(self, subject: Any, candidates: Sequence[Any]) -> List[DuplicateMatch]:
        """Raw hits of every rule, in rule order then candidate order."""
        raw: List[DuplicateMatch] = []
        for rule in self.rules:
            raw.extend(rule.evaluate(subject, candidates))
        return raw

    @property
    def rule_names(self) -> List[str]:
        return [rule.name for rule in self.rules]


def customer_rule_engine(
    name_threshold: float = 0.85,
    address_threshold: float = 0.85,
) -> MatchRuleEngine:
    """Default customer rules: email, phone, tax id, name + address."""
    return MatchRuleEngine(
        "Customer",
        [
            EmailRule(),
            PhoneRule(),
            TaxIdRule(),
            NameAddressFuzzyRule(name_threshold, address_threshold),
        ],
    )


def lead_rule_engine(
    name_threshold: float = 0.90,
    company_threshold: float = 0.85,
) -> MatchRuleEngine:
    """Default lead rules: email, phone, name (+ company)."""
    return MatchRuleEngine(
        "Lead",
        [
            EmailRule(),
            PhoneRule(),
            LeadNameRule(name_threshold, company_threshold),
        ],
    )

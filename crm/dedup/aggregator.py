"""
Collapse raw rule hits into one DuplicateMatch per candidate.

When several rules hit the same candidate the surviving entry keeps the
highest confidence (never a sum), the union of matched fields in first-seen
order, and the contributing rule names joined with ", " in evaluation order.
"""
from typing import Dict, List, Optional, Sequence

from crm.dedup.schemas import DuplicateGroup, DuplicateMatch


def aggregate_matches(raw: Sequence[DuplicateMatch]) -> List[DuplicateMatch]:
    """Merge hits per record id and sort by confidence, highest first (stable)."""
    by_record: Dict[str, List[DuplicateMatch]] = {}
    for match in raw:
        by_record.setdefault(match.record_id, []).append(match)

    merged: List[DuplicateMatch] = []
    for record_id, hits in by_record.items():
        fields: List[str] = []
        for hit in hits:
            for field in hit.matched_fields:
                if field not in fields:
                    fields.append(field)

        merged.append(
            DuplicateMatch(
                record_id=record_id,
                match_rule=", ".join(hit.match_rule for hit in hits),
                confidence_score=max(hit.confidence_score for hit in hits),
                matched_fields=fields,
            )
        )

    # list.sort is stable, so ties keep evaluation order
    merged.sort(key=lambda m: m.confidence_score, reverse=True)
    return merged


def build_group(
    subject_id: str,
    entity_type: str,
    raw: Sequence[DuplicateMatch],
) -> Optional[DuplicateGroup]:
    """DuplicateGroup for the subject, or None when nothing matched."""
    duplicates = aggregate_matches(raw)
    if not duplicates:
        return None
    return DuplicateGroup(
        master_record_id=subject_id,
        entity_type=entity_type,
        duplicates=duplicates,
    )

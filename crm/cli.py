"""
Command-line entry point for duplicate scans and merges.

Run with: crm-dedupe --tenant <tenant-id> <command> ...

Commands:
    init-db                               Create CRM tables
    scan customers|leads [--unique-pairs] Print duplicate groups as JSON
    merge customers|leads MASTER DUP...   Merge duplicates into MASTER
"""

import argparse
import json
import logging
import sys
from typing import Any, Dict, List, Optional, Sequence

from crm.core.config import get_settings
from crm.core.database import create_tables, get_session_factory
from crm.dedup.schemas import DuplicateGroup
from crm.services.dedup_service import DuplicateDetectionService


def unique_pairs(groups: Sequence[DuplicateGroup]) -> List[Dict[str, Any]]:
    """
    Collapse batch-scan groups to one entry per unordered record pair.

    Batch detection reports A -> B and B -> A separately; the first
    occurrence of each pair wins.
    """
    seen = set()
    pairs: List[Dict[str, Any]] = []
    for group in groups:
        for match in group.duplicates:
            key = frozenset((group.master_record_id, match.record_id))
            if key in seen:
                continue
            seen.add(key)
            pairs.append({
                "entity_type": group.entity_type,
                "record_a": group.master_record_id,
                "record_b": match.record_id,
                "match_rule": match.match_rule,
                "confidence_score": match.confidence_score,
                "matched_fields": match.matched_fields,
            })
    return pairs


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="crm-dedupe",
        description="Find and merge duplicate CRM customers and leads",
    )
    parser.add_argument("--tenant", help="Tenant id (required for scan / merge)")
    parser.add_argument("--user", default=None, help="Acting user id for the audit trail")

    sub = parser.add_subparsers(dest="command")

    sub.add_parser("init-db", help="Create CRM tables")

    scan = sub.add_parser("scan", help="Find duplicate records")
    scan.add_argument("entity", choices=["customers", "leads"])
    scan.add_argument(
        "--unique-pairs",
        action="store_true",
        help="Report each duplicate pair once instead of once per subject",
    )
    scan.add_argument(
        "--min-confidence",
        type=int,
        default=0,
        help="Only report matches at or above this confidence",
    )

    merge = sub.add_parser("merge", help="Merge duplicates into a master record")
    merge.add_argument("entity", choices=["customers", "leads"])
    merge.add_argument("master_id")
    merge.add_argument("duplicate_ids", nargs="+")

    return parser


def _filter_confidence(groups: List[DuplicateGroup], minimum: int) -> List[DuplicateGroup]:
    if minimum <= 0:
        return groups
    filtered = []
    for group in groups:
        kept = [m for m in group.duplicates if m.confidence_score >= minimum]
        if kept:
            filtered.append(group.model_copy(update={"duplicates": kept}))
    return filtered


def run_scan(service: DuplicateDetectionService, entity: str, unique: bool, min_confidence: int) -> Any:
    if entity == "customers":
        groups = service.find_customer_duplicates()
    else:
        groups = service.find_lead_duplicates()

    groups = _filter_confidence(groups, min_confidence)
    if unique:
        return unique_pairs(groups)
    return [group.model_dump(mode="json") for group in groups]


def run_merge(service: DuplicateDetectionService, entity: str, master_id: str, duplicate_ids: List[str]) -> Dict[str, Any]:
    if entity == "customers":
        result = service.merge_customers(master_id, duplicate_ids)
    else:
        result = service.merge_leads(master_id, duplicate_ids)
    return result.model_dump(mode="json")


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 2

    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if args.command == "init-db":
        create_tables()
        return 0

    if not args.tenant:
        parser.error("--tenant is required for scan and merge")

    session = get_session_factory()()
    try:
        service = DuplicateDetectionService.from_settings(
            session, args.tenant, settings, user_id=args.user,
        )
        if args.command == "scan":
            output = run_scan(service, args.entity, args.unique_pairs, args.min_confidence)
            exit_code = 0
        else:
            output = run_merge(service, args.entity, args.master_id, args.duplicate_ids)
            exit_code = 0 if output["success"] else 1
    finally:
        session.close()

    print(json.dumps(output, indent=2))
    return exit_code


if __name__ == "__main__":
    sys.exit(main())

from crm.dedup.aggregator import aggregate_matches, build_group
from crm.dedup.merge import CUSTOMER_TARGET, LEAD_TARGET, MergeExecutor
from crm.dedup.rules import MatchRule, MatchRuleEngine, customer_rule_engine, lead_rule_engine
from crm.dedup.schemas import DuplicateGroup, DuplicateMatch, MergeResult
from crm.dedup.similarity import normalize_phone, similarity

__all__ = [
    "aggregate_matches",
    "build_group",
    "CUSTOMER_TARGET",
    "LEAD_TARGET",
    "MergeExecutor",
    "MatchRule",
    "MatchRuleEngine",
    "customer_rule_engine",
    "lead_rule_engine",
    "DuplicateGroup",
    "DuplicateMatch",
    "MergeResult",
    "normalize_phone",
    "similarity",
]

"""
Duplicate Detection Service.

Finds likely duplicate customers and leads within one tenant using the
ordered match rules, and merges confirmed duplicates into a master record
(dependent foreign keys repointed, duplicates soft-deleted, audit trail
written) in a single transaction.

Detection is read-only and recomputed on every call. Batch detection
returns one group per matching subject, so mutual matches show up twice
(A -> B and B -> A); pair-level de-duplication belongs to the caller.
"""

import logging
import threading
from typing import Any, List, Optional, Sequence

from sqlalchemy.orm import Session

from crm.core.audit_service import AuditSink, SessionAuditSink
from crm.core.config import Settings
from crm.core.errors import DedupError, OperationCancelledError
from crm.core.models import Customer, Lead, new_id
from crm.dedup.aggregator import build_group
from crm.dedup.merge import CUSTOMER_TARGET, LEAD_TARGET, MergeExecutor, MergeTarget
from crm.dedup.rules import MatchRuleEngine, customer_rule_engine, lead_rule_engine
from crm.dedup.schemas import DuplicateGroup, MergeResult
from crm.dedup.store import TenantStore, UnitOfWork, raise_if_cancelled

logger = logging.getLogger(__name__)


class DuplicateDetectionService:
    """
    Tenant-scoped duplicate detection and merge.

    Args:
        session: SQLAlchemy session bound to the tenant database
        tenant_id: Tenant whose records are scanned and merged
        audit_sink: Where merge audit entries go. Defaults to AuditLog rows
            in `session`, committed with the merge.
        customer_rules / lead_rules: Rule engines (defaults: built-in rules)
        user_id: Acting user, recorded as deleted_by / audit user
    """

    def __init__(
        self,
        session: Session,
        tenant_id: str,
        audit_sink: Optional[AuditSink] = None,
        customer_rules: Optional[MatchRuleEngine] = None,
        lead_rules: Optional[MatchRuleEngine] = None,
        user_id: Optional[str] = None,
    ):
        self.session = session
        self.tenant_id = tenant_id
        self.user_id = user_id
        self.store = TenantStore(session, tenant_id)
        self.audit_sink = audit_sink or SessionAuditSink(session, tenant_id, user_id)
        self.customer_rules = customer_rules or customer_rule_engine()
        self.lead_rules = lead_rules or lead_rule_engine()

    @classmethod
    def from_settings(
        cls,
        session: Session,
        tenant_id: str,
        settings: Settings,
        **kwargs,
    ) -> "DuplicateDetectionService":
        """Build a service whose fuzzy thresholds come from settings."""
        return cls(
            session,
            tenant_id,
            customer_rules=customer_rule_engine(
                name_threshold=settings.customer_name_threshold,
                address_threshold=settings.customer_address_threshold,
            ),
            lead_rules=lead_rule_engine(
                name_threshold=settings.lead_name_threshold,
                company_threshold=settings.lead_company_threshold,
            ),
            **kwargs,
        )

    # ------------------------------------------------------------------
    # Detection
    # ------------------------------------------------------------------

    def find_customer_duplicates(
        self,
        new_customer: Optional[Customer] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> List[DuplicateGroup]:
        """
        Find duplicate customers.

        With new_customer, only that record is checked against the tenant's
        active customers (e.g. before inserting it). Without it, every active
        customer is checked against all the others.
        """
        return self._find_duplicates(Customer, self.customer_rules, new_customer, cancel_event)

    def find_lead_duplicates(
        self,
        new_lead: Optional[Lead] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> List[DuplicateGroup]:
        """Find duplicate leads. Same scoping rules as find_customer_duplicates."""
        return self._find_duplicates(Lead, self.lead_rules, new_lead, cancel_event)

    def _find_duplicates(
        self,
        model: Any,
        engine: MatchRuleEngine,
        new_record: Optional[Any],
        cancel_event: Optional[threading.Event],
    ) -> List[DuplicateGroup]:
        entity_type = engine.entity_type

        raise_if_cancelled(cancel_event, "Duplicate detection", entity_type)
        pool = self.store.list_active(model)

        if new_record is None:
            subjects = pool
        else:
            if new_record.id is None:
                # Unsaved record: give it the id it will be inserted with
                new_record.id = new_id()
            subjects = [new_record]

        groups: List[DuplicateGroup] = []
        for subject in subjects:
            raise_if_cancelled(cancel_event, "Duplicate detection", entity_type)
            group = build_group(subject.id, entity_type, engine.evaluate(subject, pool))
            if group is not None:
                groups.append(group)

        logger.info(
            f"{entity_type} duplicate scan (tenant {self.tenant_id}): "
            f"{len(subjects)} checked against {len(pool)}, {len(groups)} group(s)"
        )
        return groups

    # ------------------------------------------------------------------
    # Merge
    # ------------------------------------------------------------------

    def merge_customers(
        self,
        master_id: str,
        duplicate_ids: Sequence[str],
        cancel_event: Optional[threading.Event] = None,
    ) -> MergeResult:
        """Merge duplicate customers (contacts, interactions, opportunities, tickets) into master_id."""
        return self._merge(CUSTOMER_TARGET, master_id, duplicate_ids, cancel_event)

    def merge_leads(
        self,
        master_id: str,
        duplicate_ids: Sequence[str],
        cancel_event: Optional[threading.Event] = None,
    ) -> MergeResult:
        """Merge duplicate leads (activities) into master_id."""
        return self._merge(LEAD_TARGET, master_id, duplicate_ids, cancel_event)

    def _merge(
        self,
        target: MergeTarget,
        master_id: str,
        duplicate_ids: Sequence[str],
        cancel_event: Optional[threading.Event],
    ) -> MergeResult:
        """
        Run one merge and turn precondition failures into a failed result.

        Cancellation and database errors propagate (after rollback).
        """
        executor = MergeExecutor(
            self.store,
            target,
            self.audit_sink,
            UnitOfWork(self.session),
            performed_by=self.user_id,
            cancel_event=cancel_event,
        )
        try:
            return executor.merge(master_id, duplicate_ids)
        except OperationCancelledError:
            raise
        except DedupError as e:
            logger.warning(f"Merge rejected: {e}")
            return MergeResult(
                master_record_id=master_id,
                success=False,
                message=e.message,
                error=e.kind,
                missing_ids=getattr(e, "missing_ids", []),
            )

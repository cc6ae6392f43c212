"""
Merge duplicate records into a master record.

For every duplicate: repoint the owner foreign key of each registered
dependent kind to the master, soft-delete the duplicate and append an audit
entry. The whole call runs inside one UnitOfWork, so either every duplicate
is migrated or none is. The master's own fields are never touched.

Merges are serialized per (tenant, entity type) inside the process, and the
master and duplicate rows are read FOR UPDATE so concurrent merges in other
processes wait on the database instead of racing.
"""
import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple, Type

from crm.core.audit_service import AuditActions, AuditSink
from crm.core.errors import InconsistentInputError, RecordNotFoundError
from crm.core.models import (
    Activity, Contact, Customer, Interaction, Lead, Opportunity, Ticket,
)
from crm.dedup.schemas import MergeResult
from crm.dedup.store import TenantStore, UnitOfWork, raise_if_cancelled

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DependentKind:
    """A table whose rows point at the merged entity through `owner_column`."""
    model: Type[Any]
    owner_column: str
    label: str


@dataclass(frozen=True)
class MergeTarget:
    """Entity type being merged and the dependents that follow it."""
    entity_type: str
    model: Type[Any]
    plural: str
    dependents: Tuple[DependentKind, ...]


CUSTOMER_TARGET = MergeTarget(
    entity_type="Customer",
    model=Customer,
    plural="customers",
    dependents=(
        DependentKind(Contact, "customer_id", "contacts"),
        DependentKind(Interaction, "customer_id", "interactions"),
        DependentKind(Opportunity, "customer_id", "opportunities"),
        DependentKind(Ticket, "customer_id", "tickets"),
    ),
)

LEAD_TARGET = MergeTarget(
    entity_type="Lead",
    model=Lead,
    plural="leads",
    dependents=(
        DependentKind(Activity, "lead_id", "activities"),
    ),
)


# ---------------------------------------------------------------------------
# In-process merge serialization, one lock per (tenant, entity type)
# ---------------------------------------------------------------------------
_merge_locks: Dict[Tuple[str, str], threading.Lock] = {}
_merge_locks_guard = threading.Lock()


def merge_lock(tenant_id: str, entity_type: str) -> threading.Lock:
    """Get the lock serializing merges of entity_type within tenant_id."""
    with _merge_locks_guard:
        return _merge_locks.setdefault((tenant_id, entity_type), threading.Lock())


class MergeExecutor:
    """
    Executes one merge call.

    The executor owns the UnitOfWork it is given: merge() enters it exactly
    once, committing on success and rolling back on any error, including
    RecordNotFoundError / InconsistentInputError raised by the precondition
    checks and OperationCancelledError raised between duplicates.
    """

    def __init__(
        self,
        store: TenantStore,
        target: MergeTarget,
        audit_sink: AuditSink,
        unit_of_work: UnitOfWork,
        performed_by: Optional[str] = None,
        cancel_event: Optional[threading.Event] = None,
    ):
        self.store = store
        self.target = target
        self.audit_sink = audit_sink
        self.unit_of_work = unit_of_work
        self.performed_by = performed_by
        self.cancel_event = cancel_event

    def merge(self, master_id: str, duplicate_ids: Sequence[str]) -> MergeResult:
        """
        Merge duplicate_ids into master_id.

        Raises:
            RecordNotFoundError: master is not an active record of the tenant
            InconsistentInputError: some duplicate ids do not resolve, or the
                master is listed among the duplicates
            OperationCancelledError: cancel event set between duplicates
        """
        with merge_lock(self.store.tenant_id, self.target.entity_type):
            with self.unit_of_work:
                result = self._merge(master_id, list(duplicate_ids))

        logger.info(
            f"Merged {result.merged_count} {self.target.plural} into master "
            f"{master_id} (tenant {self.store.tenant_id})"
        )
        return result

    def _merge(self, master_id: str, duplicate_ids: List[str]) -> MergeResult:
        target = self.target

        master = self.store.get_active(target.model, master_id, for_update=True)
        if master is None:
            raise RecordNotFoundError(target.entity_type, master_id)

        if master_id in duplicate_ids:
            raise InconsistentInputError(
                f"Master {target.entity_type.lower()} {master_id} cannot be merged into itself",
                entity_type=target.entity_type,
            )

        duplicates = self.store.find_active(target.model, duplicate_ids, for_update=True)
        if len(duplicates) != len(duplicate_ids):
            found = {d.id for d in duplicates}
            missing = [i for i in dict.fromkeys(duplicate_ids) if i not in found]
            message = f"Some duplicate {target.plural} not found"
            if missing:
                message += f": {', '.join(missing)}"
            raise InconsistentInputError(
                message, entity_type=target.entity_type, missing_ids=missing,
            )

        # Process in the order the caller listed the ids
        position = {record_id: i for i, record_id in enumerate(duplicate_ids)}
        duplicates.sort(key=lambda d: position[d.id])

        merged_ids: List[str] = []
        for duplicate in duplicates:
            raise_if_cancelled(self.cancel_event, "Merge", target.entity_type)

            moved = self._reassign_dependents(master.id, duplicate.id)
            logger.debug(
                f"Repointed {moved} from {target.entity_type} {duplicate.id} "
                f"to {master.id}"
            )

            duplicate.is_deleted = True
            duplicate.deleted_at = datetime.utcnow()
            duplicate.deleted_by = self.performed_by

            self.audit_sink.append(
                AuditActions.DELETE,
                target.entity_type,
                duplicate.id,
                f"Merged into {target.entity_type.lower()} {master.id}",
            )
            merged_ids.append(duplicate.id)

        return MergeResult(
            master_record_id=master.id,
            merged_record_ids=merged_ids,
            merged_count=len(merged_ids),
            success=True,
            message=f"Successfully merged {len(merged_ids)} {target.plural}",
        )

    def _reassign_dependents(self, master_id: str, duplicate_id: str) -> Dict[str, int]:
        """Point every active dependent of duplicate_id at master_id. Returns counts per kind."""
        moved: Dict[str, int] = {}
        for kind in self.target.dependents:
            rows = self.store.owned_by(kind.model, kind.owner_column, duplicate_id)
            for row in rows:
                setattr(row, kind.owner_column, master_id)
            moved[kind.label] = len(rows)
        return moved

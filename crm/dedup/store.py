"""
Tenant-scoped record access and the per-call unit of work.

TenantStore only ever returns active (not soft-deleted) rows of one tenant.
UnitOfWork wraps one merge call: it commits on a clean exit and rolls back
on every other exit path, so a failed or cancelled merge leaves nothing
behind.
"""
import logging
import threading
from typing import Any, List, Optional, Sequence, Type

from sqlalchemy.orm import Query, Session

from crm.core.errors import OperationCancelledError

logger = logging.getLogger(__name__)


def raise_if_cancelled(
    cancel_event: Optional[threading.Event],
    operation: str,
    entity_type: Optional[str] = None,
) -> None:
    """Raise OperationCancelledError if the caller has set the cancel event."""
    if cancel_event is not None and cancel_event.is_set():
        raise OperationCancelledError(operation, entity_type=entity_type)


class TenantStore:
    """Read / lock access to one tenant's active CRM rows."""

    def __init__(self, db: Session, tenant_id: str):
        self.db = db
        self.tenant_id = tenant_id

    def active(self, model: Type[Any]) -> Query:
        """Base query: the tenant's rows of `model` that are not soft-deleted."""
        return self.db.query(model).filter(
            model.tenant_id == self.tenant_id,
            model.is_deleted == False,  # noqa: E712
        )

    def list_active(self, model: Type[Any]) -> List[Any]:
        """All active rows, oldest first (stable evaluation order)."""
        return self.active(model).order_by(model.created_at, model.id).all()

    def get_active(
        self,
        model: Type[Any],
        record_id: str,
        for_update: bool = False,
    ) -> Optional[Any]:
        query = self.active(model).filter(model.id == record_id)
        if for_update:
            query = query.with_for_update()
        return query.first()

    def find_active(
        self,
        model: Type[Any],
        record_ids: Sequence[str],
        for_update: bool = False,
    ) -> List[Any]:
        """Active rows whose id is in record_ids (each row at most once)."""
        if not record_ids:
            return []
        query = self.active(model).filter(model.id.in_(list(record_ids)))
        if for_update:
            query = query.with_for_update()
        return query.all()

    def owned_by(self, model: Type[Any], owner_column: str, owner_id: str) -> List[Any]:
        """Active dependent rows whose `owner_column` points at owner_id."""
        return self.active(model).filter(
            getattr(model, owner_column) == owner_id,
        ).all()


class UnitOfWork:
    """
    Single-use transaction scope for one merge call.

    Usage:
        with UnitOfWork(db):
            ...  # mutations
        # committed here; any exception inside rolled everything back
    """

    def __init__(self, db: Session):
        self.db = db
        self.committed = False
        self._used = False

    def __enter__(self) -> "UnitOfWork":
        if self._used:
            raise RuntimeError("UnitOfWork is single-use; create one per call")
        self._used = True
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc_type is not None:
            self.db.rollback()
            logger.warning(f"Rolled back unit of work: {exc_type.__name__}: {exc}")
            return False

        try:
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Commit failed, unit of work rolled back: {e}")
            raise

        self.committed = True
        return False

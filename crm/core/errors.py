"""
Duplicate detection and merge error classification.

Each error carries the entity type it concerns and can be serialized for
logging. Merge operations translate NotFound / InconsistentInput into an
explicit failed MergeResult; cancellation propagates to the caller.
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Sequence


class MergeErrorKind(str, Enum):
    """Failure kinds reported on a MergeResult."""
    NOT_FOUND = "not_found"
    INCONSISTENT_INPUT = "inconsistent_input"
    CANCELLED = "cancelled"


class DedupError(Exception):
    """
    Base exception for duplicate detection / merge errors.

    Attributes:
        message: Human-readable error description
        entity_type: "Customer" or "Lead" when known
        kind: MergeErrorKind reported to callers
    """

    kind: Optional[MergeErrorKind] = None

    def __init__(self, message: str, entity_type: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.entity_type = entity_type

    def __str__(self) -> str:
        if self.entity_type:
            return f"[{self.entity_type}] {self.message}"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "kind": self.kind.value if self.kind else None,
            "message": self.message,
            "entity_type": self.entity_type,
        }


class RecordNotFoundError(DedupError):
    """The master id does not resolve to an active record of the tenant."""

    kind = MergeErrorKind.NOT_FOUND

    def __init__(self, entity_type: str, record_id: str):
        super().__init__(
            f"Master {entity_type.lower()} {record_id} not found",
            entity_type=entity_type,
        )
        self.record_id = record_id


class InconsistentInputError(DedupError):
    """
    The duplicate id set does not fully resolve.

    missing_ids lists the requested ids that are not active records of the
    tenant (empty when the mismatch comes from repeated ids).
    """

    kind = MergeErrorKind.INCONSISTENT_INPUT

    def __init__(
        self,
        message: str,
        entity_type: Optional[str] = None,
        missing_ids: Optional[Sequence[str]] = None,
    ):
        super().__init__(message, entity_type=entity_type)
        self.missing_ids: List[str] = list(missing_ids or [])

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["missing_ids"] = self.missing_ids
        return data


class OperationCancelledError(DedupError):
    """Caller-initiated cancellation observed between store operations."""

    kind = MergeErrorKind.CANCELLED

    def __init__(self, operation: str, entity_type: Optional[str] = None):
        super().__init__(f"{operation} cancelled", entity_type=entity_type)
        self.operation = operation

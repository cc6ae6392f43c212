"""
Pydantic schemas for duplicate detection results and merge outcomes.

These are the shapes handed to calling layers (API, CLI, review queues).
They are computed per call and never persisted.
"""
from typing import List, Optional
from pydantic import BaseModel, Field

from crm.core.errors import MergeErrorKind


class DuplicateMatch(BaseModel):
    """One candidate record matched against a subject record."""
    record_id: str
    match_rule: str = Field(
        ...,
        description="Rule name, or comma-joined rule names when several rules matched"
    )
    confidence_score: int = Field(..., ge=0, le=100)
    matched_fields: List[str] = Field(default_factory=list)


class DuplicateGroup(BaseModel):
    """A subject record and its likely duplicates, highest confidence first."""
    master_record_id: str
    entity_type: str
    duplicates: List[DuplicateMatch] = Field(..., min_length=1)


class MergeResult(BaseModel):
    """Outcome of merging duplicates into a master record."""
    master_record_id: str
    merged_record_ids: List[str] = Field(default_factory=list)
    merged_count: int = 0
    success: bool
    message: str

    error: Optional[MergeErrorKind] = None
    missing_ids: List[str] = Field(default_factory=list)

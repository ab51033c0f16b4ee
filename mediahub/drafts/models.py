"""Draft data model and request schemas."""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from mediahub.jobs.models import ProcessingState


class DraftStatus(str, Enum):
    DRAFT = "draft"
    IN_REVIEW = "in_review"
    SCHEDULED = "scheduled"
    PUBLISHED = "published"
    ARCHIVED = "archived"


def _unique(values: List[str]) -> List[str]:
    return list(dict.fromkeys(values))


class Draft(BaseModel):
    """A user-authored document referencing uploaded media by id."""
    id: str
    content: str = ""
    media_ids: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    status: DraftStatus = DraftStatus.DRAFT
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
    processing: Optional[ProcessingState] = None

    @field_validator("tags")
    @classmethod
    def _dedupe_tags(cls, tags: List[str]) -> List[str]:
        # Tags have set semantics; keep first occurrence order
        return _unique(tags)


class DraftCreate(BaseModel):
    content: Optional[str] = None
    media_ids: Optional[List[str]] = None
    tags: List[str] = Field(default_factory=list)
    status: DraftStatus = DraftStatus.DRAFT


class DraftUpdate(BaseModel):
    content: Optional[str] = None
    media_ids: Optional[List[str]] = None
    tags: Optional[List[str]] = None
    status: Optional[DraftStatus] = None

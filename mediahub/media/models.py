"""Media record data model."""

from enum import Enum
from typing import Any, Dict

from pydantic import BaseModel, Field


class MediaCategory(str, Enum):
    IMAGE = "image"
    AUDIO = "audio"
    VIDEO = "video"
    SUBTITLE = "subtitle"
    TEXT = "text"

    @property
    def directory(self) -> str:
        """Pluralized storage directory name, e.g. ``images``."""
        return f"{self.value}s"


class MediaRecord(BaseModel):
    """Metadata for one uploaded file. Immutable once stored, except deletion."""
    id: str
    category: MediaCategory
    url: str
    name: str
    size: int = 0
    size_formatted: str = "0 B"
    metadata: Dict[str, Any] = Field(default_factory=dict)

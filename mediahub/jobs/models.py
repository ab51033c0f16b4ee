"""Processing job data model: config, result, and in-memory queue entries."""

from datetime import datetime
from enum import Enum
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field


class ProcessingStatus(str, Enum):
    PENDING = "pending"
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


# A job in one of these states must not be enqueued again
ACTIVE_STATUSES = frozenset({ProcessingStatus.QUEUED, ProcessingStatus.PROCESSING})


class Quality(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class MediaRef(BaseModel):
    id: str
    name: str = ""
    url: str


class AudioTrack(BaseModel):
    id: str
    name: str = ""
    language: Optional[str] = None
    url: str


class SubtitleTrack(BaseModel):
    id: str
    name: str = ""
    language: Optional[str] = None
    url: str
    format: Optional[str] = None


class ProcessingConfig(BaseModel):
    video_file: MediaRef
    audio_tracks: List[AudioTrack] = Field(default_factory=list)
    subtitle_tracks: List[SubtitleTrack] = Field(default_factory=list)
    output_format: str = "mp4"
    quality: Quality = Quality.MEDIUM


class TranscodeOutput(BaseModel):
    """What the transcoder reports, before the output is uploaded."""
    duration_seconds: float
    file_size_bytes: int
    format: str
    resolution: Optional[str] = None
    bitrate: Optional[int] = None
    processed_at: datetime = Field(default_factory=datetime.utcnow)


class ProcessingResult(TranscodeOutput):
    output_url: str
    blob_key: str


class ProcessingState(BaseModel):
    """Processing job state embedded in a draft record."""
    config: ProcessingConfig
    status: ProcessingStatus = ProcessingStatus.PENDING
    result: Optional[ProcessingResult] = None
    error: Optional[str] = None
    queued_at: datetime = Field(default_factory=datetime.utcnow)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


# ---------------------------------------------------------------------------
# Queue entries: one variant per status, each carrying only its valid fields
# ---------------------------------------------------------------------------

class QueuedEntry(BaseModel):
    status: Literal[ProcessingStatus.QUEUED] = ProcessingStatus.QUEUED
    draft_id: str
    config: ProcessingConfig
    queued_at: datetime

    def start(self, started_at: datetime) -> "ProcessingEntry":
        return ProcessingEntry(
            draft_id=self.draft_id,
            config=self.config,
            queued_at=self.queued_at,
            started_at=started_at,
        )


class ProcessingEntry(BaseModel):
    status: Literal[ProcessingStatus.PROCESSING] = ProcessingStatus.PROCESSING
    draft_id: str
    config: ProcessingConfig
    queued_at: datetime
    started_at: datetime

    def complete(self, result: ProcessingResult, completed_at: datetime) -> "CompletedEntry":
        return CompletedEntry(
            draft_id=self.draft_id,
            config=self.config,
            queued_at=self.queued_at,
            started_at=self.started_at,
            completed_at=completed_at,
            result=result,
        )

    def fail(self, error: str, completed_at: datetime) -> "FailedEntry":
        return FailedEntry(
            draft_id=self.draft_id,
            config=self.config,
            queued_at=self.queued_at,
            started_at=self.started_at,
            completed_at=completed_at,
            error=error,
        )


class CompletedEntry(BaseModel):
    status: Literal[ProcessingStatus.COMPLETED] = ProcessingStatus.COMPLETED
    draft_id: str
    config: ProcessingConfig
    queued_at: datetime
    started_at: datetime
    completed_at: datetime
    result: ProcessingResult


class FailedEntry(BaseModel):
    status: Literal[ProcessingStatus.FAILED] = ProcessingStatus.FAILED
    draft_id: str
    config: ProcessingConfig
    queued_at: datetime
    started_at: datetime
    completed_at: datetime
    error: str


QueueEntry = Annotated[
    Union[QueuedEntry, ProcessingEntry, CompletedEntry, FailedEntry],
    Field(discriminator="status"),
]


class JobOutcome(str, Enum):
    """What ``process_one`` did with a job."""
    SKIPPED = "skipped"
    COMPLETED = "completed"
    FAILED = "failed"


class QueueStatus(BaseModel):
    total: int = 0
    queued: int = 0
    processing: int = 0
    completed: int = 0
    failed: int = 0
    is_processing: bool = False

"""Drafts API: CRUD plus processing job submission and status."""

from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from mediahub.api.deps import get_drafts, get_queue
from mediahub.drafts.models import Draft, DraftCreate, DraftStatus, DraftUpdate
from mediahub.drafts.service import DraftService
from mediahub.errors import ConflictError, ValidationError
from mediahub.jobs.models import (
    AudioTrack,
    MediaRef,
    ProcessingConfig,
    ProcessingStatus,
    Quality,
    QueueStatus,
    SubtitleTrack,
)
from mediahub.jobs.processing_queue import ProcessingQueue, can_enqueue

router = APIRouter(prefix="/drafts")


class ProcessRequest(BaseModel):
    """Processing job submission. ``video_file`` is checked by hand to answer 400."""
    video_file: Optional[MediaRef] = None
    audio_tracks: List[AudioTrack] = Field(default_factory=list)
    subtitle_tracks: List[SubtitleTrack] = Field(default_factory=list)
    output_format: str = "mp4"
    quality: Quality = Quality.MEDIUM


class ProcessResponse(BaseModel):
    draft_id: str
    status: ProcessingStatus
    message: str


# ---------------------------------------------------------------------------
# Queue-wide endpoints (declared before /{draft_id} so they match first)
# ---------------------------------------------------------------------------

@router.get("/processing/queue", response_model=QueueStatus)
async def queue_status(queue: ProcessingQueue = Depends(get_queue)):
    return queue.get_queue_status()


@router.post("/processing/run", response_model=QueueStatus)
async def run_queue(queue: ProcessingQueue = Depends(get_queue)):
    """Drain the queue now and report the resulting counts."""
    await queue.run_worker()
    return queue.get_queue_status()


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------

@router.get("", response_model=List[Draft])
async def list_drafts(
    tag: Optional[str] = None,
    status: Optional[DraftStatus] = None,
    drafts: DraftService = Depends(get_drafts),
):
    return await drafts.list(tag=tag, status=status)


@router.post("", response_model=Draft, status_code=201)
async def create_draft(body: DraftCreate, drafts: DraftService = Depends(get_drafts)):
    return await drafts.create(body)


@router.get("/{draft_id}", response_model=Draft)
async def get_draft(draft_id: str, drafts: DraftService = Depends(get_drafts)):
    return await drafts.get(draft_id)


@router.put("/{draft_id}", response_model=Draft)
async def update_draft(
    draft_id: str,
    body: DraftUpdate,
    drafts: DraftService = Depends(get_drafts),
):
    return await drafts.update(draft_id, body)


@router.delete("/{draft_id}")
async def delete_draft(draft_id: str, drafts: DraftService = Depends(get_drafts)):
    await drafts.delete(draft_id)
    return {"message": "Draft deleted successfully"}


# ---------------------------------------------------------------------------
# Processing
# ---------------------------------------------------------------------------

@router.post("/{draft_id}/process", response_model=ProcessResponse, status_code=202)
async def start_processing(
    draft_id: str,
    body: ProcessRequest,
    drafts: DraftService = Depends(get_drafts),
    queue: ProcessingQueue = Depends(get_queue),
):
    """Queue a processing job for the draft. Run it with POST /processing/run."""
    draft = await drafts.get(draft_id)
    if not can_enqueue(draft):
        raise ConflictError(f"Draft is already {draft.processing.status.value}")
    if body.video_file is None:
        raise ValidationError("video_file is required")

    config = ProcessingConfig.model_validate(body.model_dump())
    await queue.enqueue(draft_id, config)
    return ProcessResponse(
        draft_id=draft_id,
        status=ProcessingStatus.QUEUED,
        message="Draft queued for processing. Poll GET /api/drafts/{id}/processing for status.",
    )


@router.get("/{draft_id}/processing")
async def processing_status(
    draft_id: str,
    drafts: DraftService = Depends(get_drafts),
    queue: ProcessingQueue = Depends(get_queue),
):
    """Project the draft's processing state; PENDING when never queued."""
    draft = await drafts.get(draft_id)
    state = draft.processing
    if state is None:
        return {"draft_id": draft_id, "status": ProcessingStatus.PENDING.value}

    response = {
        "draft_id": draft_id,
        "status": state.status.value,
        "config": state.config.model_dump(mode="json"),
        "queued_at": state.queued_at.isoformat(),
        "started_at": state.started_at.isoformat() if state.started_at else None,
        "completed_at": state.completed_at.isoformat() if state.completed_at else None,
        "in_queue": queue.get_entry(draft_id) is not None,
    }
    if state.status == ProcessingStatus.COMPLETED and state.result:
        response["result"] = state.result.model_dump(mode="json")
    if state.status == ProcessingStatus.FAILED:
        response["error"] = state.error
    return response

"""In-process draft processing queue.

Jobs are drained sequentially (one draft at a time) by an explicit call to
``run_worker``; enqueueing never starts work on its own. Queue entries live
in memory only and mirror the ``processing`` field persisted on each draft.
"""

import logging
import time
from datetime import datetime
from typing import Dict, Optional

from mediahub.drafts.models import Draft
from mediahub.errors import NotFoundError, ValidationError
from mediahub.jobs.models import (
    ACTIVE_STATUSES,
    JobOutcome,
    ProcessingConfig,
    ProcessingEntry,
    ProcessingResult,
    ProcessingState,
    ProcessingStatus,
    QueuedEntry,
    QueueEntry,
    QueueStatus,
)
from mediahub.jobs.transcoder import Transcoder
from mediahub.storage.blob_store import MockBlobStore
from mediahub.storage.kv_store import JsonFileStore

logger = logging.getLogger(__name__)

# Stand-in bytes for the encoded output sent to the blob store
PLACEHOLDER_OUTPUT = b"mock-video-data"


def can_enqueue(draft: Draft) -> bool:
    """False while the draft already has a queued or running job."""
    return draft.processing is None or draft.processing.status not in ACTIVE_STATUSES


class ProcessingQueue:
    """Sequential draft processing queue. One instance per process."""

    def __init__(
        self,
        drafts: JsonFileStore[Draft],
        transcoder: Transcoder,
        blob_store: MockBlobStore,
    ):
        self._drafts = drafts
        self._transcoder = transcoder
        self._blob_store = blob_store
        self._entries: Dict[str, QueueEntry] = {}
        self._draining = False

    @property
    def is_processing(self) -> bool:
        return self._draining

    def get_entry(self, draft_id: str) -> Optional[QueueEntry]:
        return self._entries.get(draft_id)

    async def enqueue(self, draft_id: str, config: ProcessingConfig) -> Draft:
        """Mark the draft QUEUED and add (or overwrite) its queue entry.

        Callers must check ``can_enqueue`` first; this method does not.
        """
        draft = await self._drafts.get(draft_id)
        if draft is None:
            raise NotFoundError(f"Draft {draft_id} not found")
        if not config.video_file.id or not config.video_file.url:
            raise ValidationError("video_file with id and url is required")

        now = datetime.utcnow()
        draft.processing = ProcessingState(
            config=config,
            status=ProcessingStatus.QUEUED,
            queued_at=now,
        )
        await self._drafts.save(draft_id, draft)

        if draft_id in self._entries:
            # Re-enqueue moves the job to the back of the line
            del self._entries[draft_id]
        self._entries[draft_id] = QueuedEntry(draft_id=draft_id, config=config, queued_at=now)
        logger.info(f"Draft {draft_id} queued for processing")
        return draft

    async def run_worker(self) -> None:
        """Run every QUEUED entry once, in insertion order.

        No-op if a drain is already running or nothing is queued. Entries
        added while draining wait for the next call.
        """
        if self._draining or not self._entries:
            return

        self._draining = True
        try:
            for draft_id, entry in list(self._entries.items()):
                if isinstance(entry, QueuedEntry):
                    await self.process_one(draft_id, entry.config)
        finally:
            self._draining = False

    async def process_one(self, draft_id: str, config: ProcessingConfig) -> JobOutcome:
        """Execute one job. Transcode/upload failures are recorded, not raised.

        Store failures while persisting a transition do propagate, which can
        leave the in-memory entry out of step with the persisted draft.
        """
        draft = await self._drafts.get(draft_id)
        if draft is None:
            logger.warning(f"Draft {draft_id} no longer exists, skipping job")
            return JobOutcome.SKIPPED

        if draft.processing is None:
            draft.processing = ProcessingState(config=config)
        started_at = datetime.utcnow()
        draft.processing.status = ProcessingStatus.PROCESSING
        draft.processing.started_at = started_at
        await self._drafts.save(draft_id, draft)

        entry = self._entries.get(draft_id)
        if isinstance(entry, QueuedEntry):
            entry = entry.start(started_at)
            self._entries[draft_id] = entry

        try:
            output = await self._transcoder.transcode(config)
            key = f"processed/{draft_id}/{int(time.time() * 1000)}.{output.format}"
            upload = await self._blob_store.upload(
                PLACEHOLDER_OUTPUT, key, content_type=f"video/{output.format}"
            )
        except Exception as exc:
            logger.exception(f"Error processing draft {draft_id}")
            error = str(exc) or type(exc).__name__
            completed_at = datetime.utcnow()
            draft.processing.status = ProcessingStatus.FAILED
            draft.processing.error = error
            draft.processing.completed_at = completed_at
            await self._drafts.save(draft_id, draft)
            self._mirror(draft_id, entry, lambda e: e.fail(error, completed_at))
            return JobOutcome.FAILED

        result = ProcessingResult(
            **output.model_dump(),
            output_url=upload.url,
            blob_key=upload.key,
        )
        completed_at = datetime.utcnow()
        draft.processing.status = ProcessingStatus.COMPLETED
        draft.processing.result = result
        draft.processing.error = None
        draft.processing.completed_at = completed_at
        await self._drafts.save(draft_id, draft)
        self._mirror(draft_id, entry, lambda e: e.complete(result, completed_at))

        logger.info(f"Draft {draft_id} processed successfully")
        return JobOutcome.COMPLETED

    def _mirror(self, draft_id: str, entry: Optional[QueueEntry], transition) -> None:
        # The entry may have been cleared or replaced while the job ran
        if isinstance(entry, ProcessingEntry) and self._entries.get(draft_id) is entry:
            self._entries[draft_id] = transition(entry)

    def get_queue_status(self) -> QueueStatus:
        counts = {status: 0 for status in ProcessingStatus}
        for entry in self._entries.values():
            counts[entry.status] += 1
        return QueueStatus(
            total=len(self._entries),
            queued=counts[ProcessingStatus.QUEUED],
            processing=counts[ProcessingStatus.PROCESSING],
            completed=counts[ProcessingStatus.COMPLETED],
            failed=counts[ProcessingStatus.FAILED],
            is_processing=self._draining,
        )

    def clear_queue(self) -> None:
        """Drop all entries and reset the draining flag. Persisted drafts are untouched."""
        self._entries.clear()
        self._draining = False

    reset = clear_queue

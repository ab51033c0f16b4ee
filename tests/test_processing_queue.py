"""Tests for the draft processing queue state machine."""

import asyncio
from datetime import datetime

import pytest

from mediahub.drafts.models import Draft
from mediahub.errors import NotFoundError, ProcessingError, StorageError, UploadError, ValidationError
from mediahub.jobs.models import (
    CompletedEntry,
    FailedEntry,
    JobOutcome,
    MediaRef,
    ProcessingConfig,
    ProcessingState,
    ProcessingStatus,
    QueuedEntry,
    TranscodeOutput,
)
from mediahub.jobs.processing_queue import ProcessingQueue, can_enqueue
from mediahub.jobs.transcoder import MockTranscoder, Transcoder, quality_settings


class _FailingTranscoder(Transcoder):
    def __init__(self, fail_for=None):
        self.fail_for = fail_for
        self.calls = []

    async def transcode(self, config: ProcessingConfig) -> TranscodeOutput:
        self.calls.append(config.video_file.id)
        if self.fail_for is None or config.video_file.id in self.fail_for:
            raise ProcessingError("ffmpeg exited with status 1")
        return TranscodeOutput(duration_seconds=5, file_size_bytes=100, format=config.output_format)


class _FailingBlobStore:
    async def upload(self, data, key, content_type="application/octet-stream"):
        raise UploadError("bucket unavailable", key=key)


def _config(video_id: str = "v1", **kwargs) -> ProcessingConfig:
    return ProcessingConfig(
        video_file=MediaRef(id=video_id, name="test-video.mp4", url="/x.mp4"),
        **kwargs,
    )


def _save_draft(store, draft_id: str) -> Draft:
    draft = Draft(id=draft_id, content="Test draft", media_ids=["v1"], tags=["test"])
    asyncio.run(store.save(draft_id, draft))
    return draft


@pytest.fixture()
def queue(draft_store, blob_store) -> ProcessingQueue:
    return ProcessingQueue(draft_store, MockTranscoder(delay=0), blob_store)


def _get(store, draft_id: str) -> Draft:
    return asyncio.run(store.get(draft_id))


# ---------------------------------------------------------------------------
# enqueue
# ---------------------------------------------------------------------------

def test_enqueue_marks_draft_and_entry_queued(queue: ProcessingQueue, draft_store) -> None:
    _save_draft(draft_store, "d1")
    config = _config(output_format="mp4", quality="medium")

    asyncio.run(queue.enqueue("d1", config))

    draft = _get(draft_store, "d1")
    assert draft.processing.status == ProcessingStatus.QUEUED
    assert draft.processing.config == config
    assert draft.processing.queued_at is not None
    assert draft.processing.started_at is None
    assert draft.processing.completed_at is None

    entry = queue.get_entry("d1")
    assert isinstance(entry, QueuedEntry)
    assert entry.queued_at == draft.processing.queued_at
    assert queue.get_queue_status().queued == 1


def test_enqueue_does_not_start_processing(queue: ProcessingQueue, draft_store) -> None:
    _save_draft(draft_store, "d1")
    asyncio.run(queue.enqueue("d1", _config()))
    assert queue.get_queue_status().is_processing is False
    assert _get(draft_store, "d1").processing.status == ProcessingStatus.QUEUED


def test_enqueue_missing_draft_changes_nothing(queue: ProcessingQueue, draft_store) -> None:
    with pytest.raises(NotFoundError, match="Draft non-existent not found"):
        asyncio.run(queue.enqueue("non-existent", _config()))
    assert queue.get_queue_status().total == 0
    assert asyncio.run(draft_store.get_all()) == {}


@pytest.mark.parametrize("ref", [
    MediaRef(id="", name="v.mp4", url="/x.mp4"),
    MediaRef(id="v1", name="v.mp4", url=""),
])
def test_enqueue_requires_video_id_and_url(queue: ProcessingQueue, draft_store, ref) -> None:
    _save_draft(draft_store, "d1")
    with pytest.raises(ValidationError, match="video_file with id and url"):
        asyncio.run(queue.enqueue("d1", ProcessingConfig(video_file=ref)))
    assert _get(draft_store, "d1").processing is None


def test_reenqueue_overwrites_single_entry(queue: ProcessingQueue, draft_store) -> None:
    _save_draft(draft_store, "d1")
    asyncio.run(queue.enqueue("d1", _config("v1")))
    asyncio.run(queue.enqueue("d1", _config("v2")))

    assert queue.get_queue_status().total == 1
    assert queue.get_entry("d1").config.video_file.id == "v2"


def test_guard_rejects_active_jobs(queue: ProcessingQueue, draft_store) -> None:
    draft = _save_draft(draft_store, "d1")
    assert can_enqueue(draft) is True

    asyncio.run(queue.enqueue("d1", _config()))
    assert can_enqueue(_get(draft_store, "d1")) is False

    processing = _get(draft_store, "d1")
    processing.processing.status = ProcessingStatus.PROCESSING
    assert can_enqueue(processing) is False

    for terminal in (ProcessingStatus.COMPLETED, ProcessingStatus.FAILED):
        processing.processing.status = terminal
        assert can_enqueue(processing) is True


# ---------------------------------------------------------------------------
# run_worker / process_one
# ---------------------------------------------------------------------------

def test_run_worker_completes_job(queue: ProcessingQueue, draft_store) -> None:
    _save_draft(draft_store, "d1")
    asyncio.run(queue.enqueue("d1", _config()))

    asyncio.run(queue.run_worker())

    state = _get(draft_store, "d1").processing
    assert state.status == ProcessingStatus.COMPLETED
    assert state.result.duration_seconds == MockTranscoder.DURATION_SECONDS == 120
    assert state.result.format == "mp4"
    assert state.result.resolution == "1920x1080"
    assert state.result.blob_key.startswith("processed/d1/")
    assert state.result.blob_key.endswith(".mp4")
    assert state.result.output_url == f"http://testserver/uploads/{state.result.blob_key}"
    assert state.started_at is not None
    assert state.completed_at >= state.started_at
    assert state.error is None

    entry = queue.get_entry("d1")
    assert isinstance(entry, CompletedEntry)
    assert entry.result == state.result

    status = queue.get_queue_status()
    assert status.completed == 1
    assert status.is_processing is False


def test_output_format_flows_into_result(queue: ProcessingQueue, draft_store, blob_store) -> None:
    _save_draft(draft_store, "d1")
    asyncio.run(queue.enqueue("d1", _config(output_format="webm", quality="high")))
    asyncio.run(queue.run_worker())

    result = _get(draft_store, "d1").processing.result
    assert result.format == "webm"
    assert result.blob_key.endswith(".webm")
    assert asyncio.run(blob_store.exists(result.blob_key)) is True


def test_transcode_failure_recorded_on_draft(draft_store, blob_store) -> None:
    queue = ProcessingQueue(draft_store, _FailingTranscoder(), blob_store)
    _save_draft(draft_store, "d1")
    asyncio.run(queue.enqueue("d1", _config()))

    asyncio.run(queue.run_worker())

    state = _get(draft_store, "d1").processing
    assert state.status == ProcessingStatus.FAILED
    assert state.error == "ffmpeg exited with status 1"
    assert state.completed_at is not None
    assert state.result is None

    entry = queue.get_entry("d1")
    assert isinstance(entry, FailedEntry)
    assert entry.error == state.error
    assert queue.get_queue_status().failed == 1


def test_upload_failure_recorded_on_draft(draft_store) -> None:
    queue = ProcessingQueue(draft_store, MockTranscoder(delay=0), _FailingBlobStore())
    _save_draft(draft_store, "d1")
    asyncio.run(queue.enqueue("d1", _config()))

    asyncio.run(queue.run_worker())

    state = _get(draft_store, "d1").processing
    assert state.status == ProcessingStatus.FAILED
    assert state.error == "bucket unavailable"


def test_failure_does_not_stop_later_jobs(draft_store, blob_store) -> None:
    transcoder = _FailingTranscoder(fail_for={"v1"})
    queue = ProcessingQueue(draft_store, transcoder, blob_store)
    for draft_id, video_id in (("d1", "v1"), ("d2", "v2")):
        _save_draft(draft_store, draft_id)
        asyncio.run(queue.enqueue(draft_id, _config(video_id)))

    asyncio.run(queue.run_worker())

    assert transcoder.calls == ["v1", "v2"]
    assert _get(draft_store, "d1").processing.status == ProcessingStatus.FAILED
    assert _get(draft_store, "d2").processing.status == ProcessingStatus.COMPLETED
    status = queue.get_queue_status()
    assert (status.failed, status.completed, status.total) == (1, 1, 2)


def test_jobs_run_in_enqueue_order(draft_store, blob_store) -> None:
    transcoder = _FailingTranscoder(fail_for=set())
    queue = ProcessingQueue(draft_store, transcoder, blob_store)
    for n in (3, 1, 2):
        _save_draft(draft_store, f"d{n}")
        asyncio.run(queue.enqueue(f"d{n}", _config(f"v{n}")))

    asyncio.run(queue.run_worker())
    assert transcoder.calls == ["v3", "v1", "v2"]


def test_terminal_entries_not_rerun(draft_store, blob_store) -> None:
    transcoder = _FailingTranscoder(fail_for=set())
    queue = ProcessingQueue(draft_store, transcoder, blob_store)
    _save_draft(draft_store, "d1")
    asyncio.run(queue.enqueue("d1", _config()))

    asyncio.run(queue.run_worker())
    asyncio.run(queue.run_worker())
    assert transcoder.calls == ["v1"]


def test_deleted_draft_is_skipped(queue: ProcessingQueue, draft_store) -> None:
    _save_draft(draft_store, "d1")
    asyncio.run(queue.enqueue("d1", _config()))
    asyncio.run(draft_store.delete("d1"))

    assert asyncio.run(queue.process_one("d1", _config())) == JobOutcome.SKIPPED
    asyncio.run(queue.run_worker())
    assert asyncio.run(draft_store.get("d1")) is None
    assert queue.get_queue_status().is_processing is False


def test_run_worker_noop_when_empty_or_draining(queue: ProcessingQueue, draft_store) -> None:
    asyncio.run(queue.run_worker())
    assert queue.get_queue_status().total == 0

    _save_draft(draft_store, "d1")
    asyncio.run(queue.enqueue("d1", _config()))
    queue._draining = True
    asyncio.run(queue.run_worker())
    assert _get(draft_store, "d1").processing.status == ProcessingStatus.QUEUED


def test_draining_flag_set_during_drain(draft_store, blob_store) -> None:
    observed = []

    class _ObservingTranscoder(Transcoder):
        async def transcode(self, config):
            observed.append(queue.get_queue_status())
            return TranscodeOutput(duration_seconds=1, file_size_bytes=1, format="mp4")

    queue = ProcessingQueue(draft_store, _ObservingTranscoder(), blob_store)
    _save_draft(draft_store, "d1")
    asyncio.run(queue.enqueue("d1", _config()))
    asyncio.run(queue.run_worker())

    assert observed[0].is_processing is True
    assert observed[0].processing == 1
    assert observed[0].total == (
        observed[0].queued + observed[0].processing + observed[0].completed + observed[0].failed
    )
    assert queue.get_queue_status().is_processing is False


def test_store_failure_propagates_and_resets_flag(queue: ProcessingQueue, draft_store, monkeypatch) -> None:
    _save_draft(draft_store, "d1")
    asyncio.run(queue.enqueue("d1", _config()))

    async def broken_save(record_id, record):
        raise StorageError("disk full")

    monkeypatch.setattr(draft_store, "save", broken_save)
    with pytest.raises(StorageError):
        asyncio.run(queue.run_worker())
    assert queue.get_queue_status().is_processing is False


def test_process_one_without_prior_state(queue: ProcessingQueue, draft_store) -> None:
    _save_draft(draft_store, "d1")
    assert asyncio.run(queue.process_one("d1", _config())) == JobOutcome.COMPLETED
    assert _get(draft_store, "d1").processing.status == ProcessingStatus.COMPLETED
    # Never enqueued, so nothing mirrored in memory
    assert queue.get_entry("d1") is None


# ---------------------------------------------------------------------------
# status / clear
# ---------------------------------------------------------------------------

def test_empty_queue_status(queue: ProcessingQueue) -> None:
    status = queue.get_queue_status()
    assert status.model_dump() == {
        "total": 0, "queued": 0, "processing": 0, "completed": 0, "failed": 0,
        "is_processing": False,
    }


def test_clear_queue_keeps_persisted_state(queue: ProcessingQueue, draft_store) -> None:
    _save_draft(draft_store, "d1")
    asyncio.run(queue.enqueue("d1", _config()))
    queue._draining = True

    queue.clear_queue()

    status = queue.get_queue_status()
    assert status.total == 0
    assert status.is_processing is False
    assert _get(draft_store, "d1").processing.status == ProcessingStatus.QUEUED


def test_failed_job_can_be_requeued_and_clears_error(draft_store, blob_store) -> None:
    transcoder = _FailingTranscoder(fail_for={"v1"})
    queue = ProcessingQueue(draft_store, transcoder, blob_store)
    _save_draft(draft_store, "d1")
    asyncio.run(queue.enqueue("d1", _config("v1")))
    asyncio.run(queue.run_worker())
    assert can_enqueue(_get(draft_store, "d1")) is True

    asyncio.run(queue.enqueue("d1", _config("v2")))
    asyncio.run(queue.run_worker())

    state = _get(draft_store, "d1").processing
    assert state.status == ProcessingStatus.COMPLETED
    assert state.error is None


def test_quality_presets() -> None:
    assert quality_settings("low") == {"crf": 28, "audio_bitrate": "96k"}
    assert quality_settings("high")["crf"] == 18
    assert ProcessingState(config=_config()).queued_at <= datetime.utcnow()

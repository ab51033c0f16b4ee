"""Service container and FastAPI dependencies.

The services are built once in the app lifespan and stored on ``app.state``;
route handlers reach them through the ``get_*`` dependencies below.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Request

from mediahub.config import Settings
from mediahub.drafts.models import Draft
from mediahub.drafts.service import DraftService
from mediahub.jobs.processing_queue import ProcessingQueue
from mediahub.jobs.transcoder import MockTranscoder, Transcoder
from mediahub.media.ingest import MediaLibrary
from mediahub.media.models import MediaRecord
from mediahub.storage.blob_store import MockBlobStore
from mediahub.storage.kv_store import JsonFileStore


@dataclass
class Services:
    settings: Settings
    media: MediaLibrary
    drafts: DraftService
    queue: ProcessingQueue
    blob_store: MockBlobStore


def build_services(settings: Settings, transcoder: Optional[Transcoder] = None) -> Services:
    media_store = JsonFileStore(settings.media_file, MediaRecord)
    draft_store = JsonFileStore(settings.drafts_file, Draft)
    blob_store = MockBlobStore(settings.uploads_path, settings.public_base_url)
    queue = ProcessingQueue(
        draft_store,
        transcoder or MockTranscoder(delay=settings.transcode_delay_seconds),
        blob_store,
    )
    return Services(
        settings=settings,
        media=MediaLibrary(media_store, settings.uploads_path),
        drafts=DraftService(draft_store),
        queue=queue,
        blob_store=blob_store,
    )


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_media(request: Request) -> MediaLibrary:
    return get_services(request).media


def get_drafts(request: Request) -> DraftService:
    return get_services(request).drafts


def get_queue(request: Request) -> ProcessingQueue:
    return get_services(request).queue

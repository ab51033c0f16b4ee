"""Shared fixtures: isolated settings and stores under tmp_path."""

from pathlib import Path

import pytest

from mediahub.config import Settings
from mediahub.drafts.models import Draft
from mediahub.media.models import MediaRecord
from mediahub.storage.blob_store import MockBlobStore
from mediahub.storage.kv_store import JsonFileStore


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(
        uploads_dir=str(tmp_path / "uploads"),
        data_dir=str(tmp_path / "media"),
        public_base_url="http://testserver",
        transcode_delay_seconds=0.0,
        max_upload_bytes=1024 * 1024,
    )


@pytest.fixture()
def media_store(settings: Settings) -> JsonFileStore[MediaRecord]:
    return JsonFileStore(settings.media_file, MediaRecord)


@pytest.fixture()
def draft_store(settings: Settings) -> JsonFileStore[Draft]:
    return JsonFileStore(settings.drafts_file, Draft)


@pytest.fixture()
def blob_store(settings: Settings) -> MockBlobStore:
    return MockBlobStore(settings.uploads_path, settings.public_base_url)

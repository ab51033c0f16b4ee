"""Media ingestion pipeline and media library operations."""

import json
import logging
import os
import uuid
from typing import Any, Dict, List, Optional, Union

from mediahub.errors import ClassificationRejected, NotFoundError, StorageError, ValidationError
from mediahub.media.classifier import MimeDetector, classify, extension_for
from mediahub.media.models import MediaCategory, MediaRecord
from mediahub.storage.kv_store import JsonFileStore

logger = logging.getLogger(__name__)

# Extensions recognised per category when reconciling files found on disk
EXTENSIONS_BY_CATEGORY = {
    MediaCategory.IMAGE: {".jpg", ".jpeg", ".png", ".webp", ".gif", ".svg"},
    MediaCategory.AUDIO: {".mp3", ".wav", ".ogg", ".weba"},
    MediaCategory.VIDEO: {".mp4", ".webm", ".ogv", ".m3u8", ".ts"},
    MediaCategory.SUBTITLE: {".vtt", ".srt", ".ssa", ".ass", ".sub"},
    MediaCategory.TEXT: {".txt", ".md", ".json", ".xml", ".csv", ".log"},
}

UPLOADS_URL_PREFIX = "/uploads/"

_SIZE_UNITS = ["B", "KB", "MB", "GB"]


def format_file_size(size: int) -> str:
    if size <= 0:
        return "0 B"
    value = float(size)
    unit = 0
    while value >= 1024 and unit < len(_SIZE_UNITS) - 1:
        value /= 1024
        unit += 1
    return f"{value:.2f} {_SIZE_UNITS[unit]}"


def parse_category(value: Union[str, MediaCategory, None]) -> MediaCategory:
    try:
        return MediaCategory(value)
    except ValueError:
        raise ValidationError(
            "Invalid media type. Use image, audio, video, subtitle, or text."
        ) from None


def parse_metadata(raw: Union[str, Dict[str, Any], None]) -> Dict[str, Any]:
    if raw is None or raw == "":
        return {}
    if isinstance(raw, dict):
        return raw
    try:
        meta = json.loads(raw)
    except (TypeError, json.JSONDecodeError):
        raise ValidationError("Invalid metadata JSON.") from None
    if not isinstance(meta, dict):
        raise ValidationError("Invalid metadata JSON.")
    return meta


class MediaLibrary:
    """Owns uploaded files under ``uploads_dir`` and their records in ``store``."""

    def __init__(
        self,
        store: JsonFileStore[MediaRecord],
        uploads_dir: str,
        detect: Optional[MimeDetector] = None,
    ):
        self._store = store
        self._uploads_dir = uploads_dir
        self._detect = detect

    def _file_path(self, record: MediaRecord) -> str:
        # Synced files keep their original names, so resolve from the url
        relative = record.url[len(UPLOADS_URL_PREFIX):] if record.url.startswith(UPLOADS_URL_PREFIX) else ""
        if not relative:
            ext = os.path.splitext(record.url)[1]
            relative = f"{record.category.directory}/{record.id}{ext}"
        return os.path.join(self._uploads_dir, *relative.split("/"))

    @staticmethod
    def _size_on_disk(path: str) -> int:
        try:
            return os.path.getsize(path)
        except OSError:
            return 0

    async def ingest(
        self,
        category: Union[str, MediaCategory],
        data: Optional[bytes],
        filename: Optional[str] = None,
        content_type: Optional[str] = None,
        metadata: Union[str, Dict[str, Any], None] = None,
        name: Optional[str] = None,
    ) -> MediaRecord:
        """Validate, store and register one uploaded file.

        Nothing is written before the content check passes. I/O failures
        while writing propagate to the caller unretried.
        """
        category = parse_category(category)
        if data is None:
            raise ValidationError("Missing file field 'file'.")
        meta = parse_metadata(metadata)

        ext = extension_for(content_type, filename)
        if not classify(data, ext, category, detect=self._detect):
            logger.info(f"Rejected upload {filename!r} for category {category.value}")
            raise ClassificationRejected(category.value)

        media_id = str(uuid.uuid4())
        file_name = f"{media_id}{ext}"
        base_dir = os.path.join(self._uploads_dir, category.directory)
        file_path = os.path.join(base_dir, file_name)

        try:
            os.makedirs(base_dir, exist_ok=True)
            with open(file_path, "wb") as dst:
                dst.write(data)
        except OSError as exc:
            raise StorageError(f"Failed to save upload: {exc}") from exc

        size = self._size_on_disk(file_path)
        record = MediaRecord(
            id=media_id,
            category=category,
            url=f"/uploads/{category.directory}/{file_name}",
            name=name or filename or file_name,
            size=size,
            size_formatted=format_file_size(size),
            metadata=meta,
        )
        await self._store.save(media_id, record)
        logger.info(f"Media uploaded: {media_id} ({category.value}, {size} bytes)")
        return record

    async def get(self, media_id: str) -> MediaRecord:
        record = await self._store.get(media_id)
        if record is None:
            raise NotFoundError("Media not found")
        return record

    async def list_all(self) -> Dict[str, MediaRecord]:
        return await self._store.get_all()

    async def list_by_category(self, category: Union[str, MediaCategory]) -> List[MediaRecord]:
        category = parse_category(category)
        return [r for r in (await self._store.get_all()).values() if r.category == category]

    async def delete(self, media_id: str) -> None:
        """Remove the stored file and then the record. Drafts referencing it are untouched."""
        record = await self.get(media_id)
        try:
            os.remove(self._file_path(record))
        except OSError as exc:
            raise StorageError("Failed to delete media file") from exc
        await self._store.delete(media_id)
        logger.info(f"Media deleted: {media_id}")

    async def file_size(self, media_id: str) -> Dict[str, Any]:
        record = await self.get(media_id)
        size = self._size_on_disk(self._file_path(record))
        return {"id": record.id, "size": size, "size_formatted": format_file_size(size)}

    async def stats(self) -> Dict[str, Any]:
        by_category = {c.value: {"count": 0, "size": 0} for c in MediaCategory}
        total_count = 0
        total_size = 0
        for record in (await self._store.get_all()).values():
            size = self._size_on_disk(self._file_path(record))
            total_count += 1
            total_size += size
            by_category[record.category.value]["count"] += 1
            by_category[record.category.value]["size"] += size

        for entry in by_category.values():
            entry["size_formatted"] = format_file_size(entry["size"])
        return {
            "total": {
                "count": total_count,
                "size": total_size,
                "size_formatted": format_file_size(total_size),
            },
            "by_category": by_category,
        }

    async def ensure_record_for_url(
        self,
        category: Union[str, MediaCategory],
        url: str,
        name: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> MediaRecord:
        """Return the record stored for ``url``, creating one if none exists."""
        category = parse_category(category)
        for record in (await self._store.get_all()).values():
            if record.url == url:
                return record

        record = MediaRecord(
            id=str(uuid.uuid4()),
            category=category,
            url=url,
            name=name or os.path.basename(url),
            metadata=metadata or {},
        )
        await self._store.save(record.id, record)
        return record

    async def sync(self) -> Dict[str, Any]:
        """Register files found in the category directories that have no record yet."""
        known = {r.url for r in (await self._store.get_all()).values()}
        added_by_category = {c.value: 0 for c in MediaCategory}

        for category in MediaCategory:
            directory = os.path.join(self._uploads_dir, category.directory)
            try:
                files = sorted(os.listdir(directory))
            except OSError:
                continue

            for file_name in files:
                if file_name.startswith("."):
                    continue
                if not os.path.isfile(os.path.join(directory, file_name)):
                    continue
                if os.path.splitext(file_name)[1].lower() not in EXTENSIONS_BY_CATEGORY[category]:
                    continue
                url = f"/uploads/{category.directory}/{file_name}"
                if url in known:
                    continue

                await self.ensure_record_for_url(category, url, name=file_name)
                known.add(url)
                added_by_category[category.value] += 1

        added = sum(added_by_category.values())
        logger.info(f"Sync completed: {added} file(s) registered")
        return {"added": added, "details": added_by_category}

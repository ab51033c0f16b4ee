"""Flat key-value store persisted as a single JSON file per record type."""

import asyncio
import json
import logging
import os
import tempfile
from typing import Dict, Generic, Optional, Type, TypeVar

from pydantic import BaseModel

from mediahub.errors import StorageError

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)


class JsonFileStore(Generic[RecordT]):
    """Stores pydantic records keyed by string id in one JSON document.

    Every write rewrites the whole file through a temp file and os.replace,
    so a crash mid-write leaves the previous version intact.
    """

    def __init__(self, path: str, model: Type[RecordT]):
        self._path = path
        self._model = model
        self._lock = asyncio.Lock()

    @property
    def path(self) -> str:
        return self._path

    async def get(self, record_id: str) -> Optional[RecordT]:
        raw = self._read().get(record_id)
        if raw is None:
            return None
        return self._model.model_validate(raw)

    async def get_all(self) -> Dict[str, RecordT]:
        return {
            key: self._model.model_validate(value)
            for key, value in self._read().items()
        }

    async def save(self, record_id: str, record: RecordT) -> None:
        async with self._lock:
            data = self._read()
            data[record_id] = record.model_dump(mode="json")
            self._write(data)

    async def delete(self, record_id: str) -> None:
        async with self._lock:
            data = self._read()
            if data.pop(record_id, None) is not None:
                self._write(data)

    def _read(self) -> Dict[str, dict]:
        if not os.path.exists(self._path):
            return {}
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                text = f.read()
        except OSError as exc:
            raise StorageError(f"Failed to read {self._path}: {exc}") from exc
        if not text.strip():
            return {}
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise StorageError(f"Corrupt store file {self._path}: {exc}") from exc
        if not isinstance(data, dict):
            raise StorageError(f"Store file {self._path} must hold a JSON object")
        return data

    def _write(self, data: Dict[str, dict]) -> None:
        directory = os.path.dirname(self._path) or "."
        try:
            os.makedirs(directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=directory, suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_path, self._path)
        except OSError as exc:
            logger.error(f"Failed to write {self._path}: {exc}")
            raise StorageError(f"Failed to write {self._path}: {exc}") from exc

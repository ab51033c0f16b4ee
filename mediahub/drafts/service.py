"""Draft CRUD over the key-value store."""

import logging
import uuid
from datetime import datetime
from typing import List, Optional

from mediahub.drafts.models import Draft, DraftCreate, DraftStatus, DraftUpdate
from mediahub.errors import NotFoundError, ValidationError
from mediahub.storage.kv_store import JsonFileStore

logger = logging.getLogger(__name__)


class DraftService:

    def __init__(self, store: JsonFileStore[Draft]):
        self._store = store

    async def list(self, tag: Optional[str] = None, status: Optional[DraftStatus] = None) -> List[Draft]:
        drafts = list((await self._store.get_all()).values())
        if tag is not None:
            drafts = [d for d in drafts if tag in d.tags]
        if status is not None:
            drafts = [d for d in drafts if d.status == status]
        return drafts

    async def get(self, draft_id: str) -> Draft:
        draft = await self._store.get(draft_id)
        if draft is None:
            raise NotFoundError("Draft not found")
        return draft

    async def create(self, data: DraftCreate) -> Draft:
        if not data.content and not data.media_ids:
            raise ValidationError("Draft must have content or media_ids")

        now = datetime.utcnow()
        draft = Draft(
            id=str(uuid.uuid4()),
            content=data.content or "",
            media_ids=data.media_ids or [],
            tags=data.tags,
            status=data.status,
            created_at=now,
            updated_at=now,
        )
        await self._store.save(draft.id, draft)
        logger.info(f"Draft created: {draft.id}")
        return draft

    async def update(self, draft_id: str, data: DraftUpdate) -> Draft:
        draft = await self.get(draft_id)
        changes = data.model_dump(exclude_none=True)
        updated = Draft.model_validate(
            {**draft.model_dump(), **changes, "updated_at": datetime.utcnow()}
        )
        await self._store.save(draft_id, updated)
        return updated

    async def delete(self, draft_id: str) -> None:
        """Delete the draft record only; referenced media stays."""
        await self.get(draft_id)
        await self._store.delete(draft_id)
        logger.info(f"Draft deleted: {draft_id}")

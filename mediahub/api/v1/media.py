"""Media API: upload, list, stats, sync, size, delete."""

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile

from mediahub.api.deps import Services, get_media, get_services
from mediahub.media.ingest import MediaLibrary

router = APIRouter(prefix="/media")

# Read uploads in 1 MB chunks so oversize files are refused early
_CHUNK_BYTES = 1024 * 1024


@router.post("/upload/{category}", status_code=201)
async def upload_media(
    category: str,
    file: Optional[UploadFile] = File(None),
    name: Optional[str] = Form(None),
    metadata: Optional[str] = Form(None),
    services: Services = Depends(get_services),
):
    """Accept one multipart file for ``category`` and register it.

    Returns the stored media record.
    """
    data = None
    if file is not None:
        limit = services.settings.max_upload_bytes
        chunks = []
        total = 0
        while True:
            chunk = await file.read(_CHUNK_BYTES)
            if not chunk:
                break
            total += len(chunk)
            if total > limit:
                raise HTTPException(status_code=413, detail=f"File too large (max {limit} bytes)")
            chunks.append(chunk)
        data = b"".join(chunks)

    record = await services.media.ingest(
        category,
        data,
        filename=file.filename if file is not None else None,
        content_type=file.content_type if file is not None else None,
        metadata=metadata,
        name=name,
    )
    return record


@router.get("/data")
async def list_media(media: MediaLibrary = Depends(get_media)):
    return await media.list_all()


@router.get("/data/{category}")
async def list_media_by_category(category: str, media: MediaLibrary = Depends(get_media)):
    return await media.list_by_category(category)


@router.get("/stats")
async def media_stats(media: MediaLibrary = Depends(get_media)):
    """Counts and on-disk sizes, in total and per category."""
    return await media.stats()


@router.post("/sync")
async def sync_media(media: MediaLibrary = Depends(get_media)):
    """Register files already present in the upload directories."""
    result = await media.sync()
    return {"message": "Sync completed successfully", **result}


@router.get("/{media_id}")
async def get_media_item(media_id: str, media: MediaLibrary = Depends(get_media)):
    return await media.get(media_id)


@router.get("/{media_id}/size")
async def get_media_size(media_id: str, media: MediaLibrary = Depends(get_media)):
    return await media.file_size(media_id)


@router.delete("/{media_id}")
async def delete_media(media_id: str, media: MediaLibrary = Depends(get_media)):
    await media.delete(media_id)
    return {"message": "Media deleted successfully"}

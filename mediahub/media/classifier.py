"""Content-type gate for uploads.

Decides whether raw bytes plausibly belong to a requested media category.
Binary formats are identified by their magic bytes (libmagic via
python-magic); text-based and headerless formats fall back to heuristics.
"""

import os
from typing import Callable, Optional

from mediahub.media.models import MediaCategory

# Detector signature: fn(data) -> mime type string or None
MimeDetector = Callable[[bytes], Optional[str]]

BINARY_SNIFF_BYTES = 1000
PLAYLIST_SNIFF_BYTES = 50
HLS_PLAYLIST_MARKER = b"#EXTM3U"
MPEG_TS_SYNC_BYTE = 0x47
MPEG_TS_MIME = "video/mp2t"

BINARY_MEDIA_FAMILIES = frozenset({"image", "audio", "video"})

EXT_BY_MIME = {
    # image
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
    "image/gif": ".gif",
    "image/svg+xml": ".svg",
    # audio
    "audio/mpeg": ".mp3",
    "audio/wav": ".wav",
    "audio/ogg": ".ogg",
    "audio/webm": ".weba",
    # video
    "video/mp4": ".mp4",
    "video/webm": ".webm",
    "video/ogg": ".ogv",
    "application/vnd.apple.mpegurl": ".m3u8",
    "application/x-mpegurl": ".m3u8",
    "video/mp2t": ".ts",
    # subtitle
    "text/vtt": ".vtt",
    "application/x-subrip": ".srt",
    "text/x-ssa": ".ssa",
    "text/x-ass": ".ass",
    # text
    "text/plain": ".txt",
    "text/markdown": ".md",
    "application/json": ".json",
    "text/xml": ".xml",
    "application/xml": ".xml",
    "text/csv": ".csv",
}

# libmagic answers that say nothing about a binary signature
_GENERIC_MIMES = frozenset({
    "application/octet-stream",
    "application/x-empty",
    "inode/x-empty",
    # HLS playlists are plain text with a marker line
    "audio/x-mpegurl",
    "audio/mpegurl",
    "application/x-mpegurl",
    "application/vnd.apple.mpegurl",
    # Text formats libmagic names from their content
    "application/xml",
    "application/json",
})

# Structured-text suffixes (image/svg+xml, application/ld+json, ...)
_TEXT_SUFFIXES = ("+xml", "+json")


def _is_text_format(mime: str) -> bool:
    return mime.startswith("text/") or mime.endswith(_TEXT_SUFFIXES)


def detect_mime(data: bytes) -> Optional[str]:
    """Return the MIME type of a recognized binary signature, or None."""
    import magic

    if not data:
        return None
    mime = (magic.from_buffer(data, mime=True) or "").lower()
    if not mime or mime in _GENERIC_MIMES or _is_text_format(mime):
        return None
    return mime


def is_binary(data: bytes) -> bool:
    """NUL byte within the first 1000 bytes."""
    return b"\x00" in data[:BINARY_SNIFF_BYTES]


def extension_for(content_type: Optional[str], filename: Optional[str]) -> str:
    """Resolve a file extension: MIME table first, then the file name suffix."""
    by_mime = EXT_BY_MIME.get((content_type or "").split(";")[0].strip().lower())
    if by_mime:
        return by_mime
    return os.path.splitext(filename or "")[1].lower()


def classify(
    data: bytes,
    extension: str,
    category: MediaCategory,
    detect: Optional[MimeDetector] = None,
) -> bool:
    """Return True if ``data`` plausibly belongs to ``category``.

    ``extension`` is the resolved declared extension (see ``extension_for``);
    it only matters for the headerless video containers (.m3u8, .ts).
    """
    detect = detect or detect_mime
    category = MediaCategory(category)
    textual = category in (MediaCategory.TEXT, MediaCategory.SUBTITLE)

    detected = detect(data)
    if detected:
        detected = detected.lower()
        family = detected.split("/", 1)[0]
        if category == MediaCategory.IMAGE and family == "image":
            return True
        if category == MediaCategory.AUDIO and family == "audio":
            return True
        if category == MediaCategory.VIDEO and (family == "video" or detected == MPEG_TS_MIME):
            return True
        if textual:
            # Binary media masquerading as text is rejected, anything else passes
            return family not in BINARY_MEDIA_FAMILIES
        return False

    if textual:
        return not is_binary(data)

    if category == MediaCategory.VIDEO:
        ext = (extension or "").lower()
        if ext == ".m3u8":
            return not is_binary(data) and HLS_PLAYLIST_MARKER in data[:PLAYLIST_SNIFF_BYTES]
        if ext == ".ts":
            return len(data) > 0 and data[0] == MPEG_TS_SYNC_BYTE

    return False

"""Exception hierarchy for mediahub."""

from typing import Optional


class MediaHubError(Exception):
    """Base exception for all mediahub errors."""

    status_code = 500


class ValidationError(MediaHubError):
    """Caller input is malformed or missing required fields."""

    status_code = 400


class NotFoundError(MediaHubError):
    """Referenced draft or media id does not exist."""

    status_code = 404


class ClassificationRejected(ValidationError):
    """Uploaded bytes do not belong to the requested media category."""

    def __init__(self, category: str, message: Optional[str] = None):
        self.category = category
        super().__init__(
            message or f"Uploaded file does not match type '{category}' or is invalid."
        )


class ConflictError(MediaHubError):
    """Operation conflicts with the current state of a resource."""

    status_code = 409


class ProcessingError(MediaHubError):
    """Transcode operation failed."""


class UploadError(MediaHubError):
    """Blob store upload failed."""

    def __init__(self, message: str, key: Optional[str] = None):
        self.key = key
        super().__init__(message)


class StorageError(MediaHubError):
    """Persistence read or write failed."""

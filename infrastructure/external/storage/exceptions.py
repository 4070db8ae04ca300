"""Storage service exceptions."""
from typing import Optional


class StorageError(Exception):
    """Base storage exception."""
    pass


class UploadError(StorageError):
    """Upload failed; the underlying cause is chained."""
    pass


class UnsupportedContentTypeError(UploadError):
    """Content representation cannot be materialized into bytes."""
    pass


class ConfigurationError(StorageError):
    """Storage configuration error."""
    pass


class NotFoundError(StorageError):
    """File not found in storage."""
    pass


class BackendRequestError(StorageError):
    """Remote backend answered with a non-success status."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        backend_message: Optional[str] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.backend_message = backend_message
        super().__init__(message)

    def __str__(self):
        parts = [self.message]
        if self.status_code:
            parts.append(f"Status: {self.status_code}")
        if self.backend_message:
            parts.append(self.backend_message)
        return " | ".join(parts)


class ValidationError(StorageError):
    """Storage validation error."""
    pass

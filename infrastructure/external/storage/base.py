"""Storage provider protocol definitions."""
from typing import Protocol, Optional, runtime_checkable

from .content import StorableContent
from .models import (
    UploadOptions,
    UploadResult,
    UploadCredential,
    FileMetadata,
)


@runtime_checkable
class StorageProvider(Protocol):
    """Uniform contract every storage backend satisfies.

    Mutating operations (``upload``, ``download``, ``delete``) raise typed
    ``StorageError`` subclasses. Read probes (``exists``, ``get_metadata``,
    ``get_source_url``, ``get_download_url``) never raise and degrade to
    ``False``/``None``.
    """

    async def upload(
        self,
        content: StorableContent,
        options: Optional[UploadOptions] = None,
    ) -> UploadResult:
        """Store content under a freshly generated key."""
        ...

    async def create_upload_url(
        self,
        options: Optional[UploadOptions] = None,
    ) -> Optional[UploadCredential]:
        """Issue a credential for a client-direct upload, or None if unsupported."""
        ...

    async def download(self, key: str) -> bytes:
        """Download file from storage."""
        ...

    async def delete(self, key: str) -> None:
        """Delete file from storage."""
        ...

    async def exists(self, key: str) -> bool:
        """Check if file exists in storage."""
        ...

    async def get_metadata(self, key: str) -> Optional[FileMetadata]:
        """Get file metadata, or None when unavailable."""
        ...

    async def get_source_url(self, key: str) -> Optional[str]:
        """Get public URL for file."""
        ...

    async def get_download_url(self, key: str) -> Optional[str]:
        """Get URL that makes browsers download the file."""
        ...

    async def health_check(self) -> bool:
        """Check storage connectivity and permissions."""
        ...

    async def aclose(self) -> None:
        """Release transport resources held by the provider."""
        ...

"""Local file system storage provider implementation."""
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional
import aiofiles
import aiofiles.os

from core.logging_config import get_logger
from ..config import StorageConfig
from ..content import StorableContent, content_to_bytes
from ..models import (
    UploadOptions,
    UploadResult,
    UploadCredential,
    FileMetadata,
)
from ..exceptions import (
    StorageError,
    UploadError,
    NotFoundError,
    ValidationError,
)
from ..utils import detect_content_type, generate_key, safe_join

logger = get_logger(__name__)


class LocalProvider:
    """Local file system storage provider.

    Files live under a web-served root directory and are exposed at a fixed
    public mount (``/uploads/{key}`` by default). Browser-direct uploads are
    not possible, so ``create_upload_url`` always returns None.
    """

    def __init__(self, config: StorageConfig):
        """Initialize local storage provider.

        Args:
            config: Storage configuration
        """
        self.config = config
        self.base_path = Path(config.local_base_path).resolve()
        self.public_mount = config.local_public_mount.rstrip("/")

    async def upload(
        self,
        content: StorableContent,
        options: Optional[UploadOptions] = None,
    ) -> UploadResult:
        """Upload file to local storage."""
        options = options or UploadOptions()
        try:
            data = await content_to_bytes(content)
            key = generate_key(options.folder or self.config.prefix, options.filename)
            content_type = options.content_type or detect_content_type(options.filename)

            file_path = self._safe_path(key)
            await aiofiles.os.makedirs(file_path.parent, exist_ok=True)

            async with aiofiles.open(file_path, "wb") as f:
                await f.write(data)

            logger.info("Uploaded to local storage", key=key, size=len(data), path=str(file_path))

            metadata = FileMetadata(
                key=key,
                filename=options.filename or key,
                content_type=content_type,
                size=len(data),
                uploaded_at=datetime.now(timezone.utc),
            )
            return UploadResult(
                key=key,
                source_url=self._public_url(key),
                metadata=metadata,
            )

        except (UploadError, ValidationError):
            raise
        except Exception as e:
            logger.error("Local upload failed", error=str(e))
            raise UploadError(f"Local upload failed: {e}") from e

    async def create_upload_url(
        self,
        options: Optional[UploadOptions] = None,
    ) -> Optional[UploadCredential]:
        """Local disk cannot accept a browser-direct upload."""
        return None

    async def download(self, key: str) -> bytes:
        """Download file from local storage."""
        file_path = self._safe_path(key)

        if not await aiofiles.os.path.isfile(file_path):
            raise NotFoundError(f"File not found: {key}")

        try:
            async with aiofiles.open(file_path, "rb") as f:
                data = await f.read()
        except FileNotFoundError as e:
            raise NotFoundError(f"File not found: {key}") from e
        except OSError as e:
            raise StorageError(f"Failed to download {key}: {e}") from e

        logger.info("Downloaded from local storage", key=key, size=len(data))
        return data

    async def delete(self, key: str) -> None:
        """Delete file from local storage."""
        file_path = self._safe_path(key)

        if not await aiofiles.os.path.isfile(file_path):
            raise NotFoundError(f"File not found: {key}")

        try:
            await aiofiles.os.remove(file_path)
        except FileNotFoundError as e:
            raise NotFoundError(f"File not found: {key}") from e
        except OSError as e:
            raise StorageError(f"Failed to delete {key}: {e}") from e

        logger.info("Deleted from local storage", key=key)

    async def exists(self, key: str) -> bool:
        """Check if file exists in local storage."""
        try:
            return await aiofiles.os.path.isfile(self._safe_path(key))
        except Exception:
            return False

    async def get_metadata(self, key: str) -> Optional[FileMetadata]:
        """Get file metadata from local storage."""
        try:
            stat = await aiofiles.os.stat(self._safe_path(key))
        except Exception as e:
            logger.debug("Local metadata unavailable", key=key, error=str(e))
            return None

        filename = key.rsplit("/", 1)[-1]
        created = getattr(stat, "st_birthtime", None) or stat.st_mtime
        return FileMetadata(
            key=key,
            filename=filename,
            content_type=detect_content_type(filename),
            size=stat.st_size,
            uploaded_at=datetime.fromtimestamp(created, tz=timezone.utc),
        )

    async def get_source_url(self, key: str) -> Optional[str]:
        """Public path for the file, only if it exists."""
        if await self.exists(key):
            return self._public_url(key)
        return None

    async def get_download_url(self, key: str) -> Optional[str]:
        """Same as the source URL for local storage."""
        return await self.get_source_url(key)

    async def health_check(self) -> bool:
        """Check local storage accessibility."""
        try:
            self.base_path.mkdir(parents=True, exist_ok=True)
            test_file = self.base_path / ".health_check"
            test_file.touch()
            test_file.unlink()
            return True
        except Exception as e:
            logger.error("Local storage health check failed", error=str(e))
            return False

    async def aclose(self) -> None:
        return None

    def _public_url(self, key: str) -> str:
        return f"{self.public_mount}/{key.lstrip('/')}"

    def _safe_path(self, key: str) -> Path:
        """Build safe path preventing directory traversal.

        Raises:
            ValidationError: If path is unsafe
        """
        return safe_join(self.base_path, key)


async def build_local_provider(config: StorageConfig) -> LocalProvider:
    """Build local storage provider.

    Args:
        config: Storage configuration

    Returns:
        Configured local provider instance
    """
    provider = LocalProvider(config)

    if not await provider.health_check():
        raise StorageError(f"Local storage root is not writable: {provider.base_path}")

    return provider

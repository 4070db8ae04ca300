"""Storage service entry point and lifecycle management."""
from typing import Optional
from functools import lru_cache

from core.config import settings
from core.logging_config import get_logger
from .base import StorageProvider
from .config import StorageConfig, StorageType
from .factory import (
    create_provider,
    get_storage_info,
    check_storage_config,
)

logger = get_logger(__name__)

# Global storage client instance
_storage_client: Optional[StorageProvider] = None


@lru_cache
def get_storage_config() -> StorageConfig:
    """Get storage configuration from settings.

    Assembles StorageConfig from core.config.settings to maintain
    single source of truth for configuration. Local root and public mount
    keep their fixed defaults.

    Returns:
        Storage configuration instance
    """
    s = settings.storage
    return StorageConfig(
        type=s.type or StorageType.LOCAL.value,
        prefix=s.prefix,
        public_base_url=s.public_base_url,
        timeout=s.timeout,
        cloudinary_cloud_name=s.cloudinary_cloud_name,
        cloudinary_api_key=s.cloudinary_api_key,
        cloudinary_api_secret=s.cloudinary_api_secret,
        cloudinary_resource_type=s.cloudinary_resource_type,
        blob_read_write_token=s.blob_read_write_token,
        blob_api_url=s.blob_api_url,
    )


async def init_storage_client(config: Optional[StorageConfig] = None) -> StorageProvider:
    """Initialize storage client.

    Creates the storage provider selected by configuration. Called once at
    startup; the instance is shared for the process lifetime.

    Raises:
        ConfigurationError: If the configured backend is unknown or unavailable
    """
    global _storage_client

    if _storage_client is not None:
        logger.warning("Storage client already initialized")
        return _storage_client

    config = config or get_storage_config()
    _storage_client = await create_provider(config)

    logger.info("Storage client initialized", provider=config.type)
    return _storage_client


def get_storage_client() -> Optional[StorageProvider]:
    """Get storage client instance.

    Returns:
        Storage provider instance or None if not initialized
    """
    return _storage_client


async def shutdown_storage_client() -> None:
    """Shutdown storage client and release its HTTP transport."""
    global _storage_client

    if _storage_client is None:
        return

    try:
        await _storage_client.aclose()
        logger.info("Storage client shutdown")
    except Exception as e:
        logger.error("Error during storage shutdown", error=str(e))
    finally:
        _storage_client = None


async def get_storage() -> StorageProvider:
    """FastAPI dependency for storage service.

    Returns:
        Storage provider instance

    Raises:
        RuntimeError: If storage not initialized
    """
    client = get_storage_client()
    if client is None:
        raise RuntimeError(
            "Storage client not initialized. "
            "Call init_storage_client() during startup."
        )
    return client


# Export public interface
__all__ = [
    # Lifecycle
    "init_storage_client",
    "get_storage_client",
    "shutdown_storage_client",
    "get_storage",

    # Configuration
    "get_storage_config",
    "get_storage_info",
    "check_storage_config",
    "StorageConfig",
    "StorageType",

    # Base types
    "StorageProvider",
    "StorableContent",
    "content_to_bytes",

    # Models
    "UploadOptions",
    "UploadResult",
    "UploadCredential",
    "FileMetadata",
    "StorageInfo",
    "StorageCheckResult",

    # Exceptions
    "StorageError",
    "UploadError",
    "UnsupportedContentTypeError",
    "ConfigurationError",
    "NotFoundError",
    "BackendRequestError",
    "ValidationError",

    # Utils
    "generate_key",
    "detect_content_type",
    "resolve_folder",
]

# Import models and exceptions for easier access
from .content import StorableContent, content_to_bytes
from .models import (
    UploadOptions,
    UploadResult,
    UploadCredential,
    FileMetadata,
    StorageInfo,
    StorageCheckResult,
)
from .exceptions import (
    StorageError,
    UploadError,
    UnsupportedContentTypeError,
    ConfigurationError,
    NotFoundError,
    BackendRequestError,
    ValidationError,
)
from .utils import (
    generate_key,
    detect_content_type,
    resolve_folder,
)

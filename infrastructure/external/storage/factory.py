"""Storage provider factory with registry pattern."""
from typing import Callable, Awaitable
import importlib

from core.logging_config import get_logger
from .base import StorageProvider
from .config import DIRECT_UPLOAD_TYPES, StorageConfig, StorageType
from .exceptions import ConfigurationError
from .models import StorageCheckResult, StorageInfo

logger = get_logger(__name__)

# Provider builder type
ProviderBuilder = Callable[[StorageConfig], Awaitable[StorageProvider]]

# Global registry for storage providers
_provider_registry: dict[StorageType, ProviderBuilder] = {}

# Recognized but not implemented yet
_RESERVED_TYPES = frozenset({StorageType.S3})

_BUILTIN_PROVIDERS = [
    (StorageType.LOCAL, "infrastructure.external.storage.providers.local", "build_local_provider"),
    (StorageType.CLOUDINARY, "infrastructure.external.storage.providers.cloudinary", "build_cloudinary_provider"),
    (StorageType.VERCEL_BLOB, "infrastructure.external.storage.providers.vercel_blob", "build_vercel_blob_provider"),
]


def register_provider(
    storage_type: StorageType,
    builder: ProviderBuilder
) -> None:
    """Register a storage provider builder.

    Args:
        storage_type: Type of storage provider
        builder: Async function to build provider instance
    """
    _provider_registry[storage_type] = builder
    logger.debug("Registered storage provider", provider=storage_type.value)


def resolve_storage_type(value: str) -> StorageType:
    """Map a configured backend name to a StorageType.

    Raises:
        ConfigurationError: If the value is not a recognized backend
    """
    try:
        return StorageType(value)
    except ValueError:
        valid = ", ".join(t.value for t in StorageType)
        raise ConfigurationError(
            f"Invalid storage driver '{value}'. Expected one of: {valid}"
        ) from None


async def create_provider(config: StorageConfig) -> StorageProvider:
    """Create storage provider instance based on config.

    Unknown or unimplemented backends are rejected; there is no fallback to
    local disk.

    Args:
        config: Storage configuration

    Returns:
        Configured storage provider instance

    Raises:
        ConfigurationError: If provider type is unknown, reserved, or creation fails
    """
    storage_type = resolve_storage_type(config.type)

    if storage_type in _RESERVED_TYPES:
        raise ConfigurationError(
            f"Storage provider '{storage_type.value}' is not yet implemented"
        )

    if storage_type not in _provider_registry:
        _auto_register_providers()

        if storage_type not in _provider_registry:
            raise ConfigurationError(
                f"Storage provider '{storage_type.value}' not registered. "
                f"Available: {[t.value for t in _provider_registry]}"
            )

    builder = _provider_registry[storage_type]

    try:
        provider = await builder(config)
    except Exception as e:
        logger.error(
            "Failed to create storage provider",
            provider=storage_type.value,
            error=str(e)
        )
        raise ConfigurationError(
            f"Failed to create storage provider '{storage_type.value}': {e}"
        ) from e

    logger.info("Created storage provider", provider=storage_type.value)
    return provider


def _auto_register_providers() -> None:
    """Auto-register built-in storage providers."""
    for storage_type, module_path, builder_name in _BUILTIN_PROVIDERS:
        if storage_type in _provider_registry:
            continue

        try:
            module = importlib.import_module(module_path)
            builder = getattr(module, builder_name)
            register_provider(storage_type, builder)
        except (ImportError, AttributeError) as e:
            logger.debug("Storage provider not available", provider=storage_type.value, error=str(e))


def get_storage_info(config: StorageConfig) -> StorageInfo:
    """Describe the configured backend so clients can pick an upload strategy."""
    return StorageInfo(
        type=config.type,
        supports_direct_upload=config.type in DIRECT_UPLOAD_TYPES,
    )


def check_storage_config(config: StorageConfig) -> StorageCheckResult:
    """Validate the configured backend without touching it.

    Returns:
        Result with an error and a remediation hint when invalid
    """
    if config.type == StorageType.VERCEL_BLOB.value:
        if not config.blob_read_write_token:
            return StorageCheckResult(
                is_valid=False,
                error="blob_read_write_token is not set",
                solution=(
                    "Create a Blob store for the project and set "
                    "STORAGE__BLOB_READ_WRITE_TOKEN to its read-write token"
                ),
            )
        return StorageCheckResult(is_valid=True)

    if config.type == StorageType.CLOUDINARY.value:
        missing = [
            name for name in (
                "cloudinary_cloud_name",
                "cloudinary_api_key",
                "cloudinary_api_secret",
            )
            if not getattr(config, name)
        ]
        if missing:
            return StorageCheckResult(
                is_valid=False,
                error=f"Missing Cloudinary configuration: {', '.join(missing)}",
                solution=(
                    "Copy the credentials from the Cloudinary dashboard into "
                    "STORAGE__CLOUDINARY_CLOUD_NAME, STORAGE__CLOUDINARY_API_KEY "
                    "and STORAGE__CLOUDINARY_API_SECRET"
                ),
            )
        return StorageCheckResult(is_valid=True)

    if config.type == StorageType.S3.value:
        return StorageCheckResult(
            is_valid=False,
            error="S3 storage is not yet implemented",
            solution="Use 'vercel-blob' or 'cloudinary' for hosted storage",
        )

    if config.type == StorageType.LOCAL.value:
        return StorageCheckResult(is_valid=True)

    return StorageCheckResult(
        is_valid=False,
        error=f"Invalid storage driver: {config.type}",
        solution=(
            "STORAGE__TYPE must be one of: "
            + ", ".join(f"'{t.value}'" for t in StorageType)
        ),
    )

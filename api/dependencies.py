"""
API依赖项 - 存储服务注入
"""
from fastapi import Depends

from application.services.storage_service import StorageApplicationService
from core.config import settings
from infrastructure.external.storage import (
    StorageProvider,
    get_storage,
    get_storage_config,
)


async def get_storage_service(
    provider: StorageProvider = Depends(get_storage),
) -> StorageApplicationService:
    """Wrap the process-wide provider in the application service."""
    return StorageApplicationService(
        storage=provider,
        config=get_storage_config(),
        max_upload_size=settings.MAX_UPLOAD_SIZE,
        allowed_types=settings.ALLOWED_UPLOAD_TYPES,
    )

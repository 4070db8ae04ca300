"""Application layer orchestration for stored files (application/services)."""
from __future__ import annotations

from typing import Optional, Sequence

from application.dto import (
    CollectionFileRecordDTO,
    FileMetadataDTO,
    ObjectURLsDTO,
    StorageCheckDTO,
    StorageInfoDTO,
    StorageUploadResponseDTO,
    UploadCredentialDTO,
    UploadResultDTO,
)
from core.logging_config import get_logger
from domain.common.exceptions import (
    DirectUploadUnsupportedException,
    FileTooLargeException,
    ObjectNotResolvableException,
    UnsupportedMimeTypeException,
)
from infrastructure.external.storage import (
    StorageConfig,
    StorageProvider,
    StorableContent,
    UploadOptions,
    UploadResult,
    check_storage_config,
    get_storage_info,
)
from infrastructure.external.storage.utils import file_extension

logger = get_logger(__name__)


def build_file_record(
    result: UploadResult,
    original_name: str,
    collection_id: Optional[str] = None,
) -> CollectionFileRecordDTO:
    """Derive the collection-file row from an upload result.

    Persisting it is the record store's job; upload and insert are separate,
    non-atomic steps.
    """
    return CollectionFileRecordDTO(
        collection_id=collection_id,
        name=original_name,
        original_name=original_name,
        size=str(result.metadata.size),
        type=result.metadata.content_type,
        extension=file_extension(original_name),
        storage_url=result.source_url,
        storage_key=result.key,
        uploaded_at=result.metadata.uploaded_at,
    )


class StorageApplicationService:
    """File workflows bridging the HTTP layer and the storage provider."""

    def __init__(
        self,
        storage: StorageProvider,
        config: StorageConfig,
        *,
        max_upload_size: Optional[int] = None,
        allowed_types: Optional[Sequence[str]] = None,
    ):
        self._storage = storage
        self._config = config
        self._max_upload_size = max_upload_size
        self._allowed_types = set(allowed_types) if allowed_types else None

    # ------------------------------------------------------------------
    # Backend description
    # ------------------------------------------------------------------
    def info(self) -> StorageInfoDTO:
        return StorageInfoDTO.model_validate(get_storage_info(self._config).model_dump())

    def check(self) -> StorageCheckDTO:
        return StorageCheckDTO.model_validate(check_storage_config(self._config).model_dump())

    # ------------------------------------------------------------------
    # Upload workflows
    # ------------------------------------------------------------------
    async def upload(
        self,
        content: StorableContent,
        *,
        filename: Optional[str] = None,
        content_type: Optional[str] = None,
        folder: Optional[str] = None,
        collection_id: Optional[str] = None,
    ) -> StorageUploadResponseDTO:
        """Relay an upload through the server and return the record payload."""
        result = await self._storage.upload(
            content,
            UploadOptions(filename=filename, content_type=content_type, folder=folder),
        )
        record = build_file_record(result, filename or result.key, collection_id)
        return StorageUploadResponseDTO(
            upload=UploadResultDTO.model_validate(result.model_dump()),
            record=record,
        )

    async def upload_collection_file(
        self,
        collection_id: str,
        content: StorableContent,
        *,
        filename: str,
        content_type: Optional[str],
        size: int,
    ) -> CollectionFileRecordDTO:
        """Validate and store a knowledge-base document for a collection."""
        ctype = content_type or ""
        if self._allowed_types is not None and ctype not in self._allowed_types:
            raise UnsupportedMimeTypeException(ctype or "unknown")
        if self._max_upload_size and size > self._max_upload_size:
            raise FileTooLargeException(filename, size=size, max_size=self._max_upload_size)

        response = await self.upload(
            content,
            filename=filename,
            content_type=content_type,
            collection_id=collection_id,
        )
        logger.info(
            "Collection file stored",
            collection_id=collection_id,
            key=response.upload.key,
            size=size,
        )
        return response.record

    async def create_upload_url(
        self,
        *,
        filename: Optional[str] = None,
        content_type: Optional[str] = None,
        folder: Optional[str] = None,
        expires_in: int = 3600,
    ) -> UploadCredentialDTO:
        credential = await self._storage.create_upload_url(
            UploadOptions(
                filename=filename,
                content_type=content_type,
                folder=folder,
                expires_in=expires_in,
            )
        )
        if credential is None:
            raise DirectUploadUnsupportedException(self._config.type)
        return UploadCredentialDTO.model_validate(credential.model_dump())

    # ------------------------------------------------------------------
    # Object access
    # ------------------------------------------------------------------
    async def download(self, key: str) -> tuple[bytes, Optional[FileMetadataDTO]]:
        data = await self._storage.download(key)
        metadata = await self.get_metadata(key)
        return data, metadata

    async def delete(self, key: str) -> None:
        await self._storage.delete(key)

    async def get_metadata(self, key: str) -> Optional[FileMetadataDTO]:
        metadata = await self._storage.get_metadata(key)
        if metadata is None:
            return None
        return FileMetadataDTO.model_validate(metadata.model_dump())

    async def require_metadata(self, key: str) -> FileMetadataDTO:
        metadata = await self.get_metadata(key)
        if metadata is None:
            raise ObjectNotResolvableException(key)
        return metadata

    async def resolve_urls(self, key: str) -> ObjectURLsDTO:
        source_url = await self._storage.get_source_url(key)
        if source_url is None:
            raise ObjectNotResolvableException(key)
        download_url = await self._storage.get_download_url(key)
        return ObjectURLsDTO(key=key, source_url=source_url, download_url=download_url)

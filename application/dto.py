"""
数据传输对象（DTO）- 应用层与表现层之间的数据传输
"""
from pydantic import BaseModel, Field, field_validator, model_serializer
from typing import Optional
from datetime import datetime, timezone


class DTOBase(BaseModel):
    """Base DTO: unify datetime serialization to UTC-Z for all subclasses."""

    @model_serializer(mode="wrap")
    def _serialize_model(self, handler):  # type: ignore[override]
        data = handler(self)

        def convert(value):
            if isinstance(value, datetime):
                ts = value if value.tzinfo else value.replace(tzinfo=timezone.utc)
                s = ts.astimezone(timezone.utc).isoformat()
                return s.replace("+00:00", "Z")
            if isinstance(value, list):
                return [convert(v) for v in value]
            if isinstance(value, dict):
                return {k: convert(v) for k, v in value.items()}
            return value

        return convert(data)


class FileMetadataDTO(DTOBase):
    key: str
    filename: str
    content_type: str
    size: int
    uploaded_at: datetime


class UploadResultDTO(DTOBase):
    key: str
    source_url: str
    metadata: FileMetadataDTO


class CollectionFileRecordDTO(DTOBase):
    """Row payload handed to the record store after a successful upload.

    ``size`` is a string to match the record schema.
    """

    collection_id: Optional[str] = None
    name: str
    original_name: str
    size: str
    type: str
    extension: str
    storage_url: str
    storage_key: str
    uploaded_at: datetime


class StorageUploadResponseDTO(DTOBase):
    upload: UploadResultDTO
    record: CollectionFileRecordDTO


class UploadURLRequestDTO(DTOBase):
    """Input payload for requesting a direct-upload credential."""

    filename: Optional[str] = None
    content_type: Optional[str] = None
    folder: Optional[str] = None
    expires_in: int = Field(default=3600, ge=60, le=24 * 3600)

    @field_validator("filename", "content_type", "folder")
    def _strip_empty(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


class UploadCredentialDTO(DTOBase):
    key: str
    url: str
    method: str
    expires_at: datetime
    fields: dict[str, str] = Field(default_factory=dict)


class ObjectURLsDTO(DTOBase):
    key: str
    source_url: str
    download_url: Optional[str] = None


class StorageInfoDTO(DTOBase):
    type: str
    supports_direct_upload: bool


class StorageCheckDTO(DTOBase):
    is_valid: bool
    error: Optional[str] = None
    solution: Optional[str] = None

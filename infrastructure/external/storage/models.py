"""Storage data transfer objects."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class UploadOptions(BaseModel):
    """Optional upload hints."""
    filename: Optional[str] = None
    content_type: Optional[str] = None
    folder: Optional[str] = None  # Overrides configured prefix
    expires_in: int = Field(default=3600, gt=0)  # Credential lifetime, seconds


class FileMetadata(BaseModel):
    """Stored object metadata, always read from the backend."""
    key: str
    filename: str
    content_type: str
    size: int
    uploaded_at: datetime


class UploadResult(BaseModel):
    """Upload operation result."""
    key: str
    source_url: str
    metadata: FileMetadata


class UploadCredential(BaseModel):
    """Signed parameters for a client-performed direct upload."""
    key: str
    url: str
    method: str = "POST"
    expires_at: datetime
    fields: dict[str, str] = Field(default_factory=dict)


class StorageInfo(BaseModel):
    """Selected backend and its upload strategy."""
    type: str
    supports_direct_upload: bool


class StorageCheckResult(BaseModel):
    """Configuration check outcome with a remediation hint."""
    is_valid: bool
    error: Optional[str] = None
    solution: Optional[str] = None

"""Storage configuration models."""
from enum import Enum
from typing import Optional
from pydantic import BaseModel, field_validator


class StorageType(str, Enum):
    """Storage provider types."""
    LOCAL = "local"
    CLOUDINARY = "cloudinary"
    VERCEL_BLOB = "vercel-blob"
    S3 = "s3"


# Backends able to hand out credentials for browser-direct uploads
DIRECT_UPLOAD_TYPES = frozenset({
    StorageType.CLOUDINARY.value,
    StorageType.VERCEL_BLOB.value,
    StorageType.S3.value,
})


class StorageConfig(BaseModel):
    """Storage configuration model.

    Built once at startup and handed to the selected provider. ``type`` is
    kept as a plain string so an unrecognized value reaches the factory,
    which rejects it with a ConfigurationError.
    """
    # Common settings
    type: str = StorageType.LOCAL.value
    prefix: Optional[str] = None
    public_base_url: Optional[str] = None  # Public/CDN domain
    timeout: int = 30

    # Cloudinary specific
    cloudinary_cloud_name: Optional[str] = None
    cloudinary_api_key: Optional[str] = None
    cloudinary_api_secret: Optional[str] = None
    cloudinary_resource_type: str = "image"

    # Vercel Blob specific
    blob_read_write_token: Optional[str] = None
    blob_api_url: str = "https://blob.vercel-storage.com"

    # Local specific (fixed defaults, not read from the environment)
    local_base_path: str = "public/uploads"
    local_public_mount: str = "/uploads"

    model_config = {"frozen": True}

    @field_validator("type", mode="before")
    @classmethod
    def _normalize_type(cls, v):
        if isinstance(v, StorageType):
            return v.value
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("public_base_url", "blob_api_url")
    @classmethod
    def _strip_trailing_slash(cls, v):
        return v.rstrip("/") if v else v

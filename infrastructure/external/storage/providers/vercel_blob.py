"""Vercel Blob storage provider implementation.

Uses the Blob REST API directly with the store's read-write token. Objects
are public and served from ``https://{store_id}.public.blob.vercel-storage.com``.
"""
import base64
import hashlib
import hmac
import json
import time
from datetime import datetime, timedelta, timezone
from typing import Optional

import httpx

from core.logging_config import get_logger
from ..config import StorageConfig, StorageType
from ..content import StorableContent, content_to_bytes
from ..models import (
    UploadOptions,
    UploadResult,
    UploadCredential,
    FileMetadata,
)
from ..exceptions import (
    BackendRequestError,
    ConfigurationError,
    NotFoundError,
    UploadError,
)
from ..utils import detect_content_type, generate_key

logger = get_logger(__name__)

BLOB_API_VERSION = "7"
TOKEN_PREFIX = "vercel_blob_rw_"
CLIENT_TOKEN_PREFIX = "vercel_blob_client_"


def store_id_from_token(token: Optional[str]) -> Optional[str]:
    """Extract the store id from ``vercel_blob_rw_<storeId>_<secret>``."""
    if not token or not token.startswith(TOKEN_PREFIX):
        return None
    parts = token.split("_")
    if len(parts) < 5 or not parts[3]:
        return None
    return parts[3]


def generate_client_token(
    read_write_token: str,
    pathname: str,
    valid_until_ms: int,
) -> str:
    """Derive a short-lived client token scoped to a single pathname.

    The payload is base64 JSON signed with HMAC-SHA256 keyed by the
    read-write token.
    """
    store_id = store_id_from_token(read_write_token) or ""
    payload = base64.b64encode(
        json.dumps({"pathname": pathname, "validUntil": valid_until_ms}).encode("utf-8")
    ).decode("ascii")
    secured_key = hmac.new(
        read_write_token.encode("utf-8"),
        payload.encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()
    signed = base64.b64encode(f"{secured_key}.{payload}".encode("utf-8")).decode("ascii")
    return f"{CLIENT_TOKEN_PREFIX}{store_id}_{signed}"


class VercelBlobProvider:
    """Vercel Blob (platform-managed blob storage) provider."""

    def __init__(
        self,
        config: StorageConfig,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize Vercel Blob provider.

        Args:
            config: Storage configuration
            client: Optional shared HTTP client (created when omitted)
        """
        self.config = config
        self.api_url = config.blob_api_url
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=config.timeout)

    def _validate_config(self) -> str:
        token = self.config.blob_read_write_token
        if not token:
            raise ConfigurationError(
                f"{StorageType.VERCEL_BLOB.value} storage misconfigured: blob_read_write_token is not set"
            )
        return token

    def _public_base(self) -> Optional[str]:
        if self.config.public_base_url:
            return self.config.public_base_url
        store_id = store_id_from_token(self.config.blob_read_write_token)
        if not store_id:
            return None
        return f"https://{store_id}.public.blob.vercel-storage.com"

    def _headers(self, token: str) -> dict[str, str]:
        return {
            "authorization": f"Bearer {token}",
            "x-api-version": BLOB_API_VERSION,
        }

    async def upload(
        self,
        content: StorableContent,
        options: Optional[UploadOptions] = None,
    ) -> UploadResult:
        """PUT the payload to the Blob API under a fresh pathname."""
        token = self._validate_config()
        options = options or UploadOptions()

        try:
            data = await content_to_bytes(content)
            key = generate_key(options.folder or self.config.prefix, options.filename)
            content_type = options.content_type or detect_content_type(options.filename)

            headers = self._headers(token)
            headers["x-content-type"] = content_type
            headers["x-add-random-suffix"] = "0"

            response = await self.client.put(
                f"{self.api_url}/",
                params={"pathname": key},
                content=data,
                headers=headers,
            )
            if not response.is_success:
                raise BackendRequestError(
                    "Vercel Blob upload rejected",
                    status_code=response.status_code,
                    backend_message=response.text,
                )

            source_url = response.json()["url"]
            logger.info("Uploaded to Vercel Blob", key=key, size=len(data), url=source_url)

            metadata = FileMetadata(
                key=key,
                filename=options.filename or key,
                content_type=content_type,
                size=len(data),
                uploaded_at=datetime.now(timezone.utc),
            )
            return UploadResult(key=key, source_url=source_url, metadata=metadata)

        except UploadError:
            raise
        except Exception as e:
            logger.error("Vercel Blob upload failed", error=str(e))
            raise UploadError(f"Vercel Blob upload failed: {e}") from e

    async def create_upload_url(
        self,
        options: Optional[UploadOptions] = None,
    ) -> Optional[UploadCredential]:
        """Issue a pathname-scoped client token for a direct PUT."""
        token = self._validate_config()
        options = options or UploadOptions()
        key = generate_key(options.folder or self.config.prefix, options.filename)
        content_type = options.content_type or detect_content_type(options.filename)

        expires_at = datetime.now(timezone.utc) + timedelta(seconds=options.expires_in)
        valid_until_ms = int((time.time() + options.expires_in) * 1000)
        client_token = generate_client_token(token, key, valid_until_ms)

        logger.info("Issued Vercel Blob upload credential", key=key, expires_at=expires_at.isoformat())
        return UploadCredential(
            key=key,
            url=str(httpx.URL(f"{self.api_url}/", params={"pathname": key})),
            method="PUT",
            expires_at=expires_at,
            fields={
                "authorization": f"Bearer {client_token}",
                "x-api-version": BLOB_API_VERSION,
                "x-content-type": content_type,
            },
        )

    async def download(self, key: str) -> bytes:
        """Download file through its public URL."""
        url = await self.get_source_url(key)
        if not url:
            raise ConfigurationError(
                f"{StorageType.VERCEL_BLOB.value} storage misconfigured: cannot resolve public URL"
            )

        try:
            response = await self.client.get(url)
        except httpx.HTTPError as e:
            raise BackendRequestError(f"Vercel Blob download failed: {e}") from e

        if response.status_code == 404:
            raise NotFoundError(f"File not found: {key}")
        if not response.is_success:
            raise BackendRequestError(
                "Vercel Blob download failed",
                status_code=response.status_code,
                backend_message=response.reason_phrase,
            )

        logger.info("Downloaded from Vercel Blob", key=key, size=len(response.content))
        return response.content

    async def delete(self, key: str) -> None:
        """Delete file via the Blob API."""
        token = self._validate_config()
        url = await self.get_source_url(key)
        if not url:
            raise ConfigurationError(
                f"{StorageType.VERCEL_BLOB.value} storage misconfigured: cannot resolve public URL"
            )

        try:
            response = await self.client.post(
                f"{self.api_url}/delete",
                json={"urls": [url]},
                headers=self._headers(token),
            )
        except httpx.HTTPError as e:
            raise BackendRequestError(f"Vercel Blob delete failed: {e}") from e

        if not response.is_success:
            raise BackendRequestError(
                "Vercel Blob delete failed",
                status_code=response.status_code,
                backend_message=response.text,
            )

        logger.info("Deleted from Vercel Blob", key=key)

    async def exists(self, key: str) -> bool:
        """HEAD the public URL; any failure counts as absence."""
        try:
            url = await self.get_source_url(key)
            if not url:
                return False
            response = await self.client.head(url)
            return response.is_success
        except Exception:
            return False

    async def get_metadata(self, key: str) -> Optional[FileMetadata]:
        """Look the blob up through the API's head endpoint."""
        try:
            token = self._validate_config()
            url = await self.get_source_url(key)
            response = await self.client.get(
                f"{self.api_url}/",
                params={"url": url},
                headers=self._headers(token),
            )
            if not response.is_success:
                return None

            blob = response.json()
            filename = key.rsplit("/", 1)[-1]
            return FileMetadata(
                key=key,
                filename=filename,
                content_type=blob.get("contentType") or detect_content_type(filename),
                size=int(blob.get("size") or 0),
                uploaded_at=blob.get("uploadedAt") or datetime.now(timezone.utc),
            )
        except Exception as e:
            logger.warning("Vercel Blob metadata unavailable", key=key, error=str(e))
            return None

    async def get_source_url(self, key: str) -> Optional[str]:
        """Public URL for the key."""
        base = self._public_base()
        if not base:
            return None
        return f"{base}/{key}"

    async def get_download_url(self, key: str) -> Optional[str]:
        """Public URL with the download flag set."""
        url = await self.get_source_url(key)
        if not url:
            return None
        return f"{url}?download=1"

    async def health_check(self) -> bool:
        """Report whether the provider is fully configured."""
        try:
            self._validate_config()
            return True
        except ConfigurationError as e:
            logger.warning("Vercel Blob health check failed", error=str(e))
            return False

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()


async def build_vercel_blob_provider(config: StorageConfig) -> VercelBlobProvider:
    """Build Vercel Blob provider.

    Args:
        config: Storage configuration

    Returns:
        Provider instance; the token is validated lazily per call
    """
    return VercelBlobProvider(config)

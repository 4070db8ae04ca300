"""Cloudinary storage provider implementation.

Talks to Cloudinary's upload API with signed multipart form posts instead of
the vendor SDK. Reads go through the public delivery URLs and need no
signature.
"""
import hashlib
import time
from datetime import datetime, timedelta, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Optional, Union

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
from ..utils import detect_content_type, generate_key, resolve_folder

logger = get_logger(__name__)

CLOUDINARY_API_BASE = "https://api.cloudinary.com/v1_1"
CLOUDINARY_DELIVERY_BASE = "https://res.cloudinary.com"

# Checked in this order; the first missing one is reported
REQUIRED_SETTINGS = (
    "cloudinary_cloud_name",
    "cloudinary_api_key",
    "cloudinary_api_secret",
)


def _timestamp() -> int:
    return int(time.time())


def generate_signature(params: dict[str, Union[str, int]], api_secret: str) -> str:
    """Sign request parameters the way Cloudinary expects.

    Parameters are sorted by name, joined as ``key=value`` pairs with ``&``,
    suffixed with the API secret and hashed with SHA-1.

    Args:
        params: Parameters covered by the signature
        api_secret: Shared API secret

    Returns:
        Hex digest signature
    """
    to_sign = "&".join(f"{name}={params[name]}" for name in sorted(params))
    return hashlib.sha1(f"{to_sign}{api_secret}".encode("utf-8")).hexdigest()


def _backend_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text
    error = payload.get("error") if isinstance(payload, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    return response.text


class CloudinaryProvider:
    """Cloudinary (CDN-style asset host) storage provider."""

    def __init__(
        self,
        config: StorageConfig,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize Cloudinary provider.

        Secrets are not validated here; every mutating call checks them.

        Args:
            config: Storage configuration
            client: Optional shared HTTP client (created when omitted)
        """
        self.config = config
        self.resource_type = config.cloudinary_resource_type or "image"
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=config.timeout)

    @property
    def upload_endpoint(self) -> str:
        return f"{CLOUDINARY_API_BASE}/{self.config.cloudinary_cloud_name}/{self.resource_type}/upload"

    @property
    def destroy_endpoint(self) -> str:
        return f"{CLOUDINARY_API_BASE}/{self.config.cloudinary_cloud_name}/{self.resource_type}/destroy"

    def _validate_config(self) -> None:
        """Fail fast when any required secret is missing.

        Raises:
            ConfigurationError: Naming the first missing setting
        """
        for name in REQUIRED_SETTINGS:
            if not getattr(self.config, name):
                raise ConfigurationError(
                    f"{StorageType.CLOUDINARY.value} storage misconfigured: {name} is not set"
                )

    def _delivery_base(self) -> Optional[str]:
        cloud_name = self.config.cloudinary_cloud_name
        if not cloud_name:
            return None
        return f"{CLOUDINARY_DELIVERY_BASE}/{cloud_name}/{self.resource_type}/upload"

    def _signed_params(self, key: str, folder: Optional[str] = None) -> dict[str, Any]:
        params: dict[str, Any] = {
            "public_id": key,
            "timestamp": _timestamp(),
        }
        if folder is not None:
            params["folder"] = folder
        params["signature"] = generate_signature(params, self.config.cloudinary_api_secret)
        return params

    async def upload(
        self,
        content: StorableContent,
        options: Optional[UploadOptions] = None,
    ) -> UploadResult:
        """Upload file to Cloudinary with a signed form post."""
        self._validate_config()
        options = options or UploadOptions()
        folder = resolve_folder(options.folder or self.config.prefix)

        try:
            data = await content_to_bytes(content)
            key = generate_key(folder, options.filename)
            content_type = options.content_type or detect_content_type(options.filename)

            params = self._signed_params(key, folder)
            form = {name: str(value) for name, value in params.items()}
            form["api_key"] = self.config.cloudinary_api_key

            response = await self.client.post(
                self.upload_endpoint,
                data=form,
                files={"file": (options.filename or key, data, content_type)},
            )
            if not response.is_success:
                raise BackendRequestError(
                    "Cloudinary upload rejected",
                    status_code=response.status_code,
                    backend_message=_backend_message(response),
                )

            source_url = response.json()["secure_url"]
            logger.info("Uploaded to Cloudinary", key=key, size=len(data), url=source_url)

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
            logger.error("Cloudinary upload failed", error=str(e))
            raise UploadError(f"Cloudinary upload failed: {e}") from e

    async def create_upload_url(
        self,
        options: Optional[UploadOptions] = None,
    ) -> Optional[UploadCredential]:
        """Sign upload parameters so the client can post bytes directly."""
        self._validate_config()
        options = options or UploadOptions()
        folder = resolve_folder(options.folder or self.config.prefix)
        key = generate_key(folder, options.filename)

        params = self._signed_params(key, folder)
        fields = {name: str(value) for name, value in params.items()}
        fields["api_key"] = self.config.cloudinary_api_key

        expires_at = datetime.now(timezone.utc) + timedelta(seconds=options.expires_in)
        logger.info("Issued Cloudinary upload credential", key=key, expires_at=expires_at.isoformat())
        return UploadCredential(
            key=key,
            url=self.upload_endpoint,
            method="POST",
            expires_at=expires_at,
            fields=fields,
        )

    async def download(self, key: str) -> bytes:
        """Download file through its public delivery URL."""
        url = await self.get_source_url(key)
        if not url:
            raise ConfigurationError(
                f"{StorageType.CLOUDINARY.value} storage misconfigured: cloudinary_cloud_name is not set"
            )

        try:
            response = await self.client.get(url)
        except httpx.HTTPError as e:
            raise BackendRequestError(f"Cloudinary download failed: {e}") from e

        if response.status_code == 404:
            raise NotFoundError(f"File not found: {key}")
        if not response.is_success:
            raise BackendRequestError(
                "Cloudinary download failed",
                status_code=response.status_code,
                backend_message=response.reason_phrase,
            )

        logger.info("Downloaded from Cloudinary", key=key, size=len(response.content))
        return response.content

    async def delete(self, key: str) -> None:
        """Delete file from Cloudinary with a signed destroy call."""
        self._validate_config()

        form = {name: str(value) for name, value in self._signed_params(key).items()}
        form["api_key"] = self.config.cloudinary_api_key

        try:
            response = await self.client.post(self.destroy_endpoint, data=form)
        except httpx.HTTPError as e:
            raise BackendRequestError(f"Cloudinary delete failed: {e}") from e

        if not response.is_success:
            raise BackendRequestError(
                "Cloudinary delete failed",
                status_code=response.status_code,
                backend_message=_backend_message(response),
            )

        try:
            outcome = response.json().get("result")
        except ValueError:
            outcome = None
        if outcome == "not found":
            raise NotFoundError(f"File not found: {key}")

        logger.info("Deleted from Cloudinary", key=key)

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
        """Build metadata from the delivery URL's response headers."""
        try:
            url = await self.get_source_url(key)
            if not url:
                return None
            response = await self.client.head(url)
            if not response.is_success:
                return None

            filename = key.rsplit("/", 1)[-1]
            content_type = response.headers.get("content-type") or detect_content_type(filename)
            last_modified = response.headers.get("last-modified")
            uploaded_at = (
                parsedate_to_datetime(last_modified) if last_modified
                else datetime.now(timezone.utc)
            )
            return FileMetadata(
                key=key,
                filename=filename,
                content_type=content_type.split(";")[0].strip(),
                size=int(response.headers.get("content-length") or 0),
                uploaded_at=uploaded_at,
            )
        except Exception as e:
            logger.warning("Cloudinary metadata unavailable", key=key, error=str(e))
            return None

    async def get_source_url(self, key: str) -> Optional[str]:
        """Public delivery URL for the key."""
        base = self._delivery_base()
        if not base:
            return None
        return f"{base}/{key}"

    async def get_download_url(self, key: str) -> Optional[str]:
        """Delivery URL with the attachment flag set."""
        base = self._delivery_base()
        if not base:
            return None
        return f"{base}/fl_attachment/{key}"

    async def health_check(self) -> bool:
        """Report whether the provider is fully configured."""
        try:
            self._validate_config()
            return True
        except ConfigurationError as e:
            logger.warning("Cloudinary health check failed", error=str(e))
            return False

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()


async def build_cloudinary_provider(config: StorageConfig) -> CloudinaryProvider:
    """Build Cloudinary provider.

    Args:
        config: Storage configuration

    Returns:
        Provider instance; secrets are validated lazily per call
    """
    return CloudinaryProvider(config)

import pytest

from infrastructure.external import storage
from infrastructure.external.storage import (
    ConfigurationError,
    StorageConfig,
    StorageType,
    check_storage_config,
    get_storage_info,
    init_storage_client,
    shutdown_storage_client,
)
from infrastructure.external.storage.factory import create_provider, resolve_storage_type
from infrastructure.external.storage.providers.cloudinary import CloudinaryProvider
from infrastructure.external.storage.providers.local import LocalProvider
from infrastructure.external.storage.providers.vercel_blob import VercelBlobProvider


@pytest.mark.asyncio
async def test_create_local_provider(local_config):
    provider = await create_provider(local_config)
    assert isinstance(provider, LocalProvider)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "type_,cls",
    [
        ("cloudinary", CloudinaryProvider),
        ("CLOUDINARY", CloudinaryProvider),
        ("vercel-blob", VercelBlobProvider),
        (" Vercel-Blob ", VercelBlobProvider),
    ],
)
async def test_create_hosted_providers(type_, cls):
    provider = await create_provider(StorageConfig(type=type_))
    try:
        assert isinstance(provider, cls)
    finally:
        await provider.aclose()


@pytest.mark.asyncio
async def test_reserved_backend_is_rejected():
    with pytest.raises(ConfigurationError, match="not yet implemented"):
        await create_provider(StorageConfig(type="s3"))


@pytest.mark.asyncio
@pytest.mark.parametrize("value", ["ftp", "", "disk"])
async def test_unknown_backend_is_rejected(value):
    with pytest.raises(ConfigurationError, match="Expected one of"):
        await create_provider(StorageConfig(type=value))


def test_resolve_storage_type():
    assert resolve_storage_type("vercel-blob") is StorageType.VERCEL_BLOB
    with pytest.raises(ConfigurationError):
        resolve_storage_type("gcs")


@pytest.mark.parametrize(
    "type_,direct",
    [("local", False), ("cloudinary", True), ("vercel-blob", True), ("s3", True)],
)
def test_storage_info(type_, direct):
    info = get_storage_info(StorageConfig(type=type_))
    assert info.type == type_
    assert info.supports_direct_upload is direct


def test_check_storage_config():
    assert check_storage_config(StorageConfig(type="local")).is_valid

    blob = check_storage_config(StorageConfig(type="vercel-blob"))
    assert not blob.is_valid
    assert "blob_read_write_token" in blob.error
    assert blob.solution

    partial = check_storage_config(
        StorageConfig(type="cloudinary", cloudinary_cloud_name="demo")
    )
    assert not partial.is_valid
    assert "cloudinary_api_key" in partial.error
    assert "cloudinary_cloud_name" not in partial.error

    complete = check_storage_config(StorageConfig(
        type="cloudinary",
        cloudinary_cloud_name="demo",
        cloudinary_api_key="k",
        cloudinary_api_secret="s",
    ))
    assert complete.is_valid

    assert not check_storage_config(StorageConfig(type="s3")).is_valid

    unknown = check_storage_config(StorageConfig(type="ftp"))
    assert not unknown.is_valid
    assert "ftp" in unknown.error


@pytest.mark.asyncio
async def test_storage_client_lifecycle(local_config):
    try:
        first = await init_storage_client(local_config)
        assert storage.get_storage_client() is first
        assert await storage.get_storage() is first
        assert await init_storage_client(local_config) is first
    finally:
        await shutdown_storage_client()

    assert storage.get_storage_client() is None
    with pytest.raises(RuntimeError):
        await storage.get_storage()


@pytest.mark.asyncio
async def test_init_fails_for_unknown_backend():
    with pytest.raises(ConfigurationError):
        await init_storage_client(StorageConfig(type="ftp"))
    assert storage.get_storage_client() is None

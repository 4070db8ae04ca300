import re

import pytest

from infrastructure.external.storage import (
    NotFoundError,
    StorageError,
    UnsupportedContentTypeError,
    UploadError,
    UploadOptions,
    ValidationError,
)
from infrastructure.external.storage.providers.local import build_local_provider


KEY_PATTERN = re.compile(r"^uploads/[A-Za-z0-9_-]{22}-notes\.txt$")


@pytest.mark.asyncio
async def test_round_trip_for_every_content_shape(local_provider, make_content, payload):
    result = await local_provider.upload(make_content(payload), UploadOptions(filename="blob.bin"))

    assert await local_provider.download(result.key) == payload
    assert result.metadata.size == len(payload)


@pytest.mark.asyncio
async def test_upload_text_file_scenario(local_provider, local_config):
    result = await local_provider.upload(b"hello", UploadOptions(filename="notes.txt"))

    assert KEY_PATTERN.match(result.key)
    assert result.source_url == f"/uploads/{result.key}"
    assert result.metadata.content_type == "text/plain"
    assert result.metadata.filename == "notes.txt"
    assert result.metadata.size == 5
    assert (local_provider.base_path / result.key).read_bytes() == b"hello"


@pytest.mark.asyncio
async def test_upload_honours_folder_and_explicit_content_type(local_provider):
    result = await local_provider.upload(
        b"{}",
        UploadOptions(filename="a.bin", content_type="application/json", folder="kb-1"),
    )

    assert result.key.startswith("kb-1/")
    assert result.metadata.content_type == "application/json"


@pytest.mark.asyncio
async def test_upload_without_filename(local_provider):
    result = await local_provider.upload(b"x")

    assert re.fullmatch(r"uploads/[A-Za-z0-9_-]{22}", result.key)
    assert result.metadata.content_type == "application/octet-stream"


@pytest.mark.asyncio
async def test_empty_content_is_stored(local_provider):
    result = await local_provider.upload(b"", UploadOptions(filename="empty.txt"))

    assert await local_provider.download(result.key) == b""
    metadata = await local_provider.get_metadata(result.key)
    assert metadata is not None and metadata.size == 0


@pytest.mark.asyncio
async def test_same_content_twice_gives_distinct_keys(local_provider):
    first = await local_provider.upload(b"first draft", UploadOptions(filename="a.txt"))
    second = await local_provider.upload(b"second draft", UploadOptions(filename="a.txt"))

    assert first.key != second.key
    assert await local_provider.exists(first.key)
    assert await local_provider.exists(second.key)
    assert await local_provider.download(first.key) == b"first draft"
    assert await local_provider.download(second.key) == b"second draft"


@pytest.mark.asyncio
async def test_escaping_folder_is_a_validation_error(local_provider, tmp_path):
    with pytest.raises(ValidationError) as exc_info:
        await local_provider.upload(b"x", UploadOptions(filename="a.txt", folder="../../escape"))

    assert not isinstance(exc_info.value, UploadError)
    assert "escape/" not in str(exc_info.value)
    assert not list(tmp_path.rglob("*-a.txt"))


@pytest.mark.asyncio
async def test_unsupported_content_is_rejected_before_writing(local_provider):
    with pytest.raises(UnsupportedContentTypeError):
        await local_provider.upload("plain text", UploadOptions(filename="notes.txt"))

    assert not local_provider.base_path.exists() or not any(local_provider.base_path.rglob("*.txt"))


@pytest.mark.asyncio
async def test_exists_and_delete(local_provider):
    result = await local_provider.upload(b"bye", UploadOptions(filename="notes.txt"))
    assert await local_provider.exists(result.key) is True

    await local_provider.delete(result.key)

    assert await local_provider.exists(result.key) is False
    assert await local_provider.get_source_url(result.key) is None
    with pytest.raises(NotFoundError):
        await local_provider.download(result.key)


@pytest.mark.asyncio
async def test_missing_key_behaviour(local_provider):
    key = "uploads/does-not-exist.txt"

    assert await local_provider.exists(key) is False
    assert await local_provider.get_metadata(key) is None
    assert await local_provider.get_source_url(key) is None
    assert await local_provider.get_download_url(key) is None
    with pytest.raises(NotFoundError):
        await local_provider.download(key)
    with pytest.raises(NotFoundError):
        await local_provider.delete(key)


@pytest.mark.asyncio
async def test_metadata_and_urls_for_stored_file(local_provider):
    result = await local_provider.upload(b"a,b\n1,2\n", UploadOptions(filename="table.csv"))

    metadata = await local_provider.get_metadata(result.key)
    assert metadata.key == result.key
    assert metadata.size == 8
    assert metadata.content_type == "text/csv"
    assert metadata.filename.endswith("-table.csv")
    assert await local_provider.get_download_url(result.key) == f"/uploads/{result.key}"


@pytest.mark.asyncio
async def test_direct_upload_is_not_available(local_provider):
    assert await local_provider.create_upload_url(UploadOptions(filename="a.pdf")) is None


@pytest.mark.asyncio
async def test_traversal_keys_are_rejected(local_provider):
    with pytest.raises(ValidationError):
        await local_provider.download("../../etc/passwd")
    assert await local_provider.exists("../../etc/passwd") is False


@pytest.mark.asyncio
async def test_health_check_creates_root(local_provider):
    assert await local_provider.health_check() is True
    assert local_provider.base_path.is_dir()


@pytest.mark.asyncio
async def test_builder_rejects_unwritable_root(local_config, tmp_path):
    blocker = tmp_path / "occupied"
    blocker.write_text("file, not a directory")
    config = local_config.model_copy(update={"local_base_path": str(blocker / "uploads")})

    with pytest.raises(StorageError):
        await build_local_provider(config)

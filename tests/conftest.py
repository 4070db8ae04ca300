"""Pytest bootstrap configuration.

Ensure environment variables are set before test collection and module
imports that depend on application settings, and provide the content
shapes every storage provider must accept.
"""
import io
import os

import pytest

os.environ.setdefault("STORAGE__TYPE", "local")
os.environ.setdefault("DEBUG", "false")

from infrastructure.external.storage import StorageConfig
from infrastructure.external.storage.providers.local import LocalProvider


PAYLOAD = b"knowledge base payload \x00\x01\x02\xff" * 3


class FakeBlob:
    """Blob-like object with an async whole-read accessor."""

    def __init__(self, data: bytes):
        self._data = data

    async def read(self) -> bytes:
        return self._data


async def _push_stream(data: bytes, size: int = 7):
    for i in range(0, len(data), size):
        yield data[i:i + size]


def _pull_stream(data: bytes, size: int = 5):
    for i in range(0, len(data), size):
        yield memoryview(data[i:i + size])


CONTENT_FACTORIES = {
    "bytes": lambda data: data,
    "bytearray": lambda data: bytearray(data),
    "memoryview": lambda data: memoryview(data),
    "blob": lambda data: FakeBlob(data),
    "file": lambda data: io.BytesIO(data),
    "push_stream": lambda data: _push_stream(data),
    "pull_stream": lambda data: _pull_stream(data),
}


@pytest.fixture(params=sorted(CONTENT_FACTORIES))
def make_content(request):
    """Build a fresh content object of each accepted shape."""
    return CONTENT_FACTORIES[request.param]


@pytest.fixture
def payload() -> bytes:
    return PAYLOAD


@pytest.fixture
def local_config(tmp_path) -> StorageConfig:
    return StorageConfig(
        type="local",
        local_base_path=str(tmp_path / "public" / "uploads"),
    )


@pytest.fixture
def local_provider(local_config) -> LocalProvider:
    return LocalProvider(local_config)

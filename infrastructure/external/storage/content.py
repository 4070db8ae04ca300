"""Content normalization shared by every storage provider.

Providers receive content in several shapes and must turn it into one
contiguous ``bytes`` object before talking to a backend: some backends need
the total size up front, others only accept single-shot uploads.

Accepted shapes:

* ``bytes`` - passed through
* ``bytearray`` / ``memoryview`` - byte views, copied into ``bytes``
* blob / file-like objects exposing a whole-read ``read()`` (sync or async,
  e.g. ``UploadFile``, ``io.BytesIO``, aiofiles handles)
* push streams - async iterables of byte chunks
* pull streams - sync iterables/iterators of byte chunks

Stream chunks are joined in arrival order. Anything else raises
``UnsupportedContentTypeError`` before any I/O is attempted.
"""
import inspect
from typing import Any, AsyncIterable, Iterable, Protocol, Union, runtime_checkable

from .exceptions import UnsupportedContentTypeError

BytesLike = Union[bytes, bytearray, memoryview]


@runtime_checkable
class Readable(Protocol):
    """Blob or file-like object with a whole-read accessor."""

    def read(self) -> Any:
        ...


StorableContent = Union[
    bytes,
    bytearray,
    memoryview,
    Readable,
    AsyncIterable[BytesLike],
    Iterable[BytesLike],
]


def _view_to_bytes(view: memoryview) -> bytes:
    if view.format != "B" and view.c_contiguous:
        view = view.cast("B")
    return view.tobytes()


def _chunk_to_bytes(chunk: Any) -> bytes:
    if isinstance(chunk, bytes):
        return chunk
    if isinstance(chunk, bytearray):
        return bytes(chunk)
    if isinstance(chunk, memoryview):
        return _view_to_bytes(chunk)
    raise UnsupportedContentTypeError(
        f"Stream yielded unsupported chunk type: {type(chunk).__name__}"
    )


async def _read_whole(source: Readable) -> bytes:
    data = source.read()
    if inspect.isawaitable(data):
        data = await data
    return _chunk_to_bytes(data)


async def _drain_push_stream(stream: AsyncIterable[Any]) -> bytes:
    chunks: list[bytes] = []
    async for chunk in stream:
        chunks.append(_chunk_to_bytes(chunk))
    return b"".join(chunks)


def _drain_pull_stream(stream: Iterable[Any]) -> bytes:
    chunks: list[bytes] = []
    for chunk in stream:
        chunks.append(_chunk_to_bytes(chunk))
    return b"".join(chunks)


async def content_to_bytes(content: StorableContent) -> bytes:
    """Materialize any accepted content shape into a single buffer.

    Args:
        content: Upload payload in one of the accepted representations

    Returns:
        The full payload as ``bytes``

    Raises:
        UnsupportedContentTypeError: If the shape is not recognized
    """
    if isinstance(content, bytes):
        return content

    if isinstance(content, bytearray):
        return bytes(content)

    if isinstance(content, memoryview):
        return _view_to_bytes(content)

    # str is iterable but carries text, not bytes
    if content is None or isinstance(content, str):
        raise UnsupportedContentTypeError(
            f"Unsupported content type for upload: {type(content).__name__}"
        )

    if callable(getattr(content, "read", None)):
        return await _read_whole(content)

    if hasattr(content, "__aiter__"):
        return await _drain_push_stream(content)

    if hasattr(content, "__iter__"):
        return _drain_pull_stream(content)

    raise UnsupportedContentTypeError(
        f"Unsupported content type for upload: {type(content).__name__}"
    )

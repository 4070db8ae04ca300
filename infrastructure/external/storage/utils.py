"""Storage utility functions: key generation and content-type inference."""
import secrets
from pathlib import Path
from typing import Optional

from .exceptions import ValidationError

DEFAULT_FOLDER = "uploads"
DEFAULT_CONTENT_TYPE = "application/octet-stream"

# Extension -> MIME type. Advisory metadata only, never used to reject uploads.
MIME_TYPES: dict[str, str] = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
    "svg": "image/svg+xml",
    "pdf": "application/pdf",
    "txt": "text/plain",
    "json": "application/json",
    "mp4": "video/mp4",
    "webm": "video/webm",
    "mp3": "audio/mpeg",
    "wav": "audio/wav",
    # Collection documents
    "md": "text/markdown",
    "csv": "text/csv",
    "doc": "application/msword",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "xls": "application/vnd.ms-excel",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}


def resolve_folder(prefix: Optional[str] = None) -> str:
    """Return the key folder, falling back to ``uploads``."""
    folder = (prefix or "").strip("/")
    return folder or DEFAULT_FOLDER


def generate_id() -> str:
    """Generate a compact, URL-safe, collision-resistant identifier."""
    return secrets.token_urlsafe(16)


def generate_key(folder: Optional[str] = None, filename: Optional[str] = None) -> str:
    """Build a fresh storage key.

    Args:
        folder: Key folder; ``uploads`` when empty
        filename: Original filename appended after the id for traceability

    Returns:
        ``{folder}/{id}`` or ``{folder}/{id}-{filename}``

    Example:
        generate_key("uploads", "notes.txt") -> "uploads/Qx3...-notes.txt"
    """
    name = generate_id()
    if filename:
        name = f"{name}-{filename}"
    return f"{resolve_folder(folder)}/{name}"


def detect_content_type(filename: Optional[str] = None) -> str:
    """Infer MIME type from the filename's final extension.

    Args:
        filename: File name or key

    Returns:
        MIME type string, ``application/octet-stream`` when unknown
    """
    if not filename or "." not in filename:
        return DEFAULT_CONTENT_TYPE
    ext = filename.lower().rsplit(".", 1)[-1]
    return MIME_TYPES.get(ext, DEFAULT_CONTENT_TYPE)


def file_extension(filename: str) -> str:
    """Return the dotted final extension of ``filename`` (``""`` if none)."""
    if "." not in filename:
        return ""
    return "." + filename.rsplit(".", 1)[-1]


def safe_join(base: Path, relative: str) -> Path:
    """Safely join paths preventing traversal attacks.

    Args:
        base: Resolved base directory
        relative: Relative key to join

    Returns:
        Resolved path inside ``base``

    Raises:
        ValidationError: If path would escape base
    """
    clean = relative.lstrip("/")
    if not clean:
        raise ValidationError("Empty storage key")

    full_path = (base / clean).resolve()

    try:
        full_path.relative_to(base)
    except ValueError:
        raise ValidationError("Invalid storage key: path escapes the storage root")

    if full_path == base:
        raise ValidationError(f"Invalid storage key: {relative}")

    return full_path

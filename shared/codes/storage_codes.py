"""
Storage specific codes and exception-to-status mapping.
"""
from __future__ import annotations

from enum import IntEnum


class StorageCode(IntEnum):
    # Generic success
    SUCCESS = 0

    # Storage errors (6xxxx)
    STORAGE_ERROR = 60000
    UPLOAD_FAILED = 60001
    UNSUPPORTED_CONTENT = 60002
    CONFIGURATION_ERROR = 60003
    OBJECT_NOT_FOUND = 60004
    BACKEND_REQUEST_FAILED = 60005
    INVALID_KEY = 60006
    DIRECT_UPLOAD_UNSUPPORTED = 60007


# Exception class name -> (business code, HTTP status); looked up along the MRO
STORAGE_ERROR_STATUS = {
    "UnsupportedContentTypeError": (StorageCode.UNSUPPORTED_CONTENT, 415),
    "NotFoundError": (StorageCode.OBJECT_NOT_FOUND, 404),
    "ValidationError": (StorageCode.INVALID_KEY, 400),
    "ConfigurationError": (StorageCode.CONFIGURATION_ERROR, 503),
    "BackendRequestError": (StorageCode.BACKEND_REQUEST_FAILED, 502),
    "UploadError": (StorageCode.UPLOAD_FAILED, 502),
    "StorageError": (StorageCode.STORAGE_ERROR, 500),
}

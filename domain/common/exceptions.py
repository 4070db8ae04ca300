"""业务异常定义，供应用层与接口层使用。

核心（core）层仅负责全局映射与异常处理，尽量避免反向依赖核心层。
"""
from __future__ import annotations

from typing import Optional
from shared.codes import BusinessCode


class BusinessException(Exception):
    """业务异常基类"""

    def __init__(
        self,
        code: int,
        message: str,
        error_type: str = "BusinessError",
        details: Optional[dict] = None,
        field: Optional[str] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.error_type = error_type
        self.details = details
        self.field = field
        super().__init__(self.message)


class MissingFileException(BusinessException):
    def __init__(self):
        super().__init__(
            code=BusinessCode.PARAM_MISSING,
            message="No file provided",
            error_type="MissingFile",
            field="file",
        )


class UnsupportedMimeTypeException(BusinessException):
    def __init__(self, mime_type: str):
        super().__init__(
            code=BusinessCode.PARAM_ERROR,
            message=f"File type {mime_type} is not supported",
            error_type="UnsupportedMimeType",
            details={"mime_type": mime_type},
            field="file",
        )


class FileTooLargeException(BusinessException):
    def __init__(self, filename: str, size: int, max_size: int):
        super().__init__(
            code=BusinessCode.PARAM_ERROR,
            message=f"File {filename} is too large. Maximum size is {max_size // (1024 * 1024)}MB",
            error_type="FileTooLarge",
            details={"size": size, "max_size": max_size},
            field="file",
        )


class DirectUploadUnsupportedException(BusinessException):
    def __init__(self, storage_type: str):
        super().__init__(
            code=BusinessCode.BUSINESS_ERROR,
            message=f"Storage backend '{storage_type}' does not support direct uploads",
            error_type="DirectUploadUnsupported",
            details={"storage_type": storage_type},
        )


class ObjectNotResolvableException(BusinessException):
    def __init__(self, key: str):
        super().__init__(
            code=BusinessCode.NOT_FOUND,
            message=f"File not found: {key}",
            error_type="ObjectNotFound",
            details={"key": key},
        )

"""
存储异常映射与全局异常处理器
"""
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
import traceback
import uuid
from starlette import status as http_status

from .response import error_json_response
from shared.codes import BusinessCode
from shared.codes.storage_codes import STORAGE_ERROR_STATUS, StorageCode
from core.logging_config import get_logger
from domain.common.exceptions import BusinessException
from infrastructure.external.storage.exceptions import StorageError, BackendRequestError


logger = get_logger(__name__)

# 业务码 -> HTTP 状态，未列出的默认 400
BUSINESS_HTTP_STATUS = {
    BusinessCode.PARAM_ERROR: http_status.HTTP_400_BAD_REQUEST,
    BusinessCode.PARAM_MISSING: http_status.HTTP_400_BAD_REQUEST,
    BusinessCode.PARAM_VALIDATION_ERROR: http_status.HTTP_422_UNPROCESSABLE_ENTITY,
    BusinessCode.BUSINESS_ERROR: http_status.HTTP_400_BAD_REQUEST,
    BusinessCode.NOT_FOUND: http_status.HTTP_404_NOT_FOUND,
    BusinessCode.SYSTEM_ERROR: http_status.HTTP_500_INTERNAL_SERVER_ERROR,
    BusinessCode.SERVICE_UNAVAILABLE: http_status.HTTP_503_SERVICE_UNAVAILABLE,
}

# HTTP 状态 -> 业务码，用于框架抛出的 HTTPException（如路由不存在）
HTTP_BUSINESS_CODE = {
    404: BusinessCode.NOT_FOUND,
    503: BusinessCode.SERVICE_UNAVAILABLE,
}


def http_status_to_business_code(status_code: int) -> int:
    """未列出的 4xx 归为参数错误，其余归为系统错误"""
    if status_code in HTTP_BUSINESS_CODE:
        return HTTP_BUSINESS_CODE[status_code]
    if 400 <= status_code < 500:
        return BusinessCode.PARAM_ERROR
    return BusinessCode.SYSTEM_ERROR


def business_code_to_http_status(code: int) -> int:
    try:
        return BUSINESS_HTTP_STATUS.get(BusinessCode(code), http_status.HTTP_400_BAD_REQUEST)
    except ValueError:
        return http_status.HTTP_400_BAD_REQUEST


def storage_error_status(exc: StorageError) -> tuple[int, int]:
    """Resolve (business code, HTTP status) from the most specific class in the MRO."""
    for cls in type(exc).__mro__:
        mapped = STORAGE_ERROR_STATUS.get(cls.__name__)
        if mapped is not None:
            return int(mapped[0]), mapped[1]
    return int(StorageCode.STORAGE_ERROR), http_status.HTTP_500_INTERNAL_SERVER_ERROR


def _backend_details(exc: StorageError):
    """上游后端的状态码与消息（异常本身或其 __cause__ 为 BackendRequestError 时）"""
    cause = exc if isinstance(exc, BackendRequestError) else exc.__cause__
    if not isinstance(cause, BackendRequestError):
        return None
    return {
        "backend_status": cause.status_code,
        "backend_message": cause.backend_message,
    }


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or str(uuid.uuid4())


def register_exception_handlers(app: FastAPI):
    """
    注册全局异常处理器

    业务异常按业务码映射状态；存储异常按异常类型映射（见 shared.codes.storage_codes）；
    其余异常统一为 500，调试模式下附带堆栈。

    Args:
        app: FastAPI应用实例
    """

    @app.exception_handler(BusinessException)
    async def business_exception_handler(request: Request, exc: BusinessException):
        """处理业务异常"""
        return error_json_response(
            business_code_to_http_status(exc.code),
            code=exc.code,
            message=exc.message,
            error_type=exc.error_type,
            details=exc.details,
            field=exc.field,
            request_id=_request_id(request),
        )

    @app.exception_handler(StorageError)
    async def storage_exception_handler(request: Request, exc: StorageError):
        """处理存储异常"""
        code, status_code = storage_error_status(exc)

        log = logger.warning if status_code < 500 else logger.error
        log(
            "storage_error",
            error_type=type(exc).__name__,
            error=str(exc),
            status_code=status_code,
        )

        return error_json_response(
            status_code,
            code=code,
            message=str(exc),
            error_type=type(exc).__name__,
            details=_backend_details(exc),
            request_id=_request_id(request),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """处理参数验证异常（不回显原始输入，避免上传内容进入响应）"""
        errors = [
            {"loc": list(err.get("loc", [])), "msg": err.get("msg"), "type": err.get("type")}
            for err in exc.errors()
        ]

        first_error = errors[0] if errors else {}
        field = ".".join(str(loc) for loc in first_error.get("loc", [])[1:])

        return error_json_response(
            http_status.HTTP_422_UNPROCESSABLE_ENTITY,
            code=BusinessCode.PARAM_VALIDATION_ERROR,
            message=f"Validation failed: {first_error.get('msg', 'unknown')}",
            error_type="ValidationError",
            details={"errors": errors},
            field=field or None,
            request_id=_request_id(request),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """处理HTTP异常"""
        return error_json_response(
            exc.status_code,
            code=http_status_to_business_code(exc.status_code),
            message=str(exc.detail),
            headers=getattr(exc, "headers", None),
            error_type="HTTPError",
            details={"status_code": exc.status_code},
            request_id=_request_id(request),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """处理所有未捕获的异常"""
        request_id = _request_id(request)
        logger.error(
            "unhandled_exception",
            request_id=request_id,
            error=str(exc),
            exc_info=True,
        )

        details = None
        if app.debug:
            details = {"exception": str(exc), "traceback": traceback.format_exc()}

        return error_json_response(
            http_status.HTTP_500_INTERNAL_SERVER_ERROR,
            code=BusinessCode.SYSTEM_ERROR,
            message="Internal server error",
            error_type="SystemError",
            details=details,
            request_id=request_id,
        )

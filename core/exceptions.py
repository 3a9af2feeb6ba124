"""
自定义异常映射与全局异常处理器
"""
from fastapi import FastAPI, Request, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status as http_status

from .response import error_response
from shared.codes import BusinessCode
from shared.codes.payment_codes import PaymentCode
from core.logging_config import get_logger
from domain.common.exceptions import BusinessException, ConfigurationException


def _request_id(request: Request):
    return getattr(getattr(request, "state", object()), "request_id", None)


def register_exception_handlers(app: FastAPI):
    """
    注册全局异常处理器

    Args:
        app: FastAPI应用实例
    """

    logger = get_logger(__name__)

    def _business_code_to_http_status(code: int) -> int:
        """业务码映射为 HTTP 状态码（未列出的默认 400）"""
        mapping = {
            BusinessCode.PARAM_VALIDATION_ERROR: http_status.HTTP_400_BAD_REQUEST,
            BusinessCode.BUSINESS_ERROR: http_status.HTTP_400_BAD_REQUEST,
            BusinessCode.SYSTEM_ERROR: http_status.HTTP_500_INTERNAL_SERVER_ERROR,
            BusinessCode.CONFIGURATION_ERROR: http_status.HTTP_500_INTERNAL_SERVER_ERROR,
            PaymentCode.PROVIDER_ERROR: http_status.HTTP_500_INTERNAL_SERVER_ERROR,
            PaymentCode.PROVIDER_REJECTED: http_status.HTTP_500_INTERNAL_SERVER_ERROR,
            PaymentCode.TRACKING_DELIVERY_FAILED: http_status.HTTP_500_INTERNAL_SERVER_ERROR,
            PaymentCode.METADATA_MALFORMED: http_status.HTTP_400_BAD_REQUEST,
        }
        return mapping.get(code, http_status.HTTP_400_BAD_REQUEST)

    @app.exception_handler(BusinessException)
    async def business_exception_handler(request: Request, exc: BusinessException):
        """业务异常处理"""
        status_code = _business_code_to_http_status(exc.code)
        missing_keys = exc.missing_keys if isinstance(exc, ConfigurationException) else None
        log = logger.error if status_code >= 500 else logger.warning
        log(
            "business_exception",
            error_type=exc.error_type,
            error=exc.message,
            field=exc.field,
            status_code=status_code,
        )
        return JSONResponse(
            status_code=status_code,
            content=error_response(exc.message, missing_keys=missing_keys, request_id=_request_id(request)),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """请求参数验证异常处理"""
        errors = exc.errors()
        first_error = errors[0] if errors else {}
        field = ".".join(str(loc) for loc in first_error.get("loc", [])[1:])
        message = f"Invalid request: {field or 'body'} {first_error.get('msg', 'is invalid')}"
        return JSONResponse(
            status_code=http_status.HTTP_400_BAD_REQUEST,
            content=error_response(message, request_id=_request_id(request)),
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        """HTTP异常处理"""
        return JSONResponse(
            status_code=exc.status_code,
            content=error_response(str(exc.detail), request_id=_request_id(request)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """全局异常处理：其余异常统一返回 500 与异常信息"""
        request_id = _request_id(request)
        logger.error(
            "unhandled_exception",
            request_id=request_id,
            error=str(exc),
            exc_info=True,
        )
        return JSONResponse(
            status_code=http_status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_response(str(exc) or "Internal server error", request_id=request_id),
        )

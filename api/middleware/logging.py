"""
请求/响应日志中间件（含耗时统计）

结账和回调请求体包含个人信息（CPF、电话、邮箱）和 PIX 付款码，
请求体只在需要时记录，且一律先脱敏。
"""
import json
import time
from typing import Any

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from core.config import settings
from core.logging_config import get_logger


logger = get_logger(__name__)

MASK = "***"
TRUTHY = {"true", "1", "yes"}
FALSY = {"false", "0", "no"}


class LoggingMiddleware(BaseHTTPMiddleware):
    SKIP_PATHS = {"/health", "/docs", "/redoc", "/openapi.json"}

    # 敏感字段，任意层级的 JSON key 均按小写匹配
    SENSITIVE_FIELDS = {
        "cpf",
        "document",
        "number",
        "phone",
        "email",
        "password",
        "token",
        "secret",
        "secret_key",
        "secretkey",
        "public_key",
        "publickey",
        "api_token",
        "qrcode",
        "metadata",
    }

    def __init__(self, app: ASGIApp):
        super().__init__(app)
        self.log_body_default: bool = settings.LOG_REQUEST_BODY_ENABLE_BY_DEFAULT and settings.DEBUG
        self.max_body_bytes: int = settings.LOG_REQUEST_BODY_MAX_BYTES

    async def dispatch(self, request: Request, call_next):
        if request.url.path in self.SKIP_PATHS:
            return await call_next(request)

        started = time.perf_counter()
        context = {
            "method": request.method,
            "path": request.url.path,
            "query": self.mask(dict(request.query_params)),
        }
        if request.method == "POST" and self._wants_body(request):
            context["body"] = await self._read_body(request)
        logger.info("http_request_started", **context)

        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error(
                "http_request_crashed",
                elapsed_ms=round((time.perf_counter() - started) * 1000, 1),
                error_type=type(exc).__name__,
                error=str(exc),
                exc_info=True,
                **context,
            )
            raise

        elapsed = time.perf_counter() - started
        self._log_outcome(response, elapsed, context)
        response.headers["X-Process-Time"] = f"{elapsed:.3f}"
        return response

    def _wants_body(self, request: Request) -> bool:
        # X-Log-Body 请求头优先于环境默认值
        flag = (request.headers.get("X-Log-Body") or "").lower()
        if flag in TRUTHY:
            return True
        if flag in FALSY:
            return False
        return self.log_body_default

    async def _read_body(self, request: Request) -> Any:
        raw = await request.body()
        if not raw:
            return None
        text = raw[: self.max_body_bytes].decode("utf-8", errors="ignore")
        if "application/json" not in request.headers.get("content-type", "").lower():
            return f"<{len(raw)} bytes>"
        try:
            return self.mask(json.loads(text))
        except ValueError:
            # 截断或非法 JSON 只记录长度，不记录原文
            return f"<{len(raw)} bytes, unparsed>"

    @classmethod
    def mask(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {k: (MASK if str(k).lower() in cls.SENSITIVE_FIELDS else cls.mask(v)) for k, v in data.items()}
        if isinstance(data, list):
            return [cls.mask(v) for v in data]
        return data

    def _log_outcome(self, response: Response, elapsed: float, context: dict):
        fields = {"status_code": response.status_code, "elapsed_ms": round(elapsed * 1000, 1), **context}
        if response.status_code >= 500:
            logger.error("http_request_failed", **fields)
        elif response.status_code >= 400:
            logger.warning("http_request_rejected", **fields)
        else:
            logger.info("http_request_completed", **fields)

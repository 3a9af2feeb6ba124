"""
REST API客户端基类（支付网关、订单追踪共用）

提供通用的HTTP请求功能，包括：
- 每个客户端实例懒加载一个 httpx.AsyncClient
- 网络错误与临时状态码的可选重试（``max_retries`` > 0 时启用）
- 错误统一转换为 APIError，响应体带错误信息时优先使用
"""
import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

import httpx
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from core.logging_config import get_logger

logger = get_logger(__name__)

TRANSIENT_STATUS_CODES = {429, 500, 502, 503, 504}
ERROR_BODY_LIMIT = 500


@dataclass
class APIResponse:
    """API响应封装"""
    status_code: int
    headers: Dict[str, str]
    data: Any
    raw_content: bytes
    elapsed_ms: float

    @property
    def is_error(self) -> bool:
        return self.status_code >= 400

    def json(self) -> Any:
        if self.data is not None:
            return self.data
        return json.loads(self.raw_content)

    def text(self) -> str:
        return self.raw_content.decode("utf-8", errors="replace")

    def provider_message(self) -> Optional[str]:
        """提取错误信息：优先 JSON 的 message/error/detail 字段，否则取原始响应体"""
        if isinstance(self.data, dict):
            for key in ("message", "error", "detail"):
                if self.data.get(key):
                    return str(self.data[key])
            return None
        return self.text()[:ERROR_BODY_LIMIT] or None


class APIError(Exception):
    """API调用异常（网络错误时 status_code 为 None）"""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response: Optional[APIResponse] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.response = response
        super().__init__(message)

    def __str__(self):
        if self.status_code:
            return f"{self.message} | Status: {self.status_code}"
        return self.message


class TransientAPIError(APIError):
    """可重试的异常：429 或 5xx"""


def _error_from_response(response: APIResponse) -> APIError:
    message = response.provider_message() or f"API request failed with status {response.status_code}"
    return APIError(message, status_code=response.status_code, response=response)


class BaseAPIClient:
    """REST API客户端基类，子类基于 get/post 实现具体接口"""

    def __init__(
        self,
        base_url: str,
        timeout: Union[float, httpx.Timeout] = 15.0,
        max_retries: int = 0,
        retry_delay: float = 0.5,
        headers: Optional[Dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        初始化API客户端

        Args:
            base_url: API基础URL，endpoint 为空时直接请求该地址
            timeout: 超时时间（秒），或按阶段设置的 httpx.Timeout
            max_retries: 首次请求之外的最大重试次数
            retry_delay: 重试退避基数（秒）
            headers: 默认请求头
            transport: 自定义 httpx transport（测试中使用 httpx.MockTransport）
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout if isinstance(timeout, httpx.Timeout) else httpx.Timeout(timeout)
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.transport = transport
        self.default_headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": "PixStorefront/1.0",
            **(headers or {}),
        }
        self._client: Optional[httpx.AsyncClient] = None

    def set_auth_token(self, token: str, header_name: str = "Authorization", prefix: str = "Bearer"):
        self.default_headers[header_name] = f"{prefix} {token}" if prefix else token

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout, follow_redirects=True, transport=self.transport)
        return self._client

    async def aclose(self):
        if self._client:
            await self._client.aclose()
            self._client = None

    def _build_url(self, endpoint: str) -> str:
        endpoint = endpoint.lstrip("/")
        return f"{self.base_url}/{endpoint}" if endpoint else self.base_url

    async def _send_once(self, method: str, url: str, **kwargs) -> APIResponse:
        started = time.perf_counter()
        response = await self._http().request(method, url, headers=self.default_headers, **kwargs)
        data = None
        if "application/json" in response.headers.get("content-type", ""):
            try:
                data = response.json()
            except json.JSONDecodeError:
                data = None
        api_response = APIResponse(
            status_code=response.status_code,
            headers=dict(response.headers),
            data=data,
            raw_content=response.content,
            elapsed_ms=(time.perf_counter() - started) * 1000,
        )
        logger.debug(
            "api_response",
            method=method,
            url=url,
            status_code=api_response.status_code,
            elapsed_ms=round(api_response.elapsed_ms, 1),
        )
        if api_response.status_code in TRANSIENT_STATUS_CODES:
            raise TransientAPIError("transient", status_code=api_response.status_code, response=api_response)
        if api_response.is_error:
            raise _error_from_response(api_response)
        return api_response

    async def _request(self, method: str, endpoint: str, **kwargs) -> APIResponse:
        """
        发送HTTP请求（带重试）

        Raises:
            APIError: 超时、网络错误以及 4xx/5xx 响应
        """
        url = self._build_url(endpoint)
        retrying = AsyncRetrying(
            reraise=True,
            stop=stop_after_attempt(self.max_retries + 1),
            wait=wait_exponential(multiplier=self.retry_delay, min=self.retry_delay, max=self.retry_delay * 8),
            retry=retry_if_exception_type((httpx.TimeoutException, httpx.NetworkError, TransientAPIError)),
            before_sleep=before_sleep_log(logging.getLogger(__name__), logging.WARNING),
        )
        try:
            async for attempt in retrying:
                with attempt:
                    return await self._send_once(method, url, **kwargs)
        except httpx.TimeoutException as exc:
            raise APIError(f"Request timeout: {exc}") from exc
        except httpx.NetworkError as exc:
            raise APIError(f"Network error: {exc}") from exc
        except TransientAPIError as exc:
            raise _error_from_response(exc.response) from exc
        except APIError:
            raise
        except httpx.HTTPError as exc:
            logger.error("api_request_unexpected_error", url=url, error=str(exc))
            raise APIError(f"Unexpected error: {exc}") from exc

    async def get(self, endpoint: str, **kwargs) -> APIResponse:
        return await self._request("GET", endpoint, **kwargs)

    async def post(self, endpoint: str, json_data: Optional[Dict[str, Any]] = None, **kwargs) -> APIResponse:
        return await self._request("POST", endpoint, json=json_data, **kwargs)

"""
错误响应体

结账接口统一以 ``{"error": "<message>"}`` 返回错误，
配置缺失时附带 ``missingKeys``。
"""
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class ErrorBody(BaseModel):
    """错误响应体"""
    error: str
    missing_keys: Optional[dict[str, bool]] = Field(default=None, alias="missingKeys")
    request_id: Optional[str] = Field(default=None, alias="requestId")

    model_config = ConfigDict(populate_by_name=True)


def error_response(
    message: str,
    missing_keys: Optional[dict[str, bool]] = None,
    request_id: Optional[str] = None,
) -> dict:
    """
    构造错误响应

    Args:
        message: 错误信息
        missing_keys: 缺失的配置项
        request_id: 请求追踪ID

    Returns:
        dict: 去掉空字段后的响应体
    """
    body = ErrorBody(error=message, missing_keys=missing_keys, request_id=request_id)
    return body.model_dump(by_alias=True, exclude_none=True)

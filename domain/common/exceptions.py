"""领域层业务异常定义，供领域与基础设施使用。

core 层只负责把它们映射为 HTTP 响应，领域层不依赖 core。
"""
from __future__ import annotations

from typing import Optional
from shared.codes import BusinessCode
from shared.codes.payment_codes import PaymentCode


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


class CheckoutValidationException(BusinessException):
    """结账参数不完整或格式错误，调用方需修正后重新提交"""

    def __init__(self, message: str, *, field: str | None = None, details: dict | None = None):
        super().__init__(
            code=BusinessCode.PARAM_VALIDATION_ERROR,
            message=message,
            error_type="ValidationError",
            details=details,
            field=field,
        )


class ConfigurationException(BusinessException):
    """缺少必需的凭证或环境配置"""

    def __init__(self, message: str, *, missing_keys: Optional[dict[str, bool]] = None):
        self.missing_keys = missing_keys or {}
        super().__init__(
            code=BusinessCode.CONFIGURATION_ERROR,
            message=message,
            error_type="ConfigurationError",
            details={"missingKeys": self.missing_keys} if self.missing_keys else None,
        )


class GatewayException(BusinessException):
    """支付网关处理请求失败"""

    def __init__(self, message: str, *, provider: str = "blackcat", details: Optional[dict] = None, code: int = PaymentCode.PROVIDER_ERROR):
        full_details = {"provider": provider}
        if details:
            full_details.update(details)
        super().__init__(
            code=code,
            message=message,
            error_type="GatewayError",
            details=full_details,
        )


class GatewayRejectionException(GatewayException):
    """支付网关返回非成功状态码"""

    def __init__(self, message: str, *, status_code: int, body: str | None = None, provider: str = "blackcat"):
        self.status_code = status_code
        self.body = body
        super().__init__(
            message,
            provider=provider,
            details={"status_code": status_code},
            code=PaymentCode.PROVIDER_REJECTED,
        )
        self.error_type = "GatewayRejection"


class TrackingDeliveryException(BusinessException):
    """订单追踪服务调用失败（仅在追踪客户端内部使用，不向外抛出）"""

    def __init__(self, message: str, *, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(
            code=PaymentCode.TRACKING_DELIVERY_FAILED,
            message=message,
            error_type="TrackingDeliveryError",
            details={"status_code": status_code} if status_code is not None else None,
        )


class MalformedWebhookMetadataException(BusinessException):
    def __init__(self, message: str = "Webhook metadata could not be parsed", *, raw: str | None = None):
        self.raw = raw
        super().__init__(
            code=PaymentCode.METADATA_MALFORMED,
            message=message,
            error_type="MalformedWebhookMetadata",
        )

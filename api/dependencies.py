"""
API依赖项 - 配置、外部客户端与应用服务

客户端按请求创建，响应结束后关闭；测试通过 app.dependency_overrides 替换。
"""
from typing import AsyncIterator

from fastapi import Depends

from application.ports.order_tracking import OrderTracker
from application.ports.payment_gateway import PaymentGateway
from application.services.checkout_service import CheckoutService
from application.services.payment_service import PaymentService
from application.services.webhook_service import WebhookReconciler
from core.settings import PaymentSettings, payment_settings
from infrastructure.external.payments import get_payment_gateway
from infrastructure.external.tracking import get_order_tracker


def get_payment_settings() -> PaymentSettings:
    return payment_settings


async def get_gateway(settings: PaymentSettings = Depends(get_payment_settings)) -> AsyncIterator[PaymentGateway]:
    gateway = get_payment_gateway(settings)
    try:
        yield gateway
    finally:
        await gateway.aclose()


async def get_tracker(settings: PaymentSettings = Depends(get_payment_settings)) -> AsyncIterator[OrderTracker]:
    tracker = get_order_tracker(settings)
    try:
        yield tracker
    finally:
        await tracker.aclose()


async def get_checkout_service(
    gateway: PaymentGateway = Depends(get_gateway),
    tracker: OrderTracker = Depends(get_tracker),
    settings: PaymentSettings = Depends(get_payment_settings),
) -> CheckoutService:
    return CheckoutService(gateway=gateway, tracker=tracker, settings=settings)


async def get_webhook_reconciler(
    tracker: OrderTracker = Depends(get_tracker),
    settings: PaymentSettings = Depends(get_payment_settings),
) -> WebhookReconciler:
    return WebhookReconciler(tracker=tracker, settings=settings)


async def get_payment_service(
    gateway: PaymentGateway = Depends(get_gateway),
    settings: PaymentSettings = Depends(get_payment_settings),
) -> PaymentService:
    return PaymentService(gateway=gateway, settings=settings)

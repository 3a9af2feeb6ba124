"""
UTMify order tracking adapter.

Every call submits a complete order snapshot keyed by ``orderId``; the
service upserts, so repeating a snapshot is harmless. Delivery failures are
returned as ``TrackingResult(success=False)`` and never raised: tracking
must not block checkout or webhook acknowledgement.
"""
from __future__ import annotations

from typing import Optional

import httpx

from application.dtos.payments import TrackingOrder, TrackingResult
from core.logging_config import get_logger
from core.settings import PaymentSettings
from domain.common.exceptions import TrackingDeliveryException
from infrastructure.external.api_clients.base import APIError, BaseAPIClient


logger = get_logger(__name__)


class UtmifyClient(BaseAPIClient):
    provider = "utmify"

    def __init__(self, settings: PaymentSettings, *, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = settings.utmify
        timeouts = settings.timeouts
        super().__init__(
            base_url=self.config.url or "",
            timeout=httpx.Timeout(
                timeouts.total,
                connect=timeouts.connect,
                read=timeouts.read,
                write=timeouts.write,
            ),
            max_retries=settings.retry.max,
            retry_delay=settings.retry.base_backoff,
            transport=transport,
        )
        if self.config.api_token:
            self.set_auth_token(self.config.api_token, header_name="x-api-token", prefix="")

    async def send_order(self, order: TrackingOrder) -> TrackingResult:
        logger.info(
            "utmify_send_order",
            order_id=order.order_id,
            status=order.status.value,
            total_cents=order.commission.total_price_in_cents,
        )
        try:
            await self._deliver(order)
        except TrackingDeliveryException as exc:
            logger.error(
                "utmify_send_order_failed",
                order_id=order.order_id,
                status=order.status.value,
                error=exc.message,
                status_code=exc.status_code,
            )
            return TrackingResult(success=False, error=exc.message, status_code=exc.status_code)

        logger.info("utmify_order_sent", order_id=order.order_id, status=order.status.value)
        return TrackingResult(success=True)

    async def _deliver(self, order: TrackingOrder) -> None:
        if not self.config.url:
            raise TrackingDeliveryException("Tracking service URL not configured")
        try:
            await self.post("", json_data=order.to_wire())
        except APIError as exc:
            raise TrackingDeliveryException(exc.message, status_code=exc.status_code) from exc

"""
Gateway webhook reconciliation.

One status change per delivery: recover the order context from the
transaction metadata, map the status, forward a full snapshot to the tracking
service. Business-level problems (foreign event types, broken metadata,
tracking outages) never fail the delivery, otherwise the gateway would keep
redelivering an event that can never converge.
"""
from __future__ import annotations

from typing import Any, Mapping, Optional

from pydantic import ValidationError

from application.dtos.payments import (
    GatewayTransaction,
    OrderMetadata,
    TrackingCommission,
    TrackingCustomer,
    TrackingOrder,
    TrackingParams,
    TrackingProduct,
    WebhookAck,
    WebhookPayload,
)
from application.ports.order_tracking import OrderTracker
from application.services.checkout_service import resolve_gateway_fee
from core.logging_config import get_logger
from core.settings import PaymentSettings
from domain.common.exceptions import MalformedWebhookMetadataException
from domain.payment.amounts import split_commission
from domain.payment.entity import utcnow
from domain.payment.tracking import (
    format_tracking_timestamp,
    is_approved,
    map_gateway_status_to_tracking_status,
)
from shared.codes.payment_codes import TERMINAL_GATEWAY_STATUSES


logger = get_logger(__name__)

TRANSACTION_EVENT = "transaction"


class WebhookReconciler:
    def __init__(self, tracker: OrderTracker, settings: PaymentSettings) -> None:
        self.tracker = tracker
        self.settings = settings

    def recover_metadata(self, transaction: GatewayTransaction) -> Optional[OrderMetadata]:
        try:
            return OrderMetadata.from_blob(transaction.metadata)
        except MalformedWebhookMetadataException as exc:
            logger.warning(
                "webhook_metadata_malformed",
                transaction_id=transaction.id,
                external_ref=transaction.external_ref,
                error=exc.message,
            )
            return None

    async def handle(self, body: Mapping[str, Any]) -> WebhookAck:
        try:
            payload = WebhookPayload.model_validate(body)
        except ValidationError as exc:
            # Redelivery cannot fix a payload that does not parse
            logger.warning("webhook_payload_invalid", error_count=exc.error_count(), error=str(exc))
            return WebhookAck(received=True)
        logger.info(
            "webhook_received",
            event_type=payload.type,
            object_id=payload.object_id,
            status=payload.data.status if payload.data else None,
        )
        if payload.type != TRANSACTION_EVENT or payload.data is None:
            logger.info("webhook_ignored", event_type=payload.type)
            return WebhookAck(received=True)

        transaction = payload.data
        metadata = self.recover_metadata(transaction)
        order_id = (metadata.order_id if metadata else None) or transaction.external_ref or str(transaction.id)
        tracking_params = metadata.tracking_params if metadata else TrackingParams()
        created_at = (
            format_tracking_timestamp(metadata.created_at if metadata else None)
            or format_tracking_timestamp(transaction.created_at)
            or format_tracking_timestamp(utcnow())
        )

        tracking_status = map_gateway_status_to_tracking_status(transaction.status)
        approved_date = None
        if is_approved(transaction.status, tracking_status):
            approved_date = format_tracking_timestamp(transaction.paid_at) or format_tracking_timestamp(utcnow())
            logger.info("webhook_payment_approved", order_id=order_id, approved_date=approved_date)
        logger.info(
            "webhook_status_mapped",
            order_id=order_id,
            gateway_status=transaction.status,
            tracking_status=tracking_status.value,
            terminal=transaction.status in TERMINAL_GATEWAY_STATUSES,
        )

        snapshot = self.build_tracking_order(
            transaction,
            order_id=order_id,
            tracking_params=tracking_params,
            created_at=created_at,
            approved_date=approved_date,
        )
        result = await self.tracker.send_order(snapshot)
        if not result.ok:
            logger.error("webhook_tracking_not_delivered", order_id=order_id, error=result.error)

        return WebhookAck(
            received=True,
            status=transaction.status,
            tracking_status=tracking_status,
            tracking_sent=result.success,
            order_id=order_id,
            approved_date=approved_date,
        )

    def build_tracking_order(
        self,
        transaction: GatewayTransaction,
        *,
        order_id: str,
        tracking_params: TrackingParams,
        created_at: str,
        approved_date: Optional[str],
    ) -> TrackingOrder:
        fee = resolve_gateway_fee(transaction, transaction.amount, self.settings)
        split = split_commission(transaction.amount, fee)
        customer = transaction.customer
        return TrackingOrder(
            order_id=order_id,
            platform=self.settings.utmify.platform,
            status=map_gateway_status_to_tracking_status(transaction.status),
            created_at=created_at,
            approved_date=approved_date,
            refunded_at=format_tracking_timestamp(transaction.refunded_at),
            customer=TrackingCustomer(
                name=(customer.name if customer else None) or "",
                email=(customer.email if customer else None) or "",
                phone=customer.phone if customer else None,
                document=customer.document.number if customer and customer.document else None,
                country=self.settings.checkout.country,
                ip=transaction.ip,
            ),
            products=[
                TrackingProduct(
                    id=item.external_ref or "",
                    name=item.title,
                    quantity=item.quantity,
                    price_in_cents=item.unit_price * item.quantity,
                )
                for item in transaction.items
            ],
            tracking_parameters=tracking_params,
            commission=TrackingCommission(
                total_price_in_cents=split.total_cents,
                gateway_fee_in_cents=split.gateway_fee_cents,
                user_commission_in_cents=split.net_commission_cents,
                currency=transaction.currency or self.settings.blackcat.currency,
            ),
            is_test=self.settings.utmify.is_test,
        )

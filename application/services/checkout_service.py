"""
Checkout orchestration: validate, price, create the PIX transaction, notify
the tracking service, answer the storefront.

Depends only on the application ports; concrete clients are injected from
the composition root (api/dependencies).
"""
from __future__ import annotations

from datetime import timedelta
from typing import Any, Mapping, Optional

from application.dtos.payments import (
    CheckoutOrder,
    CheckoutResult,
    GatewayAddress,
    GatewayCustomer,
    GatewayDocument,
    GatewayItem,
    GatewayPixOptions,
    GatewayTransaction,
    GatewayTransactionRequest,
    OrderMetadata,
    PixCode,
    TrackingCommission,
    TrackingCustomer,
    TrackingOrder,
    TrackingProduct,
)
from application.ports.order_tracking import OrderTracker
from application.ports.payment_gateway import PaymentGateway
from application.validators import validate_checkout
from core.logging_config import get_logger
from core.settings import PaymentSettings
from domain.common.exceptions import ConfigurationException
from domain.payment.amounts import (
    calculate_amounts,
    estimate_gateway_fee,
    split_commission,
    to_cents,
)
from domain.payment.entity import OrderAmounts, TrackingStatus, generate_order_id, utcnow
from domain.payment.tracking import format_tracking_timestamp


logger = get_logger(__name__)

DEFAULT_ITEM_NAME = "Produto"


def resolve_gateway_fee(transaction: Optional[GatewayTransaction], total_cents: int, settings: PaymentSettings) -> int:
    """Prefer the gateway's own fee estimate; fall back to the local formula."""
    reported = transaction.fee.estimated_fee if transaction and transaction.fee else None
    if reported:
        return reported
    return estimate_gateway_fee(
        total_cents,
        fixed_cents=settings.checkout.gateway_fee_fixed_cents,
        rate=settings.checkout.gateway_fee_rate,
    )


class CheckoutService:
    def __init__(self, gateway: PaymentGateway, tracker: OrderTracker, settings: PaymentSettings) -> None:
        self.gateway = gateway
        self.tracker = tracker
        self.settings = settings

    def ensure_configured(self) -> None:
        missing = self.settings.blackcat.missing_keys()
        if any(missing.values()):
            logger.error("checkout_gateway_not_configured", missing_keys=missing)
            raise ConfigurationException(
                "Incomplete configuration: payment API keys are not set. "
                "Set BLACKCAT__PUBLIC_KEY and BLACKCAT__SECRET_KEY.",
                missing_keys=missing,
            )

    async def create_checkout(
        self,
        payload: Any,
        *,
        client_ip: Optional[str] = None,
        query_params: Optional[Mapping[str, Any]] = None,
    ) -> CheckoutResult:
        # Misconfiguration is diagnosed before any business field is looked at
        self.ensure_configured()
        order = validate_checkout(payload, fallback_tracking=query_params)

        amounts = calculate_amounts(
            order.items,
            order.shipping_price,
            discount_rate=self.settings.checkout.pix_discount_rate,
        )
        order_id = generate_order_id(self.settings.checkout.order_id_prefix)
        created_at = utcnow()
        ip = client_ip or "unknown"
        logger.info(
            "checkout_amounts_computed",
            order_id=order_id,
            items=len(order.items),
            subtotal_cents=amounts.subtotal_cents,
            discount_cents=amounts.discount_cents,
            shipping_cents=amounts.shipping_cents,
            total_cents=amounts.total_cents,
        )

        metadata = OrderMetadata(
            order_id=order_id,
            tracking_params=order.tracking_params,
            shipping=order.shipping,
            subtotal_in_cents=amounts.subtotal_cents,
            pix_discount_in_cents=amounts.discount_cents,
            shipping_in_cents=amounts.shipping_cents,
            total_in_cents=amounts.total_cents,
            created_at=created_at.isoformat().replace("+00:00", "Z"),
            client_metadata=order.metadata,
        )
        request = self.build_transaction_request(order, amounts, order_id=order_id, metadata=metadata, ip=ip)

        # Gateway failures abort here: no tracking for a transaction that never existed
        transaction = await self.gateway.create_transaction(request)
        logger.info(
            "checkout_transaction_created",
            order_id=order_id,
            transaction_id=transaction.id,
            status=transaction.status,
        )

        fee = resolve_gateway_fee(transaction, amounts.total_cents, self.settings)
        snapshot = self.build_tracking_order(
            order,
            order_id=order_id,
            total_cents=amounts.total_cents,
            gateway_fee_cents=fee,
            created_at=format_tracking_timestamp(created_at),
            ip=ip,
        )
        tracking_result = await self.tracker.send_order(snapshot)
        if not tracking_result.ok:
            logger.warning("checkout_tracking_not_delivered", order_id=order_id, error=tracking_result.error)

        pix = transaction.pix
        return CheckoutResult(
            order_id=order_id,
            transaction_id=transaction.id,
            pix=PixCode(
                qrcode=pix.qrcode if pix else None,
                expiration_date=pix.expiration_date if pix else None,
            ),
            secure_url=transaction.secure_url,
            status=transaction.status,
            calculated_values=amounts.as_currency_units(),
            tracking_result=tracking_result,
        )

    def build_transaction_request(
        self,
        order: CheckoutOrder,
        amounts: OrderAmounts,
        *,
        order_id: str,
        metadata: OrderMetadata,
        ip: str,
    ) -> GatewayTransactionRequest:
        cfg = self.settings.checkout
        expiration = utcnow() + timedelta(minutes=cfg.pix_expiration_minutes)
        customer, address = order.customer, order.address
        return GatewayTransactionRequest(
            amount=amounts.total_cents,
            currency=self.settings.blackcat.currency,
            pix=GatewayPixOptions(expiration_date=expiration.date().isoformat()),
            items=[
                GatewayItem(
                    external_ref=item.id or "",
                    title=item.name or DEFAULT_ITEM_NAME,
                    unit_price=to_cents(item.price),
                    quantity=item.quantity,
                )
                for item in order.items
            ],
            customer=GatewayCustomer(
                name=customer.name,
                email=customer.email,
                phone=customer.phone,
                document=GatewayDocument(number=customer.cpf, type="cpf"),
                address=GatewayAddress(
                    street=address.street,
                    street_number=address.number,
                    complement=address.complement or None,
                    zip_code=address.cep,
                    neighborhood=address.neighborhood,
                    city=address.city,
                    state=address.state,
                    country=cfg.country,
                ),
            ),
            postback_url=self.settings.webhook_url,
            external_ref=order_id,
            metadata=metadata.to_blob(),
            ip=ip,
        )

    def build_tracking_order(
        self,
        order: CheckoutOrder,
        *,
        order_id: str,
        total_cents: int,
        gateway_fee_cents: int,
        created_at: str,
        ip: str,
    ) -> TrackingOrder:
        split = split_commission(total_cents, gateway_fee_cents)
        return TrackingOrder(
            order_id=order_id,
            platform=self.settings.utmify.platform,
            status=TrackingStatus.WAITING_PAYMENT,
            created_at=created_at,
            customer=TrackingCustomer(
                name=order.customer.name,
                email=order.customer.email,
                phone=order.customer.phone,
                document=order.customer.cpf,
                country=self.settings.checkout.country,
                ip=ip,
            ),
            products=[
                TrackingProduct(
                    id=item.id or "",
                    name=item.name or DEFAULT_ITEM_NAME,
                    quantity=item.quantity,
                    price_in_cents=to_cents(item.price) * item.quantity,
                )
                for item in order.items
            ],
            tracking_parameters=order.tracking_params,
            commission=TrackingCommission(
                total_price_in_cents=split.total_cents,
                gateway_fee_in_cents=split.gateway_fee_cents,
                user_commission_in_cents=split.net_commission_cents,
                currency=self.settings.blackcat.currency,
            ),
            is_test=self.settings.utmify.is_test,
        )

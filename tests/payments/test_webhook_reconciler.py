import pytest

from application.dtos.payments import TrackingResult
from application.services.webhook_service import WebhookReconciler
from domain.payment.entity import TrackingStatus

from conftest import StubTracker


@pytest.mark.asyncio
async def test_paid_event_forwards_snapshot(settings, tracker, paid_webhook):
    reconciler = WebhookReconciler(tracker=tracker, settings=settings)
    ack = await reconciler.handle(paid_webhook)

    assert ack.received is True
    assert ack.status == "paid"
    assert ack.tracking_status is TrackingStatus.PAID
    assert ack.tracking_sent is True
    assert ack.order_id == "COM12345678ABCD"
    assert ack.approved_date == "2024-01-15 10:30:00"

    order = tracker.orders[0]
    assert order.order_id == "COM12345678ABCD"
    assert order.status is TrackingStatus.PAID
    assert order.created_at == "2024-01-15 09:59:00"
    assert order.approved_date == "2024-01-15 10:30:00"
    assert order.tracking_parameters.utm_campaign == "verao"
    assert order.customer.document == "12345678909"
    assert order.customer.ip == "203.0.113.7"
    assert order.products[0].price_in_cents == 5980
    assert order.commission.gateway_fee_in_cents == 190
    assert order.commission.user_commission_in_cents == 5491


@pytest.mark.asyncio
async def test_foreign_event_type_is_ignored(settings, tracker, paid_webhook):
    paid_webhook["type"] = "withdraw"
    ack = await WebhookReconciler(tracker=tracker, settings=settings).handle(paid_webhook)
    assert ack.received is True
    assert ack.status is None
    assert tracker.orders == []


@pytest.mark.asyncio
async def test_malformed_metadata_falls_back_to_external_ref(settings, tracker, paid_webhook):
    paid_webhook["data"]["metadata"] = "{broken"
    ack = await WebhookReconciler(tracker=tracker, settings=settings).handle(paid_webhook)
    order = tracker.orders[0]
    assert ack.order_id == "COM12345678ABCD"
    assert order.tracking_parameters.utm_source is None
    # createdAt comes from the transaction when metadata is unusable
    assert order.created_at == "2024-01-15 10:00:00"


@pytest.mark.asyncio
@pytest.mark.parametrize("tracking_params", ["null", "\"utm_source=instagram\"", "[1]"])
async def test_unreadable_tracking_params_keep_metadata_order_id(settings, tracker, paid_webhook, tracking_params):
    paid_webhook["data"]["externalRef"] = "EXT-REF"
    paid_webhook["data"]["metadata"] = (
        '{"orderId":"COM-META","createdAt":"2024-01-15T09:59:00Z",'
        f'"trackingParams":{tracking_params}}}'
    )
    ack = await WebhookReconciler(tracker=tracker, settings=settings).handle(paid_webhook)
    order = tracker.orders[0]
    assert ack.order_id == "COM-META"
    assert order.created_at == "2024-01-15 09:59:00"
    assert order.tracking_parameters.utm_source is None


@pytest.mark.asyncio
async def test_unreadable_optional_field_keeps_metadata_order_id(settings, tracker, paid_webhook):
    paid_webhook["data"]["externalRef"] = "EXT-REF"
    paid_webhook["data"]["metadata"] = (
        '{"orderId":"COM-META","totalInCents":"lots","shipping":"sedex",'
        '"trackingParams":{"utm_source":"instagram"}}'
    )
    ack = await WebhookReconciler(tracker=tracker, settings=settings).handle(paid_webhook)
    assert ack.order_id == "COM-META"
    assert tracker.orders[0].tracking_parameters.utm_source == "instagram"


@pytest.mark.asyncio
async def test_no_metadata_and_no_external_ref_uses_transaction_id(settings, tracker, paid_webhook):
    paid_webhook["data"].pop("metadata")
    paid_webhook["data"].pop("externalRef")
    ack = await WebhookReconciler(tracker=tracker, settings=settings).handle(paid_webhook)
    assert ack.order_id == "12345"


@pytest.mark.asyncio
async def test_refund_has_no_approved_date(settings, tracker, paid_webhook):
    paid_webhook["data"]["status"] = "chargeback"
    paid_webhook["data"]["refundedAt"] = "2024-01-20T12:00:00Z"
    ack = await WebhookReconciler(tracker=tracker, settings=settings).handle(paid_webhook)
    assert ack.tracking_status is TrackingStatus.REFUNDED
    assert ack.approved_date is None
    assert tracker.orders[0].refunded_at == "2024-01-20 12:00:00"


@pytest.mark.asyncio
async def test_tracking_outage_still_acknowledges(settings, paid_webhook):
    tracker = StubTracker(result=TrackingResult(success=False, error="503"))
    ack = await WebhookReconciler(tracker=tracker, settings=settings).handle(paid_webhook)
    assert ack.received is True
    assert ack.tracking_sent is False


@pytest.mark.asyncio
async def test_unparseable_payload_is_acknowledged(settings, tracker):
    ack = await WebhookReconciler(tracker=tracker, settings=settings).handle({"type": "transaction", "data": {"amount": "lots"}})
    assert ack.received is True
    assert tracker.orders == []


@pytest.mark.asyncio
async def test_redelivery_resends_the_same_snapshot(settings, tracker, paid_webhook):
    reconciler = WebhookReconciler(tracker=tracker, settings=settings)
    await reconciler.handle(paid_webhook)
    await reconciler.handle(paid_webhook)
    assert len(tracker.orders) == 2
    assert tracker.orders[0].to_wire() == tracker.orders[1].to_wire()

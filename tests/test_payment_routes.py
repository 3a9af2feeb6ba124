import json

import httpx
import pytest
from fastapi.testclient import TestClient

from api.dependencies import get_gateway, get_payment_settings, get_tracker
from api.middleware import LoggingMiddleware
from application.validators import MSG_CUSTOMER_INCOMPLETE, MSG_INVALID_SHIPPING
from domain.common.exceptions import GatewayException, GatewayRejectionException
from infrastructure.external.payments import get_payment_gateway
from main import app

from conftest import StubGateway, StubTracker


class ExplodingTracker(StubTracker):
    async def send_order(self, order):
        raise RuntimeError("tracker bug")


@pytest.fixture
def wire(settings, gateway, tracker):
    """Point the app at in-memory ports; tests may swap entries in the yielded dict."""
    state = {"settings": settings, "gateway": gateway, "tracker": tracker}
    app.dependency_overrides[get_payment_settings] = lambda: state["settings"]
    app.dependency_overrides[get_gateway] = lambda: state["gateway"]
    app.dependency_overrides[get_tracker] = lambda: state["tracker"]
    yield state
    app.dependency_overrides.clear()


@pytest.fixture
def client(wire):
    return TestClient(app, raise_server_exceptions=False)


def test_create_checkout(client, gateway, tracker, checkout_body):
    resp = client.post("/payment/create", json=checkout_body, headers={"X-Forwarded-For": "203.0.113.7, 10.0.0.1"})
    assert resp.status_code == 200
    data = resp.json()
    assert data["success"] is True
    assert data["orderId"].startswith("COM")
    assert data["transactionId"] == 12345
    assert data["pix"] == {"qrcode": "00020126580014br.gov.bcb.pix", "expirationDate": "2024-01-16"}
    assert data["secureUrl"] == "https://pay.example.com/12345"
    assert data["calculatedValues"]["total"] == 56.81
    assert data["trackingResult"]["success"] is True
    assert gateway.requests[0].ip == "203.0.113.7"
    assert tracker.orders[0].customer.ip == "203.0.113.7"


def test_create_checkout_missing_cpf(client, gateway, checkout_body):
    del checkout_body["customer"]["cpf"]
    resp = client.post("/payment/create", json=checkout_body)
    assert resp.status_code == 400
    assert resp.json()["error"] == MSG_CUSTOMER_INCOMPLETE
    assert gateway.requests == []


def test_create_checkout_non_finite_price(client, gateway, checkout_body):
    raw = json.dumps(checkout_body).replace("29.9", "NaN")
    resp = client.post("/payment/create", content=raw, headers={"Content-Type": "application/json"})
    assert resp.status_code == 400
    assert resp.json()["error"].startswith("Invalid checkout data: items.0.price")
    assert gateway.requests == []


def test_create_checkout_negative_shipping(client, gateway, tracker, checkout_body):
    checkout_body["shipping"] = {"id": "sedex", "price": -100}
    resp = client.post("/payment/create", json=checkout_body)
    assert resp.status_code == 400
    assert resp.json()["error"] == MSG_INVALID_SHIPPING
    assert gateway.requests == []
    assert tracker.orders == []


def test_create_checkout_without_credentials(client, wire, unconfigured_settings, checkout_body):
    calls = []
    wire["settings"] = unconfigured_settings
    wire["gateway"] = get_payment_gateway(
        unconfigured_settings,
        transport=httpx.MockTransport(lambda r: calls.append(r) or httpx.Response(200)),
    )
    resp = client.post("/payment/create", json=checkout_body)
    assert resp.status_code == 500
    body = resp.json()
    assert body["missingKeys"] == {"publicKey": True, "secretKey": True}
    assert "error" in body
    assert calls == []


def test_create_checkout_gateway_rejection(client, wire, tracker, checkout_body):
    wire["gateway"] = StubGateway(error=GatewayRejectionException("Invalid customer", status_code=422))
    resp = client.post("/payment/create", json=checkout_body)
    assert resp.status_code == 500
    assert resp.json()["error"] == "Invalid customer"
    assert tracker.orders == []


def test_create_checkout_unexpected_error(client, wire, checkout_body):
    wire["gateway"] = StubGateway(error=RuntimeError("boom"))
    resp = client.post("/payment/create", json=checkout_body)
    assert resp.status_code == 500
    assert resp.json()["error"] == "boom"


def test_webhook_foreign_event(client, tracker, paid_webhook):
    paid_webhook["type"] = "withdraw"
    resp = client.post("/payment/webhook", json=paid_webhook)
    assert resp.status_code == 200
    assert resp.json() == {"received": True}
    assert tracker.orders == []


def test_webhook_paid_event(client, tracker, paid_webhook):
    resp = client.post("/payment/webhook", json=paid_webhook)
    assert resp.status_code == 200
    assert resp.json() == {
        "received": True,
        "status": "paid",
        "trackingStatus": "paid",
        "trackingSent": True,
        "orderId": "COM12345678ABCD",
        "approvedDate": "2024-01-15 10:30:00",
    }
    assert len(tracker.orders) == 1


def test_webhook_internal_fault(client, wire, paid_webhook):
    wire["tracker"] = ExplodingTracker()
    resp = client.post("/payment/webhook", json=paid_webhook)
    assert resp.status_code == 500
    assert resp.json() == {"error": "Webhook processing failed"}


def test_status_requires_transaction_id(client, gateway):
    resp = client.get("/payment/status")
    assert resp.status_code == 400
    assert resp.json() == {"error": "Transaction ID is required"}
    assert gateway.status_queries == []


def test_status(client, gateway):
    resp = client.get("/payment/status", params={"transactionId": "12345"})
    assert resp.status_code == 200
    assert resp.json() == {"status": "paid", "paidAt": "2024-01-15T10:30:00Z", "paidAmount": 5681}
    assert gateway.status_queries == ["12345"]


def test_status_gateway_failure(client, wire):
    wire["gateway"] = StubGateway(error=GatewayException("down"))
    resp = client.get("/payment/status", params={"transactionId": "12345"})
    assert resp.status_code == 500
    assert resp.json() == {"error": "Failed to get transaction status"}


def test_gateway_check(client):
    resp = client.get("/payment/gateway/check")
    assert resp.status_code == 200
    data = resp.json()
    assert data["allConfigured"] is True
    assert data["connectionTest"].startswith("SUCCESS")
    assert "error" not in data


def test_health_echoes_request_id(client):
    resp = client.get("/health", headers={"X-Request-ID": "req-42"})
    assert resp.status_code == 200
    assert resp.json() == {"status": "healthy"}
    assert resp.headers["X-Request-ID"] == "req-42"


def test_request_log_masks_personal_data(checkout_body):
    masked = LoggingMiddleware.mask(checkout_body)
    assert masked["customer"]["cpf"] == "***"
    assert masked["customer"]["phone"] == "***"
    assert masked["customer"]["name"] == "Maria Silva"
    assert masked["address"]["number"] == "***"
    assert masked["items"][0]["price"] == 29.90

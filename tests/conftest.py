"""Pytest bootstrap configuration.

Shared settings, sample bodies and in-memory stand-ins for the gateway and
tracking ports. Settings are always built explicitly so the host
environment never leaks into a test.
"""
import copy

import pytest

from application.dtos.payments import GatewayTransaction, TrackingResult, TransactionStatus
from core.settings import BlackCatSettings, PaymentSettings, UtmifySettings


class StubGateway:
    provider = "stub"

    def __init__(self, transaction=None, error=None, status=None):
        self.transaction = transaction or {
            "id": 12345,
            "status": "waiting_payment",
            "amount": 5681,
            "secureUrl": "https://pay.example.com/12345",
            "pix": {"qrcode": "00020126580014br.gov.bcb.pix", "expirationDate": "2024-01-16"},
            "fee": {"estimatedFee": 190},
        }
        self.error = error
        self.status = status or TransactionStatus(status="paid", paid_at="2024-01-15T10:30:00Z", paid_amount=5681)
        self.requests = []
        self.status_queries = []
        self.credential_checks = 0
        self.closed = False

    async def create_transaction(self, req):
        self.requests.append(req)
        if self.error:
            raise self.error
        return GatewayTransaction.model_validate(self.transaction)

    async def get_transaction(self, transaction_id):
        self.status_queries.append(transaction_id)
        if self.error:
            raise self.error
        return self.status

    async def check_credentials(self):
        self.credential_checks += 1
        if self.error:
            raise self.error

    async def aclose(self):
        self.closed = True


class StubTracker:
    def __init__(self, result=None):
        self.result = result or TrackingResult(success=True)
        self.orders = []

    async def send_order(self, order):
        self.orders.append(order)
        return self.result

    async def aclose(self):
        return None


CHECKOUT_BODY = {
    "customer": {
        "name": "Maria Silva",
        "email": "maria@example.com",
        "phone": "(11) 98765-4321",
        "cpf": "123.456.789-09",
    },
    "address": {
        "cep": "01310-100",
        "street": "Av. Paulista",
        "number": "1000",
        "complement": "",
        "neighborhood": "Bela Vista",
        "city": "Sao Paulo",
        "state": "SP",
    },
    "items": [{"id": "sku-1", "name": "Camiseta", "price": 29.90, "quantity": 2}],
    "trackingParams": {"utm_source": "instagram", "utm_campaign": "verao"},
}


@pytest.fixture
def settings():
    return PaymentSettings(
        public_base_url="https://shop.example.com",
        blackcat=BlackCatSettings(public_key="pk_live_1234567890abcdef", secret_key="sk_live_secret"),
        utmify=UtmifySettings(url="https://tracking.example.com/orders", api_token="utm-token"),
    )


@pytest.fixture
def unconfigured_settings():
    return PaymentSettings(
        public_base_url="https://shop.example.com",
        blackcat=BlackCatSettings(),
        utmify=UtmifySettings(url="https://tracking.example.com/orders", api_token="utm-token"),
    )


@pytest.fixture
def gateway():
    return StubGateway()


@pytest.fixture
def tracker():
    return StubTracker()


@pytest.fixture
def checkout_body():
    return copy.deepcopy(CHECKOUT_BODY)


@pytest.fixture
def paid_webhook():
    return {
        "id": "evt_1",
        "type": "transaction",
        "objectId": "12345",
        "url": "https://shop.example.com/payment/webhook",
        "data": {
            "id": 12345,
            "status": "paid",
            "amount": 5681,
            "currency": "BRL",
            "paidAt": "2024-01-15T10:30:00.000Z",
            "createdAt": "2024-01-15T10:00:00.000Z",
            "externalRef": "COM12345678ABCD",
            "ip": "203.0.113.7",
            "metadata": (
                '{"orderId":"COM12345678ABCD",'
                '"trackingParams":{"utm_source":"instagram","utm_campaign":"verao"},'
                '"totalInCents":5681,"createdAt":"2024-01-15T09:59:00Z"}'
            ),
            "customer": {
                "id": 99,
                "name": "Maria Silva",
                "email": "maria@example.com",
                "phone": "11987654321",
                "document": {"number": "12345678909", "type": "cpf"},
            },
            "items": [
                {"externalRef": "sku-1", "title": "Camiseta", "unitPrice": 2990, "quantity": 2, "tangible": True}
            ],
            "fee": {"estimatedFee": 190, "netAmount": 5491},
        },
    }

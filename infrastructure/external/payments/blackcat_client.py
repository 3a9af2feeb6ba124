"""
Black Cat Pagamentos adapter (PIX transactions over the REST API).

- POST /v1/transactions creates a transaction, GET /v1/transactions/{id} reads one.
- HTTP Basic auth: base64("<public_key>:<secret_key>").
- Amounts travel as integer cents.
"""
from __future__ import annotations

import base64
from typing import Optional, Union

import httpx
from pydantic import ValidationError

from application.dtos.payments import (
    GatewayTransaction,
    GatewayTransactionRequest,
    TransactionStatus,
)
from core.logging_config import get_logger
from core.settings import PaymentSettings
from domain.common.exceptions import (
    ConfigurationException,
    GatewayException,
    GatewayRejectionException,
)
from infrastructure.external.api_clients.base import APIError, BaseAPIClient


logger = get_logger(__name__)

TRANSACTIONS_PATH = "/v1/transactions"


class BlackCatClient(BaseAPIClient):
    provider = "blackcat"

    def __init__(self, settings: PaymentSettings, *, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings
        self.credentials = settings.blackcat
        timeouts = settings.timeouts
        super().__init__(
            base_url=self.credentials.base_url,
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
        if self.credentials.configured:
            self.set_auth_token(self._basic_token(), prefix="Basic")

    def _basic_token(self) -> str:
        raw = f"{self.credentials.public_key}:{self.credentials.secret_key}"
        return base64.b64encode(raw.encode("utf-8")).decode("ascii")

    def ensure_configured(self) -> None:
        """Fail before any network call when a key is absent."""
        missing = self.credentials.missing_keys()
        if any(missing.values()):
            names = []
            if missing["publicKey"]:
                names.append("BLACKCAT__PUBLIC_KEY")
            if missing["secretKey"]:
                names.append("BLACKCAT__SECRET_KEY")
            logger.error("blackcat_credentials_missing", missing=names)
            raise ConfigurationException(
                "Incomplete configuration: payment API keys are not set. "
                f"Missing: {', '.join(names)}.",
                missing_keys=missing,
            )

    async def create_transaction(self, req: GatewayTransactionRequest) -> GatewayTransaction:
        self.ensure_configured()
        payload = req.to_wire(exclude_none=True)
        payload["paymentMethod"] = "pix"
        logger.info(
            "blackcat_create_transaction",
            amount=req.amount,
            external_ref=req.external_ref,
            customer_email=req.customer.email,
        )
        try:
            response = await self.post(TRANSACTIONS_PATH, json_data=payload)
        except APIError as exc:
            raise self._translate(exc, "Failed to create PIX transaction") from exc

        transaction = self._parse(response.json())
        logger.info(
            "blackcat_transaction_created",
            transaction_id=transaction.id,
            status=transaction.status,
            has_qrcode=bool(transaction.pix and transaction.pix.qrcode),
        )
        return transaction

    async def get_transaction(self, transaction_id: Union[int, str]) -> TransactionStatus:
        self.ensure_configured()
        try:
            response = await self.get(f"{TRANSACTIONS_PATH}/{transaction_id}")
        except APIError as exc:
            raise self._translate(exc, "Failed to fetch transaction") from exc
        transaction = self._parse(response.json())
        return TransactionStatus(
            status=transaction.status,
            paid_at=transaction.paid_at,
            paid_amount=transaction.paid_amount,
        )

    async def check_credentials(self) -> None:
        """List a single transaction to prove the key pair is accepted."""
        self.ensure_configured()
        try:
            await self.get(TRANSACTIONS_PATH, params={"limit": 1})
        except APIError as exc:
            raise self._translate(exc, "Credential check failed") from exc

    def _parse(self, data) -> GatewayTransaction:
        try:
            return GatewayTransaction.model_validate(data)
        except ValidationError as exc:
            logger.error("blackcat_unexpected_response", error=str(exc))
            raise GatewayException(f"Unexpected gateway response: {exc.error_count()} invalid field(s)", provider=self.provider) from exc

    def _translate(self, exc: APIError, fallback: str) -> GatewayException:
        if exc.status_code:
            body = exc.response.text() if exc.response else None
            message = exc.message if exc.message and not exc.message.startswith("API request failed") else f"{fallback} (status {exc.status_code})"
            logger.error("blackcat_request_rejected", status_code=exc.status_code, body=body)
            return GatewayRejectionException(message, status_code=exc.status_code, body=body, provider=self.provider)
        logger.error("blackcat_request_failed", error=exc.message)
        return GatewayException(f"{fallback}: {exc.message}", provider=self.provider)

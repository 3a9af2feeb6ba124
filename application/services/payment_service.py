"""
Application service for transaction lookups and gateway diagnostics.

Depends only on the PaymentGateway port; the concrete client is injected
from the composition root.
"""
from __future__ import annotations

from typing import Union

from application.dtos.payments import GatewayCheckResult, TransactionStatus
from application.ports.payment_gateway import PaymentGateway
from core.logging_config import get_logger
from core.settings import PaymentSettings
from domain.common.exceptions import CheckoutValidationException, GatewayException


logger = get_logger(__name__)

NOT_CONFIGURED = "NOT CONFIGURED"


def _mask(value: str, keep: int = 10) -> str:
    return f"Configured ({value[:keep]}...)"


class PaymentService:
    def __init__(self, gateway: PaymentGateway, settings: PaymentSettings) -> None:
        self.gateway = gateway
        self.settings = settings

    async def get_status(self, transaction_id: Union[int, str, None]) -> TransactionStatus:
        if transaction_id is None or not str(transaction_id).strip():
            raise CheckoutValidationException("Transaction ID is required", field="transactionId")
        logger.info("payment_status_request", transaction_id=transaction_id)
        status = await self.gateway.get_transaction(str(transaction_id).strip())
        logger.info("payment_status_response", transaction_id=transaction_id, status=status.status)
        return status

    async def check_gateway(self) -> GatewayCheckResult:
        creds = self.settings.blackcat
        report = {
            "public_key": _mask(creds.public_key) if creds.public_key else NOT_CONFIGURED,
            "secret_key": "Configured (hidden)" if creds.secret_key else NOT_CONFIGURED,
            "app_url": self.settings.public_base_url,
            "all_configured": creds.configured,
        }
        if not creds.configured:
            return GatewayCheckResult(
                **report,
                connection_test="NOT TESTED - keys not configured",
                message="Set BLACKCAT__PUBLIC_KEY and BLACKCAT__SECRET_KEY in the environment.",
            )

        try:
            await self.gateway.check_credentials()
        except GatewayException as exc:
            status_code = exc.details.get("status_code") if exc.details else None
            logger.warning("gateway_check_failed", status_code=status_code, error=exc.message)
            if status_code:
                return GatewayCheckResult(
                    **report,
                    connection_test=f"FAILED - Status {status_code}",
                    error=exc.message,
                    message="The credentials may be wrong or the account is not active.",
                )
            return GatewayCheckResult(
                **report,
                connection_test="CONNECTION ERROR",
                error=exc.message,
                message="Could not reach the payment gateway API.",
            )

        return GatewayCheckResult(
            **report,
            connection_test="SUCCESS - credentials accepted",
            message="The payment gateway integration is working.",
        )

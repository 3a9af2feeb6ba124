"""
Payment gateway port (application/ports) exposing a replaceable protocol.

Application depends on this Protocol; infrastructure implements adapters.
"""
from __future__ import annotations

from typing import Protocol, Union, runtime_checkable

from application.dtos.payments import (
    GatewayTransaction,
    GatewayTransactionRequest,
    TransactionStatus,
)


@runtime_checkable
class PaymentGateway(Protocol):
    """Gateway protocol for the PIX payment provider.

    Implementations are async, stateless between calls, and raise
    ConfigurationException / GatewayException on failure.
    """

    provider: str

    async def create_transaction(self, req: GatewayTransactionRequest) -> GatewayTransaction: ...

    async def get_transaction(self, transaction_id: Union[int, str]) -> TransactionStatus: ...

    async def check_credentials(self) -> None: ...

    async def aclose(self) -> None: ...

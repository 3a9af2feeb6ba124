"""
Payments API routes.

Thin HTTP layer over the checkout, webhook and status services. No gateway
or tracking details here.
"""
from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Query, Request
from fastapi.responses import JSONResponse

from api.dependencies import get_checkout_service, get_payment_service, get_webhook_reconciler
from application.services.checkout_service import CheckoutService
from application.services.payment_service import PaymentService
from application.services.webhook_service import WebhookReconciler
from core.logging_config import get_logger
from core.response import error_response
from domain.common.exceptions import BusinessException


router = APIRouter(prefix="/payment", tags=["Payments"])
logger = get_logger(__name__)


@router.post("/create", summary="Create PIX checkout", response_model=None)
async def create_checkout(
    request: Request,
    payload: Any = Body(default=None),
    service: CheckoutService = Depends(get_checkout_service),
):
    # Raw body: field checks and their messages belong to the checkout validator
    client_ip = getattr(request.state, "client_ip", None)
    result = await service.create_checkout(
        payload,
        client_ip=client_ip,
        query_params=dict(request.query_params),
    )
    return result.to_wire()


@router.get("/status", summary="Query transaction status", response_model=None)
async def transaction_status(
    transaction_id: Optional[str] = Query(default=None, alias="transactionId"),
    service: PaymentService = Depends(get_payment_service),
):
    if not transaction_id:
        return JSONResponse(status_code=400, content=error_response("Transaction ID is required"))
    try:
        status = await service.get_status(transaction_id)
    except BusinessException as exc:
        logger.error("payment_status_failed", transaction_id=transaction_id, error=exc.message)
        return JSONResponse(status_code=500, content=error_response("Failed to get transaction status"))
    return status.to_wire()


@router.post("/webhook", summary="Gateway webhook", response_model=None)
async def gateway_webhook(
    payload: Any = Body(default=None),
    reconciler: WebhookReconciler = Depends(get_webhook_reconciler),
):
    if not isinstance(payload, dict):
        logger.warning("webhook_body_not_object", body_type=type(payload).__name__)
        return {"received": True}
    try:
        ack = await reconciler.handle(payload)
    except Exception as exc:
        # Non-2xx makes the gateway redeliver
        logger.error("webhook_processing_failed", error=str(exc), exc_info=True)
        return JSONResponse(status_code=500, content=error_response("Webhook processing failed"))
    if ack.status is None:
        return {"received": True}
    return ack.to_wire()


@router.get("/gateway/check", summary="Gateway credentials check", response_model=None)
async def gateway_check(service: PaymentService = Depends(get_payment_service)):
    result = await service.check_gateway()
    return result.to_wire(exclude_none=True)

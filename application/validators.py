"""
Checkout request validation.

Turns a raw JSON body into a CheckoutOrder or raises
CheckoutValidationException with a field-specific message. Checks run in a
fixed order and the first failure wins, so nothing partially validated ever
reaches the gateway client.
"""
from __future__ import annotations

import re
from typing import Any, Mapping, Optional

from pydantic import ValidationError

from application.dtos.payments import (
    CheckoutOrder,
    CheckoutRequest,
    TrackingParams,
)
from domain.common.exceptions import CheckoutValidationException


MSG_INCOMPLETE = "Incomplete data: customer, address and at least one item are required."
MSG_CUSTOMER_INCOMPLETE = "Incomplete customer data. Please fill in all required fields."
MSG_ADDRESS_INCOMPLETE = "Incomplete address data. Please fill in all required fields."
MSG_INVALID_PHONE = "Invalid phone. Provide a valid number including the area code."
MSG_INVALID_CPF = "Invalid CPF. Provide a valid CPF with 11 digits."
MSG_INVALID_CEP = "Invalid CEP. Provide a valid postal code with 8 digits."
MSG_INVALID_ITEM = "Invalid item: price must not be negative and quantity must be at least 1."
MSG_INVALID_SHIPPING = "Invalid shipping: price must not be negative."

CUSTOMER_REQUIRED = ("name", "email", "phone", "cpf")
ADDRESS_REQUIRED = ("cep", "street", "number", "neighborhood", "city", "state")

_NON_DIGITS = re.compile(r"\D")


def only_digits(value: Any) -> str:
    return _NON_DIGITS.sub("", str(value or ""))


def _missing(model, fields) -> list[str]:
    return [f for f in fields if not getattr(model, f)]


def validate_checkout(
    payload: Any,
    *,
    fallback_tracking: Optional[Mapping[str, Any]] = None,
) -> CheckoutOrder:
    """Validate a checkout body.

    ``fallback_tracking`` (typically the request query string) supplies
    attribution fields when the body carries none.
    """
    if not isinstance(payload, Mapping):
        raise CheckoutValidationException(MSG_INCOMPLETE)
    try:
        req = CheckoutRequest.model_validate(payload)
    except ValidationError as exc:
        first = exc.errors()[0] if exc.errors() else {}
        field = ".".join(str(loc) for loc in first.get("loc", ()))
        raise CheckoutValidationException(
            f"Invalid checkout data: {field or 'body'} {first.get('msg', 'is invalid')}",
            field=field or None,
        ) from exc

    if not req.customer or not req.address or not req.items:
        raise CheckoutValidationException(MSG_INCOMPLETE)

    missing = _missing(req.customer, CUSTOMER_REQUIRED)
    if missing:
        raise CheckoutValidationException(MSG_CUSTOMER_INCOMPLETE, field="customer", details={"missing": missing})

    missing = _missing(req.address, ADDRESS_REQUIRED)
    if missing:
        raise CheckoutValidationException(MSG_ADDRESS_INCOMPLETE, field="address", details={"missing": missing})

    phone = only_digits(req.customer.phone)
    cpf = only_digits(req.customer.cpf)
    cep = only_digits(req.address.cep)

    if len(phone) < 10:
        raise CheckoutValidationException(MSG_INVALID_PHONE, field="customer.phone")
    if len(cpf) != 11:
        raise CheckoutValidationException(MSG_INVALID_CPF, field="customer.cpf")
    if len(cep) != 8:
        raise CheckoutValidationException(MSG_INVALID_CEP, field="address.cep")

    for item in req.items:
        if item.price is None or item.price < 0 or item.quantity is None or item.quantity < 1:
            raise CheckoutValidationException(MSG_INVALID_ITEM, field="items")

    if req.shipping is not None and req.shipping.price is not None and req.shipping.price < 0:
        raise CheckoutValidationException(MSG_INVALID_SHIPPING, field="shipping.price")

    tracking = req.tracking_params
    if tracking is None or not tracking.has_any():
        fallback = TrackingParams.from_mapping(fallback_tracking)
        tracking = fallback if fallback.has_any() else (tracking or TrackingParams())

    return CheckoutOrder(
        customer=req.customer.model_copy(update={"phone": phone, "cpf": cpf}),
        address=req.address.model_copy(update={"cep": cep}),
        items=req.items,
        shipping=req.shipping,
        tracking_params=tracking,
        metadata=req.metadata,
    )

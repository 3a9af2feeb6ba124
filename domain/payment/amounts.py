"""
Order amount calculation.

All arithmetic happens on integer cents; decimal inputs are converted through
their string form so that e.g. 29.90 becomes exactly 2990. Rounding is
half-up, which equals half-away-from-zero for the non-negative values handled
here. The gateway fee is an estimate: the gateway's own rounding rule is not
published, so the figure may differ from the settled fee by one cent.
"""
from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional, Protocol, Union

from .entity import CommissionSplit, OrderAmounts


Number = Union[int, float, Decimal, str]

PIX_DISCOUNT_RATE = Decimal("0.05")
GATEWAY_FEE_FIXED_CENTS = 100
GATEWAY_FEE_RATE = Decimal("0.015")


class PricedItem(Protocol):
    price: Number
    quantity: int


def _dec(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_half_up(value: Number) -> int:
    return int(_dec(value).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def to_cents(value: Number) -> int:
    """Currency units -> integer cents."""
    return round_half_up(_dec(value) * 100)


def calculate_amounts(
    items: Iterable[PricedItem],
    shipping_price: Optional[Number] = None,
    *,
    discount_rate: Number = PIX_DISCOUNT_RATE,
) -> OrderAmounts:
    """Compute subtotal, PIX discount, shipping and total in cents.

    The caller rejects empty item lists before getting here.
    """
    subtotal = sum(to_cents(item.price) * int(item.quantity) for item in items)
    discount = round_half_up(_dec(subtotal) * _dec(discount_rate))
    shipping = to_cents(shipping_price) if shipping_price else 0
    return OrderAmounts(
        subtotal_cents=subtotal,
        discount_cents=discount,
        shipping_cents=shipping,
        total_cents=subtotal - discount + shipping,
    )


def estimate_gateway_fee(
    total_cents: int,
    *,
    fixed_cents: int = GATEWAY_FEE_FIXED_CENTS,
    rate: Number = GATEWAY_FEE_RATE,
) -> int:
    """Flat fee plus a percentage of the total, rounded half-up."""
    return round_half_up(_dec(fixed_cents) + _dec(total_cents) * _dec(rate))


def split_commission(total_cents: int, gateway_fee_cents: int) -> CommissionSplit:
    return CommissionSplit(
        total_cents=total_cents,
        gateway_fee_cents=gateway_fee_cents,
        net_commission_cents=total_cents - gateway_fee_cents,
    )

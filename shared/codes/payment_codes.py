"""
Payment specific codes and gateway -> tracking status mapping.
"""
from __future__ import annotations

from enum import IntEnum


class PaymentCode(IntEnum):
    # Gateway/Tracking errors (6xxxx)
    PROVIDER_ERROR = 60000
    PROVIDER_REJECTED = 60001
    TRACKING_DELIVERY_FAILED = 60005
    METADATA_MALFORMED = 60006


# Gateway status -> tracking service status. Must cover every gateway status.
GATEWAY_STATUS_TO_TRACKING = {
    "waiting_payment": "waiting_payment",
    "pending": "waiting_payment",
    "approved": "paid",
    "paid": "paid",
    "refused": "refused",
    "refunded": "refunded",
    "cancelled": "refunded",
    "chargeback": "refunded",
}

DEFAULT_TRACKING_STATUS = "waiting_payment"

# Gateway statuses after which no further transition is expected
TERMINAL_GATEWAY_STATUSES = frozenset({"paid", "refused", "refunded", "cancelled", "chargeback"})

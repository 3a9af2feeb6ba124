"""
Business codes shared across layers.

`shared.codes` holds the generic codes; gateway and tracking codes plus the
status lookup table live in `shared.codes.payment_codes`.
"""
from enum import IntEnum


class BusinessCode(IntEnum):
    """Generic business codes. HTTP mapping lives in core.exceptions."""

    # Request errors (1xxxx)
    PARAM_VALIDATION_ERROR = 10003

    # Business rule errors (2xxxx)
    BUSINESS_ERROR = 20000

    # System errors (4xxxx)
    SYSTEM_ERROR = 40000
    CONFIGURATION_ERROR = 40001


__all__ = ["BusinessCode"]

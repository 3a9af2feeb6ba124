"""
Factory for the order tracking client.
"""
from __future__ import annotations

from typing import Optional

import httpx

from core.settings import PaymentSettings, payment_settings
from application.ports.order_tracking import OrderTracker


def get_order_tracker(
    settings: Optional[PaymentSettings] = None,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> OrderTracker:
    from .utmify_client import UtmifyClient
    return UtmifyClient(settings or payment_settings, transport=transport)

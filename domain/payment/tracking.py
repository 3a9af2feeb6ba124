"""
Tracking service vocabulary: status mapping, timestamp format and
attribution parameter keys.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional, Union

from shared.codes.payment_codes import DEFAULT_TRACKING_STATUS, GATEWAY_STATUS_TO_TRACKING
from .entity import GatewayStatus, TrackingStatus, _ensure_utc


TRACKING_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

TRACKING_PARAM_KEYS = (
    "src",
    "sck",
    "utm_source",
    "utm_campaign",
    "utm_medium",
    "utm_content",
    "utm_term",
)


def map_gateway_status_to_tracking_status(status: Union[str, GatewayStatus, None]) -> TrackingStatus:
    """Total mapping: unknown or missing statuses fall back to waiting_payment."""
    key = status.value if isinstance(status, GatewayStatus) else (status or "")
    return TrackingStatus(GATEWAY_STATUS_TO_TRACKING.get(key.lower(), DEFAULT_TRACKING_STATUS))


def is_approved(gateway_status: Optional[str], tracking_status: TrackingStatus) -> bool:
    return tracking_status is TrackingStatus.PAID or gateway_status in {
        GatewayStatus.APPROVED.value,
        GatewayStatus.PAID.value,
    }


def parse_timestamp(value: Union[str, datetime, None]) -> Optional[datetime]:
    """Parse an ISO-8601 string (``Z`` suffix accepted) or pass a datetime through.

    Returns None for missing or unparseable input.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return _ensure_utc(value)
    text = str(value).strip()
    if not text:
        return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return _ensure_utc(datetime.fromisoformat(text))
    except ValueError:
        return None


def format_tracking_timestamp(value: Union[str, datetime, None]) -> Optional[str]:
    """Normalize a date value into the tracking service format (UTC ``YYYY-MM-DD HH:MM:SS``)."""
    dt = parse_timestamp(value)
    if dt is None:
        return None
    return dt.strftime(TRACKING_TIMESTAMP_FORMAT)

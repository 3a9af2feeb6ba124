"""
Order tracking port. Implementations never raise for delivery failures:
they report them in the returned TrackingResult.
"""
from __future__ import annotations

from typing import Protocol, runtime_checkable

from application.dtos.payments import TrackingOrder, TrackingResult


@runtime_checkable
class OrderTracker(Protocol):
    async def send_order(self, order: TrackingOrder) -> TrackingResult: ...

    async def aclose(self) -> None: ...

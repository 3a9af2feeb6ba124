"""
结账领域实体 - 状态、订单号与金额

订单本身不落库，状态保存在支付网关和追踪服务中；这里的类型只为结账流程
提供统一的类型定义。
"""
from __future__ import annotations

import secrets
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


class GatewayStatus(str, Enum):
    """支付网关交易状态枚举"""
    WAITING_PAYMENT = "waiting_payment"
    PENDING = "pending"
    APPROVED = "approved"
    REFUSED = "refused"
    PAID = "paid"
    REFUNDED = "refunded"
    CANCELLED = "cancelled"
    CHARGEBACK = "chargeback"


class TrackingStatus(str, Enum):
    """追踪服务订单状态枚举（映射后的子集）"""
    WAITING_PAYMENT = "waiting_payment"
    PAID = "paid"
    REFUSED = "refused"
    REFUNDED = "refunded"


def _ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_order_id(prefix: str = "COM") -> str:
    """生成订单号：前缀 + 毫秒时间戳末 8 位 + 4 位随机十六进制"""
    millis = str(int(time.time() * 1000))[-8:]
    return f"{prefix}{millis}{secrets.token_hex(2).upper()}"


@dataclass(frozen=True)
class OrderAmounts:
    """
    订单金额（单位：分）

    不变量：total_cents == subtotal_cents - discount_cents + shipping_cents
    """

    subtotal_cents: int
    discount_cents: int
    shipping_cents: int
    total_cents: int

    def as_currency_units(self) -> dict[str, float]:
        return {
            "subtotal": self.subtotal_cents / 100,
            "pixDiscount": self.discount_cents / 100,
            "shipping": self.shipping_cents / 100,
            "total": self.total_cents / 100,
        }


@dataclass(frozen=True)
class CommissionSplit:
    total_cents: int
    gateway_fee_cents: int
    net_commission_cents: int

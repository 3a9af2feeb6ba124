"""
Checkout/payment settings using pydantic-settings v2 with nested env keys.

Kept apart from core.config.Settings. Clients and services receive a
PaymentSettings instance explicitly, so tests can build their own without
touching the environment.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import BaseModel, Field


class PaymentTimeouts(BaseModel):
    connect: float = 5.0
    read: float = 15.0
    write: float = 15.0
    total: float = 15.0


class PaymentRetry(BaseModel):
    # Outbound calls are single-shot unless explicitly configured
    max: int = 0
    base_backoff: float = 0.5


class BlackCatSettings(BaseModel):
    public_key: Optional[str] = None
    secret_key: Optional[str] = None
    base_url: str = "https://api.blackcatpagamentos.com"
    currency: str = "BRL"

    def missing_keys(self) -> dict[str, bool]:
        return {
            "publicKey": not self.public_key,
            "secretKey": not self.secret_key,
        }

    @property
    def configured(self) -> bool:
        return bool(self.public_key and self.secret_key)


class UtmifySettings(BaseModel):
    url: Optional[str] = "https://api.utmify.com.br/api-credentials/orders"
    api_token: Optional[str] = None
    platform: str = "PixStorefront"
    is_test: bool = False


class CheckoutSettings(BaseModel):
    pix_discount_rate: Decimal = Decimal("0.05")
    gateway_fee_fixed_cents: int = 100
    gateway_fee_rate: Decimal = Decimal("0.015")
    pix_expiration_minutes: int = 30
    order_id_prefix: str = "COM"
    country: str = "BR"


class PaymentSettings(BaseSettings):
    public_base_url: str = Field(default="http://localhost:8000")
    timeouts: PaymentTimeouts = Field(default_factory=PaymentTimeouts)
    retry: PaymentRetry = Field(default_factory=PaymentRetry)

    blackcat: BlackCatSettings = Field(default_factory=BlackCatSettings)
    utmify: UtmifySettings = Field(default_factory=UtmifySettings)
    checkout: CheckoutSettings = Field(default_factory=CheckoutSettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        env_nested_delimiter="__",
    )

    @property
    def webhook_url(self) -> str:
        return f"{self.public_base_url.rstrip('/')}/payment/webhook"


payment_settings = PaymentSettings()

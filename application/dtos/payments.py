"""
Checkout DTOs (Pydantic v2) used at application boundaries.

Three families live here:
- the inbound checkout request (lenient, validated by application.validators),
- the payment gateway wire schema (camelCase, amounts in cents),
- the tracking service order snapshot and the API response bodies.
"""
from __future__ import annotations

import json
from typing import Any, Mapping, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, FiniteFloat, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from domain.common.exceptions import MalformedWebhookMetadataException
from domain.payment.entity import TrackingStatus
from domain.payment.tracking import TRACKING_PARAM_KEYS


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore", coerce_numbers_to_str=True)

    def to_wire(self, *, exclude_none: bool = False) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=exclude_none)


# ---------------------------------------------------------------------------
# Inbound checkout request
# ---------------------------------------------------------------------------

class CheckoutCustomer(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    cpf: Optional[str] = Field(default=None, validation_alias=AliasChoices("cpf", "document"))

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True, str_strip_whitespace=True)


class CheckoutAddress(BaseModel):
    cep: Optional[str] = Field(default=None, validation_alias=AliasChoices("cep", "zipCode", "postalCode"))
    street: Optional[str] = None
    number: Optional[str] = None
    complement: Optional[str] = None
    neighborhood: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True, str_strip_whitespace=True)


class CheckoutItem(BaseModel):
    id: Optional[str] = None
    name: Optional[str] = None
    price: Optional[FiniteFloat] = None
    quantity: Optional[int] = None

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)


class ShippingOption(BaseModel):
    """Selected shipping option. Extra fields are carried through untouched."""
    id: Optional[str] = None
    name: Optional[str] = None
    price: Optional[FiniteFloat] = None

    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)


class TrackingParams(BaseModel):
    """Marketing attribution fields, carried opaquely to the tracking service."""
    src: Optional[str] = None
    sck: Optional[str] = None
    utm_source: Optional[str] = None
    utm_campaign: Optional[str] = None
    utm_medium: Optional[str] = None
    utm_content: Optional[str] = None
    utm_term: Optional[str] = None

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "TrackingParams":
        if not data:
            return cls()
        return cls(**{k: (data.get(k) or None) for k in TRACKING_PARAM_KEYS})

    def has_any(self) -> bool:
        return any(getattr(self, k) for k in TRACKING_PARAM_KEYS)


class CheckoutRequest(BaseModel):
    customer: Optional[CheckoutCustomer] = None
    address: Optional[CheckoutAddress] = None
    items: Optional[list[CheckoutItem]] = None
    shipping: Optional[ShippingOption] = None
    tracking_params: Optional[TrackingParams] = Field(
        default=None, validation_alias=AliasChoices("trackingParams", "tracking_params")
    )
    metadata: Optional[dict[str, Any]] = None

    model_config = ConfigDict(extra="ignore")


class CheckoutOrder(BaseModel):
    """A checkout request that passed validation, with digits-only phone/cpf/cep."""
    customer: CheckoutCustomer
    address: CheckoutAddress
    items: list[CheckoutItem]
    shipping: Optional[ShippingOption] = None
    tracking_params: TrackingParams = Field(default_factory=TrackingParams)
    metadata: Optional[dict[str, Any]] = None

    @property
    def shipping_price(self) -> Optional[float]:
        return self.shipping.price if self.shipping else None


# ---------------------------------------------------------------------------
# Payment gateway wire schema
# ---------------------------------------------------------------------------

class GatewayDocument(CamelModel):
    number: str
    type: str = "cpf"


class GatewayAddress(CamelModel):
    street: str
    street_number: str
    complement: Optional[str] = None
    zip_code: str
    neighborhood: str
    city: str
    state: str
    country: str = "BR"


class GatewayCustomer(CamelModel):
    name: str
    email: str
    phone: str
    document: GatewayDocument
    address: Optional[GatewayAddress] = None


class GatewayItem(CamelModel):
    external_ref: str
    title: str
    unit_price: int
    quantity: int
    tangible: bool = True


class GatewayPixOptions(CamelModel):
    expiration_date: Optional[str] = None  # YYYY-MM-DD


class GatewayTransactionRequest(CamelModel):
    amount: int
    currency: str = "BRL"
    payment_method: str = "pix"
    pix: Optional[GatewayPixOptions] = None
    items: list[GatewayItem]
    customer: GatewayCustomer
    postback_url: str
    metadata: Optional[str] = None
    external_ref: Optional[str] = None
    ip: Optional[str] = None


class GatewayPix(CamelModel):
    qrcode: Optional[str] = None
    end2end_id: Optional[str] = Field(default=None, alias="end2EndId")
    receipt_url: Optional[str] = None
    expiration_date: Optional[str] = None


class GatewayFee(CamelModel):
    net_amount: Optional[int] = None
    estimated_fee: Optional[int] = None
    fixed_amount: Optional[int] = None
    spread_percent: Optional[float] = None
    currency: Optional[str] = None


class GatewayTransactionCustomer(CamelModel):
    id: Optional[Union[int, str]] = None
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    document: Optional[GatewayDocument] = None


class GatewayTransactionItem(CamelModel):
    external_ref: Optional[str] = None
    title: str = ""
    unit_price: int = 0
    quantity: int = 1
    tangible: Optional[bool] = None


class GatewayTransaction(CamelModel):
    """Transaction as returned by the gateway (create, read, and webhook ``data``)."""
    id: Union[int, str]
    status: str
    amount: int = 0
    currency: Optional[str] = None
    payment_method: Optional[str] = None
    installments: Optional[int] = None
    paid_at: Optional[str] = None
    paid_amount: Optional[int] = None
    refunded_at: Optional[str] = None
    refunded_amount: Optional[int] = None
    postback_url: Optional[str] = None
    metadata: Optional[str] = None
    ip: Optional[str] = None
    external_ref: Optional[str] = None
    secure_id: Optional[str] = None
    secure_url: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    pix: Optional[GatewayPix] = None
    customer: Optional[GatewayTransactionCustomer] = None
    items: list[GatewayTransactionItem] = Field(default_factory=list)
    fee: Optional[GatewayFee] = None


class TransactionStatus(CamelModel):
    status: str
    paid_at: Optional[str] = None
    paid_amount: Optional[int] = None


class WebhookPayload(CamelModel):
    type: Optional[str] = None
    url: Optional[str] = None
    object_id: Optional[str] = None
    data: Optional[GatewayTransaction] = None


class OrderMetadata(CamelModel):
    """
    Context embedded in the gateway transaction ``metadata`` string at checkout
    time, so the webhook can rebuild the order without a database.
    """
    order_id: str
    tracking_params: TrackingParams = Field(default_factory=TrackingParams)
    shipping: Optional[ShippingOption] = None
    subtotal_in_cents: Optional[int] = None
    pix_discount_in_cents: Optional[int] = None
    shipping_in_cents: Optional[int] = None
    total_in_cents: Optional[int] = None
    created_at: Optional[str] = None
    client_metadata: Optional[dict[str, Any]] = None

    @field_validator("tracking_params", mode="before")
    @classmethod
    def _tracking_params_or_empty(cls, value: Any) -> Any:
        return value if isinstance(value, (Mapping, TrackingParams)) else {}

    def to_blob(self) -> str:
        return json.dumps(self.to_wire(exclude_none=True), ensure_ascii=False, separators=(",", ":"))

    @classmethod
    def from_blob(cls, raw: Optional[str]) -> Optional["OrderMetadata"]:
        """Parse a metadata string. None/empty gives None; garbage raises."""
        if not raw:
            return None
        try:
            data = json.loads(raw)
            if not isinstance(data, dict):
                raise MalformedWebhookMetadataException("Metadata is not a JSON object", raw=raw)
            return cls._salvage(data)
        except (json.JSONDecodeError, ValidationError) as exc:
            raise MalformedWebhookMetadataException(str(exc), raw=raw) from exc

    @classmethod
    def _salvage(cls, data: dict) -> "OrderMetadata":
        """Validate, dropping unreadable optional fields. A bad orderId still fails."""
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            broken = {err["loc"][0] for err in exc.errors() if err["loc"]}
            if not broken or broken & {"orderId", "order_id"}:
                raise
            return cls.model_validate({k: v for k, v in data.items() if k not in broken})


# ---------------------------------------------------------------------------
# Tracking service order snapshot
# ---------------------------------------------------------------------------

class TrackingCustomer(CamelModel):
    name: str
    email: str
    phone: Optional[str] = None
    document: Optional[str] = None
    country: str = "BR"
    ip: Optional[str] = None


class TrackingProduct(CamelModel):
    id: str
    name: str
    plan_id: Optional[str] = None
    plan_name: Optional[str] = None
    quantity: int
    price_in_cents: int


class TrackingCommission(CamelModel):
    total_price_in_cents: int
    gateway_fee_in_cents: int
    user_commission_in_cents: int
    currency: str = "BRL"


class TrackingOrder(CamelModel):
    """Complete order snapshot. Always sent whole, keyed by order_id."""
    order_id: str
    platform: str
    payment_method: str = "pix"
    status: TrackingStatus
    created_at: str
    approved_date: Optional[str] = None
    refunded_at: Optional[str] = None
    customer: TrackingCustomer
    products: list[TrackingProduct]
    tracking_parameters: TrackingParams = Field(default_factory=TrackingParams)
    commission: TrackingCommission
    is_test: bool = False


class TrackingResult(BaseModel):
    success: bool
    error: Optional[str] = None
    status_code: Optional[int] = Field(default=None, serialization_alias="statusCode")

    @property
    def ok(self) -> bool:
        return self.success


# ---------------------------------------------------------------------------
# API response bodies
# ---------------------------------------------------------------------------

class PixCode(CamelModel):
    qrcode: Optional[str] = None
    expiration_date: Optional[str] = None


class CheckoutResult(CamelModel):
    success: bool = True
    order_id: str
    transaction_id: Union[int, str]
    pix: PixCode
    secure_url: Optional[str] = None
    status: str
    calculated_values: dict[str, float]
    tracking_result: TrackingResult


class WebhookAck(CamelModel):
    received: bool = True
    status: Optional[str] = None
    tracking_status: Optional[TrackingStatus] = None
    tracking_sent: Optional[bool] = None
    order_id: Optional[str] = None
    approved_date: Optional[str] = None


class GatewayCheckResult(CamelModel):
    public_key: str
    secret_key: str
    app_url: str
    all_configured: bool
    connection_test: str
    message: str
    error: Optional[str] = None

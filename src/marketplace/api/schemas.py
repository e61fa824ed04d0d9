"""Pydantic request/response schemas for the Marketplace API.

HTTP payloads only; routes translate them into Protean commands.
"""

from datetime import datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class ShippingDetailsSchema(BaseModel):
    name: str
    phone: str
    address: str
    locality: str | None = None
    city: str
    state: str
    pin: str


class CartLineSchema(BaseModel):
    product_id: str
    vendor_id: str
    product_code: str | None = None
    quantity: int = Field(ge=1, default=1)
    unit_selling_price: float = Field(ge=0)
    unit_mrp: float = Field(ge=0)
    variant_size: str | None = None


class CheckoutSummarySchema(BaseModel):
    total_price: float
    total_mrp: float
    total_discount: float


# ---------------------------------------------------------------------------
# Cart Request Schemas
# ---------------------------------------------------------------------------
class CreateCartRequest(BaseModel):
    user_id: str

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "user_id": "user-001",
                }
            ]
        }
    }


class AddToCartRequest(CartLineSchema):
    pass


class UpdateCartQuantityRequest(BaseModel):
    new_quantity: int = Field(ge=1)


class CheckoutRequest(BaseModel):
    shipping: ShippingDetailsSchema
    payment_id: str | None = None
    coupon_code: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "shipping": {
                        "name": "Asha Rao",
                        "phone": "9800000000",
                        "address": "12 Lake Road",
                        "locality": "Indiranagar",
                        "city": "Bengaluru",
                        "state": "Karnataka",
                        "pin": "560038",
                    },
                    "payment_id": "pay_abc123",
                    "coupon_code": "FESTIVE10",
                }
            ]
        }
    }


# ---------------------------------------------------------------------------
# Order Request Schemas
# ---------------------------------------------------------------------------
class BuyNowRequest(BaseModel):
    user_id: str
    line: CartLineSchema
    shipping: ShippingDetailsSchema
    payment_id: str | None = None
    coupon_code: str | None = None


class SummaryRequest(BaseModel):
    lines: list[CartLineSchema]
    coupon_code: str | None = None


class AssignShipmentRequest(BaseModel):
    shipment_id: str


class OverrideStatusRequest(BaseModel):
    status: str


class RequestReturnRequest(BaseModel):
    reason: str


# ---------------------------------------------------------------------------
# Coupon / Tracking Request Schemas
# ---------------------------------------------------------------------------
class CreateCouponRequest(BaseModel):
    code: str
    percent_off: float = Field(gt=0, le=100)
    minimum_cart_value: float = Field(ge=0, default=0.0)
    valid_from: datetime
    valid_to: datetime
    usage_limit: int = -1


class ReconcileBatchRequest(BaseModel):
    secret_order_ids: list[str] | None = None
    max_workers: int | None = Field(default=None, ge=1)


class ConfigureCarrierRequest(BaseModel):
    should_succeed: bool = True
    failure_reason: str = "Carrier unavailable"


class ScriptTrackingRequest(BaseModel):
    shipment_status: int | None = None
    shipment_track: list[dict] | None = None
    etd: str | None = None
    track_url: str | None = None


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class CartIdResponse(BaseModel):
    cart_id: str


class OrderIdResponse(BaseModel):
    order_id: str


class CouponCodeResponse(BaseModel):
    code: str


class StatusResponse(BaseModel):
    status: str = "ok"


class OrderLineResponse(BaseModel):
    secret_order_id: str
    product_id: str
    vendor_id: str
    variant_size: str | None = None
    quantity: int
    line_mrp: float
    line_price: float
    status: str
    shipment_id: str | None = None
    etd: str | None = None
    track_url: str | None = None
    updated_date: str | None = None
    revision: int


class OrderResponse(BaseModel):
    order_id: str
    user_id: str
    payment_id: str
    coupon_code: str | None = None
    total_price: float
    total_mrp: float
    lines: list[OrderLineResponse]


class ReconcileResponse(BaseModel):
    secret_order_id: str
    outcome: str


class ReconcileBatchResponse(BaseModel):
    outcomes: dict[str, int]


class ReconcilerMetricsResponse(BaseModel):
    counts: dict[str, int]


class CarrierConfigResponse(BaseModel):
    carrier: str
    should_succeed: bool
    failure_reason: str

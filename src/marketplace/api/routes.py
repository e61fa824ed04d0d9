"""FastAPI routes for the Marketplace — carts, orders, coupons and tracking."""

import os

from fastapi import APIRouter, HTTPException
from protean.utils.globals import current_domain

from marketplace.api.schemas import (
    AddToCartRequest,
    AssignShipmentRequest,
    BuyNowRequest,
    CarrierConfigResponse,
    CartIdResponse,
    CheckoutRequest,
    CheckoutSummarySchema,
    ConfigureCarrierRequest,
    CouponCodeResponse,
    CreateCartRequest,
    CreateCouponRequest,
    OrderIdResponse,
    OrderLineResponse,
    OrderResponse,
    OverrideStatusRequest,
    ReconcileBatchRequest,
    ReconcileBatchResponse,
    ReconcileResponse,
    ReconcilerMetricsResponse,
    RequestReturnRequest,
    ScriptTrackingRequest,
    StatusResponse,
    SummaryRequest,
    UpdateCartQuantityRequest,
)
from marketplace.carrier import get_carrier
from marketplace.carrier.fake_adapter import FakeCarrier
from marketplace.cart.cart import ShoppingCart
from marketplace.cart.items import AddToCart, RemoveFromCart, UpdateCartQuantity
from marketplace.cart.management import CreateCart
from marketplace.domain import marketplace
from marketplace.order.order import Order
from marketplace.order.placement import place_order
from marketplace.order.status_control import (
    AssignShipment,
    CancelOrderLine,
    OverrideLineStatus,
    RequestLineReturn,
    process_line_command,
)
from marketplace.pricing.cart_line import CartLine
from marketplace.pricing.coupon import CreateCoupon, DeactivateCoupon
from marketplace.pricing.engine import compute_checkout_summary
from marketplace.shared.errors import LineBusyError
from marketplace.tracking.reconciler import StatusReconciler, reconciler_metrics


def _process_line(command) -> None:
    # Only called from sync endpoints, which FastAPI runs in its threadpool
    try:
        with marketplace.domain_context():
            process_line_command(command)
    except LineBusyError as exc:
        raise HTTPException(status_code=409, detail=str(exc))


def _require_non_production(what: str) -> None:
    if os.environ.get("PROTEAN_ENV") == "production":
        raise HTTPException(status_code=403, detail=f"{what} not available in production")


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/carts", tags=["carts"])


@cart_router.post("", status_code=201, response_model=CartIdResponse)
async def create_cart(body: CreateCartRequest) -> CartIdResponse:
    result = current_domain.process(CreateCart(user_id=body.user_id), asynchronous=False)
    return CartIdResponse(cart_id=result)


@cart_router.post("/{cart_id}/items", response_model=StatusResponse)
async def add_cart_item(cart_id: str, body: AddToCartRequest) -> StatusResponse:
    command = AddToCart(cart_id=cart_id, **body.model_dump())
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@cart_router.put("/{cart_id}/items/{item_id}", response_model=StatusResponse)
async def update_cart_item_quantity(cart_id: str, item_id: str, body: UpdateCartQuantityRequest) -> StatusResponse:
    command = UpdateCartQuantity(
        cart_id=cart_id,
        item_id=item_id,
        new_quantity=body.new_quantity,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@cart_router.delete("/{cart_id}/items/{item_id}", response_model=StatusResponse)
async def remove_cart_item(cart_id: str, item_id: str) -> StatusResponse:
    command = RemoveFromCart(
        cart_id=cart_id,
        item_id=item_id,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@cart_router.get("/{cart_id}/summary", response_model=CheckoutSummarySchema)
async def cart_summary(cart_id: str, coupon_code: str | None = None) -> CheckoutSummarySchema:
    """Totals the customer would pay if they checked out now."""
    cart = current_domain.repository_for(ShoppingCart).get(cart_id)
    summary = compute_checkout_summary(cart.cart_lines(), coupon_code=coupon_code)
    return CheckoutSummarySchema(**summary.as_dict())


@cart_router.post("/{cart_id}/checkout", status_code=201, response_model=OrderIdResponse)
async def checkout_cart(cart_id: str, body: CheckoutRequest) -> OrderIdResponse:
    """Place an order for everything in the cart, then empty the cart."""
    cart = current_domain.repository_for(ShoppingCart).get(cart_id)
    order_id = place_order(
        user_id=str(cart.user_id),
        lines=cart.cart_lines(),
        shipping_details=body.shipping.model_dump(),
        payment_id=body.payment_id,
        coupon_code=body.coupon_code,
        cart_id=cart_id,
    )
    return OrderIdResponse(order_id=order_id)


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderIdResponse)
async def buy_now(body: BuyNowRequest) -> OrderIdResponse:
    """Place a single-line order without going through a cart."""
    order_id = place_order(
        user_id=body.user_id,
        lines=[CartLine(**body.line.model_dump())],
        shipping_details=body.shipping.model_dump(),
        payment_id=body.payment_id,
        coupon_code=body.coupon_code,
    )
    return OrderIdResponse(order_id=order_id)


@order_router.post("/summary", response_model=CheckoutSummarySchema)
async def order_summary(body: SummaryRequest) -> CheckoutSummarySchema:
    lines = [CartLine(**line.model_dump()) for line in body.lines]
    summary = compute_checkout_summary(lines, coupon_code=body.coupon_code)
    return CheckoutSummarySchema(**summary.as_dict())


@order_router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str) -> OrderResponse:
    order = current_domain.repository_for(Order).get(order_id)
    return OrderResponse(
        order_id=str(order.id),
        user_id=str(order.user_id),
        payment_id=order.payment_id,
        coupon_code=order.coupon_code,
        total_price=order.total_price().amount,
        total_mrp=order.total_mrp().amount,
        lines=[
            OrderLineResponse(
                secret_order_id=line.secret_order_id,
                product_id=str(line.product_id),
                vendor_id=str(line.vendor_id),
                variant_size=line.variant_size,
                quantity=line.quantity,
                line_mrp=line.line_mrp,
                line_price=line.line_price,
                status=line.status,
                shipment_id=line.shipment_id,
                etd=line.etd,
                track_url=line.track_url,
                updated_date=line.updated_date,
                revision=line.revision or 0,
            )
            for line in order.lines
        ],
    )


@order_router.put("/{order_id}/lines/{secret_order_id}/shipment", response_model=StatusResponse)
def assign_shipment(order_id: str, secret_order_id: str, body: AssignShipmentRequest) -> StatusResponse:
    _process_line(
        AssignShipment(
            order_id=order_id,
            secret_order_id=secret_order_id,
            shipment_id=body.shipment_id,
        )
    )
    return StatusResponse(status="shipment_assigned")


@order_router.put("/{order_id}/lines/{secret_order_id}/status", response_model=StatusResponse)
def override_line_status(order_id: str, secret_order_id: str, body: OverrideStatusRequest) -> StatusResponse:
    """Admin/vendor override of a line's status."""
    _process_line(
        OverrideLineStatus(
            order_id=order_id,
            secret_order_id=secret_order_id,
            status=body.status,
        )
    )
    return StatusResponse(status=body.status)


@order_router.put("/{order_id}/lines/{secret_order_id}/cancel", response_model=StatusResponse)
def cancel_order_line(order_id: str, secret_order_id: str) -> StatusResponse:
    _process_line(CancelOrderLine(order_id=order_id, secret_order_id=secret_order_id))
    return StatusResponse(status="cancelled")


@order_router.put("/{order_id}/lines/{secret_order_id}/return", response_model=StatusResponse)
def request_line_return(order_id: str, secret_order_id: str, body: RequestReturnRequest) -> StatusResponse:
    _process_line(
        RequestLineReturn(
            order_id=order_id,
            secret_order_id=secret_order_id,
            reason=body.reason,
        )
    )
    return StatusResponse(status="return_requested")


# ---------------------------------------------------------------------------
# Coupon Router
# ---------------------------------------------------------------------------
coupon_router = APIRouter(prefix="/coupons", tags=["coupons"])


@coupon_router.post("", status_code=201, response_model=CouponCodeResponse)
async def create_coupon(body: CreateCouponRequest) -> CouponCodeResponse:
    code = current_domain.process(CreateCoupon(**body.model_dump()), asynchronous=False)
    return CouponCodeResponse(code=code)


@coupon_router.put("/{code}/deactivate", response_model=StatusResponse)
async def deactivate_coupon(code: str) -> StatusResponse:
    current_domain.process(DeactivateCoupon(code=code), asynchronous=False)
    return StatusResponse(status="deactivated")


# ---------------------------------------------------------------------------
# Tracking Router
# ---------------------------------------------------------------------------
tracking_router = APIRouter(prefix="/tracking", tags=["tracking"])


@tracking_router.post("/lines/{secret_order_id}/reconcile", response_model=ReconcileResponse)
def reconcile_line(secret_order_id: str) -> ReconcileResponse:
    with marketplace.domain_context():
        outcome = StatusReconciler().run(secret_order_id)
    return ReconcileResponse(secret_order_id=secret_order_id, outcome=outcome.value)


@tracking_router.post("/reconcile", response_model=ReconcileBatchResponse)
def reconcile_batch(body: ReconcileBatchRequest) -> ReconcileBatchResponse:
    """Reconcile the given lines, or every active line when none are given."""
    with marketplace.domain_context():
        outcomes = StatusReconciler().run_batch(
            secret_order_ids=body.secret_order_ids,
            max_workers=body.max_workers,
        )
    return ReconcileBatchResponse(outcomes=outcomes)


@tracking_router.get("/metrics", response_model=ReconcilerMetricsResponse)
async def reconciler_counts() -> ReconcilerMetricsResponse:
    return ReconcilerMetricsResponse(counts=reconciler_metrics.snapshot())


def _fake_carrier() -> FakeCarrier:
    _require_non_production("Carrier configuration")
    carrier = get_carrier()
    if not isinstance(carrier, FakeCarrier):
        raise HTTPException(status_code=400, detail="Carrier configuration only available for FakeCarrier")
    return carrier


@tracking_router.post("/carrier/configure", response_model=CarrierConfigResponse)
async def configure_carrier(body: ConfigureCarrierRequest) -> CarrierConfigResponse:
    """Configure the FakeCarrier behavior (non-production only)."""
    carrier = _fake_carrier()
    carrier.configure(
        should_succeed=body.should_succeed,
        failure_reason=body.failure_reason,
    )
    return CarrierConfigResponse(
        carrier=type(carrier).__name__,
        should_succeed=carrier.should_succeed,
        failure_reason=carrier.failure_reason,
    )


@tracking_router.put("/carrier/shipments/{shipment_id}", response_model=StatusResponse)
async def script_shipment_tracking(shipment_id: str, body: ScriptTrackingRequest) -> StatusResponse:
    """Set what the FakeCarrier reports for a shipment (non-production only)."""
    carrier = _fake_carrier()
    carrier.script(
        shipment_id,
        shipment_status=body.shipment_status,
        shipment_track=body.shipment_track,
        etd=body.etd,
        track_url=body.track_url,
    )
    return StatusResponse(status="scripted")

"""Order aggregate (CQRS) — price-locked order lines with carrier-driven status.

An Order is created once, atomically, from a non-empty checkout. Prices on
its lines never change afterwards; only status and tracking fields move over
the shipment lifecycle.

Line status is driven by three sources:
    Carrier  — reconciled tracking snapshots, never allowed to touch a
               terminal-protected line (Cancelled, Return, Failed)
    Customer — cancellation before dispatch, return after delivery
    Admin    — explicit override, always permitted

Every successful mutation bumps the line's ``revision``. Carrier updates carry
the revision they were computed against and are dropped when it no longer
matches.
"""

import json
from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import (
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)

from marketplace.domain import marketplace
from marketplace.order.events import (
    LineStatusChanged,
    OrderPlaced,
    ReturnRequested,
    ShipmentAssigned,
    TrackingRecorded,
)
from marketplace.shared.errors import EmptyCartError
from marketplace.shared.money import Money, to_decimal


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class InternalOrderStatus(Enum):
    PENDING = "Pending"
    PICKUP_ERROR = "Pickup_Error"
    PICKUP_EXCEPTION = "Pickup_Exception"
    PICKUP_RESCHEDULED = "Pickup_Rescheduled"
    OUT_FOR_PICKUP = "Out_For_Pickup"
    PICKED_UP = "Picked_Up"
    SHIPPED = "Shipped"
    IN_TRANSIT = "In_Transit"
    REACHED_DESTINATION = "Reached_Destination"
    OUT_FOR_DELIVERY = "Out_For_Delivery"
    DELIVERED = "Delivered"
    UNDELIVERED = "Undelivered"
    DELAYED = "Delayed"
    LOST = "Lost"
    DAMAGED = "Damaged"
    DESTROYED = "Destroyed"
    MISROUTED = "Misrouted"
    CANCELLATION_REQUESTED = "Cancellation_Requested"
    CANCELLED_BEFORE_DISPATCH = "Cancelled_Before_Dispatch"
    CANCELLED = "Cancelled"
    RETURN = "Return"
    FAILED = "Failed"


class StatusSource(Enum):
    CARRIER = "Carrier"
    CUSTOMER = "Customer"
    ADMIN = "Admin"


class CarrierUpdate(Enum):
    APPLIED = "applied"
    DUPLICATE = "duplicate"
    PROTECTED = "protected"
    STALE = "stale"


# Once here, only an explicit admin override may move the line
TERMINAL_PROTECTED = frozenset(
    {
        InternalOrderStatus.CANCELLED,
        InternalOrderStatus.RETURN,
        InternalOrderStatus.FAILED,
    }
)

# States in which the parcel has not left the vendor yet
_CUSTOMER_CANCELLABLE = {
    InternalOrderStatus.PENDING,
    InternalOrderStatus.PICKUP_ERROR,
    InternalOrderStatus.PICKUP_EXCEPTION,
    InternalOrderStatus.PICKUP_RESCHEDULED,
    InternalOrderStatus.OUT_FOR_PICKUP,
    InternalOrderStatus.CANCELLATION_REQUESTED,
}


def is_terminal_protected(status) -> bool:
    if isinstance(status, str):
        status = InternalOrderStatus(status)
    return status in TERMINAL_PROTECTED


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@marketplace.value_object(part_of="Order")
class ShippingDetails:
    """Delivery contact and address captured at checkout time."""

    name = String(required=True, max_length=100)
    phone = String(required=True, max_length=20)
    address = String(required=True, max_length=255)
    locality = String(max_length=100)
    city = String(required=True, max_length=100)
    state = String(required=True, max_length=100)
    pin = String(required=True, max_length=10)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@marketplace.entity(part_of="Order")
class OrderLine:
    """One purchased product, priced at checkout and tracked independently.

    ``secret_order_id`` is the order id followed by the product's suffix, a
    globally unique key for the line that does not depend on its status.
    """

    secret_order_id = String(required=True, max_length=100)
    product_id = Identifier(required=True)
    vendor_id = Identifier(required=True)
    variant_size = String(max_length=50)
    quantity = Integer(required=True, min_value=1)
    unit_mrp = Float(required=True, min_value=0.0)
    line_mrp = Float(required=True, min_value=0.0)
    line_price = Float(required=True, min_value=0.0)
    status = String(
        choices=InternalOrderStatus,
        default=InternalOrderStatus.PENDING.value,
    )
    created_at = DateTime()
    shipment_id = String(max_length=100)
    tracking_history = Text(default="[]")  # JSON list of raw carrier payloads
    etd = String(max_length=50)
    track_url = String(max_length=500)
    updated_date = String(max_length=10)  # MM-DD-YYYY
    return_reason = String(max_length=500)
    revision = Integer(default=0)

    @invariant.post
    def price_cannot_exceed_mrp(self):
        if self.line_price is None or self.line_mrp is None:
            return
        if self.line_price > self.line_mrp:
            raise ValidationError({"line_price": ["Line price cannot exceed line MRP"]})

    def history(self) -> list:
        return json.loads(self.tracking_history) if self.tracking_history else []

    @property
    def is_terminal_protected(self) -> bool:
        return is_terminal_protected(self.status)


# ---------------------------------------------------------------------------
# Aggregate Root (CQRS)
# ---------------------------------------------------------------------------
@marketplace.aggregate
class Order:
    user_id = Identifier(required=True)
    payment_id = String(required=True, max_length=255)
    coupon_code = String(max_length=50)
    shipping_details = ValueObject(ShippingDetails)
    lines = HasMany(OrderLine)
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        order_id: str,
        user_id: str,
        payment_id: str,
        shipping_details: dict,
        lines_data: list[dict],
        coupon_code: str | None = None,
    ):
        """Create a new order with every line in Pending.

        Args:
            order_id: Pre-generated order id, shared by all lines.
            lines_data: List of dicts with secret_order_id, product_id,
                        vendor_id, variant_size, quantity, unit_mrp,
                        line_mrp and line_price.
        """
        if not lines_data:
            raise EmptyCartError()

        now = datetime.now(UTC)
        order = cls(
            id=order_id,
            user_id=user_id,
            payment_id=payment_id,
            coupon_code=coupon_code,
            shipping_details=ShippingDetails(**shipping_details),
            created_at=now,
            updated_at=now,
        )
        for line_data in lines_data:
            order.add_lines(
                OrderLine(
                    **line_data,
                    status=InternalOrderStatus.PENDING.value,
                    created_at=now,
                    tracking_history="[]",
                    revision=0,
                )
            )

        order.raise_(
            OrderPlaced(
                order_id=order_id,
                user_id=str(user_id),
                payment_id=payment_id,
                coupon_code=coupon_code,
                lines=json.dumps(
                    [
                        {
                            "secret_order_id": line["secret_order_id"],
                            "product_id": str(line["product_id"]),
                            "line_price": line["line_price"],
                        }
                        for line in lines_data
                    ]
                ),
                total_price=float(sum((to_decimal(line["line_price"]) for line in lines_data), Decimal("0"))),
                total_mrp=float(sum((to_decimal(line["line_mrp"]) for line in lines_data), Decimal("0"))),
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def line(self, secret_order_id: str) -> OrderLine:
        line = next((ln for ln in (self.lines or []) if ln.secret_order_id == secret_order_id), None)
        if line is None:
            raise ValidationError({"secret_order_id": ["Order line not found"]})
        return line

    def total_price(self) -> Money:
        return Money.of(sum((to_decimal(ln.line_price) for ln in (self.lines or [])), Decimal("0")))

    def total_mrp(self) -> Money:
        return Money.of(sum((to_decimal(ln.line_mrp) for ln in (self.lines or [])), Decimal("0")))

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    def _change_status(self, line, new_status: InternalOrderStatus, source: StatusSource, now) -> None:
        previous = line.status
        line.status = new_status.value
        line.revision = (line.revision or 0) + 1
        self.updated_at = now
        self.raise_(
            LineStatusChanged(
                order_id=str(self.id),
                secret_order_id=line.secret_order_id,
                previous_status=previous,
                new_status=new_status.value,
                source=source.value,
                revision=line.revision,
                changed_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Shipment
    # -------------------------------------------------------------------
    def assign_shipment(self, secret_order_id: str, shipment_id: str) -> None:
        """Record the carrier shipment that will carry this line."""
        line = self.line(secret_order_id)
        if line.is_terminal_protected:
            raise ValidationError({"status": [f"Cannot ship a line in {line.status} state"]})
        if not shipment_id:
            raise ValidationError({"shipment_id": ["Shipment id is required"]})

        now = datetime.now(UTC)
        line.shipment_id = shipment_id
        line.revision = (line.revision or 0) + 1
        self.updated_at = now
        self.raise_(
            ShipmentAssigned(
                order_id=str(self.id),
                secret_order_id=secret_order_id,
                shipment_id=shipment_id,
            )
        )

    # -------------------------------------------------------------------
    # Carrier reconciliation
    # -------------------------------------------------------------------
    def apply_carrier_update(
        self,
        secret_order_id: str,
        status: InternalOrderStatus,
        payload: dict,
        etd: str | None = None,
        track_url: str | None = None,
        updated_date: str | None = None,
        expected_revision: int | None = None,
    ) -> CarrierUpdate:
        """Apply a mapped tracking snapshot to a line.

        Nothing changes when the line is terminal-protected, when it has been
        modified since ``expected_revision`` was read, or when the snapshot is
        identical to the last one recorded.
        """
        line = self.line(secret_order_id)
        if line.is_terminal_protected:
            return CarrierUpdate.PROTECTED
        if expected_revision is not None and (line.revision or 0) != expected_revision:
            return CarrierUpdate.STALE

        history = line.history()
        if (
            line.status == status.value
            and history
            and history[-1] == payload
            and (line.etd or None) == (etd or None)
            and (line.track_url or None) == (track_url or None)
        ):
            return CarrierUpdate.DUPLICATE

        now = datetime.now(UTC)
        history.append(payload)
        line.tracking_history = json.dumps(history)
        line.etd = etd
        line.track_url = track_url
        if updated_date:
            line.updated_date = updated_date

        if line.status != status.value:
            self._change_status(line, status, StatusSource.CARRIER, now)
        else:
            line.revision = (line.revision or 0) + 1
            self.updated_at = now

        self.raise_(
            TrackingRecorded(
                order_id=str(self.id),
                secret_order_id=secret_order_id,
                status=status.value,
                etd=etd,
                track_url=track_url,
                updated_date=line.updated_date,
                recorded_at=now,
            )
        )
        return CarrierUpdate.APPLIED

    # -------------------------------------------------------------------
    # Human actions
    # -------------------------------------------------------------------
    def override_line_status(self, secret_order_id: str, status: InternalOrderStatus) -> None:
        """Admin/vendor override. Always permitted, terminal-protected or not."""
        line = self.line(secret_order_id)
        self._change_status(line, status, StatusSource.ADMIN, datetime.now(UTC))

    def cancel_line(self, secret_order_id: str) -> None:
        """Customer cancellation, allowed only before the parcel is dispatched."""
        line = self.line(secret_order_id)
        current = InternalOrderStatus(line.status)
        if current not in _CUSTOMER_CANCELLABLE:
            raise ValidationError({"status": [f"Cannot cancel an order line in {current.value} state"]})
        self._change_status(line, InternalOrderStatus.CANCELLED, StatusSource.CUSTOMER, datetime.now(UTC))

    def request_return(self, secret_order_id: str, reason: str) -> None:
        """Customer return request, allowed only after delivery."""
        line = self.line(secret_order_id)
        current = InternalOrderStatus(line.status)
        if current != InternalOrderStatus.DELIVERED:
            raise ValidationError({"status": ["Only delivered order lines can be returned"]})
        if not reason or not reason.strip():
            raise ValidationError({"reason": ["A return reason is required"]})

        now = datetime.now(UTC)
        line.return_reason = reason
        self._change_status(line, InternalOrderStatus.RETURN, StatusSource.CUSTOMER, now)
        self.raise_(
            ReturnRequested(
                order_id=str(self.id),
                secret_order_id=secret_order_id,
                reason=reason,
                requested_at=now,
            )
        )

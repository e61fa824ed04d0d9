"""Domain events for the Order aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String, Text

from marketplace.domain import marketplace


@marketplace.event(part_of="Order")
class OrderPlaced:
    """A paid order was created from checkout."""

    __version__ = 1

    order_id = Identifier(required=True)
    user_id = Identifier(required=True)
    payment_id = String(required=True)
    coupon_code = String()
    lines = Text(required=True)  # JSON: list of {secret_order_id, product_id, line_price}
    total_price = Float(required=True)
    total_mrp = Float(required=True)
    placed_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class ShipmentAssigned:
    """A carrier shipment was created for an order line."""

    __version__ = 1

    order_id = Identifier(required=True)
    secret_order_id = String(required=True)
    shipment_id = String(required=True)


@marketplace.event(part_of="Order")
class LineStatusChanged:
    """An order line moved to a new status."""

    __version__ = 1

    order_id = Identifier(required=True)
    secret_order_id = String(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    source = String(required=True)  # Carrier, Admin or Customer
    revision = Integer(required=True)
    changed_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class TrackingRecorded:
    """A new carrier tracking payload was appended to a line's history."""

    __version__ = 1

    order_id = Identifier(required=True)
    secret_order_id = String(required=True)
    status = String(required=True)
    etd = String()
    track_url = String()
    updated_date = String()
    recorded_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class ReturnRequested:
    """The customer asked to return a delivered line."""

    __version__ = 1

    order_id = Identifier(required=True)
    secret_order_id = String(required=True)
    reason = String(required=True)
    requested_at = DateTime(required=True)

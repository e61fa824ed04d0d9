"""Order assembly — priced lines plus checkout details into an Order.

The order id has a fixed width so the id of the order that owns a line can
be read straight off the line's secret order id.
"""

from uuid import uuid4

from protean.exceptions import ValidationError

from marketplace.order.order import Order
from marketplace.shared.errors import EmptyCartError, PaymentMissingError

ORDER_ID_PREFIX = "OD"
ORDER_ID_LENGTH = 16


def generate_order_id() -> str:
    return f"{ORDER_ID_PREFIX}{uuid4().hex[: ORDER_ID_LENGTH - len(ORDER_ID_PREFIX)].upper()}"


def secret_order_id_for(order_id: str, suffix: str) -> str:
    return f"{order_id}{suffix}"


def order_id_from_secret(secret_order_id: str) -> str:
    if (
        not secret_order_id
        or len(secret_order_id) <= ORDER_ID_LENGTH
        or not secret_order_id.startswith(ORDER_ID_PREFIX)
    ):
        raise ValidationError({"secret_order_id": [f"Malformed order line id: {secret_order_id!r}"]})
    return secret_order_id[:ORDER_ID_LENGTH]


def assemble_order(
    priced_lines,
    user_id: str,
    shipping_details: dict,
    payment_id: str | None,
    order_id: str | None = None,
    coupon_code: str | None = None,
) -> Order:
    """Build an unsaved Order with one Pending line per priced line.

    Raises:
        EmptyCartError: no priced lines.
        PaymentMissingError: no payment reference.
        ValidationError: two lines would share a secret order id.
    """
    if not priced_lines:
        raise EmptyCartError()
    if payment_id is None or not str(payment_id).strip():
        raise PaymentMissingError()

    order_id = order_id or generate_order_id()

    lines_data = []
    seen = set()
    for priced in priced_lines:
        secret_order_id = secret_order_id_for(order_id, priced.product_code)
        if secret_order_id in seen:
            raise ValidationError({"lines": [f"Product {priced.product_id} appears more than once"]})
        seen.add(secret_order_id)
        lines_data.append(
            {
                "secret_order_id": secret_order_id,
                "product_id": priced.product_id,
                "vendor_id": priced.vendor_id,
                "variant_size": priced.variant_size,
                "quantity": priced.quantity,
                "unit_mrp": float(priced.unit_mrp),
                "line_mrp": float(priced.line_mrp),
                "line_price": float(priced.line_price),
            }
        )

    return Order.place(
        order_id=order_id,
        user_id=user_id,
        payment_id=str(payment_id).strip(),
        shipping_details=shipping_details,
        lines_data=lines_data,
        coupon_code=coupon_code,
    )

"""Order placement — command, handler and the checkout entry point.

The handler prices, assembles and persists the order (and the coupon's
redemption count) in a single unit of work, so a failure anywhere leaves
nothing behind. Clearing the cart happens afterwards and cannot undo the
order.
"""

import json

import structlog
from protean import handle
from protean.exceptions import InvalidOperationError, ObjectNotFoundError, ValidationError
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from marketplace import config
from marketplace.cart.management import ClearCart
from marketplace.domain import marketplace
from marketplace.order.assembler import assemble_order
from marketplace.order.order import Order
from marketplace.pricing.cart_line import cart_lines_from_data, cart_lines_to_json
from marketplace.pricing.coupon import Coupon, find_redeemable_coupon, normalize_code
from marketplace.pricing.discount import DiscountPolicy
from marketplace.pricing.engine import price_lines
from marketplace.shared.errors import EmptyCartError, PaymentMissingError

logger = structlog.get_logger(__name__)


@marketplace.command(part_of="Order")
class PlaceOrder:
    user_id = Identifier(required=True)
    lines = Text(required=True)  # JSON: list of cart line dicts
    shipping_details = Text(required=True)  # JSON: shipping details dict
    payment_id = String(max_length=255)
    coupon_code = String(max_length=50)


@marketplace.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        cart_lines = cart_lines_from_data(command.lines)
        if not cart_lines:
            raise EmptyCartError()
        if not command.payment_id:
            raise PaymentMissingError()

        shipping_details = (
            json.loads(command.shipping_details)
            if isinstance(command.shipping_details, str)
            else command.shipping_details
        )

        coupon = find_redeemable_coupon(command.coupon_code) if normalize_code(command.coupon_code) else None
        policy = coupon.policy() if coupon else DiscountPolicy.none()
        priced = price_lines(cart_lines, policy, config.extra_discount_pct())

        order = assemble_order(
            priced,
            user_id=command.user_id,
            shipping_details=shipping_details,
            payment_id=command.payment_id,
            coupon_code=coupon.code if coupon else None,
        )

        if coupon:
            coupon.record_redemption()
            current_domain.repository_for(Coupon).add(coupon)
        current_domain.repository_for(Order).add(order)

        logger.info(
            "Order placed",
            order_id=str(order.id),
            user_id=str(command.user_id),
            line_count=len(priced),
            coupon_code=coupon.code if coupon else None,
        )
        return str(order.id)


def place_order(user_id, lines, shipping_details, payment_id, coupon_code=None, cart_id=None) -> str:
    """Place an order from cart (or buy-now) lines and then clear the cart.

    Args:
        lines: ``CartLine`` value objects.
        cart_id: The cart to clear once the order exists. Omitted for buy-now.

    Returns:
        The new order id.
    """
    order_id = current_domain.process(
        PlaceOrder(
            user_id=user_id,
            lines=cart_lines_to_json(lines),
            shipping_details=json.dumps(shipping_details),
            payment_id=payment_id,
            coupon_code=coupon_code,
        ),
        asynchronous=False,
    )

    if cart_id:
        try:
            current_domain.process(ClearCart(cart_id=cart_id), asynchronous=False)
        except (ValidationError, ObjectNotFoundError, InvalidOperationError) as exc:
            logger.warning(
                "Failed to clear cart after checkout",
                order_id=order_id,
                cart_id=str(cart_id),
                error=str(exc),
            )

    return order_id

"""Checkout pricing engine.

Turns cart lines into price-locked lines. The coupon is applied first and
the platform extra discount second, each as a percentage of the running
line total; the result is truncated to two places once, after both stages.

Note that the coupon threshold is compared against each line's own total,
not the cart's grand total. Checkout summaries and placed orders both go
through ``price_lines`` so the totals a customer sees are the totals that
get persisted.
"""

from dataclasses import dataclass
from decimal import Decimal

from marketplace import config
from marketplace.pricing.coupon import resolve_discount_policy
from marketplace.pricing.discount import DiscountPolicy, validate_extra_discount_pct
from marketplace.shared.money import percent_of, to_decimal, truncate2


@dataclass(frozen=True)
class PricedLine:
    """A cart line with its final price locked in."""

    product_id: str
    vendor_id: str
    product_code: str
    quantity: int
    unit_mrp: Decimal
    line_mrp: Decimal
    line_price: Decimal
    variant_size: str | None = None

    @property
    def line_discount(self) -> Decimal:
        return self.line_mrp - self.line_price


@dataclass(frozen=True)
class CheckoutSummary:
    total_price: Decimal
    total_mrp: Decimal
    total_discount: Decimal

    def as_dict(self) -> dict:
        return {
            "total_price": float(self.total_price),
            "total_mrp": float(self.total_mrp),
            "total_discount": float(self.total_discount),
        }


def price_line(line, policy: DiscountPolicy, extra_pct) -> PricedLine:
    selling_total = line.quantity * to_decimal(line.unit_selling_price)

    if selling_total >= to_decimal(policy.minimum_cart_value):
        after_coupon = selling_total - percent_of(selling_total, policy.percent_off)
    else:
        after_coupon = selling_total

    final_price = truncate2(after_coupon - percent_of(after_coupon, extra_pct))
    unit_mrp = to_decimal(line.unit_mrp)

    return PricedLine(
        product_id=str(line.product_id),
        vendor_id=str(line.vendor_id),
        product_code=line.line_suffix,
        quantity=line.quantity,
        unit_mrp=unit_mrp,
        line_mrp=line.quantity * unit_mrp,
        line_price=final_price,
        variant_size=line.variant_size,
    )


def price_lines(lines, policy: DiscountPolicy | None = None, extra_pct=0) -> list[PricedLine]:
    """Price every cart line with the same coupon and extra discount."""
    policy = policy or DiscountPolicy.none()
    extra = validate_extra_discount_pct(extra_pct)
    return [price_line(line, policy, extra) for line in lines]


def summarize(priced_lines) -> CheckoutSummary:
    total_price = sum((p.line_price for p in priced_lines), Decimal("0"))
    total_mrp = sum((p.line_mrp for p in priced_lines), Decimal("0"))
    return CheckoutSummary(
        total_price=total_price,
        total_mrp=total_mrp,
        total_discount=total_mrp - total_price,
    )


def compute_checkout_summary(lines, coupon_code=None, extra_pct=None, now=None) -> CheckoutSummary:
    """Totals for the checkout page, computed exactly as ``PlaceOrder`` will."""
    policy = resolve_discount_policy(coupon_code, now)
    if extra_pct is None:
        extra_pct = config.extra_discount_pct()
    return summarize(price_lines(lines, policy, extra_pct))

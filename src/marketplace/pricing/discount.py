"""Discount policy value object and extra-discount validation."""

from protean.exceptions import ValidationError
from protean.fields import Float

from marketplace.domain import marketplace
from marketplace.shared.money import to_decimal


@marketplace.value_object
class DiscountPolicy:
    """A coupon's terms: percentage off for lines at or above a minimum value."""

    minimum_cart_value = Float(default=0.0, min_value=0.0)
    percent_off = Float(default=0.0, min_value=0.0, max_value=100.0)

    @classmethod
    def none(cls):
        return cls(minimum_cart_value=0.0, percent_off=0.0)


def validate_extra_discount_pct(pct):
    """Return the extra discount as a Decimal, rejecting values outside 0-100."""
    value = to_decimal(pct or 0)
    if value < 0 or value > 100:
        raise ValidationError({"extra_discount_pct": ["Extra discount must be between 0 and 100"]})
    return value

"""Money value object and fixed-point helpers.

All discount arithmetic runs on ``Decimal``. Percentages are kept at full
precision and results are truncated (never rounded) to two places, so a
customer is never charged a fraction more than the computed price.
"""

from decimal import ROUND_DOWN, Decimal

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Float, String

from marketplace.domain import marketplace

VALID_CURRENCIES = frozenset({"INR", "USD", "EUR", "GBP"})

CENT = Decimal("0.01")
HUNDRED = Decimal("100")


def to_decimal(value) -> Decimal:
    """Convert a float, int, string or Decimal without importing float noise."""
    if isinstance(value, Decimal):
        return value
    if value is None:
        return Decimal("0")
    return Decimal(str(value))


def truncate2(value) -> Decimal:
    """Truncate toward zero to two decimal places."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_DOWN)


def percent_of(value, pct) -> Decimal:
    return to_decimal(value) * to_decimal(pct) / HUNDRED


@marketplace.value_object
class Money:
    """Value object representing a monetary amount with currency."""

    amount: Float(required=True, min_value=0.0)
    currency: String(max_length=3, default="INR")

    @invariant.post
    def currency_must_be_supported(self):
        if self.currency not in VALID_CURRENCIES:
            raise ValidationError({"currency": [f"Unsupported currency: {self.currency}"]})

    @classmethod
    def of(cls, value, currency="INR"):
        return cls(amount=float(truncate2(value)), currency=currency)

    def as_decimal(self) -> Decimal:
        return to_decimal(self.amount)

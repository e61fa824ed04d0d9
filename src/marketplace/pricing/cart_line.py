"""Cart line value object — the priced input to checkout.

A cart line captures the selling price and MRP the customer saw when the
product was added. Construction validates the line, so the pricing engine
only ever sees well-formed input.
"""

import json

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Float, Integer, String

from marketplace.domain import marketplace


@marketplace.value_object
class CartLine:
    product_id = String(required=True, max_length=100)
    vendor_id = String(required=True, max_length=100)
    product_code = String(max_length=50)  # Suffix for the per-line secret order id
    quantity = Integer(required=True, min_value=1)
    unit_selling_price = Float(required=True, min_value=0.0)
    unit_mrp = Float(required=True, min_value=0.0)
    variant_size = String(max_length=50)

    @invariant.post
    def selling_price_cannot_exceed_mrp(self):
        if self.unit_selling_price is None or self.unit_mrp is None:
            return
        if self.unit_selling_price > self.unit_mrp:
            raise ValidationError({"unit_selling_price": ["Selling price cannot exceed MRP"]})

    @property
    def line_suffix(self) -> str:
        return str(self.product_code or self.product_id)


def cart_lines_from_data(lines_data) -> list[CartLine]:
    """Build cart lines from a JSON string or a list of dicts."""
    data = json.loads(lines_data) if isinstance(lines_data, str) else lines_data
    if data is None:
        return []
    if not isinstance(data, list):
        raise ValidationError({"lines": ["Cart lines must be a list"]})
    return [CartLine(**line) for line in data]


def cart_lines_to_json(lines) -> str:
    return json.dumps(
        [
            {
                "product_id": str(line.product_id),
                "vendor_id": str(line.vendor_id),
                "product_code": line.product_code,
                "quantity": line.quantity,
                "unit_selling_price": line.unit_selling_price,
                "unit_mrp": line.unit_mrp,
                "variant_size": line.variant_size,
            }
            for line in lines
        ]
    )

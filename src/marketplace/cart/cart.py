"""Shopping Cart aggregate (CQRS) — the mutable basket that feeds checkout.

Each item remembers the selling price and MRP the customer was shown. A
product appears at most once; adding it again increases the quantity.
"""

from datetime import UTC, datetime

from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String

from marketplace.cart.events import CartCleared, CartItemAdded, CartItemRemoved, CartQuantityUpdated
from marketplace.domain import marketplace
from marketplace.pricing.cart_line import CartLine


@marketplace.entity(part_of="ShoppingCart")
class CartItem:
    product_id = Identifier(required=True)
    vendor_id = Identifier(required=True)
    product_code = String(max_length=50)
    quantity = Integer(required=True, min_value=1)
    unit_selling_price = Float(required=True, min_value=0.0)
    unit_mrp = Float(required=True, min_value=0.0)
    variant_size = String(max_length=50)
    added_at = DateTime()

    def to_cart_line(self) -> CartLine:
        return CartLine(
            product_id=str(self.product_id),
            vendor_id=str(self.vendor_id),
            product_code=self.product_code,
            quantity=self.quantity,
            unit_selling_price=self.unit_selling_price,
            unit_mrp=self.unit_mrp,
            variant_size=self.variant_size,
        )


@marketplace.aggregate
class ShoppingCart:
    user_id = Identifier(required=True)
    items = HasMany(CartItem)
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, user_id):
        now = datetime.now(UTC)
        return cls(user_id=user_id, created_at=now, updated_at=now)

    # -------------------------------------------------------------------
    # Item management
    # -------------------------------------------------------------------
    def add_item(
        self,
        product_id,
        vendor_id,
        quantity,
        unit_selling_price,
        unit_mrp,
        product_code=None,
        variant_size=None,
    ):
        """Add a product to the cart (or increase its quantity if already present)."""
        existing = next((i for i in (self.items or []) if str(i.product_id) == str(product_id)), None)
        new_quantity = quantity + (existing.quantity if existing else 0)

        # Validates price and quantity before anything is touched
        CartLine(
            product_id=str(product_id),
            vendor_id=str(vendor_id),
            product_code=product_code,
            quantity=new_quantity,
            unit_selling_price=unit_selling_price,
            unit_mrp=unit_mrp,
            variant_size=variant_size,
        )

        now = datetime.now(UTC)

        if existing:
            existing.quantity = new_quantity
            existing.unit_selling_price = unit_selling_price
            existing.unit_mrp = unit_mrp
            existing.variant_size = variant_size
            item_id = str(existing.id)
        else:
            item = CartItem(
                product_id=product_id,
                vendor_id=vendor_id,
                product_code=product_code,
                quantity=quantity,
                unit_selling_price=unit_selling_price,
                unit_mrp=unit_mrp,
                variant_size=variant_size,
                added_at=now,
            )
            self.add_items(item)
            item_id = str(item.id)

        self.updated_at = now

        self.raise_(
            CartItemAdded(
                cart_id=str(self.id),
                item_id=item_id,
                product_id=str(product_id),
                quantity=quantity,
            )
        )

    def update_item_quantity(self, item_id, new_quantity):
        """Update the quantity of an existing cart item."""
        if new_quantity is None or new_quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})

        item = next((i for i in (self.items or []) if str(i.id) == str(item_id)), None)
        if item is None:
            raise ValidationError({"item_id": ["Item not found in cart"]})

        previous_quantity = item.quantity
        item.quantity = new_quantity
        self.updated_at = datetime.now(UTC)

        self.raise_(
            CartQuantityUpdated(
                cart_id=str(self.id),
                item_id=str(item_id),
                previous_quantity=previous_quantity,
                new_quantity=new_quantity,
            )
        )

    def remove_item(self, item_id):
        """Remove an item from the cart."""
        item = next((i for i in (self.items or []) if str(i.id) == str(item_id)), None)
        if item is None:
            raise ValidationError({"item_id": ["Item not found in cart"]})

        self.remove_items(item)
        self.updated_at = datetime.now(UTC)

        self.raise_(CartItemRemoved(cart_id=str(self.id), item_id=str(item_id)))

    def clear(self):
        """Remove every item."""
        items = list(self.items or [])
        for item in items:
            self.remove_items(item)
        self.updated_at = datetime.now(UTC)

        self.raise_(CartCleared(cart_id=str(self.id), removed_count=len(items)))

    # -------------------------------------------------------------------
    # Checkout
    # -------------------------------------------------------------------
    def cart_lines(self) -> list[CartLine]:
        return [item.to_cart_line() for item in (self.items or [])]

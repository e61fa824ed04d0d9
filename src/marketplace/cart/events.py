"""Domain events for the ShoppingCart aggregate."""

from protean.fields import Identifier, Integer

from marketplace.domain import marketplace


@marketplace.event(part_of="ShoppingCart")
class CartItemAdded:
    """A product was added to the shopping cart."""

    __version__ = 1

    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True)


@marketplace.event(part_of="ShoppingCart")
class CartQuantityUpdated:
    """The quantity of a cart item was changed."""

    __version__ = 1

    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)


@marketplace.event(part_of="ShoppingCart")
class CartItemRemoved:
    """An item was removed from the shopping cart."""

    __version__ = 1

    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)


@marketplace.event(part_of="ShoppingCart")
class CartCleared:
    """All items were removed, usually right after checkout."""

    __version__ = 1

    cart_id = Identifier(required=True)
    removed_count = Integer(required=True)

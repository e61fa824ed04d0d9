"""Application tests for cart commands."""

import pytest
from marketplace.cart.cart import ShoppingCart
from marketplace.cart.items import AddToCart, RemoveFromCart, UpdateCartQuantity
from marketplace.cart.management import ClearCart, CreateCart
from protean import current_domain
from protean.exceptions import ValidationError


def _create_cart():
    return current_domain.process(CreateCart(user_id="user-001"), asynchronous=False)


def _add(cart_id, product_id="prod-001", quantity=1, selling=600.0, mrp=700.0):
    current_domain.process(
        AddToCart(
            cart_id=cart_id,
            product_id=product_id,
            vendor_id="vend-001",
            quantity=quantity,
            unit_selling_price=selling,
            unit_mrp=mrp,
        ),
        asynchronous=False,
    )


def _cart(cart_id):
    return current_domain.repository_for(ShoppingCart).get(cart_id)


class TestCartCommands:
    def test_create_cart(self):
        cart_id = _create_cart()
        cart = _cart(cart_id)
        assert str(cart.user_id) == "user-001"
        assert len(cart.items) == 0

    def test_add_item_persists(self):
        cart_id = _create_cart()
        _add(cart_id, quantity=2)
        cart = _cart(cart_id)
        assert len(cart.items) == 1
        assert cart.items[0].quantity == 2

    def test_add_invalid_price_rejected(self):
        cart_id = _create_cart()
        with pytest.raises(ValidationError):
            _add(cart_id, selling=900.0, mrp=700.0)
        assert len(_cart(cart_id).items) == 0

    def test_update_quantity_persists(self):
        cart_id = _create_cart()
        _add(cart_id)
        item_id = str(_cart(cart_id).items[0].id)
        current_domain.process(
            UpdateCartQuantity(cart_id=cart_id, item_id=item_id, new_quantity=5),
            asynchronous=False,
        )
        assert _cart(cart_id).items[0].quantity == 5

    def test_remove_item_persists(self):
        cart_id = _create_cart()
        _add(cart_id)
        item_id = str(_cart(cart_id).items[0].id)
        current_domain.process(RemoveFromCart(cart_id=cart_id, item_id=item_id), asynchronous=False)
        assert len(_cart(cart_id).items) == 0

    def test_clear_cart(self):
        cart_id = _create_cart()
        _add(cart_id, "prod-001")
        _add(cart_id, "prod-002")
        current_domain.process(ClearCart(cart_id=cart_id), asynchronous=False)
        assert len(_cart(cart_id).items) == 0

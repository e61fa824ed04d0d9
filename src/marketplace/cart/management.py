"""Cart lifecycle management — commands and handler."""

from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain

from marketplace.cart.cart import ShoppingCart
from marketplace.domain import marketplace


@marketplace.command(part_of="ShoppingCart")
class CreateCart:
    user_id = Identifier(required=True)


@marketplace.command(part_of="ShoppingCart")
class ClearCart:
    cart_id = Identifier(required=True)


@marketplace.command_handler(part_of=ShoppingCart)
class ManageCartHandler:
    @handle(CreateCart)
    def create_cart(self, command):
        cart = ShoppingCart.create(user_id=command.user_id)
        current_domain.repository_for(ShoppingCart).add(cart)
        return str(cart.id)

    @handle(ClearCart)
    def clear_cart(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.get(command.cart_id)
        cart.clear()
        repo.add(cart)

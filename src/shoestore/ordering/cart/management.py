"""Cart management: commands, handler and the per-customer cart lookup."""

from protean import handle
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from shoestore.catalogue.product.queries import get_product
from shoestore.domain import shoestore
from shoestore.errors import InsufficientStock
from shoestore.ordering.cart.cart import ShoppingCart


def cart_for(customer_id, create=False) -> ShoppingCart | None:
    """Return the customer's cart; optionally start an empty one."""
    repo = current_domain.repository_for(ShoppingCart)
    carts = repo._dao.query.filter(customer_id=str(customer_id)).all().items
    if carts:
        return carts[0]
    if create:
        return ShoppingCart.create(customer_id=str(customer_id))
    return None


@shoestore.command(part_of="ShoppingCart")
class AddToCart:
    customer_id = Identifier(required=True)
    product_id = Identifier(required=True)
    size = String(required=True, max_length=5)
    color = String(required=True, max_length=50)
    quantity = Integer(default=1, min_value=1)


@shoestore.command(part_of="ShoppingCart")
class UpdateCartItem:
    customer_id = Identifier(required=True)
    item_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=0)


@shoestore.command(part_of="ShoppingCart")
class RemoveCartItem:
    customer_id = Identifier(required=True)
    item_id = Identifier(required=True)


@shoestore.command(part_of="ShoppingCart")
class ClearCart:
    customer_id = Identifier(required=True)


@shoestore.command_handler(part_of=ShoppingCart)
class CartHandler:
    @handle(AddToCart)
    def add_to_cart(self, command):
        product = get_product(command.product_id)
        variant = product.sellable_variant(command.size, command.color)

        cart = cart_for(command.customer_id, create=True)
        already = next(
            (i.quantity for i in cart.items if i.same_variant(command.product_id, command.size, command.color)),
            0,
        )
        wanted = already + command.quantity
        if variant.stock < wanted:
            raise InsufficientStock(
                f"Only {variant.stock} left of {product.name} in size {command.size} / {command.color}",
                available=variant.stock,
                requested=wanted,
                product_id=str(product.id),
                size=command.size,
                color=command.color,
            )

        item = cart.add_item(command.product_id, command.size, command.color, command.quantity)
        current_domain.repository_for(ShoppingCart).add(cart)
        return str(item.id)

    @handle(UpdateCartItem)
    def update_item(self, command):
        cart = cart_for(command.customer_id, create=True)
        cart.update_quantity(command.item_id, command.quantity)
        current_domain.repository_for(ShoppingCart).add(cart)

    @handle(RemoveCartItem)
    def remove_item(self, command):
        cart = cart_for(command.customer_id, create=True)
        cart.remove_item(command.item_id)
        current_domain.repository_for(ShoppingCart).add(cart)

    @handle(ClearCart)
    def clear(self, command):
        cart = cart_for(command.customer_id)
        if cart is None or cart.is_empty:
            return
        cart.clear()
        current_domain.repository_for(ShoppingCart).add(cart)

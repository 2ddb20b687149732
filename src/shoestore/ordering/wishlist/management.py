"""Wishlist commands, handler, lookups and the move-to-cart flow."""

from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Boolean, Identifier, Integer, String
from protean.utils.globals import current_domain

from shoestore.catalogue.product.queries import get_product
from shoestore.domain import shoestore
from shoestore.errors import Forbidden, NotFound, ProductUnavailable, VariantUnavailable
from shoestore.ordering.cart.management import AddToCart
from shoestore.ordering.wishlist.wishlist import Wishlist


def get_wishlist(wishlist_id) -> Wishlist:
    try:
        return current_domain.repository_for(Wishlist).get(wishlist_id)
    except ObjectNotFoundError as exc:
        raise NotFound(f"Wishlist {wishlist_id} not found", wishlist_id=str(wishlist_id)) from exc


def owned_wishlist(wishlist_id, customer_id) -> Wishlist:
    wishlist = get_wishlist(wishlist_id)
    if not wishlist.owned_by(customer_id):
        raise Forbidden("Only the owner can change this wishlist")
    return wishlist


def readable_wishlist(wishlist_id, customer_id) -> Wishlist:
    wishlist = get_wishlist(wishlist_id)
    if not wishlist.readable_by(customer_id):
        raise Forbidden("This wishlist is private")
    return wishlist


def wishlists_for(customer_id) -> list[Wishlist]:
    wishlists = current_domain.repository_for(Wishlist)._dao.query.filter(customer_id=str(customer_id)).all().items
    return sorted(wishlists, key=lambda w: w.created_at)


def public_wishlists() -> list[Wishlist]:
    wishlists = current_domain.repository_for(Wishlist)._dao.query.filter(is_public=True).all().items
    return sorted(wishlists, key=lambda w: w.updated_at, reverse=True)


def shared_wishlist(token) -> Wishlist:
    wishlists = current_domain.repository_for(Wishlist)._dao.query.filter(share_token=token).all().items
    if not wishlists:
        raise NotFound("Shared wishlist not found")
    return wishlists[0]


def current_price(product, size=None, color=None) -> float | None:
    """Price of the chosen variant, or the cheapest active one when none was chosen."""
    if size is not None and color is not None:
        variant = product.find_variant(size, color)
        return variant.price if variant else None
    prices = [v.price for v in product.variants if v.is_active]
    return min(prices) if prices else None


def _assert_unique_name(customer_id, name, wishlist_id=None):
    for other in wishlists_for(customer_id):
        if str(other.id) != str(wishlist_id) and other.name.lower() == name.strip().lower():
            raise ValidationError({"name": [f"You already have a wishlist called {other.name}"]})


@shoestore.command(part_of="Wishlist")
class CreateWishlist:
    customer_id = Identifier(required=True)
    name = String(max_length=100)
    description = String(max_length=500)
    is_public = Boolean(default=False)


@shoestore.command(part_of="Wishlist")
class UpdateWishlist:
    wishlist_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    name = String(max_length=100)
    description = String(max_length=500)
    is_public = Boolean()


@shoestore.command(part_of="Wishlist")
class DeleteWishlist:
    wishlist_id = Identifier(required=True)
    customer_id = Identifier(required=True)


@shoestore.command(part_of="Wishlist")
class AddWishlistItem:
    wishlist_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    product_id = Identifier(required=True)
    size = String(max_length=5)
    color = String(max_length=50)
    priority = Integer(default=3, min_value=1, max_value=5)
    notes = String(max_length=500)


@shoestore.command(part_of="Wishlist")
class UpdateWishlistItem:
    wishlist_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    item_id = Identifier(required=True)
    priority = Integer(min_value=1, max_value=5)
    notes = String(max_length=500)


@shoestore.command(part_of="Wishlist")
class RemoveWishlistItem:
    wishlist_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    item_id = Identifier(required=True)


@shoestore.command(part_of="Wishlist")
class ShareWishlist:
    wishlist_id = Identifier(required=True)
    customer_id = Identifier(required=True)


@shoestore.command_handler(part_of=Wishlist)
class WishlistHandler:
    @handle(CreateWishlist)
    def create(self, command):
        wishlist = Wishlist.create(
            customer_id=command.customer_id,
            name=command.name,
            description=command.description,
            is_public=command.is_public,
        )
        _assert_unique_name(command.customer_id, wishlist.name)
        current_domain.repository_for(Wishlist).add(wishlist)
        return str(wishlist.id)

    @handle(UpdateWishlist)
    def update(self, command):
        wishlist = owned_wishlist(command.wishlist_id, command.customer_id)
        changes = {
            field: getattr(command, field)
            for field in ("name", "description", "is_public")
            if getattr(command, field) is not None
        }
        if "name" in changes:
            _assert_unique_name(command.customer_id, changes["name"], wishlist.id)
        wishlist.update_details(**changes)
        current_domain.repository_for(Wishlist).add(wishlist)

    @handle(DeleteWishlist)
    def delete(self, command):
        wishlist = owned_wishlist(command.wishlist_id, command.customer_id)
        current_domain.repository_for(Wishlist)._dao.delete(wishlist)

    @handle(AddWishlistItem)
    def add_item(self, command):
        wishlist = owned_wishlist(command.wishlist_id, command.customer_id)
        product = get_product(command.product_id)
        if not product.is_active:
            raise ProductUnavailable(f"{product.name} is no longer available", product_id=str(product.id))
        if command.size is not None and command.color is not None:
            variant = product.find_variant(command.size, command.color)
            if variant is None:
                raise VariantUnavailable(
                    f"{product.name} is not available in size {command.size} / {command.color}",
                    product_id=str(product.id),
                    size=command.size,
                    color=command.color,
                )

        item = wishlist.add_item(
            command.product_id,
            current_price(product, command.size, command.color),
            size=command.size,
            color=command.color,
            priority=command.priority or 3,
            notes=command.notes,
        )
        current_domain.repository_for(Wishlist).add(wishlist)
        return str(item.id)

    @handle(UpdateWishlistItem)
    def update_item(self, command):
        wishlist = owned_wishlist(command.wishlist_id, command.customer_id)
        changes = {
            field: getattr(command, field) for field in ("priority", "notes") if getattr(command, field) is not None
        }
        wishlist.update_item(command.item_id, **changes)
        current_domain.repository_for(Wishlist).add(wishlist)

    @handle(RemoveWishlistItem)
    def remove_item(self, command):
        wishlist = owned_wishlist(command.wishlist_id, command.customer_id)
        wishlist.remove_item(command.item_id)
        current_domain.repository_for(Wishlist).add(wishlist)

    @handle(ShareWishlist)
    def share(self, command):
        wishlist = owned_wishlist(command.wishlist_id, command.customer_id)
        token = wishlist.share()
        current_domain.repository_for(Wishlist).add(wishlist)
        return token


def move_to_cart(wishlist_id, item_id, customer_id, size=None, color=None, quantity=1) -> str:
    """Put a wishlist item in the cart, then take it off the wishlist.

    The size and color default to the ones saved on the item. The wishlist is
    left alone when the cart refuses the item.
    """
    wishlist = owned_wishlist(wishlist_id, customer_id)
    item = wishlist.item(item_id)
    size = size or item.size
    color = color or item.color
    if not size or not color:
        raise ValidationError({"size": ["Choose a size and color before moving this item to the cart"]})

    cart_item_id = current_domain.process(
        AddToCart(
            customer_id=str(customer_id),
            product_id=str(item.product_id),
            size=str(size),
            color=color,
            quantity=quantity,
        ),
        asynchronous=False,
    )
    current_domain.process(
        RemoveWishlistItem(wishlist_id=str(wishlist.id), customer_id=str(customer_id), item_id=str(item.id)),
        asynchronous=False,
    )
    return cart_item_id

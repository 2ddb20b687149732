"""Domain events for the Wishlist aggregate."""

from protean.fields import DateTime, Float, Identifier

from shoestore.domain import shoestore


@shoestore.event(part_of="Wishlist")
class WishlistItemAdded:
    __version__ = 1

    wishlist_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    product_id = Identifier(required=True)
    price_when_added = Float()
    added_at = DateTime(required=True)


@shoestore.event(part_of="Wishlist")
class WishlistShared:
    __version__ = 1

    wishlist_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    shared_at = DateTime(required=True)

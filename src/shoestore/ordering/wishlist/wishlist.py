"""Wishlist aggregate (CQRS): named lists of shoes a customer wants later.

A customer may keep several wishlists. Each item points at a product and
optionally a preferred size and color, and remembers the price it had when
added so a later drop can be shown. A wishlist is private unless made
public; sharing hands out a token that lets anyone read it.
"""

import secrets
from datetime import UTC, datetime

from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, HasMany, Identifier, Integer, String

from shoestore.domain import shoestore
from shoestore.ordering.wishlist.events import WishlistItemAdded, WishlistShared

DEFAULT_NAME = "My Wishlist"

_UNSET = object()


def _same(a, b) -> bool:
    return (a or "").lower() == (b or "").lower()


@shoestore.entity(part_of="Wishlist")
class WishlistItem:
    product_id = Identifier(required=True)
    size = String(max_length=5)
    color = String(max_length=50)
    price_when_added = Float(min_value=0.0)
    priority = Integer(default=3, min_value=1, max_value=5)
    notes = String(max_length=500)
    added_at = DateTime()

    def same_choice(self, product_id, size=None, color=None) -> bool:
        return str(self.product_id) == str(product_id) and _same(self.size, size) and _same(self.color, color)


@shoestore.aggregate
class Wishlist:
    customer_id = Identifier(required=True)
    name = String(required=True, max_length=100, default=DEFAULT_NAME)
    description = String(max_length=500)
    is_public = Boolean(default=False)
    share_token = String(max_length=64)
    items = HasMany(WishlistItem)
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def create(cls, customer_id, name=None, description=None, is_public=False):
        now = datetime.now(UTC)
        return cls(
            customer_id=customer_id,
            name=(name or DEFAULT_NAME).strip(),
            description=description,
            is_public=bool(is_public),
            created_at=now,
            updated_at=now,
        )

    def owned_by(self, customer_id) -> bool:
        return str(self.customer_id) == str(customer_id)

    def readable_by(self, customer_id=None, token=None) -> bool:
        if customer_id is not None and self.owned_by(customer_id):
            return True
        if token and self.share_token and secrets.compare_digest(token, self.share_token):
            return True
        return bool(self.is_public)

    def update_details(self, name=_UNSET, description=_UNSET, is_public=_UNSET):
        if name is not _UNSET:
            if not name or not name.strip():
                raise ValidationError({"name": ["Wishlist name cannot be empty"]})
            self.name = name.strip()
        if description is not _UNSET:
            self.description = description
        if is_public is not _UNSET:
            self.is_public = bool(is_public)
        self.updated_at = datetime.now(UTC)

    def add_item(self, product_id, price, size=None, color=None, priority=3, notes=None):
        """Add a product, or update the entry already holding the same size/color."""
        now = datetime.now(UTC)
        size = str(size) if size is not None else None
        existing = next((i for i in self.items if i.same_choice(product_id, size, color)), None)
        if existing:
            existing.priority = priority
            if notes is not None:
                existing.notes = notes
            self.updated_at = now
            return existing

        item = WishlistItem(
            product_id=product_id,
            size=size,
            color=color,
            price_when_added=price,
            priority=priority,
            notes=notes,
            added_at=now,
        )
        self.add_items(item)
        self.updated_at = now
        self.raise_(
            WishlistItemAdded(
                wishlist_id=str(self.id),
                customer_id=str(self.customer_id),
                product_id=str(product_id),
                price_when_added=price,
                added_at=now,
            )
        )
        return item

    def update_item(self, item_id, priority=_UNSET, notes=_UNSET):
        item = self.item(item_id)
        if priority is not _UNSET:
            item.priority = priority
        if notes is not _UNSET:
            item.notes = notes
        self.updated_at = datetime.now(UTC)
        return item

    def remove_item(self, item_id):
        self.remove_items(self.item(item_id))
        self.updated_at = datetime.now(UTC)

    def item(self, item_id) -> WishlistItem:
        item = next((i for i in self.items if str(i.id) == str(item_id)), None)
        if item is None:
            raise ValidationError({"item_id": [f"Item {item_id} is not on this wishlist"]})
        return item

    def share(self) -> str:
        """Hand out the share token, creating it on first use."""
        if not self.share_token:
            self.share_token = secrets.token_urlsafe(24)
            self.updated_at = datetime.now(UTC)
            self.raise_(
                WishlistShared(
                    wishlist_id=str(self.id),
                    customer_id=str(self.customer_id),
                    shared_at=self.updated_at,
                )
            )
        return self.share_token

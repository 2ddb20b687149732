"""Shopping Cart aggregate (CQRS): the customer's pending selection.

One cart per customer. Items only reference a product variant by
(product, size, color) and a quantity; prices are resolved from the catalogue
when the cart is checked out, never stored here.
"""

from datetime import UTC, datetime

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, HasMany, Identifier, Integer, String

from shoestore.domain import shoestore

MAX_QUANTITY_PER_LINE = 10


@shoestore.entity(part_of="ShoppingCart")
class CartItem:
    product_id = Identifier(required=True)
    size = String(required=True, max_length=5)
    color = String(required=True, max_length=50)
    quantity = Integer(required=True, min_value=1)
    added_at = DateTime()

    def same_variant(self, product_id, size, color) -> bool:
        return (
            str(self.product_id) == str(product_id)
            and self.size == str(size)
            and self.color.lower() == str(color).lower()
        )


@shoestore.aggregate
class ShoppingCart:
    customer_id = Identifier(required=True)
    items = HasMany(CartItem)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def line_quantities_are_capped(self):
        for item in self.items:
            if item.quantity > MAX_QUANTITY_PER_LINE:
                raise ValidationError(
                    {"quantity": [f"At most {MAX_QUANTITY_PER_LINE} pairs of the same variant per order"]}
                )

    @classmethod
    def create(cls, customer_id):
        now = datetime.now(UTC)
        return cls(customer_id=customer_id, created_at=now, updated_at=now)

    @property
    def is_empty(self) -> bool:
        return not self.items

    def add_item(self, product_id, size, color, quantity=1):
        """Add a variant, merging with an existing line for the same variant."""
        existing = next((i for i in self.items if i.same_variant(product_id, size, color)), None)
        now = datetime.now(UTC)

        if existing:
            existing.quantity += quantity
            item = existing
        else:
            item = CartItem(product_id=product_id, size=str(size), color=color, quantity=quantity, added_at=now)
            self.add_items(item)

        self.updated_at = now
        return item

    def update_quantity(self, item_id, quantity):
        """Set a line's quantity; zero removes the line."""
        item = self._item(item_id)
        if quantity <= 0:
            self.remove_items(item)
        else:
            item.quantity = quantity
        self.updated_at = datetime.now(UTC)

    def remove_item(self, item_id):
        self.remove_items(self._item(item_id))
        self.updated_at = datetime.now(UTC)

    def clear(self):
        for item in list(self.items):
            self.remove_items(item)
        self.updated_at = datetime.now(UTC)

    def _item(self, item_id):
        item = next((i for i in self.items if str(i.id) == str(item_id)), None)
        if item is None:
            raise ValidationError({"item_id": ["Item not found in cart"]})
        return item

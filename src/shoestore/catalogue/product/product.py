"""Product aggregate (CQRS): a shoe model and its purchasable variants.

A product carries a list of variants, each one a (size, color) combination
with its own SKU, price and stock counter. Stock only moves through the
aggregate's methods (reserve, release, adjust) so every change is persisted
as a new version of the product and announced with an event.

Invariants:
    - variant stock is never negative
    - (size, color) and sku are unique within a product
    - total_stock always equals the sum of variant stock
"""

from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, HasMany, Integer, String, Text

from shoestore.catalogue.product.events import (
    LowStockDetected,
    ProductActivated,
    ProductCreated,
    ProductDeactivated,
    StockAdjusted,
    StockReleased,
    StockReserved,
    VariantActivated,
    VariantAdded,
    VariantDeactivated,
    VariantPriceChanged,
)
from shoestore.domain import shoestore
from shoestore.errors import InactiveVariant, InsufficientStock, VariantNotFound

SHOE_SIZES = (
    "5", "5.5", "6", "6.5", "7", "7.5", "8", "8.5", "9", "9.5",
    "10", "10.5", "11", "11.5", "12", "12.5", "13", "14", "15",
)  # fmt: skip

DEFAULT_LOW_STOCK_THRESHOLD = 5


class Category(Enum):
    RUNNING = "running"
    CASUAL = "casual"
    FORMAL = "formal"
    SPORTS = "sports"
    BOOTS = "boots"
    SANDALS = "sandals"
    SNEAKERS = "sneakers"


class Gender(Enum):
    MEN = "men"
    WOMEN = "women"
    UNISEX = "unisex"
    KIDS = "kids"


@shoestore.entity(part_of="Product")
class Variant:
    size: String(required=True, max_length=5)
    color: String(required=True, max_length=50)
    sku: String(required=True, max_length=50)
    price: Float(required=True, min_value=0.0)
    compare_at_price: Float(min_value=0.0)
    stock: Integer(default=0, min_value=0)
    is_active: Boolean(default=True)
    low_stock_threshold: Integer(default=DEFAULT_LOW_STOCK_THRESHOLD, min_value=0)

    def matches(self, size, color) -> bool:
        return self.size == str(size) and self.color.lower() == str(color).lower()

    @property
    def is_low_on_stock(self) -> bool:
        return self.stock <= self.low_stock_threshold


@shoestore.aggregate
class Product:
    """Product aggregate root."""

    name: String(required=True, max_length=255)
    brand: String(required=True, max_length=100)
    description: Text()
    category: String(choices=Category, required=True)
    gender: String(choices=Gender, required=True)
    image_url: String(max_length=500)
    variants: HasMany(Variant)
    total_stock: Integer(default=0, min_value=0)
    is_active: Boolean(default=True)
    created_at: DateTime()
    updated_at: DateTime()

    @invariant.post
    def variant_stock_is_never_negative(self):
        for variant in self.variants:
            if variant.stock is not None and variant.stock < 0:
                raise ValidationError({"stock": [f"Stock for {variant.sku} cannot be negative"]})

    @invariant.post
    def variants_are_unique(self):
        combos = [(v.size, v.color.lower()) for v in self.variants]
        if len(combos) != len(set(combos)):
            raise ValidationError({"variants": ["Each size/color combination may appear only once"]})
        skus = [v.sku for v in self.variants]
        if len(skus) != len(set(skus)):
            raise ValidationError({"variants": ["Variant SKUs must be unique within a product"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, name, brand, category, gender, description=None, image_url=None):
        now = datetime.now(UTC)
        product = cls(
            name=name,
            brand=brand,
            category=category,
            gender=gender,
            description=description,
            image_url=image_url,
            is_active=True,
            total_stock=0,
            created_at=now,
            updated_at=now,
        )
        product.raise_(
            ProductCreated(
                product_id=product.id,
                name=name,
                brand=brand,
                category=category,
                gender=gender,
                created_at=now,
            )
        )
        return product

    # -------------------------------------------------------------------
    # Variants
    # -------------------------------------------------------------------
    def add_variant(
        self,
        size,
        color,
        sku,
        price,
        stock=0,
        compare_at_price=None,
        low_stock_threshold=DEFAULT_LOW_STOCK_THRESHOLD,
    ):
        size = str(size)
        if size not in SHOE_SIZES:
            raise ValidationError({"size": [f"Unsupported shoe size {size}"]})
        if self.find_variant(size, color) is not None:
            raise ValidationError({"variants": [f"Variant {size}/{color} already exists"]})

        variant = Variant(
            size=size,
            color=color,
            sku=sku,
            price=price,
            compare_at_price=compare_at_price,
            stock=stock,
            is_active=True,
            low_stock_threshold=low_stock_threshold,
        )
        self.add_variants(variant)
        self._stock_changed()

        self.raise_(
            VariantAdded(
                product_id=self.id,
                variant_id=variant.id,
                sku=sku,
                size=size,
                color=color,
                price=price,
                stock=stock,
            )
        )
        return variant

    def find_variant(self, size, color):
        return next((v for v in self.variants if v.matches(size, color)), None)

    def get_variant(self, variant_id):
        variant = next((v for v in self.variants if str(v.id) == str(variant_id)), None)
        if variant is None:
            raise ValidationError({"variant_id": [f"Variant {variant_id} not found"]})
        return variant

    def update_variant_price(self, variant_id, new_price, compare_at_price=None):
        variant = self.get_variant(variant_id)
        previous_price = variant.price
        variant.price = new_price
        if compare_at_price is not None:
            variant.compare_at_price = compare_at_price
        self.updated_at = datetime.now(UTC)

        self.raise_(
            VariantPriceChanged(
                product_id=self.id,
                variant_id=variant.id,
                previous_price=previous_price,
                new_price=new_price,
            )
        )

    # -------------------------------------------------------------------
    # Stock
    # -------------------------------------------------------------------
    def sellable_variant(self, size, color):
        """Return the active variant for (size, color) or raise why it cannot be sold."""
        variant = self.find_variant(size, color)
        if variant is None:
            raise VariantNotFound(
                f"{self.name} is not available in size {size} / {color}",
                product_id=str(self.id),
                size=str(size),
                color=color,
            )
        if not self.is_active or not variant.is_active:
            raise InactiveVariant(
                f"{self.name} in size {size} / {color} is no longer available",
                product_id=str(self.id),
                size=str(size),
                color=color,
            )
        return variant

    def reserve_stock(self, size, color, quantity):
        """Take ``quantity`` units out of a variant; fails without touching stock."""
        variant = self.sellable_variant(size, color)
        if quantity <= 0:
            raise ValidationError({"quantity": ["Reserved quantity must be positive"]})
        if variant.stock < quantity:
            raise InsufficientStock(
                f"Only {variant.stock} left of {self.name} in size {size} / {color}",
                available=variant.stock,
                requested=quantity,
                product_id=str(self.id),
                size=str(size),
                color=color,
            )

        variant.stock -= quantity
        self._stock_changed()

        self.raise_(
            StockReserved(
                product_id=self.id,
                variant_id=variant.id,
                sku=variant.sku,
                quantity=quantity,
                remaining=variant.stock,
            )
        )
        if variant.is_low_on_stock:
            self.raise_(
                LowStockDetected(
                    product_id=self.id,
                    variant_id=variant.id,
                    product_name=self.name,
                    sku=variant.sku,
                    size=variant.size,
                    color=variant.color,
                    current_stock=variant.stock,
                    threshold=variant.low_stock_threshold,
                )
            )
        return variant

    def release_stock(self, size, color, quantity):
        """Put reserved units back. Inactive variants still take their stock back."""
        variant = self.find_variant(size, color)
        if variant is None:
            raise VariantNotFound(
                f"Cannot release stock: {self.name} has no size {size} / {color}",
                product_id=str(self.id),
                size=str(size),
                color=color,
            )
        if quantity <= 0:
            raise ValidationError({"quantity": ["Released quantity must be positive"]})

        variant.stock += quantity
        self._stock_changed()

        self.raise_(
            StockReleased(
                product_id=self.id,
                variant_id=variant.id,
                sku=variant.sku,
                quantity=quantity,
                remaining=variant.stock,
            )
        )
        return variant

    def adjust_stock(self, variant_id, quantity, reason=None):
        """Restock (positive) or write off (negative) a variant."""
        variant = self.get_variant(variant_id)
        previous = variant.stock
        if previous + quantity < 0:
            raise ValidationError({"quantity": [f"Cannot remove {-quantity} units, only {previous} in stock"]})

        variant.stock = previous + quantity
        self._stock_changed()

        self.raise_(
            StockAdjusted(
                product_id=self.id,
                variant_id=variant.id,
                sku=variant.sku,
                previous_stock=previous,
                new_stock=variant.stock,
                reason=reason,
            )
        )

    def _stock_changed(self):
        self.total_stock = sum(v.stock or 0 for v in self.variants)
        self.updated_at = datetime.now(UTC)

    # -------------------------------------------------------------------
    # Availability
    # -------------------------------------------------------------------
    def activate(self):
        if self.is_active:
            return
        self.is_active = True
        self.updated_at = datetime.now(UTC)
        self.raise_(ProductActivated(product_id=self.id))

    def deactivate(self):
        if not self.is_active:
            return
        self.is_active = False
        self.updated_at = datetime.now(UTC)
        self.raise_(ProductDeactivated(product_id=self.id))

    def activate_variant(self, variant_id):
        variant = self.get_variant(variant_id)
        if variant.is_active:
            return
        variant.is_active = True
        self.updated_at = datetime.now(UTC)
        self.raise_(VariantActivated(product_id=self.id, variant_id=variant.id))

    def deactivate_variant(self, variant_id):
        variant = self.get_variant(variant_id)
        if not variant.is_active:
            return
        variant.is_active = False
        self.updated_at = datetime.now(UTC)
        self.raise_(VariantDeactivated(product_id=self.id, variant_id=variant.id))

"""Domain events for the Product aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String

from shoestore.domain import shoestore


@shoestore.event(part_of="Product")
class ProductCreated:
    """A new shoe model was added to the catalogue."""

    __version__ = 1

    product_id: Identifier(required=True)
    name: String(required=True)
    brand: String(required=True)
    category: String(required=True)
    gender: String(required=True)
    created_at: DateTime(required=True)


@shoestore.event(part_of="Product")
class VariantAdded:
    """A purchasable size/color combination was added to a product."""

    __version__ = 1

    product_id: Identifier(required=True)
    variant_id: Identifier(required=True)
    sku: String(required=True)
    size: String(required=True)
    color: String(required=True)
    price: Float(required=True)
    stock: Integer(required=True)


@shoestore.event(part_of="Product")
class VariantPriceChanged:
    __version__ = 1

    product_id: Identifier(required=True)
    variant_id: Identifier(required=True)
    previous_price: Float(required=True)
    new_price: Float(required=True)


@shoestore.event(part_of="Product")
class StockReserved:
    """Stock was taken out of a variant for an order attempt."""

    __version__ = 1

    product_id: Identifier(required=True)
    variant_id: Identifier(required=True)
    sku: String(required=True)
    quantity: Integer(required=True)
    remaining: Integer(required=True)


@shoestore.event(part_of="Product")
class StockReleased:
    """Previously reserved stock was put back (cancellation or compensation)."""

    __version__ = 1

    product_id: Identifier(required=True)
    variant_id: Identifier(required=True)
    sku: String(required=True)
    quantity: Integer(required=True)
    remaining: Integer(required=True)


@shoestore.event(part_of="Product")
class StockAdjusted:
    """Staff restocked (or wrote off) a variant."""

    __version__ = 1

    product_id: Identifier(required=True)
    variant_id: Identifier(required=True)
    sku: String(required=True)
    previous_stock: Integer(required=True)
    new_stock: Integer(required=True)
    reason: String()


@shoestore.event(part_of="Product")
class LowStockDetected:
    """A variant's stock fell to or below its low-stock threshold."""

    __version__ = 1

    product_id: Identifier(required=True)
    variant_id: Identifier(required=True)
    product_name: String(required=True)
    sku: String(required=True)
    size: String(required=True)
    color: String(required=True)
    current_stock: Integer(required=True)
    threshold: Integer(required=True)


@shoestore.event(part_of="Product")
class ProductActivated:
    __version__ = 1

    product_id: Identifier(required=True)


@shoestore.event(part_of="Product")
class ProductDeactivated:
    __version__ = 1

    product_id: Identifier(required=True)


@shoestore.event(part_of="Product")
class VariantActivated:
    __version__ = 1

    product_id: Identifier(required=True)
    variant_id: Identifier(required=True)


@shoestore.event(part_of="Product")
class VariantDeactivated:
    __version__ = 1

    product_id: Identifier(required=True)
    variant_id: Identifier(required=True)

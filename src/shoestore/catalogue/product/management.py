"""Catalogue management: commands and handler for products and variants."""

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Float, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from shoestore.catalogue.product.product import DEFAULT_LOW_STOCK_THRESHOLD, Product
from shoestore.domain import shoestore


@shoestore.command(part_of="Product")
class CreateProduct:
    name: String(required=True, max_length=255)
    brand: String(required=True, max_length=100)
    category: String(required=True, max_length=20)
    gender: String(required=True, max_length=10)
    description: Text()
    image_url: String(max_length=500)


@shoestore.command(part_of="Product")
class AddVariant:
    product_id: Identifier(required=True)
    size: String(required=True, max_length=5)
    color: String(required=True, max_length=50)
    sku: String(required=True, max_length=50)
    price: Float(required=True, min_value=0.0)
    compare_at_price: Float()
    stock: Integer(default=0, min_value=0)
    low_stock_threshold: Integer(default=DEFAULT_LOW_STOCK_THRESHOLD, min_value=0)


@shoestore.command(part_of="Product")
class UpdateVariantPrice:
    product_id: Identifier(required=True)
    variant_id: Identifier(required=True)
    price: Float(required=True, min_value=0.0)
    compare_at_price: Float()


@shoestore.command(part_of="Product")
class AdjustStock:
    product_id: Identifier(required=True)
    variant_id: Identifier(required=True)
    quantity: Integer(required=True)
    reason: String(max_length=255)


@shoestore.command(part_of="Product")
class ChangeProductAvailability:
    product_id: Identifier(required=True)
    variant_id: Identifier()  # Blank means the whole product
    action: String(required=True, max_length=10)  # activate | deactivate


@shoestore.command_handler(part_of=Product)
class ManageProductHandler:
    @handle(CreateProduct)
    def create_product(self, command):
        product = Product.create(
            name=command.name,
            brand=command.brand,
            category=command.category,
            gender=command.gender,
            description=command.description,
            image_url=command.image_url,
        )
        current_domain.repository_for(Product).add(product)
        return str(product.id)

    @handle(AddVariant)
    def add_variant(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.get(command.product_id)
        variant = product.add_variant(
            size=command.size,
            color=command.color,
            sku=command.sku,
            price=command.price,
            stock=command.stock or 0,
            compare_at_price=command.compare_at_price,
            low_stock_threshold=command.low_stock_threshold,
        )
        repo.add(product)
        return str(variant.id)

    @handle(UpdateVariantPrice)
    def update_variant_price(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.get(command.product_id)
        product.update_variant_price(command.variant_id, command.price, command.compare_at_price)
        repo.add(product)

    @handle(AdjustStock)
    def adjust_stock(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.get(command.product_id)
        product.adjust_stock(command.variant_id, command.quantity, reason=command.reason)
        repo.add(product)
        return product.get_variant(command.variant_id).stock

    @handle(ChangeProductAvailability)
    def change_availability(self, command):
        repo = current_domain.repository_for(Product)
        if command.action not in ("activate", "deactivate"):
            raise ValidationError({"action": [f"Unknown availability action {command.action}"]})

        product = repo.get(command.product_id)

        if command.variant_id:
            if command.action == "activate":
                product.activate_variant(command.variant_id)
            else:
                product.deactivate_variant(command.variant_id)
        elif command.action == "activate":
            product.activate()
        else:
            product.deactivate()

        repo.add(product)

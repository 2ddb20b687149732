"""Read-side helpers over the product catalogue."""

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from shoestore.catalogue.product.product import Product
from shoestore.errors import NotFound


def get_product(product_id) -> Product:
    try:
        return current_domain.repository_for(Product).get(product_id)
    except ObjectNotFoundError as exc:
        raise NotFound(f"Product {product_id} not found", product_id=str(product_id)) from exc


def find_variant(product_id, size, color):
    """Return (product, variant); variant is None when the product has no such size/color."""
    product = get_product(product_id)
    return product, product.find_variant(size, color)


def list_products(brand=None, category=None, gender=None, include_inactive=False) -> list[Product]:
    filters = {}
    if not include_inactive:
        filters["is_active"] = True
    if brand:
        filters["brand"] = brand
    if category:
        filters["category"] = category
    if gender:
        filters["gender"] = gender

    query = current_domain.repository_for(Product)._dao.query
    if filters:
        query = query.filter(**filters)
    products = query.all().items
    return sorted(products, key=lambda p: (p.brand, p.name))

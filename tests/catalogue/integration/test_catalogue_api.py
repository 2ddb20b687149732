"""Integration tests for the catalogue endpoints."""

from protean.utils.globals import current_domain

from shoestore.catalogue.product.product import Product


def _create(client, staff, auth, **overrides):
    body = {"name": "Air Max 90", "brand": "Nike", "category": "sneakers", "gender": "unisex", **overrides}
    response = client.post("/products", json=body, headers=auth(staff))
    assert response.status_code == 201
    return response.json()["product_id"]


class TestCreateProduct:
    def test_staff_can_create(self, client, staff, auth):
        product_id = _create(client, staff, auth)
        product = current_domain.repository_for(Product).get(product_id)
        assert product.name == "Air Max 90"
        assert product.is_active is True

    def test_customers_are_forbidden(self, client, customer, auth):
        response = client.post(
            "/products",
            json={"name": "X", "brand": "Y", "category": "running", "gender": "men"},
            headers=auth(customer),
        )
        assert response.status_code == 403
        assert response.json()["error"]["kind"] == "Forbidden"

    def test_anonymous_is_forbidden(self, client):
        response = client.post("/products", json={"name": "X", "brand": "Y", "category": "running", "gender": "men"})
        assert response.status_code == 403

    def test_invalid_category(self, client, staff, auth):
        response = client.post(
            "/products",
            json={"name": "X", "brand": "Y", "category": "skates", "gender": "men"},
            headers=auth(staff),
        )
        assert response.status_code == 400
        assert response.json()["error"]["kind"] == "ValidationError"


class TestVariants:
    def test_add_variant_and_read_back(self, client, staff, auth):
        product_id = _create(client, staff, auth)
        response = client.post(
            f"/products/{product_id}/variants",
            json={"size": "10", "color": "White", "sku": "AM90-10-WHT", "price": 130.0, "stock": 4},
            headers=auth(staff),
        )
        assert response.status_code == 201

        detail = client.get(f"/products/{product_id}").json()
        assert detail["total_stock"] == 4
        assert detail["variants"][0]["sku"] == "AM90-10-WHT"
        assert detail["variants"][0]["in_stock"] is True

    def test_adjust_stock_returns_new_level(self, client, staff, auth, runner):
        variant = runner.find_variant("10", "Black")
        response = client.post(
            f"/products/{runner.id}/variants/{variant.id}/stock",
            json={"quantity": 7, "reason": "Delivery"},
            headers=auth(staff),
        )
        assert response.status_code == 200
        assert response.json()["stock"] == 12

    def test_deactivate_variant_hides_it_from_sale(self, client, staff, auth, runner):
        variant = runner.find_variant("10", "Black")
        response = client.put(f"/products/{runner.id}/variants/{variant.id}/deactivate", headers=auth(staff))
        assert response.status_code == 200

        detail = client.get(f"/products/{runner.id}").json()
        assert detail["variants"][0]["is_active"] is False
        assert detail["variants"][0]["in_stock"] is False


class TestBrowse:
    def test_inactive_products_are_not_listed(self, client, staff, auth, runner, boot):
        client.put(f"/products/{boot.id}/deactivate", headers=auth(staff))

        listing = client.get("/products").json()
        assert listing["count"] == 1
        assert listing["products"][0]["product_id"] == str(runner.id)

    def test_filter_by_brand(self, client, runner, boot):
        listing = client.get("/products", params={"brand": "Blundstone"}).json()
        assert [p["name"] for p in listing["products"]] == ["Chelsea Boot"]

    def test_unknown_product_is_404(self, client):
        response = client.get("/products/does-not-exist")
        assert response.status_code == 404
        assert response.json()["error"]["kind"] == "NotFound"

"""
End-to-end flows over the HTTP API: the owner onboarding scenario, bulk
delete across tenants and tenant isolation of every catalog resource.
"""
from pos_api.constants.service_code import COLLECTIONS

from .conftest import create_category, create_product


def sell(client, session, items, **extra):
    return client.post("/api/sales", json=dict(items=items, **extra), headers=session["headers"])


class TestOwnerOnboarding:

    def test_register_to_first_sale(self, client, owner_a):
        business = client.get("/api/business/profile", headers=owner_a["headers"]).get_json()["data"]
        assert business["name"] == "Test Cafe"
        assert business["subscription"]["plan"] == "BASIC"

        category = create_category(client, owner_a, "Beverages")
        product = create_product(client, owner_a, "Latte", price=5.00, stock=100, category_id=category["id"])

        response = sell(client, owner_a, [{"product_id": product["id"], "quantity": 2, "price": 5.00}], total=10.00)
        assert response.status_code == 201
        sale = response.get_json()["data"]
        assert sale["total"] == 10.0
        assert sale["items"][0]["product_name"] == "Latte"

        product = client.get(f"/api/products/{product['id']}", headers=owner_a["headers"]).get_json()["data"]
        assert product["stock"] == 98

        listed = client.get("/api/sales", headers=owner_a["headers"]).get_json()["data"]
        assert [s["id"] for s in listed] == [sale["id"]]

    def test_business_list_and_update(self, client, owner_a):
        owned = client.get("/api/business", headers=owner_a["headers"]).get_json()["data"]
        assert [b["id"] for b in owned] == [owner_a["business_id"]]

        response = client.put(
            f"/api/business/{owner_a['business_id']}",
            json={"name": "Test Cafe & Bar", "settings": {"currency": "GHS"}},
            headers=owner_a["headers"],
        )
        assert response.status_code == 200
        business = response.get_json()["data"]
        assert business["name"] == "Test Cafe & Bar"
        assert business["settings"] == {"currency": "GHS", "timezone": "UTC"}


class TestSalesOverHttp:

    def test_insufficient_stock_reports_each_line(self, client, owner_a):
        product = create_product(client, owner_a, stock=1)

        response = sell(client, owner_a, [{"product_id": product["id"], "quantity": 2}])

        body = response.get_json()
        assert response.status_code == 409
        assert body["message"] == "Transaction failed"
        assert body["errors"][0]["reason"] == "insufficient_stock"
        assert body["errors"][0]["available"] == 1

    def test_total_mismatch_is_bad_request(self, client, owner_a):
        product = create_product(client, owner_a, stock=5)

        response = sell(client, owner_a, [{"product_id": product["id"], "quantity": 1}], total=99)

        assert response.status_code == 400
        assert client.get(f"/api/products/{product['id']}", headers=owner_a["headers"]).get_json()["data"]["stock"] == 5

    def test_oversized_amounts_are_bad_request(self, client, owner_a):
        product = create_product(client, owner_a, stock=5)

        response = sell(client, owner_a, [{"product_id": product["id"], "quantity": 1}], total=1e30)
        assert response.status_code == 400
        assert "total" in response.get_json()["errors"]["json"]

        response = sell(client, owner_a, [{"product_id": product["id"], "quantity": 1, "price": 1e30}])
        assert response.status_code == 400

        response = sell(client, owner_a, [{"product_id": product["id"], "quantity": 10**9}])
        assert response.status_code == 400

        assert client.get(f"/api/products/{product['id']}", headers=owner_a["headers"]).get_json()["data"]["stock"] == 5

    def test_schema_errors_are_bad_request(self, client, owner_a):
        response = sell(client, owner_a, [])
        assert response.status_code == 400
        assert "items" in response.get_json()["errors"]["json"]

        response = client.post("/api/products", json={"price": 1}, headers=owner_a["headers"])
        assert response.status_code == 400
        assert "name" in response.get_json()["errors"]["json"]


class TestBulkDelete:

    def test_foreign_ids_are_skipped(self, client, store, owner_a, owner_b):
        mine = [create_category(client, owner_a, name)["id"] for name in ("Beverages", "Pastries")]
        foreign = create_category(client, owner_b, "Bread")["id"]

        response = client.delete(
            "/api/categories/bulk-delete", json={"ids": mine + [foreign]}, headers=owner_a["headers"]
        )

        assert response.status_code == 200
        assert response.get_json()["data"] == {"deleted": 2}
        assert store.get(COLLECTIONS["CATEGORIES"], foreign)["name"] == "Bread"
        assert all(store.get(COLLECTIONS["CATEGORIES"], i) is None for i in mine)

    def test_products_bulk_delete(self, client, owner_a):
        ids = [create_product(client, owner_a, f"P{i}")["id"] for i in range(3)]

        response = client.delete(
            "/api/products/bulk-delete", json={"ids": ids + ["missing"]}, headers=owner_a["headers"]
        )

        assert response.get_json()["data"] == {"deleted": 3}
        assert client.get("/api/products", headers=owner_a["headers"]).get_json()["data"] == []


class TestTenantIsolation:

    def test_foreign_catalog_is_never_returned(self, client, owner_a, owner_b):
        category = create_category(client, owner_a, "Beverages")
        product = create_product(client, owner_a, "Latte", stock=10)
        sale = sell(client, owner_a, [{"product_id": product["id"], "quantity": 1}]).get_json()["data"]

        for path in (
            f"/api/categories/{category['id']}",
            f"/api/products/{product['id']}",
            f"/api/sales/{sale['id']}",
        ):
            response = client.get(path, headers=owner_b["headers"])
            assert response.status_code == 403, path
            assert "data" not in response.get_json()

        assert client.put(
            f"/api/categories/{category['id']}", json={"name": "Mine now"}, headers=owner_b["headers"]
        ).status_code == 403
        assert client.put(
            f"/api/products/{product['id']}", json={"stock": 0}, headers=owner_b["headers"]
        ).status_code == 403
        assert client.delete(f"/api/categories/{category['id']}", headers=owner_b["headers"]).status_code == 403
        assert client.delete(f"/api/products/{product['id']}", headers=owner_b["headers"]).status_code == 403

        assert client.get("/api/categories", headers=owner_b["headers"]).get_json()["data"] == []
        assert client.get("/api/products", headers=owner_b["headers"]).get_json()["data"] == []
        assert client.get("/api/sales", headers=owner_b["headers"]).get_json()["data"] == []

        still = client.get(f"/api/products/{product['id']}", headers=owner_a["headers"]).get_json()["data"]
        assert still["stock"] == 9

    def test_selling_a_foreign_product(self, client, owner_a, owner_b):
        foreign = create_product(client, owner_b, "Baguette", stock=10)

        response = sell(client, owner_a, [{"product_id": foreign["id"], "quantity": 1}])

        assert response.status_code == 403
        assert response.get_json()["errors"][0]["reason"] == "cross_tenant_access"

    def test_product_cannot_reference_foreign_category(self, client, owner_a, owner_b):
        foreign = create_category(client, owner_b, "Bread")

        response = client.post(
            "/api/products",
            json={"name": "Latte", "price": 5, "category_id": foreign["id"]},
            headers=owner_a["headers"],
        )
        assert response.status_code == 403


class TestCatalogCrud:

    def test_category_update_and_delete(self, client, owner_a):
        category = create_category(client, owner_a, "Beverages")

        response = client.put(
            f"/api/categories/{category['id']}", json={"color": "#ff0000"}, headers=owner_a["headers"]
        )
        assert response.get_json()["data"]["color"] == "#ff0000"

        assert client.put(
            f"/api/categories/{category['id']}", json={}, headers=owner_a["headers"]
        ).status_code == 400

        assert client.delete(f"/api/categories/{category['id']}", headers=owner_a["headers"]).status_code == 200
        assert client.get(f"/api/categories/{category['id']}", headers=owner_a["headers"]).status_code == 404

    def test_product_update_and_category_filter(self, client, owner_a):
        drinks = create_category(client, owner_a, "Beverages")
        latte = create_product(client, owner_a, "Latte", category_id=drinks["id"])
        create_product(client, owner_a, "Croissant")

        response = client.put(f"/api/products/{latte['id']}", json={"price": 6.5}, headers=owner_a["headers"])
        assert response.get_json()["data"]["price"] == 6.5

        filtered = client.get(
            "/api/products", query_string={"category_id": drinks["id"]}, headers=owner_a["headers"]
        ).get_json()["data"]
        assert [p["name"] for p in filtered] == ["Latte"]


class TestBusinessDelete:

    def test_delete_keeps_catalog_without_cascade(self, client, store, owner_a):
        product = create_product(client, owner_a)

        response = client.delete(f"/api/business/{owner_a['business_id']}", headers=owner_a["headers"])

        assert response.status_code == 200
        assert store.get(COLLECTIONS["BUSINESSES"], owner_a["business_id"]) is None
        assert store.get(COLLECTIONS["PRODUCTS"], product["id"]) is not None
        assert store.get(COLLECTIONS["USERS"], owner_a["uid"])["role"] == "user"

    def test_cascade_removes_catalog_and_sales(self, client, store, owner_a):
        product = create_product(client, owner_a, stock=5)
        create_category(client, owner_a)
        sell(client, owner_a, [{"product_id": product["id"], "quantity": 1}])

        response = client.delete(
            f"/api/business/{owner_a['business_id']}",
            query_string={"cascade": "true"},
            headers=owner_a["headers"],
        )

        assert response.status_code == 200
        assert response.get_json()["data"] == {"sales": 1, "products": 1, "categories": 1}
        for name in ("SALES", "PRODUCTS", "CATEGORIES"):
            assert store.count(COLLECTIONS[name], [("business_id", "==", owner_a["business_id"])]) == 0

    def test_old_token_cannot_write_into_deleted_business(self, client, store, owner_a):
        """Tokens issued before the delete still claim the business; the claim is ignored."""
        product = create_product(client, owner_a, stock=5)
        business_id = owner_a["business_id"]

        response = client.delete(f"/api/business/{business_id}", headers=owner_a["headers"])
        assert response.status_code == 200

        created = client.post("/api/products", json={"name": "Mocha", "price": 4.5, "stock": 3},
                              headers=owner_a["headers"])
        assert created.status_code == 403
        assert created.get_json()["message"] == "No business associated with user"

        sale = sell(client, owner_a, [{"product_id": product["id"], "quantity": 1}])
        assert sale.status_code == 403

        category = client.post("/api/categories", json={"name": "Snacks"}, headers=owner_a["headers"])
        assert category.status_code == 403

        assert store.count(COLLECTIONS["PRODUCTS"], [("business_id", "==", business_id)]) == 1
        assert store.count(COLLECTIONS["SALES"], [("business_id", "==", business_id)]) == 0
        assert store.get(COLLECTIONS["PRODUCTS"], product["id"])["stock"] == 5

    def test_only_owner_can_delete(self, client, owner_a, owner_b):
        response = client.delete(f"/api/business/{owner_a['business_id']}", headers=owner_b["headers"])
        assert response.status_code == 403


def test_health_check(client):
    response = client.get("/")
    assert response.status_code == 200
    assert "healthy" in response.get_json()["message"]

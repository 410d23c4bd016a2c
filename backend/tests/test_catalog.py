"""
Departments, categories and products.

Verifies:
- soft deletes keep rows retrievable by id but out of active listings
- category and product codes are unique
- a product's category must belong to its department
- stockQuantity is set on create only; updates cannot change it
"""

import pytest
from sqlalchemy import update

from retailstock.extensions import db
from retailstock.models import Category, Product
from retailstock.services import products_service


class TestDepartments:
    def test_crud(self, client, admin_headers):
        resp = client.post("/api/departments", json={"name": "Toys", "description": "Games"},
                           headers=admin_headers)
        assert resp.status_code == 201
        dept_id = resp.json["id"]

        resp = client.put(f"/api/departments/{dept_id}", json={"name": "Toys & Games"}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["name"] == "Toys & Games"
        assert resp.json["description"] == "Games"

        assert client.get(f"/api/departments/{dept_id}", headers=admin_headers).json["isActive"] is True

    def test_blank_name_rejected(self, client, admin_headers):
        resp = client.post("/api/departments", json={"name": "   "}, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json["field"] == "name"

    def test_unknown_field_rejected(self, client, admin_headers):
        resp = client.post("/api/departments", json={"name": "Toys", "colour": "red"}, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json["field"] == "colour"

    def test_soft_delete_keeps_children(self, client, admin_headers, department, category, product):
        assert client.delete(f"/api/departments/{department}", headers=admin_headers).status_code == 200

        listed = client.get("/api/departments", headers=admin_headers).json
        assert department not in [d["id"] for d in listed["items"]]
        listed = client.get("/api/departments?includeInactive=true", headers=admin_headers).json
        assert department in [d["id"] for d in listed["items"]]

        resp = client.get(f"/api/departments/{department}", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["isActive"] is False

        # Children are untouched
        assert client.get(f"/api/categories/{category}", headers=admin_headers).json["isActive"] is True
        resp = client.get(f"/api/products/{product}", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["isActive"] is True
        assert resp.json["stockQuantity"] == 10

        # ...but they drop out of active listings
        listed = client.get("/api/products", headers=admin_headers).json
        assert product not in [p["id"] for p in listed["items"]]
        listed = client.get(f"/api/products?departmentId={department}", headers=admin_headers).json
        assert listed["count"] == 0
        listed = client.get("/api/categories", headers=admin_headers).json
        assert category not in [c["id"] for c in listed["items"]]

        listed = client.get("/api/products?includeInactive=true", headers=admin_headers).json
        assert product in [p["id"] for p in listed["items"]]
        listed = client.get("/api/categories?includeInactive=true", headers=admin_headers).json
        assert category in [c["id"] for c in listed["items"]]

    def test_missing(self, client, admin_headers):
        assert client.get("/api/departments/4242", headers=admin_headers).status_code == 404
        assert client.put("/api/departments/4242", json={"name": "x"}, headers=admin_headers).status_code == 404
        assert client.delete("/api/departments/4242", headers=admin_headers).status_code == 404


class TestCategories:
    def test_create_and_filter(self, client, admin_headers, department, other_department, category):
        resp = client.post(
            "/api/categories",
            json={"name": "Screws", "code": "SCREWS", "departmentId": other_department},
            headers=admin_headers,
        )
        assert resp.status_code == 201

        resp = client.get(f"/api/categories?departmentId={department}", headers=admin_headers)
        assert [c["code"] for c in resp.json["items"]] == ["DAIRY"]

    def test_duplicate_code(self, client, admin_headers, department, category):
        resp = client.post(
            "/api/categories",
            json={"name": "Dairy again", "code": "DAIRY", "departmentId": department},
            headers=admin_headers,
        )
        assert resp.status_code == 409

    def test_unknown_department(self, client, admin_headers, db_session):
        resp = client.post(
            "/api/categories",
            json={"name": "Orphans", "code": "ORPH", "departmentId": 4242},
            headers=admin_headers,
        )
        assert resp.status_code == 404

    def test_parent_in_other_department(self, client, admin_headers, category, other_department):
        resp = client.post(
            "/api/categories",
            json={"name": "Nails", "code": "NAILS", "departmentId": other_department, "parentId": category},
            headers=admin_headers,
        )
        assert resp.status_code == 400
        assert resp.json["field"] == "parentId"

    def test_cannot_be_own_parent(self, client, admin_headers, category):
        resp = client.put(f"/api/categories/{category}", json={"parentId": category}, headers=admin_headers)
        assert resp.status_code == 400

    def test_soft_delete(self, client, admin_headers, category, product):
        assert client.delete(f"/api/categories/{category}", headers=admin_headers).status_code == 200
        db.session.expire_all()
        assert db.session.get(Category, category).is_active is False
        assert db.session.get(Product, product).is_active is True


class TestProducts:
    def _payload(self, department, category, **overrides):
        payload = {
            "name": "Yoghurt",
            "code": "YOG-500",
            "price": "1.99",
            "stockQuantity": 6,
            "minStockLevel": 2,
            "departmentId": department,
            "categoryId": category,
        }
        payload.update(overrides)
        return payload

    def test_create(self, client, admin_headers, admin_user, department, category):
        resp = client.post("/api/products", json=self._payload(department, category), headers=admin_headers)
        assert resp.status_code == 201
        assert resp.json["price"] == "1.99"
        assert resp.json["stockQuantity"] == 6
        assert resp.json["lowStock"] is False

        ledger = client.get(f"/api/products/{resp.json['id']}/ledger", headers=admin_headers).json
        assert ledger["items"][0]["sourceType"] == "opening"
        assert ledger["items"][0]["delta"] == 6
        assert ledger["items"][0]["userId"] == admin_user.id

    def test_stock_defaults_to_zero(self, client, admin_headers, department, category):
        payload = self._payload(department, category)
        del payload["stockQuantity"]
        resp = client.post("/api/products", json=payload, headers=admin_headers)
        assert resp.status_code == 201
        assert resp.json["stockQuantity"] == 0

    @pytest.mark.parametrize("missing", ["name", "code", "price", "departmentId", "categoryId"])
    def test_required_fields(self, client, admin_headers, department, category, missing):
        payload = self._payload(department, category)
        del payload[missing]
        resp = client.post("/api/products", json=payload, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json["field"] == missing

    @pytest.mark.parametrize("stock", [-1, 2**31, 10**19])
    def test_out_of_range_opening_stock(self, client, admin_headers, department, category, stock):
        resp = client.post(
            "/api/products", json=self._payload(department, category, stockQuantity=stock), headers=admin_headers
        )
        assert resp.status_code == 400
        assert resp.json["field"] == "stockQuantity"

    def test_duplicate_code(self, client, admin_headers, department, category, product):
        resp = client.post(
            "/api/products", json=self._payload(department, category, code="MILK-1L"), headers=admin_headers
        )
        assert resp.status_code == 409

    def test_category_from_other_department(self, client, admin_headers, category, other_department):
        resp = client.post(
            "/api/products", json=self._payload(other_department, category), headers=admin_headers
        )
        assert resp.status_code == 400
        assert resp.json["field"] == "categoryId"

    def test_update_cannot_touch_stock(self, client, admin_headers, product, stock_of):
        resp = client.put(f"/api/products/{product}", json={"stockQuantity": 500}, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json["field"] == "stockQuantity"
        assert stock_of(product) == 10

    def test_update(self, client, admin_headers, product):
        resp = client.put(
            f"/api/products/{product}",
            json={"price": "2.75", "minStockLevel": 12},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        assert resp.json["price"] == "2.75"
        assert resp.json["lowStock"] is True
        assert resp.json["stockQuantity"] == 10

    def test_update_after_stock_change(self, client, admin_headers, product):
        client.post("/api/sales", json={"productId": product, "quantity": 1}, headers=admin_headers)
        resp = client.put(f"/api/products/{product}", json={"name": "Milk 1L (new)"}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["stockQuantity"] == 9

    def _bump_version_on_load(self, monkeypatch, *, times):
        """Make another writer commit a stock change right after each of the first `times` loads."""
        original = products_service.apply_product_patch
        calls = []

        def patch_after_concurrent_write(p, patch):
            calls.append(p.id)
            if len(calls) <= times:
                db.session.execute(
                    update(Product)
                    .where(Product.id == p.id)
                    .values(version_id=Product.version_id + 1)
                    .execution_options(synchronize_session=False)
                )
            original(p, patch)

        monkeypatch.setattr(products_service, "apply_product_patch", patch_after_concurrent_write)
        return calls

    def test_update_retried_on_version_conflict(self, client, admin_headers, product, monkeypatch):
        calls = self._bump_version_on_load(monkeypatch, times=1)
        resp = client.put(f"/api/products/{product}", json={"name": "Milk 1L (new)"}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["name"] == "Milk 1L (new)"
        assert len(calls) == 2

    def test_update_conflict_after_retries(self, client, admin_headers, product, monkeypatch):
        calls = self._bump_version_on_load(monkeypatch, times=3)
        resp = client.put(f"/api/products/{product}", json={"name": "Milk 1L (new)"}, headers=admin_headers)
        assert resp.status_code == 409
        assert len(calls) == 3
        assert client.get(f"/api/products/{product}", headers=admin_headers).json["name"] == "Milk 1L"

    def test_ledger_limit(self, client, admin_headers, product):
        client.post("/api/sales", json={"productId": product, "quantity": 1}, headers=admin_headers)
        resp = client.get(f"/api/products/{product}/ledger?limit=1", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["count"] == 1
        assert resp.json["items"][0]["sourceType"] == "sale"

    @pytest.mark.parametrize("limit", ["0", "-1", "abc"])
    def test_ledger_invalid_limit(self, client, admin_headers, product, limit):
        resp = client.get(f"/api/products/{product}/ledger?limit={limit}", headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json["field"] == "limit"

    def test_filters(self, client, admin_headers, department, category, product):
        client.post(
            "/api/products",
            json=self._payload(department, category, stockQuantity=50),
            headers=admin_headers,
        )
        client.put(f"/api/products/{product}", json={"minStockLevel": 10}, headers=admin_headers)

        resp = client.get("/api/products?lowStock=true", headers=admin_headers)
        assert [p["code"] for p in resp.json["items"]] == ["MILK-1L"]

        resp = client.get(f"/api/products?departmentId={department}&categoryId={category}", headers=admin_headers)
        assert resp.json["count"] == 2

        resp = client.get("/api/products?page=1&per_page=1", headers=admin_headers)
        assert resp.json["count"] == 1
        assert resp.json["pagination"]["total"] == 2
        assert resp.json["pagination"]["has_next"] is True

    def test_soft_delete(self, client, admin_headers, product):
        assert client.delete(f"/api/products/{product}", headers=admin_headers).status_code == 200
        assert client.get("/api/products", headers=admin_headers).json["count"] == 0
        assert client.get("/api/products?includeInactive=true", headers=admin_headers).json["count"] == 1
        assert client.get(f"/api/products/{product}", headers=admin_headers).json["isActive"] is False

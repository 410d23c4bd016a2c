"""
Purchase, sale and stock movement recording.

Verifies:
- totals are computed server-side; client totals and user ids are ignored
- the product's department is used, and a mismatching departmentId is rejected
- inactive or missing products are rejected before anything is written
- movement reasons must match the direction
- a rejected stock-out leaves no transaction row behind
"""

import pytest

from retailstock.extensions import db
from retailstock.models import Purchase, Sale, StockMovement


class TestPurchases:
    def test_total_computed_server_side(self, client, admin_headers, admin_user, product, department):
        resp = client.post(
            "/api/purchases",
            json={
                "productId": product,
                "quantity": 3,
                "unitCost": "1.25",
                "totalCost": "999.99",
                "userId": 4242,
                "supplierName": "Dairy Co",
            },
            headers=admin_headers,
        )
        assert resp.status_code == 201
        body = resp.json["purchase"]
        assert body["totalCost"] == "3.75"
        assert body["unitCost"] == "1.25"
        assert body["userId"] == admin_user.id
        assert body["departmentId"] == department
        assert body["supplierName"] == "Dairy Co"
        assert resp.json["product"]["stockQuantity"] == 13

    def test_missing_required_fields(self, client, admin_headers, product):
        resp = client.post("/api/purchases", json={"productId": product}, headers=admin_headers)
        assert resp.status_code == 400
        assert "quantity" in resp.json["error"]

    @pytest.mark.parametrize("quantity", [0, -1, 1.5, "abc", True, 2**31, 10**19, "10000000000000000000"])
    def test_invalid_quantity(self, client, admin_headers, product, stock_of, quantity):
        resp = client.post(
            "/api/purchases",
            json={"productId": product, "quantity": quantity, "unitCost": "1.00"},
            headers=admin_headers,
        )
        assert resp.status_code == 400
        assert resp.json["field"] == "quantity"
        assert stock_of(product) == 10

    @pytest.mark.parametrize("unit_cost", ["-1.00", "abc", "10000000.00"])
    def test_invalid_unit_cost(self, client, admin_headers, product, unit_cost):
        resp = client.post(
            "/api/purchases",
            json={"productId": product, "quantity": 1, "unitCost": unit_cost},
            headers=admin_headers,
        )
        assert resp.status_code == 400
        assert resp.json["field"] == "unitCost"

    def test_total_overflow_rejected(self, client, admin_headers, product):
        resp = client.post(
            "/api/purchases",
            json={"productId": product, "quantity": 1000, "unitCost": "9999999.99"},
            headers=admin_headers,
        )
        assert resp.status_code == 400
        assert db.session.query(Purchase).count() == 0

    def test_unknown_product(self, client, admin_headers, db_session):
        resp = client.post(
            "/api/purchases",
            json={"productId": 4242, "quantity": 1, "unitCost": "1.00"},
            headers=admin_headers,
        )
        assert resp.status_code == 404

    def test_department_mismatch(self, client, admin_headers, product, other_department, stock_of):
        resp = client.post(
            "/api/purchases",
            json={"productId": product, "quantity": 1, "unitCost": "1.00", "departmentId": other_department},
            headers=admin_headers,
        )
        assert resp.status_code == 400
        assert resp.json["field"] == "departmentId"
        assert stock_of(product) == 10
        assert db.session.query(Purchase).count() == 0

    def test_inactive_product(self, client, admin_headers, product):
        client.delete(f"/api/products/{product}", headers=admin_headers)
        resp = client.post(
            "/api/purchases",
            json={"productId": product, "quantity": 1, "unitCost": "1.00"},
            headers=admin_headers,
        )
        assert resp.status_code == 400
        assert resp.json["field"] == "productId"

    def test_list_newest_first_and_get(self, client, admin_headers, product, department, other_department):
        for qty in (1, 2, 3):
            client.post(
                "/api/purchases",
                json={"productId": product, "quantity": qty, "unitCost": "1.00"},
                headers=admin_headers,
            )

        resp = client.get(f"/api/purchases?departmentId={department}", headers=admin_headers)
        assert [p["quantity"] for p in resp.json["items"]] == [3, 2, 1]
        assert resp.json["items"][0]["productName"] == "Milk 1L"

        resp = client.get(f"/api/purchases?departmentId={other_department}", headers=admin_headers)
        assert resp.json["count"] == 0

        first_id = client.get("/api/purchases", headers=admin_headers).json["items"][-1]["id"]
        resp = client.get(f"/api/purchases/{first_id}", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["id"] == first_id
        assert client.get("/api/purchases/4242", headers=admin_headers).status_code == 404


class TestSales:
    def test_unit_price_defaults_to_product_price(self, client, admin_headers, product):
        resp = client.post("/api/sales", json={"productId": product, "quantity": 4}, headers=admin_headers)
        assert resp.status_code == 201
        assert resp.json["sale"]["unitPrice"] == "2.50"
        assert resp.json["sale"]["totalPrice"] == "10.00"
        assert resp.json["product"]["stockQuantity"] == 6

    def test_client_total_ignored(self, client, admin_headers, product):
        resp = client.post(
            "/api/sales",
            json={"productId": product, "quantity": 2, "unitPrice": "3.10", "totalPrice": "0.01"},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        assert resp.json["sale"]["totalPrice"] == "6.20"

    def test_oversell_rejected_without_row(self, client, admin_headers, product, stock_of):
        resp = client.post("/api/sales", json={"productId": product, "quantity": 11}, headers=admin_headers)
        assert resp.status_code == 409
        assert resp.json["code"] == "INSUFFICIENT_STOCK"
        assert resp.json["available"] == 10
        assert db.session.query(Sale).count() == 0
        assert stock_of(product) == 10

    def test_sell_exact_stock(self, client, admin_headers, product, stock_of):
        resp = client.post("/api/sales", json={"productId": product, "quantity": 10}, headers=admin_headers)
        assert resp.status_code == 201
        assert stock_of(product) == 0

    def test_get_sale(self, client, admin_headers, product):
        sale_id = client.post(
            "/api/sales", json={"productId": product, "quantity": 1}, headers=admin_headers
        ).json["sale"]["id"]
        resp = client.get(f"/api/sales/{sale_id}", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["productId"] == product
        assert client.get("/api/sales/4242", headers=admin_headers).status_code == 404


class TestStockMovements:
    @pytest.mark.parametrize(
        "movement_type,reason,expected",
        [
            ("in", "return", 13),
            ("in", "audit_adjustment", 13),
            ("out", "damaged", 7),
            ("out", "shop_use", 7),
        ],
    )
    def test_direction(self, client, admin_headers, product, movement_type, reason, expected):
        resp = client.post(
            "/api/stock-movements",
            json={"productId": product, "type": movement_type, "quantity": 3, "reason": reason, "notes": "x"},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        assert resp.json["movement"]["type"] == movement_type
        assert resp.json["product"]["stockQuantity"] == expected

    @pytest.mark.parametrize(
        "movement_type,reason",
        [("in", "damaged"), ("out", "return"), ("out", "stolen"), ("sideways", "return")],
    )
    def test_invalid_reason_or_type(self, client, admin_headers, product, movement_type, reason):
        resp = client.post(
            "/api/stock-movements",
            json={"productId": product, "type": movement_type, "quantity": 1, "reason": reason},
            headers=admin_headers,
        )
        assert resp.status_code == 400
        assert resp.json["field"] in ("type", "reason")

    def test_stock_out_is_not_clamped(self, client, admin_headers, product, stock_of):
        resp = client.post(
            "/api/stock-movements",
            json={"productId": product, "type": "out", "quantity": 50, "reason": "lost"},
            headers=admin_headers,
        )
        assert resp.status_code == 409
        assert stock_of(product) == 10
        assert db.session.query(StockMovement).count() == 0

    def test_oversized_quantity_rejected(self, client, admin_headers, product, stock_of):
        resp = client.post(
            "/api/stock-movements",
            json={"productId": product, "type": "in", "quantity": 10**19, "reason": "return"},
            headers=admin_headers,
        )
        assert resp.status_code == 400
        assert resp.json["field"] == "quantity"
        assert stock_of(product) == 10
        assert db.session.query(StockMovement).count() == 0

    def test_list_filters_and_limit(self, client, admin_headers, product, department):
        for reason in ("return", "promotional"):
            client.post(
                "/api/stock-movements",
                json={"productId": product, "type": "in", "quantity": 1, "reason": reason},
                headers=admin_headers,
            )

        resp = client.get(
            f"/api/stock-movements?departmentId={department}&productId={product}&limit=1",
            headers=admin_headers,
        )
        assert resp.status_code == 200
        assert resp.json["count"] == 1
        assert resp.json["items"][0]["reason"] == "promotional"

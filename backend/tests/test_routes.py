# Overview: Pytest coverage for the HTTP API through the Flask test client.

from conftest import sale_body


class TestProductRoutes:

    def test_create_and_fetch(self, client, db_session):
        resp = client.post("/api/products", json={
            "barcode": "555",
            "name": "Rice 5kg",
            "category": "Grocery",
            "quantity": 4,
            "cost_price": 8,
            "selling_price": "11.5",
        })
        assert resp.status_code == 201
        assert resp.json["success"] is True
        assert resp.json["product"]["selling_price"] == "11.50"

        resp = client.get("/api/products/barcode/555")
        assert resp.status_code == 200
        assert resp.json["name"] == "Rice 5kg"
        assert resp.json["quantity"] == 4

    def test_duplicate_is_400(self, client, milk):
        resp = client.post("/api/products", json={"barcode": "111", "name": "Again"})
        assert resp.status_code == 400
        assert resp.json["error"] == "Product with this barcode already exists"

    def test_validation_error_is_400(self, client, db_session):
        resp = client.post("/api/products", json={"barcode": "1", "name": "x", "quantity": -3})
        assert resp.status_code == 400
        assert "quantity" in resp.json["error"]

    def test_amount_too_large_to_round_is_400(self, client, db_session):
        resp = client.post("/api/products", json={"barcode": "1", "name": "x", "selling_price": "1e30"})
        assert resp.status_code == 400
        assert "selling_price" in resp.json["error"]
        assert client.get("/api/products").json == []

    def test_unknown_barcode_is_404(self, client, db_session):
        resp = client.get("/api/products/barcode/nope")
        assert resp.status_code == 404
        assert resp.json["error"] == "Product not found"

    def test_list_sorted_by_name(self, client, milk, bread):
        resp = client.get("/api/products")
        assert resp.status_code == 200
        assert [p["name"] for p in resp.json] == ["Bread", "Milk"]

    def test_update(self, client, milk):
        resp = client.put("/api/products/111", json={"quantity": 9, "selling_price": "10.25"})
        assert resp.status_code == 200
        assert resp.json["product"]["quantity"] == 9

        resp = client.put("/api/products/nope", json={"name": "x"})
        assert resp.status_code == 404

        resp = client.put("/api/products/111", json={"barcode": "999"})
        assert resp.status_code == 400

    def test_receive_and_history(self, client, milk):
        resp = client.post("/api/products/111/receive", json={"quantity": 3, "notes": "Delivery"})
        assert resp.status_code == 200
        assert resp.json["product"]["quantity"] == 8

        resp = client.post("/api/products/111/receive", json={"quantity": 0})
        assert resp.status_code == 400

        resp = client.get("/api/products/111/history")
        assert resp.status_code == 200
        assert [e["transaction_type"] for e in resp.json["items"]] == ["RECEIVE", "RECEIVE"]
        assert resp.json["items"][0]["notes"] == "Delivery"

        resp = client.get("/api/products/111/history?type=SALE")
        assert resp.json["items"] == []

    def test_delete(self, client, milk):
        resp = client.delete("/api/products/111")
        assert resp.status_code == 200

        assert client.get("/api/products/barcode/111").status_code == 404
        assert client.delete("/api/products/111").status_code == 404
        assert client.get("/api/products").json == []


class TestSaleRoutes:

    def test_complete_sale(self, client, milk):
        body = sale_body(
            (milk, 2),
            payment_amount=25,
            subtotal="20.00", tax="1.00", total="21.00", change_amount="4.00",
        )

        resp = client.post("/api/sales", json=body)

        assert resp.status_code == 201
        assert resp.json["success"] is True
        sale_id = resp.json["sale_id"]

        resp = client.get(f"/api/sales/{sale_id}")
        assert resp.status_code == 200
        assert resp.json["total"] == "21.00"
        assert resp.json["change_amount"] == "4.00"
        assert resp.json["items"][0]["quantity"] == 2

        resp = client.get(f"/api/sales/{sale_id}/items")
        assert [i["barcode"] for i in resp.json] == ["111"]

        assert client.get("/api/products/barcode/111").json["quantity"] == 3

    def test_default_tax_rate_applies(self, client, milk):
        body = sale_body((milk, 1), payment_amount=20)
        del body["tax_percent"]

        resp = client.post("/api/sales", json=body)

        assert resp.status_code == 201
        sale = client.get(f"/api/sales/{resp.json['sale_id']}").json
        assert sale["tax"] == "0.50"
        assert sale["tax_percent"] == "5.00"

    def test_fractional_tax_rate_is_not_rounded(self, client, milk):
        body = sale_body(
            (milk, 5),
            payment_amount=220,
            tax_percent="7.125",
            subtotal="200.00", tax="14.25", total="214.25", change_amount="5.75",
        )
        body["items"][0]["unit_price"] = "40.00"

        resp = client.post("/api/sales", json=body)

        assert resp.status_code == 201, resp.json
        sale = client.get(f"/api/sales/{resp.json['sale_id']}").json
        assert sale["tax"] == "14.25"
        assert sale["tax_percent"] == "7.125"

    def test_tax_rate_with_too_many_places(self, client, milk):
        body = sale_body((milk, 1), payment_amount=20, tax_percent="7.12345")
        resp = client.post("/api/sales", json=body)
        assert resp.status_code == 400
        assert "tax_percent" in resp.json["error"]

    def test_empty_cart(self, client, db_session):
        resp = client.post("/api/sales", json={"items": [], "payment_amount": 10})
        assert resp.status_code == 400
        assert resp.json["error"] == "Cart is empty"

    def test_insufficient_payment(self, client, milk):
        resp = client.post("/api/sales", json=sale_body((milk, 2), payment_amount="20.99"))
        assert resp.status_code == 400
        assert resp.json["error"] == "Insufficient payment amount"
        assert client.get("/api/sales").json == []

    def test_totals_mismatch(self, client, milk):
        body = sale_body((milk, 1), payment_amount=20, total="10.00")
        resp = client.post("/api/sales", json=body)
        assert resp.status_code == 400
        assert "total" in resp.json["error"]

    def test_stock_exceeded_is_409(self, client, bread):
        resp = client.post("/api/sales", json=sale_body((bread, 3), payment_amount=50))
        assert resp.status_code == 409
        assert resp.json["details"]["barcode"] == "222"
        assert client.get("/api/products/barcode/222").json["quantity"] == 1

    def test_malformed_item(self, client, milk):
        body = sale_body((milk, 1), payment_amount=20)
        body["items"][0]["quantity"] = "two"
        assert client.post("/api/sales", json=body).status_code == 400

    def test_quantity_over_limit_is_400(self, client, milk):
        body = sale_body((milk, 10**20), payment_amount=20)
        body["items"][0]["unit_price"] = "0"

        resp = client.post("/api/sales", json=body)

        assert resp.status_code == 400
        assert "quantity" in resp.json["error"]
        assert client.get("/api/sales").json == []
        # nothing left half-open: the next sale goes through
        assert client.post("/api/sales", json=sale_body((milk, 1), payment_amount=20)).status_code == 201

    def test_payment_too_large_to_round_is_400(self, client, milk):
        resp = client.post("/api/sales", json=sale_body((milk, 1), payment_amount="1e30"))
        assert resp.status_code == 400
        assert "payment_amount" in resp.json["error"]

    def test_list_with_dates(self, client, milk):
        client.post("/api/sales", json=sale_body((milk, 1), payment_amount=20))

        assert len(client.get("/api/sales").json) == 1
        assert client.get("/api/sales?from_date=2000-01-01&to_date=2000-01-02").json == []

        resp = client.get("/api/sales?from_date=2026-05-01&to_date=2026-04-01")
        assert resp.status_code == 400

    def test_missing_sale(self, client, db_session):
        assert client.get("/api/sales/999").status_code == 404
        assert client.get("/api/sales/999/items").status_code == 404


class TestReportRoutes:

    def test_profit(self, client, milk):
        client.post("/api/sales", json=sale_body((milk, 2), payment_amount=25))

        resp = client.get("/api/reports/profit")

        assert resp.status_code == 200
        assert resp.json["summary"]["total_profit"] == "8.00"
        assert resp.json["summary"]["profit_margin"] == "40.00"

    def test_low_stock_uses_configured_threshold(self, client, milk, bread):
        resp = client.get("/api/reports/low-stock")
        assert resp.json["summary"]["low_stock_items"] == 2

    def test_bad_dates(self, client, db_session):
        resp = client.get("/api/reports/sales?from_date=yesterday")
        assert resp.status_code == 400

    def test_unknown_kind(self, client, db_session):
        assert client.get("/api/reports/weekly").status_code == 404


def test_health(client, db_session):
    resp = client.get("/api/health")
    assert resp.status_code == 200
    assert resp.json["status"] == "healthy"
    assert resp.json["checks"]["database"]["details"]["products"] == 0

"""
HTTP API tests.

Verifies:
- Unauthenticated requests return 401; staff is denied admin operations (403)
- Checkout, service sales, reversal, cash movements and period close over HTTP
- Error bodies carry the error code
"""

from datetime import datetime

import pytest

from cashdesk.extensions import db
from cashdesk.models import Sale
from cashdesk.services import pricing_service
from cashdesk.services.qr_service import encode_product_ref

from conftest import reload


# =============================================================================
# UNAUTHENTICATED ACCESS - 401
# =============================================================================


class TestUnauthenticatedAccess:

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/products"),
            ("POST", "/api/sales"),
            ("GET", "/api/sales"),
            ("POST", "/api/scan/decode"),
            ("GET", "/api/cash-movements"),
            ("GET", "/api/register/drawer"),
            ("POST", "/api/register/close-day"),
            ("GET", "/api/membership-prices"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_unknown_token(self, client, db_session):
        resp = client.get("/api/products", headers={"Authorization": "Bearer nope"})
        assert resp.status_code == 401


# =============================================================================
# STAFF DENIED ADMIN OPERATIONS - 403
# =============================================================================


class TestStaffDenied:

    @pytest.mark.parametrize(
        "method,path",
        [
            ("POST", "/api/products"),
            ("PATCH", "/api/products/1/price"),
            ("DELETE", "/api/products/1"),
            ("PATCH", "/api/sales/1/lines/1"),
            ("DELETE", "/api/sales/1"),
            ("GET", "/api/register/day-report"),
            ("POST", "/api/register/close-day"),
            ("GET", "/api/register/month-summary"),
            ("POST", "/api/register/consolidate-month"),
            ("PUT", "/api/membership-prices/playroom/v12"),
        ],
    )
    def test_admin_only(self, client, staff_headers, method, path):
        resp = getattr(client, method.lower())(path, json={}, headers=staff_headers)
        assert resp.status_code == 403
        assert resp.json["required_role"] == "admin"


class TestPublicEndpoints:

    def test_health(self, client, register):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json["status"] == "healthy"


# =============================================================================
# CATALOG
# =============================================================================


class TestProducts:

    def test_create_list_and_search(self, client, admin_headers, staff_headers):
        resp = client.post(
            "/api/products",
            json={"name": "Water 600 ml", "price_cents": 1200, "stock": 30},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        client.post("/api/products", json={"name": "Milk 1 L", "price_cents": 3200}, headers=admin_headers)

        resp = client.get("/api/products?search=WAT", headers=staff_headers)
        assert resp.status_code == 200
        assert [p["name"] for p in resp.json["products"]] == ["Water 600 ml"]

    def test_invalid_price(self, client, admin_headers):
        resp = client.post("/api/products", json={"name": "X", "price_cents": "12.5"}, headers=admin_headers)
        assert resp.status_code == 400

    def test_replenish_with_cost_records_purchase(self, client, admin_headers, register, water):
        resp = client.post(
            f"/api/products/{water.id}/replenish",
            json={"quantity": 12, "cost_cents": 9000},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        assert resp.json["product"]["stock"] == 42

        drawer = client.get("/api/register/drawer", headers=admin_headers).json["drawer"]
        assert drawer["manual_outflows_cents"] == 9000
        assert drawer["drawer_balance_cents"] == -9000

    def test_qr_payload_and_decode(self, client, staff_headers, water):
        payload = client.get(f"/api/products/{water.id}/qr", headers=staff_headers).json["payload"]
        assert payload == encode_product_ref(water)

        resp = client.post("/api/scan/decode", json={"payload": payload}, headers=staff_headers)
        assert resp.status_code == 200
        assert resp.json["product"]["name"] == "Water 600 ml"

    def test_decode_garbage(self, client, staff_headers):
        resp = client.post("/api/scan/decode", json={"payload": "hello"}, headers=staff_headers)
        assert resp.status_code == 404
        assert resp.json["code"] == "PRODUCT_NOT_FOUND"

    def test_missing_product(self, client, admin_headers):
        resp = client.patch("/api/products/999999/price", json={"price_cents": 100}, headers=admin_headers)
        assert resp.status_code == 404


# =============================================================================
# SALES
# =============================================================================


class TestSales:

    def test_checkout_with_lines_and_scans(self, client, staff_headers, register, water, milk):
        label = encode_product_ref(milk)
        resp = client.post(
            "/api/sales",
            json={
                "lines": [{"product_id": water.id, "quantity": 2}],
                "scans": [label, label],
                "payment_method": "drawer",
                "amount_tendered_cents": 10000,
            },
            headers=staff_headers,
        )
        assert resp.status_code == 201
        sale = resp.json["sale"]
        # Duplicate scan inside the debounce window counts once
        assert [(l["name"], l["quantity"]) for l in sale["lines"]] == [("Water 600 ml", 2), ("Milk 1 L", 1)]
        assert sale["total_cents"] == 5600
        assert sale["change_due_cents"] == 4400
        assert reload(milk).stock == 17

    def test_insufficient_payment(self, client, staff_headers, register, water):
        resp = client.post(
            "/api/sales",
            json={"lines": [{"product_id": water.id}], "amount_tendered_cents": 1199},
            headers=staff_headers,
        )
        assert resp.status_code == 400
        assert resp.json["code"] == "INSUFFICIENT_PAYMENT"
        assert resp.json["retryable"] is False

    def test_insufficient_stock(self, client, staff_headers, register, make_product):
        product = make_product("Chips 45 g", 1700, 5)
        resp = client.post(
            "/api/sales",
            json={
                "lines": [{"product_id": product.id, "quantity": 3}, {"product_id": product.id, "quantity": 3}],
                "amount_tendered_cents": 20000,
            },
            headers=staff_headers,
        )
        assert resp.status_code == 409
        assert resp.json["code"] == "INSUFFICIENT_STOCK"
        assert reload(product).stock == 5

    def test_missing_tender(self, client, staff_headers, register, water):
        resp = client.post("/api/sales", json={"lines": [{"product_id": water.id}]}, headers=staff_headers)
        assert resp.status_code == 400

    def test_overlong_note(self, client, staff_headers, register, water):
        resp = client.post(
            "/api/sales",
            json={"lines": [{"product_id": water.id}], "amount_tendered_cents": 1200, "note": "n" * 300},
            headers=staff_headers,
        )
        assert resp.status_code == 400
        assert "note" in resp.json["error"]
        assert reload(water).stock == 30

    def test_service_sale(self, client, staff_headers, register):
        resp = client.post(
            "/api/sales/service",
            json={
                "items": [{"name": "Playroom 12 visits", "unit_price_cents": 8000}],
                "discount_pct": 25,
                "discount_reason": "Birthday",
                "payment_method": "transfer",
                "amount_tendered_cents": 6000,
            },
            headers=staff_headers,
        )
        assert resp.status_code == 201
        assert resp.json["sale"]["total_cents"] == 6000
        assert resp.json["sale"]["note"] == "Discount 25%: Birthday"

    def test_sales_log(self, client, staff_headers, register, water):
        client.post(
            "/api/sales",
            json={"lines": [{"product_id": water.id}], "amount_tendered_cents": 1200},
            headers=staff_headers,
        )
        resp = client.get("/api/sales?period=week", headers=staff_headers)
        assert resp.status_code == 200
        assert resp.json["ticket_count"] == 1
        assert resp.json["drawer_total_cents"] == 1200

        assert client.get("/api/sales?period=year", headers=staff_headers).status_code == 400

    def test_admin_reversal(self, client, admin_headers, staff_headers, register, water, milk):
        sale = client.post(
            "/api/sales",
            json={
                "lines": [{"product_id": water.id, "quantity": 2}, {"product_id": milk.id, "quantity": 1}],
                "amount_tendered_cents": 10000,
            },
            headers=staff_headers,
        ).json["sale"]
        line_id = sale["lines"][0]["id"]

        resp = client.patch(f"/api/sales/{sale['id']}/lines/{line_id}", json={"quantity": 0}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["restored_units"] == 2
        assert resp.json["sale"]["total_cents"] == 3200
        assert reload(water).stock == 30

        resp = client.delete(f"/api/sales/{sale['id']}", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["restored_units"] == 1
        assert reload(milk).stock == 18
        assert client.get(f"/api/sales/{sale['id']}", headers=admin_headers).status_code == 404


# =============================================================================
# CASH AND REGISTER
# =============================================================================


class TestCashAndRegister:

    def test_cash_movement_updates_drawer(self, client, staff_headers, register):
        resp = client.post(
            "/api/cash-movements",
            json={"kind": "inflow", "concept": "Change fund", "amount": "500.00"},
            headers=staff_headers,
        )
        assert resp.status_code == 201
        assert resp.json["movement"]["amount_cents"] == 50000
        assert resp.json["drawer"]["drawer_balance_cents"] == 50000

        listed = client.get("/api/cash-movements", headers=staff_headers).json["movements"]
        assert [m["concept"] for m in listed] == ["Change fund"]

    def test_invalid_movement(self, client, staff_headers, register):
        resp = client.post(
            "/api/cash-movements",
            json={"kind": "gift", "concept": "x", "amount_cents": 100},
            headers=staff_headers,
        )
        assert resp.status_code == 400

    def test_close_day_requires_confirm(self, client, admin_headers, register):
        resp = client.post("/api/register/close-day", json={}, headers=admin_headers)
        assert resp.status_code == 400

    def test_close_day(self, client, admin_headers, staff_headers, register, water):
        client.post(
            "/api/sales",
            json={"lines": [{"product_id": water.id}], "amount_tendered_cents": 1200},
            headers=staff_headers,
        )
        resp = client.post("/api/register/close-day", json={"confirm": True}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["register"]["opening_balance_cents"] == 1200
        assert resp.json["report"]["totals"]["sale_count"] == 1

        db.session.expire_all()
        assert db.session.query(Sale).count() == 0

    def test_day_report_csv(self, client, admin_headers, register):
        resp = client.get("/api/register/day-report?format=csv", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.mimetype == "text/csv"
        assert '"Product","Units sold","Revenue"' in resp.get_data(as_text=True)

    def test_month_summary_and_consolidation(self, client, admin_headers, register, water):
        from cashdesk.services.cart_service import CartSession
        from cashdesk.services.sales_service import finalize_sale

        session = CartSession()
        session.add_manual(water, 1)
        finalize_sale(session.cart, "drawer", 1200, now=datetime(2025, 9, 15, 12))

        resp = client.get("/api/register/month-summary?month=2025-09", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["summary"]["drawer_sales_cents"] == 1200

        assert client.get("/api/register/month-summary?month=sept", headers=admin_headers).status_code == 400

        resp = client.post(
            "/api/register/consolidate-month",
            json={"month": "2025-09", "confirm": True},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        assert '"Drawer sales","12.00"' in resp.json["csv"]
        assert resp.json["sales_purged"] == 1
        assert resp.json["movements_purged"] == 0

        db.session.expire_all()
        assert db.session.query(Sale).count() == 0


class TestMembershipPrices:

    def test_table_and_update(self, client, admin_headers, staff_headers, db_session):
        pricing_service.seed_default_prices()

        table = client.get("/api/membership-prices", headers=staff_headers).json["prices"]
        assert table["playroom"]["v12"] == 8000
        assert table["therapy"]["pack8"] == 280000

        resp = client.put("/api/membership-prices/playroom/v12", json={"price_cents": 8500}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["price"]["updated_by"] == "admin"
        assert pricing_service.get_price("playroom", "v12") == 8500

    def test_invalid_price(self, client, admin_headers, db_session):
        resp = client.put("/api/membership-prices/playroom/v12", json={"price_cents": -1}, headers=admin_headers)
        assert resp.status_code == 400

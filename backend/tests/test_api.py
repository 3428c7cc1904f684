"""
HTTP surface tests.

Verifies:
- Unauthenticated requests return 401, wrong roles 403
- Envelope shape for success, validation (422), business (400), 404 and 409
- End-to-end order flow through the API
"""

import pytest

from backoffice.extensions import db
from backoffice.models import InventoryRecord

TEST_PASSWORD = "Password123!"

API = "/api/v1"


def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def _data(resp):
    body = resp.get_json()
    assert body["success"] is True, body
    return body["data"]


class TestUnauthenticatedAccess:

    @pytest.mark.parametrize("method,path", [
        ("GET", f"{API}/products"),
        ("POST", f"{API}/orders"),
        ("PATCH", f"{API}/orders/1/status"),
        ("POST", f"{API}/inventory/1/adjust"),
        ("POST", f"{API}/purchase-orders/1/receive"),
        ("GET", f"{API}/invoices"),
        ("GET", f"{API}/auth/me"),
    ])
    def test_requires_auth(self, client, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"
        assert resp.get_json()["success"] is False

    def test_bogus_token(self, client):
        resp = client.get(f"{API}/products", headers=auth_headers("not-a-real-token"))
        assert resp.status_code == 401

    def test_health_is_public(self, client):
        resp = client.get(f"{API}/health")
        assert resp.status_code == 200
        assert _data(resp)["status"] == "ok"


class TestAuthFlow:

    def test_login_me_logout(self, client, sales_user):
        resp = client.post(f"{API}/auth/login", json={"email": "sales@test.local", "password": TEST_PASSWORD})
        assert resp.status_code == 200
        token = _data(resp)["token"]

        me = client.get(f"{API}/auth/me", headers=auth_headers(token))
        assert _data(me)["role"] == "sales"

        assert client.post(f"{API}/auth/logout", headers=auth_headers(token)).status_code == 200
        assert client.get(f"{API}/auth/me", headers=auth_headers(token)).status_code == 401

    def test_wrong_password(self, client, sales_user):
        resp = client.post(f"{API}/auth/login", json={"email": "sales@test.local", "password": "Wrong123!"})
        assert resp.status_code == 401
        assert resp.get_json() == {"success": False, "message": "Invalid email or password"}

    def test_deactivated_user_token_stops_working(self, client, sales_user, sales_headers):
        sales_user.is_active = False
        db.session.commit()
        assert client.get(f"{API}/auth/me", headers=sales_headers).status_code == 401


class TestRoleChecks:

    def test_sales_cannot_adjust_stock(self, client, sales_headers, make_product):
        product = make_product()
        resp = client.post(
            f"{API}/inventory/{product.id}/adjust",
            json={"transaction_type": "adjustment", "quantity_change": 5},
            headers=sales_headers,
        )
        assert resp.status_code == 403
        assert resp.get_json() == {"success": False, "message": "Insufficient permissions"}

    def test_warehouse_cannot_create_orders(self, client, warehouse_headers, customer, make_product):
        product = make_product()
        resp = client.post(
            f"{API}/orders",
            json={"customer_id": customer.id, "items": [{"product_id": product.id, "quantity": 1}]},
            headers=warehouse_headers,
        )
        assert resp.status_code == 403

    def test_sales_cannot_receive_purchase_orders(self, client, sales_headers):
        resp = client.post(
            f"{API}/purchase-orders/1/receive",
            json={"items": [{"id": 1, "quantity_received": 1}]},
            headers=sales_headers,
        )
        assert resp.status_code == 403

    def test_every_role_can_read(self, client, warehouse_headers, make_product):
        make_product()
        resp = client.get(f"{API}/products", headers=warehouse_headers)
        assert resp.status_code == 200
        assert resp.get_json()["meta"]["total"] == 1


class TestErrorEnvelopes:

    def test_validation_error_lists_fields(self, client, sales_headers, customer):
        resp = client.post(
            f"{API}/orders",
            json={"customer_id": customer.id, "items": []},
            headers=sales_headers,
        )
        assert resp.status_code == 422
        body = resp.get_json()
        assert body["success"] is False
        assert body["message"] == "Validation error"
        assert body["errors"][0]["field"] == "items"

    def test_not_found(self, client, sales_headers):
        resp = client.get(f"{API}/orders/999999", headers=sales_headers)
        assert resp.status_code == 404
        assert resp.get_json() == {"success": False, "message": "Order not found"}

    def test_unknown_route(self, client):
        assert client.get(f"{API}/nope").status_code == 404

    def test_invalid_transition(self, client, sales_headers, customer, make_product):
        product = make_product()
        order = _data(client.post(
            f"{API}/orders",
            json={"customer_id": customer.id, "items": [{"product_id": product.id, "quantity": 1}]},
            headers=sales_headers,
        ))
        resp = client.patch(f"{API}/orders/{order['id']}/status", json={"status": "shipped"}, headers=sales_headers)
        assert resp.status_code == 400
        assert resp.get_json()["message"] == "Cannot transition order from draft to shipped"

    def test_insufficient_stock_on_adjust(self, client, warehouse_headers, make_product):
        product = make_product(on_hand=3)
        resp = client.post(
            f"{API}/inventory/{product.id}/adjust",
            json={"transaction_type": "write_off", "quantity_change": -4},
            headers=warehouse_headers,
        )
        assert resp.status_code == 400
        assert resp.get_json()["success"] is False

    def test_duplicate_sku(self, client, warehouse_headers, make_product):
        make_product("DUP-1")
        resp = client.post(f"{API}/products", json={"sku": "DUP-1", "name": "Again"}, headers=warehouse_headers)
        assert resp.status_code == 409

    def test_nan_in_number_field(self, client, sales_headers, customer, make_product):
        product = make_product()
        body = (
            '{"customer_id": %d, "items": [{"product_id": %d, "quantity": 1, "discount_pct": NaN}]}'
            % (customer.id, product.id)
        )
        resp = client.post(f"{API}/orders", data=body, content_type="application/json", headers=sales_headers)
        assert resp.status_code == 422
        assert resp.get_json()["errors"][0]["field"] == "items[0].discount_pct"

    def test_out_of_range_timestamp(self, client, warehouse_headers, supplier, make_product):
        product = make_product()
        resp = client.post(
            f"{API}/purchase-orders",
            json={
                "supplier_id": supplier.id,
                "expected_date": 10 ** 30,
                "items": [{"product_id": product.id, "quantity_ordered": 1}],
            },
            headers=warehouse_headers,
        )
        assert resp.status_code == 422
        assert resp.get_json()["errors"][0]["field"] == "expected_date"


class TestOrderFlow:

    def test_confirm_ship_invoice(self, client, sales_headers, admin_headers, customer, make_product):
        product = make_product(on_hand=50, price=1000)

        created = client.post(
            f"{API}/orders",
            json={
                "customer_id": customer.id,
                "discount_cents": 200,
                "tax_cents": 50,
                "items": [{"product_id": product.id, "quantity": 3, "discount_pct": 10}],
            },
            headers=sales_headers,
        )
        assert created.status_code == 201
        order = _data(created)
        assert order["status"] == "draft"
        assert order["total_cents"] == 2550
        assert order["items"][0]["line_total_cents"] == 2700

        confirmed = _data(client.patch(
            f"{API}/orders/{order['id']}/status", json={"status": "confirmed"}, headers=sales_headers
        ))
        assert isinstance(confirmed["ordered_at"], int)

        stock = _data(client.get(f"{API}/inventory/{product.id}", headers=sales_headers))
        assert (stock["quantity_on_hand"], stock["quantity_reserved"], stock["quantity_available"]) == (50, 3, 47)

        invoice = client.post(f"{API}/orders/{order['id']}/invoice", headers=sales_headers)
        assert invoice.status_code == 201
        assert _data(invoice)["total_cents"] == 2550

        again = client.post(f"{API}/orders/{order['id']}/invoice", headers=sales_headers)
        assert again.status_code == 409

        for status in ("processing", "shipped"):
            resp = client.patch(f"{API}/orders/{order['id']}/status", json={"status": status}, headers=admin_headers)
            assert resp.status_code == 200

        db.session.expire_all()
        record = db.session.query(InventoryRecord).filter_by(product_id=product.id).one()
        assert (record.quantity_on_hand, record.quantity_reserved) == (47, 0)

        ledger = _data(client.get(f"{API}/inventory/{product.id}/transactions", headers=sales_headers))
        assert [row["transaction_type"] for row in ledger] == ["sale", "reservation", "adjustment"]

    def test_create_product_with_opening_stock(self, client, warehouse_headers):
        resp = client.post(
            f"{API}/products",
            json={"sku": "NEW-1", "name": "New thing", "unit_price_cents": 1500, "opening_quantity": 12},
            headers=warehouse_headers,
        )
        assert resp.status_code == 201
        product = _data(resp)
        assert product["quantity_on_hand"] == 12
        assert product["unit"] == "unit"


class TestPurchaseOrderFlow:

    def test_create_send_receive(self, client, warehouse_headers, supplier, make_product):
        product = make_product(on_hand=0, cost=300)
        po = _data(client.post(
            f"{API}/purchase-orders",
            json={"supplier_id": supplier.id, "items": [{"product_id": product.id, "quantity_ordered": 10}]},
            headers=warehouse_headers,
        ))
        assert po["total_cents"] == 3000

        client.patch(f"{API}/purchase-orders/{po['id']}/status", json={"status": "sent"}, headers=warehouse_headers)

        line_id = po["items"][0]["id"]
        partial = _data(client.post(
            f"{API}/purchase-orders/{po['id']}/receive",
            json={"items": [{"id": line_id, "quantity_received": 4}]},
            headers=warehouse_headers,
        ))
        assert partial["status"] == "partial"

        over = client.post(
            f"{API}/purchase-orders/{po['id']}/receive",
            json={"items": [{"id": line_id, "quantity_received": 7}]},
            headers=warehouse_headers,
        )
        assert over.status_code == 400

        done = _data(client.post(
            f"{API}/purchase-orders/{po['id']}/receive",
            json={"items": [{"id": line_id, "quantity_received": 6}]},
            headers=warehouse_headers,
        ))
        assert done["status"] == "received"
        assert done["received_at"] is not None


class TestProductRoutes:

    def test_update_and_delete(self, client, warehouse_headers, make_product):
        product = make_product("EDIT-1")

        updated = _data(client.put(
            f"{API}/products/{product.id}",
            json={"name": "Edited", "reorder_point": 4},
            headers=warehouse_headers,
        ))
        assert updated["name"] == "Edited"
        assert updated["reorder_point"] == 4

        assert client.delete(f"{API}/products/{product.id}", headers=warehouse_headers).status_code == 200
        assert client.get(f"{API}/products/{product.id}", headers=warehouse_headers).status_code == 404

    def test_update_sku_conflict(self, client, warehouse_headers, make_product):
        make_product("TAKEN-1")
        other = make_product("OTHER-1")
        resp = client.put(f"{API}/products/{other.id}", json={"sku": "TAKEN-1"}, headers=warehouse_headers)
        assert resp.status_code == 409

    def test_low_stock_report(self, client, sales_headers, make_product):
        make_product(on_hand=20, reorder_point=5)
        short = make_product(on_hand=3, reorder_point=5)
        empty = make_product(on_hand=0, reorder_point=5)

        rows = _data(client.get(f"{API}/inventory/low-stock", headers=sales_headers))

        assert [r["id"] for r in rows] == [empty.id, short.id]
        assert rows[0]["quantity_on_hand"] == 0


class TestShipmentFlow:

    def _shipped_order(self, client, sales_headers, admin_headers, customer, product):
        order = _data(client.post(
            f"{API}/orders",
            json={"customer_id": customer.id, "items": [{"product_id": product.id, "quantity": 2}]},
            headers=sales_headers,
        ))
        for status in ("confirmed", "processing", "shipped"):
            client.patch(f"{API}/orders/{order['id']}/status", json={"status": status}, headers=admin_headers)
        return order

    def test_deliver_shipment_delivers_order(
        self, client, sales_headers, admin_headers, warehouse_headers, customer, make_product
    ):
        order = self._shipped_order(client, sales_headers, admin_headers, customer, make_product())

        created = client.post(
            f"{API}/shipments",
            json={"order_id": order["id"], "carrier": "DHL"},
            headers=warehouse_headers,
        )
        assert created.status_code == 201
        shipment = _data(created)
        assert shipment["status"] == "pending"

        dispatched = _data(client.patch(
            f"{API}/shipments/{shipment['id']}/status",
            json={"status": "dispatched", "tracking_number": "TRK-1"},
            headers=warehouse_headers,
        ))
        assert isinstance(dispatched["shipped_at"], int)

        delivered = _data(client.patch(
            f"{API}/shipments/{shipment['id']}/status",
            json={"status": "delivered"},
            headers=warehouse_headers,
        ))
        assert isinstance(delivered["actual_delivery"], int)

        assert _data(client.get(f"{API}/orders/{order['id']}", headers=sales_headers))["status"] == "delivered"

        listed = client.get(f"{API}/shipments?order_id={order['id']}", headers=sales_headers)
        assert listed.get_json()["meta"]["total"] == 1

    def test_sales_cannot_create_shipments(self, client, sales_headers):
        resp = client.post(f"{API}/shipments", json={"order_id": 1}, headers=sales_headers)
        assert resp.status_code == 403

    def test_unknown_status_is_rejected(self, client, warehouse_headers):
        resp = client.patch(f"{API}/shipments/1/status", json={"status": "lost"}, headers=warehouse_headers)
        assert resp.status_code == 422


class TestSupplierCatalogRoutes:

    def test_add_list_remove(self, client, warehouse_headers, supplier, make_product):
        product = make_product()
        url = f"{API}/suppliers/{supplier.id}/products"

        resp = client.post(
            url,
            json={"product_id": product.id, "supplier_sku": "WS-9", "cost_price_cents": 310, "lead_time_days": 3},
            headers=warehouse_headers,
        )
        assert resp.status_code == 201
        catalog = _data(resp)
        assert catalog[0]["min_order_quantity"] == 1
        assert catalog[0]["is_preferred"] is False

        assert [e["product_id"] for e in _data(client.get(url, headers=warehouse_headers))] == [product.id]

        assert client.delete(f"{url}/{product.id}", headers=warehouse_headers).status_code == 200
        assert _data(client.get(url, headers=warehouse_headers)) == []
        assert client.delete(f"{url}/{product.id}", headers=warehouse_headers).status_code == 404

    def test_min_order_quantity_must_be_positive(self, client, warehouse_headers, supplier, make_product):
        product = make_product()
        resp = client.post(
            f"{API}/suppliers/{supplier.id}/products",
            json={"product_id": product.id, "min_order_quantity": 0},
            headers=warehouse_headers,
        )
        assert resp.status_code == 422


class TestUserAdministration:

    def test_admin_manages_users(self, client, admin_headers):
        created = client.post(
            f"{API}/users",
            json={"name": "New Hire", "email": "Hire@Test.Local", "password": TEST_PASSWORD, "role": "sales"},
            headers=admin_headers,
        )
        assert created.status_code == 201
        user = _data(created)
        assert user["email"] == "hire@test.local"

        login = client.post(f"{API}/auth/login", json={"email": "hire@test.local", "password": TEST_PASSWORD})
        token = _data(login)["token"]

        updated = _data(client.put(f"{API}/users/{user['id']}", json={"role": "warehouse"}, headers=admin_headers))
        assert updated["role"] == "warehouse"
        assert updated["name"] == "New Hire"

        assert client.delete(f"{API}/users/{user['id']}", headers=admin_headers).status_code == 200
        assert client.get(f"{API}/auth/me", headers=auth_headers(token)).status_code == 401
        assert _data(client.get(f"{API}/users/{user['id']}", headers=admin_headers))["is_active"] is False

    def test_duplicate_email(self, client, admin_headers, sales_user):
        resp = client.post(
            f"{API}/users",
            json={"name": "Copy", "email": "sales@test.local", "password": TEST_PASSWORD, "role": "sales"},
            headers=admin_headers,
        )
        assert resp.status_code == 409

    def test_unknown_role(self, client, admin_headers):
        resp = client.post(
            f"{API}/users",
            json={"name": "Odd", "email": "odd@test.local", "password": TEST_PASSWORD, "role": "root"},
            headers=admin_headers,
        )
        assert resp.status_code == 422

    def test_non_admins_are_refused(self, client, sales_headers, warehouse_headers):
        assert client.get(f"{API}/users", headers=sales_headers).status_code == 403
        assert client.delete(f"{API}/users/1", headers=warehouse_headers).status_code == 403


class TestProfile:

    def test_change_name_and_password(self, client, sales_user, sales_headers):
        resp = client.put(
            f"{API}/auth/me",
            json={"name": "Sally Sales", "password": "Changed456!"},
            headers=sales_headers,
        )
        assert _data(resp)["name"] == "Sally Sales"

        old = client.post(f"{API}/auth/login", json={"email": "sales@test.local", "password": TEST_PASSWORD})
        assert old.status_code == 401
        new = client.post(f"{API}/auth/login", json={"email": "sales@test.local", "password": "Changed456!"})
        assert new.status_code == 200

    def test_weak_password(self, client, sales_headers):
        resp = client.put(f"{API}/auth/me", json={"password": "short"}, headers=sales_headers)
        assert resp.status_code == 422

    def test_role_cannot_be_self_assigned(self, client, sales_headers):
        resp = client.put(f"{API}/auth/me", json={"role": "admin"}, headers=sales_headers)
        assert resp.status_code == 422
        assert _data(client.get(f"{API}/auth/me", headers=sales_headers))["role"] == "sales"


class TestCustomerHistoryRoutes:

    def test_orders_and_invoices(self, client, sales_headers, customer, make_product):
        product = make_product()
        order = _data(client.post(
            f"{API}/orders",
            json={"customer_id": customer.id, "items": [{"product_id": product.id, "quantity": 1}]},
            headers=sales_headers,
        ))
        client.patch(f"{API}/orders/{order['id']}/status", json={"status": "confirmed"}, headers=sales_headers)
        client.post(f"{API}/orders/{order['id']}/invoice", headers=sales_headers)

        orders = _data(client.get(f"{API}/customers/{customer.id}/orders", headers=sales_headers))
        assert [o["id"] for o in orders] == [order["id"]]
        assert "items" not in orders[0]

        invoices = _data(client.get(f"{API}/customers/{customer.id}/invoices", headers=sales_headers))
        assert [i["order_id"] for i in invoices] == [order["id"]]

    def test_unknown_customer(self, client, sales_headers):
        assert client.get(f"{API}/customers/9999/orders", headers=sales_headers).status_code == 404

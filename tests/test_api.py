"""HTTP tests for the staff and customer apps."""

from http import HTTPStatus

from tableflow.device_session import now_ms
from tableflow.error_catalog import (
    ACCESS_EXPIRED,
    AUTH_REQUIRED,
    INVALID_PAYLOAD,
    ROLE_FORBIDDEN,
    TABLE_OCCUPIED,
)

CART = {"items": [{"id": 10, "qty": 2, "price": 5.00}], "total": 11.00}


class TestStaffApi:
    def test_health(self, staff_client):
        response = staff_client.get("/health")

        assert response.status_code == 200
        assert response.get_json()["status"] == "ok"

    def test_requires_token(self, staff_client):
        response = staff_client.post("/api/tables/3/orders", json=CART)

        assert response.status_code == HTTPStatus.UNAUTHORIZED
        assert response.get_json()["code"] == AUTH_REQUIRED

    def test_invalid_token_is_anonymous(self, staff_client):
        response = staff_client.get(
            "/api/tables", headers={"Authorization": "Bearer not-a-token"}
        )

        assert response.status_code == HTTPStatus.UNAUTHORIZED

    def test_cashier_creates_order(self, staff_client, auth_headers):
        response = staff_client.post(
            "/api/tables/3/orders", json=CART, headers=auth_headers("cashier")
        )

        assert response.status_code == HTTPStatus.CREATED
        body = response.get_json()
        assert body["success"] is True
        assert body["data"]["table_id"] == 3
        assert body["data"]["created_by"] == "cashier-1"

    def test_staff_ignores_customer_hints(self, staff_client, auth_headers):
        payload = dict(CART, validationData={"tableAccessTimestamp": 1, "originalTableId": 9})

        response = staff_client.post(
            "/api/tables/3/orders", json=payload, headers=auth_headers("cashier")
        )

        assert response.status_code == HTTPStatus.CREATED

    def test_kitchen_cannot_create_orders(self, staff_client, auth_headers):
        response = staff_client.post(
            "/api/tables/3/orders", json=CART, headers=auth_headers("kitchen")
        )

        assert response.status_code == HTTPStatus.FORBIDDEN
        assert response.get_json()["code"] == ROLE_FORBIDDEN

    def test_invalid_body(self, staff_client, auth_headers):
        response = staff_client.post(
            "/api/tables/3/orders", json={"items": []}, headers=auth_headers("cashier")
        )

        assert response.status_code == HTTPStatus.BAD_REQUEST
        body = response.get_json()
        assert body["code"] == INVALID_PAYLOAD
        assert body["details"]["details"]

    def test_occupied_table(self, staff_client, auth_headers, place_order):
        place_order(table_id=3)

        response = staff_client.post(
            "/api/tables/3/orders", json=CART, headers=auth_headers("cashier")
        )

        assert response.status_code == HTTPStatus.CONFLICT
        assert response.get_json()["code"] == TABLE_OCCUPIED

    def test_order_workflow(self, staff_client, auth_headers, place_order):
        order = place_order()
        kitchen = auth_headers("kitchen")

        queue = staff_client.get("/api/kitchen/orders", headers=kitchen)
        assert [o["id"] for o in queue.get_json()["data"]] == [order["id"]]
        assert queue.headers["Cache-Control"].startswith("no-cache")

        cooking = staff_client.post(
            f"/api/orders/{order['id']}/status", json={"status": "cooking"}, headers=kitchen
        )
        assert cooking.status_code == HTTPStatus.OK
        assert cooking.get_json()["data"]["timestamps"]["kitchen_received"] is not None

        paid = staff_client.post(
            f"/api/orders/{order['id']}/status",
            json={"status": "paid"},
            headers=auth_headers("cashier", "cashier-7"),
        )
        assert paid.get_json()["data"]["paid_by"] == "cashier-7"

        tables = staff_client.get("/api/tables", headers=auth_headers("cashier"))
        assert tables.get_json()["data"][0]["status"] == "empty"

    def test_unknown_status_code(self, staff_client, auth_headers, place_order):
        order = place_order()

        response = staff_client.post(
            f"/api/orders/{order['id']}/status",
            json={"status": "lost"},
            headers=auth_headers("waiter"),
        )

        assert response.status_code == HTTPStatus.BAD_REQUEST
        assert response.get_json()["code"] == "ORDER_003"

    def test_void_endpoint(self, staff_client, auth_headers, place_order):
        order = place_order()
        item_id = order["items"][0]["id"]

        response = staff_client.post(
            f"/api/order-items/{item_id}/void",
            json={"reason": "wrong dish"},
            headers=auth_headers("cashier"),
        )

        assert response.status_code == HTTPStatus.OK
        detail = staff_client.get(f"/api/orders/{order['id']}", headers=auth_headers("admin"))
        assert detail.get_json()["data"]["items"][0]["voided"] is True

    def test_table_request_flag(self, staff_client, auth_headers, place_order):
        place_order()

        response = staff_client.post(
            "/api/tables/3/status", json={"status": "needs_bill"}, headers=auth_headers("waiter")
        )

        assert response.status_code == HTTPStatus.OK
        assert response.get_json()["data"]["status"] == "needs_bill"

    def test_waiter_assignment_endpoints(self, staff_client, auth_headers, place_order):
        place_order(table_id=4)
        waiter = auth_headers("waiter", "waiter-9")

        available = staff_client.get("/api/tables/available", headers=waiter)
        assert [t["id"] for t in available.get_json()["data"]] == [4]

        claimed = staff_client.post("/api/tables/4/assignment", headers=waiter)
        assert claimed.status_code == HTTPStatus.CREATED

        mine = staff_client.get("/api/waiters/me/tables", headers=waiter)
        assert [t["id"] for t in mine.get_json()["data"]] == [4]

        taken = staff_client.post(
            "/api/tables/4/assignment", headers=auth_headers("waiter", "waiter-2")
        )
        assert taken.status_code == HTTPStatus.CONFLICT

        released = staff_client.delete("/api/tables/4/assignment", headers=waiter)
        assert released.status_code == HTTPStatus.OK

    def test_audit_logs_are_admin_only(self, staff_client, auth_headers, place_order):
        place_order()

        forbidden = staff_client.get("/api/audit-logs", headers=auth_headers("cashier"))
        allowed = staff_client.get("/api/audit-logs?limit=10", headers=auth_headers("admin"))

        assert forbidden.status_code == HTTPStatus.FORBIDDEN
        assert allowed.status_code == HTTPStatus.OK
        assert allowed.get_json()["data"][0]["action"] == "order.create"

    def test_unknown_route_is_json(self, staff_client):
        response = staff_client.get("/api/nothing-here")

        assert response.status_code == HTTPStatus.NOT_FOUND
        assert response.get_json()["success"] is False


class TestCustomerApi:
    def test_scan_then_order_locks_device(self, customer_client):
        access = customer_client.get("/api/tables/3/access")
        assert access.status_code == HTTPStatus.OK
        assert access.get_json()["data"]["original_table_id"] is None

        created = customer_client.post("/api/tables/3/orders", json=CART)
        assert created.status_code == HTTPStatus.CREATED

        again = customer_client.get("/api/tables/3/access")
        assert again.get_json()["data"]["original_table_id"] == 3

    def test_locked_device_is_redirected(self, customer_client, count_orders):
        customer_client.get("/api/tables/3/access")
        customer_client.post("/api/tables/3/orders", json=CART)

        response = customer_client.post("/api/tables/7/orders", json=CART)

        assert response.status_code == HTTPStatus.SEE_OTHER
        body = response.get_json()
        assert body["status"] == "redirect"
        assert body["redirect_to_table"] == 3
        assert count_orders(7) == 0

    def test_session_lock_applies_when_body_omits_original_table(
        self, customer_client, count_orders
    ):
        customer_client.get("/api/tables/3/access")
        customer_client.post("/api/tables/3/orders", json=CART)
        payload = dict(
            CART,
            validationData={"deviceFingerprint": "abc123", "tableAccessTimestamp": now_ms()},
        )

        response = customer_client.post("/api/tables/7/orders", json=payload)

        assert response.status_code == HTTPStatus.SEE_OTHER
        assert response.get_json()["redirect_to_table"] == 3
        assert count_orders(7) == 0

    def test_stale_validation_data_is_rejected(self, customer_client, count_orders):
        payload = dict(
            CART,
            validationData={
                "deviceFingerprint": "abc123",
                "tableAccessTimestamp": now_ms() - 11 * 60 * 1000,
                "originalTableId": 0,
            },
        )

        response = customer_client.post("/api/tables/3/orders", json=payload)

        assert response.status_code == HTTPStatus.FORBIDDEN
        assert response.get_json()["code"] == ACCESS_EXPIRED
        assert count_orders() == 0

    def test_active_order_hides_voided_items(self, customer_client, place_order, admin):
        from tableflow.services.order_service import void_order_item

        items = [{"id": 10, "qty": 1, "price": 5}, {"id": 11, "qty": 1, "price": 5}]
        order = place_order(items=items, total="10.00")
        void_order_item(order["items"][0]["id"], "spilled", admin)

        response = customer_client.get("/api/tables/3/order")

        assert [item["menu_item_id"] for item in response.get_json()["data"]["items"]] == [11]

    def test_receipt(self, customer_client, place_order):
        order = place_order()

        response = customer_client.get(f"/api/orders/{order['id']}/receipt")

        assert response.status_code == HTTPStatus.OK
        assert response.get_json()["data"]["total"] == 11.0

    def test_call_waiter_and_request_bill(self, customer_client, place_order, fetch_table):
        customer_client.get("/api/tables/3/access")
        place_order()

        assistance = customer_client.post("/api/tables/3/assistance")
        assert assistance.status_code == HTTPStatus.OK
        assert fetch_table(3).status == "needs_assistance"

        bill = customer_client.post("/api/tables/3/bill")
        assert bill.status_code == HTTPStatus.OK
        assert fetch_table(3).status == "needs_bill"

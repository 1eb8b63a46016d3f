"""Tests for order creation, reads, receipts and the incomplete-order sweep."""

from datetime import timedelta
from decimal import Decimal
from http import HTTPStatus

import pytest
from sqlalchemy.exc import OperationalError

from tableflow.constants import OrderStatus, TableStatus
from tableflow.datetime_utils import utcnow
from tableflow.db import get_session
from tableflow.device_session import TableAccessValidation, now_ms
from tableflow.error_catalog import (
    ACCESS_EXPIRED,
    INVALID_PAYLOAD,
    ORDER_NOT_FOUND,
    TABLE_NOT_ASSIGNED,
    TABLE_OCCUPIED,
)
from tableflow.models import MenuItem, Order, OrderItem, RestaurantTable
from tableflow.services import order_service
from tableflow.services.order_service import (
    create_order,
    get_active_order,
    get_order,
    get_order_receipt,
    list_kitchen_orders,
    sweep_incomplete_orders,
    update_status,
    void_order_item,
)
from tableflow.services.table_service import Occupancy, OccupancyCheck
from tableflow.services.waiter_assignment_service import assign_table

SAMPLE_CART = [{"id": 10, "qty": 2, "price": 5.00}]


class TestCreateOrder:
    def test_creates_order_and_occupies_table(self, cashier, fetch_table, fetch_order):
        response, status = create_order(3, SAMPLE_CART, 11.00, actor=cashier)

        assert status == HTTPStatus.CREATED
        assert response["success"] is True
        order_id = response["data"]["id"]

        table = fetch_table(3)
        assert table.status == TableStatus.OCCUPIED.value
        assert table.current_order_id == order_id

        order = fetch_order(order_id)
        assert order.status == OrderStatus.PENDING.value
        assert order.total_price == Decimal("11.00")
        assert order.created_by == "cashier-1"
        assert order.started_at is not None
        assert len(order.items) == 1
        assert order.items[0].menu_item_id == 10
        assert order.items[0].quantity == 2
        assert order.items[0].price_at_time == Decimal("5.00")

    def test_second_order_on_busy_table_is_rejected(self, place_order, cashier, count_orders):
        first = place_order(table_id=3)

        response, status = create_order(3, SAMPLE_CART, 11.00, actor=cashier)

        assert status == HTTPStatus.CONFLICT
        assert response["code"] == TABLE_OCCUPIED
        assert response["details"]["order_id"] == first["id"]
        assert count_orders(3) == 1

    def test_lost_race_reports_table_occupied(self, place_order, cashier, count_orders, monkeypatch):
        winner = place_order(table_id=3)
        real_check = order_service.check_occupancy
        calls = []

        def stale_check(session, table_id):
            # First call sees the table as it was before the winner committed.
            calls.append(table_id)
            if len(calls) == 1:
                return OccupancyCheck(Occupancy.FREE)
            return real_check(session, table_id)

        monkeypatch.setattr(order_service, "check_occupancy", stale_check)

        response, status = create_order(3, SAMPLE_CART, 11.00, actor=cashier)

        assert status == HTTPStatus.CONFLICT
        assert response["code"] == TABLE_OCCUPIED
        assert response["details"]["order_id"] == winner["id"]
        assert count_orders(3) == 1

    def test_stale_table_heals(self, cashier, fetch_table):
        with get_session() as session:
            session.add(
                RestaurantTable(id=4, status=TableStatus.NEEDS_BILL.value, current_order_id="old")
            )

        response, status = create_order(4, SAMPLE_CART, 11.00, actor=cashier)

        assert status == HTTPStatus.CREATED
        table = fetch_table(4)
        assert table.status == TableStatus.OCCUPIED.value
        assert table.current_order_id == response["data"]["id"]

    def test_failure_after_insert_rolls_back_everything(self, cashier, count_orders, monkeypatch):
        def broken_occupy(session, table_id, order_id):
            raise RuntimeError("occupy failed")

        monkeypatch.setattr(order_service, "occupy", broken_occupy)

        with pytest.raises(RuntimeError):
            create_order(3, SAMPLE_CART, 11.00, actor=cashier)

        assert count_orders() == 0
        with get_session() as session:
            assert session.query(OrderItem).count() == 0
            assert session.get(RestaurantTable, 3) is None

    def test_stale_qr_access_is_rejected(self, count_orders):
        validation = TableAccessValidation("fp", now_ms() - 11 * 60 * 1000)

        response, status = create_order(3, SAMPLE_CART, 11.00, validation=validation)

        assert status == HTTPStatus.FORBIDDEN
        assert response["code"] == ACCESS_EXPIRED
        assert "expired" in response["error"]
        assert count_orders() == 0

    def test_device_locked_elsewhere_is_redirected(self, count_orders):
        validation = TableAccessValidation("fp", now_ms(), original_table_id=5)

        response, status = create_order(7, SAMPLE_CART, 11.00, validation=validation)

        assert status == HTTPStatus.SEE_OTHER
        assert response["status"] == "redirect"
        assert response["redirect_to_table"] == 5
        assert response["error"] is None
        assert count_orders() == 0

    def test_fresh_customer_order_is_accepted(self):
        validation = TableAccessValidation("fp", now_ms() - 60 * 1000, original_table_id=7)

        response, status = create_order(7, SAMPLE_CART, 11.00, validation=validation)

        assert status == HTTPStatus.CREATED
        assert response["data"]["created_by"] is None

    @pytest.mark.parametrize(
        "items",
        [
            [],
            [{"id": 10, "qty": 0, "price": 5}],
            [{"id": 10, "qty": 1, "price": -1}],
            [{"id": "x", "qty": 1, "price": 5}],
            [{"id": 10, "qty": 1, "price": 1}] * 51,
        ],
    )
    def test_invalid_cart_is_rejected(self, items, cashier, count_orders):
        response, status = create_order(3, items, 11.00, actor=cashier)

        assert status == HTTPStatus.BAD_REQUEST
        assert response["code"] == INVALID_PAYLOAD
        assert count_orders() == 0

    def test_invalid_table_number(self, cashier):
        _, status = create_order(0, SAMPLE_CART, 11.00, actor=cashier)

        assert status == HTTPStatus.BAD_REQUEST

    def test_price_snapshot_ignores_menu_changes(self, menu_item, place_order, fetch_order):
        order = place_order(items=[{"id": menu_item.id, "qty": 1, "price": 5.00}], total="5.00")

        with get_session() as session:
            session.get(MenuItem, menu_item.id).price = Decimal("9.50")

        assert fetch_order(order["id"]).items[0].price_at_time == Decimal("5.00")

    def test_waiter_needs_table_assignment(self, waiter, count_orders):
        response, status = create_order(3, SAMPLE_CART, 11.00, actor=waiter)

        assert status == HTTPStatus.FORBIDDEN
        assert response["code"] == TABLE_NOT_ASSIGNED
        assert count_orders() == 0

        assign_table(waiter.actor_id, 3)
        _, status = create_order(3, SAMPLE_CART, 11.00, actor=waiter)
        assert status == HTTPStatus.CREATED

    def test_modifiers_are_kept(self, cashier, fetch_order):
        items = [{"id": 10, "qty": 1, "price": 5, "modifiers": {"salsa": "verde"}}]

        response, _ = create_order(3, items, 5, actor=cashier)

        assert fetch_order(response["data"]["id"]).items[0].modifiers == {"salsa": "verde"}


class TestReads:
    def test_no_active_order(self):
        response, status = get_active_order(3)

        assert status == HTTPStatus.OK
        assert response["success"] is True
        assert response["data"] is None

    def test_active_order_with_and_without_voided_items(self, place_order, admin):
        items = [{"id": 10, "qty": 1, "price": 5}, {"id": 11, "qty": 1, "price": 3}]
        order = place_order(items=items, total="8.00")
        void_order_item(order["items"][1]["id"], "guest changed mind", admin)

        with_voided, _ = get_active_order(3)
        without_voided, _ = get_active_order(3, include_voided=False)

        assert len(with_voided["data"]["items"]) == 2
        assert [item["menu_item_id"] for item in without_voided["data"]["items"]] == [10]

    def test_item_fetch_failure_degrades_to_empty_items(self, place_order, monkeypatch):
        order = place_order()

        def broken_fetch(session, order_id):
            raise OperationalError("SELECT order_items", {}, Exception("connection reset"))

        monkeypatch.setattr(order_service, "_fetch_order_items", broken_fetch)

        response, status = get_active_order(3)

        assert status == HTTPStatus.OK
        assert response["data"]["id"] == order["id"]
        assert response["data"]["items"] == []

    def test_paid_order_is_not_active(self, place_order):
        order = place_order()
        update_status(order["id"], "paid")

        response, _ = get_active_order(3)

        assert response["data"] is None

    def test_get_order_not_found(self):
        response, status = get_order("missing")

        assert status == HTTPStatus.NOT_FOUND
        assert response["code"] == ORDER_NOT_FOUND

    def test_kitchen_queue_is_oldest_first(self, place_order):
        first = place_order(table_id=1)
        second = place_order(table_id=2)
        third = place_order(table_id=3)
        update_status(second["id"], "cooking")
        update_status(third["id"], "ready")

        response, _ = list_kitchen_orders()

        assert [order["id"] for order in response["data"]] == [first["id"], second["id"]]


class TestReceipt:
    def test_receipt_without_voids(self, place_order):
        order = place_order()

        response, status = get_order_receipt(order["id"])

        assert status == HTTPStatus.OK
        assert response["data"]["subtotal"] == 10.0
        assert response["data"]["total"] == 11.0

    def test_voided_lines_reduce_total_proportionally(self, place_order, admin):
        items = [{"id": 10, "qty": 2, "price": 5}, {"id": 11, "qty": 1, "price": 10}]
        order = place_order(items=items, total="22.00")
        void_order_item(order["items"][1]["id"], "out of stock", admin)

        response, _ = get_order_receipt(order["id"])

        assert response["data"]["subtotal"] == 10.0
        assert response["data"]["total"] == 11.0
        assert [item["menu_item_id"] for item in response["data"]["items"]] == [10]

    def test_receipt_not_found(self):
        _, status = get_order_receipt("missing")

        assert status == HTTPStatus.NOT_FOUND


class TestSweepIncompleteOrders:
    def _insert_bare_order(self, table_id, age_minutes):
        started = utcnow() - timedelta(minutes=age_minutes)
        with get_session() as session:
            session.add(RestaurantTable(id=table_id, status=TableStatus.EMPTY.value))
            order = Order(
                table_id=table_id,
                status=OrderStatus.PENDING.value,
                total_price=Decimal("0"),
                started_at=started,
                created_at=started,
                updated_at=started,
            )
            session.add(order)
            session.flush()
            return order.id

    def test_cancels_old_orders_without_items(self, fetch_order):
        old = self._insert_bare_order(1, age_minutes=45)
        recent = self._insert_bare_order(2, age_minutes=5)

        cancelled = sweep_incomplete_orders(30)

        assert cancelled == [old]
        assert fetch_order(old).status == OrderStatus.CANCELLED.value
        assert fetch_order(recent).status == OrderStatus.PENDING.value

    def test_orders_with_items_are_left_alone(self, place_order):
        order = place_order()
        with get_session() as session:
            session.get(Order, order["id"]).started_at = utcnow() - timedelta(hours=2)

        assert sweep_incomplete_orders(30) == []

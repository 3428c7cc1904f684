"""
Shipment tests: numbering, status stamps, and delivery driving the order
lifecycle.
"""

from datetime import datetime

import pytest

from backoffice.errors import InvalidTransition, NotFound, OrderNotReady, ValidationError
from backoffice.extensions import db
from backoffice.models import Order
from backoffice.services import order_service, shipment_service
from backoffice.time_utils import utcnow


def _order_status(order_id):
    db.session.expire_all()
    return db.session.get(Order, order_id).status


@pytest.fixture
def confirmed_order(db_session, customer, make_product, sales_user):
    product = make_product(on_hand=20)
    order = order_service.create_order(
        customer_id=customer.id,
        items=[{"product_id": product.id, "quantity": 2}],
        actor_id=sales_user.id,
    )
    return order_service.transition_order(order.id, "confirmed", actor_id=sales_user.id)


@pytest.fixture
def shipped_order(confirmed_order, sales_user):
    order_service.transition_order(confirmed_order.id, "processing", actor_id=sales_user.id)
    return order_service.transition_order(confirmed_order.id, "shipped", actor_id=sales_user.id)


class TestCreateShipment:

    def test_number_and_defaults(self, confirmed_order):
        shipment = shipment_service.create_shipment(order_id=confirmed_order.id, carrier="UPS")
        year = utcnow().year

        assert shipment.shipment_number == f"SHP-{year}-00001"
        assert shipment.status == "pending"
        assert shipment.shipped_at is None
        data = shipment.to_dict()
        assert data["order_number"] == confirmed_order.order_number
        assert data["customer_name"] == "Jane Buyer"

    def test_numbers_are_sequential(self, confirmed_order):
        first = shipment_service.create_shipment(order_id=confirmed_order.id)
        second = shipment_service.create_shipment(order_id=confirmed_order.id)
        assert first.shipment_number.endswith("00001")
        assert second.shipment_number.endswith("00002")

    def test_draft_order_cannot_ship(self, db_session, customer, make_product):
        product = make_product()
        order = order_service.create_order(
            customer_id=customer.id,
            items=[{"product_id": product.id, "quantity": 1}],
        )
        with pytest.raises(OrderNotReady):
            shipment_service.create_shipment(order_id=order.id)

    def test_unknown_order(self, db_session):
        with pytest.raises(NotFound):
            shipment_service.create_shipment(order_id=424242)


class TestShipmentStatus:

    def test_dispatch_stamps_shipped_at_once(self, confirmed_order):
        shipment = shipment_service.create_shipment(order_id=confirmed_order.id)

        dispatched = shipment_service.update_shipment_status(
            shipment.id, status="dispatched", tracking_number="1Z999"
        )
        first_stamp = dispatched.shipped_at
        assert first_stamp is not None
        assert dispatched.tracking_number == "1Z999"

        in_transit = shipment_service.update_shipment_status(shipment.id, status="in_transit")
        assert in_transit.shipped_at == first_stamp
        assert in_transit.tracking_number == "1Z999"

    def test_delivered_moves_shipped_order_to_delivered(self, shipped_order):
        shipment = shipment_service.create_shipment(order_id=shipped_order.id)
        when = datetime(2026, 10, 1, 12, 0, 0)

        delivered = shipment_service.update_shipment_status(
            shipment.id, status="delivered", actual_delivery=when
        )

        assert delivered.actual_delivery == when
        assert _order_status(shipped_order.id) == "delivered"
        assert db.session.get(Order, shipped_order.id).delivered_at is not None

    def test_second_delivered_shipment_leaves_order_alone(self, shipped_order):
        first = shipment_service.create_shipment(order_id=shipped_order.id)
        second = shipment_service.create_shipment(order_id=shipped_order.id)
        shipment_service.update_shipment_status(first.id, status="delivered")

        delivered = shipment_service.update_shipment_status(second.id, status="delivered")

        assert delivered.actual_delivery is not None
        assert _order_status(shipped_order.id) == "delivered"

    def test_delivering_before_order_ships_rolls_back(self, confirmed_order):
        shipment = shipment_service.create_shipment(order_id=confirmed_order.id)

        with pytest.raises(InvalidTransition):
            shipment_service.update_shipment_status(shipment.id, status="delivered")

        db.session.expire_all()
        assert shipment_service.get_shipment(shipment.id).status == "pending"
        assert _order_status(confirmed_order.id) == "confirmed"

    def test_delivered_can_only_become_returned(self, shipped_order):
        shipment = shipment_service.create_shipment(order_id=shipped_order.id)
        shipment_service.update_shipment_status(shipment.id, status="delivered")

        with pytest.raises(InvalidTransition):
            shipment_service.update_shipment_status(shipment.id, status="in_transit")

        returned = shipment_service.update_shipment_status(shipment.id, status="returned")
        assert returned.status == "returned"

        with pytest.raises(InvalidTransition):
            shipment_service.update_shipment_status(shipment.id, status="pending")

    def test_unknown_status(self, confirmed_order):
        shipment = shipment_service.create_shipment(order_id=confirmed_order.id)
        with pytest.raises(ValidationError):
            shipment_service.update_shipment_status(shipment.id, status="lost")

    def test_unknown_shipment(self, db_session):
        with pytest.raises(NotFound):
            shipment_service.update_shipment_status(999, status="picked")


class TestListShipments:

    def test_filters_and_pagination(self, confirmed_order):
        a = shipment_service.create_shipment(order_id=confirmed_order.id)
        shipment_service.create_shipment(order_id=confirmed_order.id)
        shipment_service.update_shipment_status(a.id, status="picked")

        rows, meta = shipment_service.list_shipments(status="picked")
        assert [s.id for s in rows] == [a.id]
        assert meta["total"] == 1

        rows, meta = shipment_service.list_shipments(order_id=confirmed_order.id, limit=1)
        assert len(rows) == 1
        assert meta["total"] == 2
        assert meta["totalPages"] == 2

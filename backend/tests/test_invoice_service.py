"""
Invoice generation tests.
"""

from datetime import timedelta

import pytest

from backoffice.errors import AlreadyExists, NotFound, OrderNotReady, ValidationError
from backoffice.services import invoice_service, order_service
from backoffice.time_utils import utcnow


@pytest.fixture
def order(db_session, customer, make_product):
    product = make_product(on_hand=20, price=1000)
    return order_service.create_order(
        customer_id=customer.id,
        items=[{"product_id": product.id, "quantity": 3, "discount_pct": 10}],
        discount_cents=200,
        tax_cents=50,
    )


class TestGenerateFromOrder:

    def test_copies_totals_from_confirmed_order(self, order):
        order_service.transition_order(order.id, "confirmed")
        before = utcnow()

        invoice = invoice_service.generate_from_order(order.id)

        assert invoice.status == "draft"
        assert invoice.invoice_number == f"INV-{utcnow().year}-00001"
        assert invoice.customer_id == order.customer_id
        assert (invoice.subtotal_cents, invoice.discount_cents, invoice.tax_cents, invoice.total_cents) == (
            2700, 200, 50, 2550,
        )
        assert invoice.amount_paid_cents == 0
        due_in = invoice.due_date - before
        assert timedelta(days=29, hours=23) < due_in <= timedelta(days=30, minutes=1)

    def test_second_invoice_is_rejected(self, order):
        order_service.transition_order(order.id, "confirmed")
        invoice_service.generate_from_order(order.id)

        with pytest.raises(AlreadyExists):
            invoice_service.generate_from_order(order.id)

    def test_draft_order_is_not_ready(self, order):
        with pytest.raises(OrderNotReady):
            invoice_service.generate_from_order(order.id)

    def test_cancelled_order_is_not_ready(self, order):
        order_service.transition_order(order.id, "cancelled")
        with pytest.raises(OrderNotReady):
            invoice_service.generate_from_order(order.id)

    @pytest.mark.parametrize("path", [
        ("confirmed", "processing"),
        ("confirmed", "processing", "shipped"),
        ("confirmed", "processing", "shipped", "delivered"),
    ])
    def test_later_statuses_are_invoiceable(self, order, path):
        for status in path:
            order_service.transition_order(order.id, status)
        assert invoice_service.generate_from_order(order.id).order_id == order.id

    def test_unknown_order(self, db_session):
        with pytest.raises(NotFound):
            invoice_service.generate_from_order(999_999)

    def test_net_days_come_from_config(self, app, order):
        order_service.transition_order(order.id, "confirmed")
        app.config["INVOICE_NET_DAYS"] = 14
        try:
            invoice = invoice_service.generate_from_order(order.id)
        finally:
            app.config["INVOICE_NET_DAYS"] = 30
        assert (invoice.due_date - invoice.created_at).days in (13, 14)


class TestInvoiceStatus:

    def test_sent_and_paid_are_stamped(self, order):
        order_service.transition_order(order.id, "confirmed")
        invoice = invoice_service.generate_from_order(order.id)

        sent = invoice_service.update_invoice_status(invoice.id, status="sent")
        assert sent.sent_at is not None
        assert sent.paid_at is None

        paid = invoice_service.update_invoice_status(invoice.id, status="paid", amount_paid_cents=2550, notes="Wire")
        assert paid.paid_at is not None
        assert paid.amount_paid_cents == 2550
        assert paid.notes == "Wire"
        assert paid.to_dict()["balance_due_cents"] == 0

    def test_unknown_status(self, order):
        order_service.transition_order(order.id, "confirmed")
        invoice = invoice_service.generate_from_order(order.id)
        with pytest.raises(ValidationError):
            invoice_service.update_invoice_status(invoice.id, status="refunded")

    def test_unknown_invoice(self, db_session):
        with pytest.raises(NotFound):
            invoice_service.update_invoice_status(999_999, status="sent")

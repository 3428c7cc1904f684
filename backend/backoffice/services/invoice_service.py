# Overview: Invoice generation from confirmed orders and free-form invoice status updates.

from __future__ import annotations

from datetime import timedelta

from flask import current_app
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..errors import AlreadyExists, NotFound, OrderNotReady, ValidationError
from ..extensions import db
from ..models import Invoice, Order
from ..models.invoices import INVOICE_STATUSES
from ..models.orders import ORDER_CONFIRMED, ORDER_DELIVERED, ORDER_PROCESSING, ORDER_SHIPPED
from ..pagination import paginate
from ..time_utils import utcnow
from .concurrency import run_in_transaction
from .document_service import next_invoice_number

INVOICEABLE_ORDER_STATUSES = {ORDER_CONFIRMED, ORDER_PROCESSING, ORDER_SHIPPED, ORDER_DELIVERED}


def generate_from_order(order_id: int, *, actor_id: int | None = None) -> Invoice:
    """
    Create the one invoice an order may have.

    Totals are copied from the order as-is. The existence check is a fast
    path; the unique constraint on invoices.order_id is what actually stops
    two concurrent requests from both succeeding.
    """
    net_days = int(current_app.config.get("INVOICE_NET_DAYS", 30))

    def _op(session: Session) -> Invoice:
        if session.query(Invoice.id).filter_by(order_id=order_id).first() is not None:
            raise AlreadyExists("Invoice already exists for this order")

        order = session.get(Order, order_id)
        if order is None:
            raise NotFound("Order not found")
        if order.status not in INVOICEABLE_ORDER_STATUSES:
            raise OrderNotReady("Order must be confirmed before generating an invoice")

        invoice = Invoice(
            invoice_number=next_invoice_number(session),
            order_id=order.id,
            customer_id=order.customer_id,
            status="draft",
            subtotal_cents=order.subtotal_cents,
            discount_cents=order.discount_cents,
            tax_cents=order.tax_cents,
            total_cents=order.total_cents,
            amount_paid_cents=0,
            due_date=utcnow() + timedelta(days=net_days),
        )
        session.add(invoice)
        try:
            session.flush()
        except IntegrityError as exc:
            raise AlreadyExists("Invoice already exists for this order") from exc
        return invoice

    invoice = run_in_transaction(_op)
    current_app.logger.info("Invoice %s generated for order_id=%s (actor_id=%s)", invoice.invoice_number, order_id, actor_id)
    return invoice


def update_invoice_status(
    invoice_id: int,
    *,
    status: str,
    amount_paid_cents: int | None = None,
    notes: str | None = None,
) -> Invoice:
    """
    Free-form status write. Setting 'sent' stamps sent_at and 'paid' stamps
    paid_at; amount_paid_cents and notes are only changed when given.
    """
    if status not in INVOICE_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(INVOICE_STATUSES)}")

    def _op(session: Session) -> Invoice:
        invoice = session.get(Invoice, invoice_id)
        if invoice is None:
            raise NotFound("Invoice not found")

        invoice.status = status
        if status == "sent":
            invoice.sent_at = utcnow()
        elif status == "paid":
            invoice.paid_at = utcnow()
        if amount_paid_cents is not None:
            invoice.amount_paid_cents = amount_paid_cents
        if notes is not None:
            invoice.notes = notes
        return invoice

    return run_in_transaction(_op)


def get_invoice(invoice_id: int) -> Invoice:
    invoice = db.session.get(Invoice, invoice_id)
    if invoice is None:
        raise NotFound("Invoice not found")
    return invoice


def list_invoices(
    *,
    status: str | None = None,
    customer_id: int | None = None,
    page: int | None = None,
    limit: int | None = None,
):
    q = db.session.query(Invoice)
    if status:
        q = q.filter(Invoice.status == status)
    if customer_id:
        q = q.filter(Invoice.customer_id == customer_id)
    q = q.order_by(Invoice.created_at.desc(), Invoice.id.desc())
    return paginate(q, page=page, limit=limit)

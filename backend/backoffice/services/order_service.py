# backend/backoffice/services/order_service.py
"""
Order Lifecycle Service

State machine:
    draft -> confirmed -> processing -> shipped -> delivered
    draft / confirmed / processing -> cancelled

Inventory side effects (same unit of work as the status write):
- draft -> confirmed:       reserve every line
- confirmed|processing -> cancelled: release every line's reservation
- processing -> shipped:    deduct every line (on-hand and reserved)
- shipped -> delivered:     none

Lines are processed in stored order. If line N fails, lines 1..N-1 are rolled
back with it; nothing is retried except lock conflicts.

Pricing:
    line_total = round_half_up(unit_price * qty * (100 - discount_pct) / 100)
    subtotal   = sum(line_total)
    total      = subtotal - discount + tax
Rounding happens per line, before summing.
"""
from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP

from flask import current_app
from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..errors import DeleteNotAllowed, EditNotAllowed, InvalidTransition, NotFound, ValidationError
from ..extensions import db
from ..models import Customer, Order, OrderItem, Product
from ..models.orders import (
    ORDER_CANCELLED,
    ORDER_CONFIRMED,
    ORDER_DELIVERED,
    ORDER_DRAFT,
    ORDER_PROCESSING,
    ORDER_SHIPPED,
)
from ..pagination import paginate
from ..time_utils import utcnow
from .concurrency import lock_for_update, run_in_transaction
from .document_service import next_order_number
from .inventory_service import deduct_stock, release_reservation, reserve_stock

ORDER_TRANSITIONS = {
    ORDER_DRAFT: {ORDER_CONFIRMED, ORDER_CANCELLED},
    ORDER_CONFIRMED: {ORDER_PROCESSING, ORDER_CANCELLED},
    ORDER_PROCESSING: {ORDER_SHIPPED, ORDER_CANCELLED},
    ORDER_SHIPPED: {ORDER_DELIVERED},
    ORDER_DELIVERED: set(),
    ORDER_CANCELLED: set(),
}

# States that hold a reservation for every line
RESERVED_STATES = {ORDER_CONFIRMED, ORDER_PROCESSING}

ORDER_EDITABLE_FIELDS = {"shipping_address", "notes", "discount_cents", "tax_cents"}


def can_transition(from_status: str, to_status: str) -> bool:
    return to_status in ORDER_TRANSITIONS.get(from_status, set())


def compute_line_total(unit_price_cents: int, quantity: int, discount_pct=0) -> int:
    pct = Decimal(str(discount_pct or 0))
    gross = Decimal(unit_price_cents) * Decimal(quantity)
    net = gross * (Decimal(100) - pct) / Decimal(100)
    return int(net.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def compute_order_totals(line_totals: list[int], discount_cents: int = 0, tax_cents: int = 0) -> dict:
    subtotal = sum(line_totals)
    discount_cents = discount_cents or 0
    tax_cents = tax_cents or 0
    return {
        "subtotal_cents": subtotal,
        "discount_cents": discount_cents,
        "tax_cents": tax_cents,
        "total_cents": subtotal - discount_cents + tax_cents,
    }


def _apply_totals(order: Order) -> None:
    totals = compute_order_totals(
        [item.line_total_cents for item in order.items],
        order.discount_cents,
        order.tax_cents,
    )
    for k, v in totals.items():
        setattr(order, k, v)


def get_order_for_update(session: Session, order_id: int) -> Order:
    order = lock_for_update(session.query(Order).filter_by(id=order_id)).first()
    if order is None:
        raise NotFound("Order not found")
    return order


def get_order(order_id: int) -> Order:
    order = db.session.get(Order, order_id)
    if order is None:
        raise NotFound("Order not found")
    return order


def list_orders(
    *,
    status: str | None = None,
    customer_id: int | None = None,
    search: str | None = None,
    page: int | None = None,
    limit: int | None = None,
) -> tuple[list[Order], dict]:
    q = db.session.query(Order).join(Customer, Customer.id == Order.customer_id)
    if status:
        q = q.filter(Order.status == status)
    if customer_id:
        q = q.filter(Order.customer_id == customer_id)
    if search:
        pattern = f"%{search}%"
        q = q.filter(or_(Order.order_number.ilike(pattern), Customer.name.ilike(pattern)))
    q = q.order_by(Order.created_at.desc(), Order.id.desc())
    return paginate(q, page=page, limit=limit)


def create_order(
    *,
    customer_id: int,
    items: list[dict],
    shipping_address: str | None = None,
    notes: str | None = None,
    discount_cents: int = 0,
    tax_cents: int = 0,
    actor_id: int | None = None,
) -> Order:
    """
    Create a draft order. Unit prices are snapshotted from the product unless
    the line carries its own unit_price_cents. No inventory is touched.
    """
    if not items:
        raise ValidationError("Order must have at least one item", [
            {"field": "items", "message": "At least one item is required"},
        ])

    def _op(session: Session) -> Order:
        customer = session.query(Customer).filter(
            Customer.id == customer_id,
            Customer.deleted_at.is_(None),
        ).first()
        if customer is None:
            raise NotFound("Customer not found")

        order = Order(
            order_number=next_order_number(session),
            customer_id=customer.id,
            created_by=actor_id,
            status=ORDER_DRAFT,
            shipping_address=shipping_address if shipping_address is not None else customer.shipping_address,
            notes=notes,
            discount_cents=discount_cents or 0,
            tax_cents=tax_cents or 0,
        )

        for line in items:
            product = session.query(Product).filter(
                Product.id == line["product_id"],
                Product.deleted_at.is_(None),
            ).first()
            if product is None:
                raise NotFound(f"Product {line['product_id']} not found")

            unit_price = line.get("unit_price_cents")
            if unit_price is None:
                unit_price = product.unit_price_cents
            discount_pct = line.get("discount_pct") or 0

            order.items.append(OrderItem(
                product_id=product.id,
                quantity=line["quantity"],
                unit_price_cents=unit_price,
                discount_pct=discount_pct,
                line_total_cents=compute_line_total(unit_price, line["quantity"], discount_pct),
            ))

        _apply_totals(order)
        session.add(order)
        session.flush()
        return order

    order = run_in_transaction(_op)
    current_app.logger.info("Order created %s id=%s total_cents=%s", order.order_number, order.id, order.total_cents)
    return order


def apply_transition(session: Session, order: Order, new_status: str, *, actor_id: int | None = None) -> str:
    """
    Apply one lifecycle step to an already locked order inside the caller's
    unit of work. Returns the previous status. Never commits.
    """
    previous = order.status
    if not can_transition(previous, new_status):
        raise InvalidTransition(previous, new_status)

    now = utcnow()
    if new_status == ORDER_CONFIRMED:
        enforce_available = current_app.config.get("RESERVATION_REQUIRES_AVAILABLE_STOCK", True)
        order.ordered_at = now
        for item in order.items:
            reserve_stock(
                session,
                product_id=item.product_id,
                quantity=item.quantity,
                order_id=order.id,
                actor_id=actor_id,
                enforce_available=enforce_available,
            )
    elif new_status == ORDER_CANCELLED:
        order.cancelled_at = now
        if previous in RESERVED_STATES:
            for item in order.items:
                release_reservation(
                    session,
                    product_id=item.product_id,
                    quantity=item.quantity,
                    order_id=order.id,
                    actor_id=actor_id,
                )
    elif new_status == ORDER_SHIPPED:
        order.shipped_at = now
        for item in order.items:
            deduct_stock(
                session,
                product_id=item.product_id,
                quantity=item.quantity,
                order_id=order.id,
                actor_id=actor_id,
            )
    elif new_status == ORDER_DELIVERED:
        order.delivered_at = now

    order.status = new_status
    session.flush()
    return previous


def transition_order(order_id: int, new_status: str, *, actor_id: int | None = None) -> Order:
    """
    Move an order to new_status and apply its inventory side effects atomically.

    Raises:
        NotFound: unknown order
        InvalidTransition: new_status not reachable from the current status
        InsufficientStock: a reservation or shipment could not be covered
    """
    def _op(session: Session) -> tuple[Order, str]:
        order = get_order_for_update(session, order_id)
        previous = apply_transition(session, order, new_status, actor_id=actor_id)
        return order, previous

    order, previous = run_in_transaction(_op)
    current_app.logger.info("Order %s transitioned %s -> %s (actor_id=%s)", order.order_number, previous, new_status, actor_id)
    return order


def update_order(order_id: int, *, patch: dict) -> Order:
    """Edit header fields of a draft order; totals are recomputed from the stored lines."""
    def _op(session: Session) -> Order:
        order = get_order_for_update(session, order_id)
        if order.status != ORDER_DRAFT:
            raise EditNotAllowed("Only draft orders can be edited")
        for k, v in patch.items():
            if k in ORDER_EDITABLE_FIELDS:
                setattr(order, k, v)
        _apply_totals(order)
        session.flush()
        return order

    return run_in_transaction(_op)


def delete_order(order_id: int) -> None:
    def _op(session: Session) -> str:
        order = get_order_for_update(session, order_id)
        if order.status != ORDER_DRAFT:
            raise DeleteNotAllowed("Only draft orders can be deleted")
        number = order.order_number
        session.delete(order)
        return number

    number = run_in_transaction(_op)
    current_app.logger.info("Draft order %s deleted", number)

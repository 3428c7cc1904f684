# backend/backoffice/services/shipment_service.py
"""
Shipment Service

Warehouse tracking of outbound parcels for sales orders.

Shipment statuses move freely among
    pending, picked, packed, dispatched, in_transit, delivered, returned
except that a returned shipment is closed, and a delivered one can only
become returned.

Side effects of a status write (same unit of work):
- dispatched / in_transit: shipped_at stamped the first time
- delivered: actual_delivery stamped (caller value or now) and the parent
  order moves shipped -> delivered through the order lifecycle. An order
  that has not been shipped yet makes the write fail with InvalidTransition,
  because stock is only deducted by the order's own ship step.
"""
from __future__ import annotations

from datetime import datetime

from flask import current_app
from sqlalchemy.orm import Session

from ..errors import InvalidTransition, NotFound, OrderNotReady, ValidationError
from ..extensions import db
from ..models import Shipment
from ..models.orders import ORDER_CONFIRMED, ORDER_DELIVERED, ORDER_PROCESSING, ORDER_SHIPPED
from ..models.shipments import (
    SHIPMENT_DELIVERED,
    SHIPMENT_DISPATCHED,
    SHIPMENT_IN_TRANSIT,
    SHIPMENT_PENDING,
    SHIPMENT_RETURNED,
    SHIPMENT_STATUSES,
)
from ..pagination import paginate
from ..time_utils import utcnow
from .concurrency import lock_for_update, run_in_transaction
from .document_service import next_shipment_number
from .order_service import apply_transition, get_order_for_update

SHIPPABLE_ORDER_STATUSES = {ORDER_CONFIRMED, ORDER_PROCESSING, ORDER_SHIPPED}

# Statuses a shipment may not leave, with the exceptions still allowed
CLOSED_SHIPMENT_STATUSES = {
    SHIPMENT_DELIVERED: {SHIPMENT_RETURNED},
    SHIPMENT_RETURNED: set(),
}

LEFT_WAREHOUSE_STATUSES = {SHIPMENT_DISPATCHED, SHIPMENT_IN_TRANSIT}


def get_shipment(shipment_id: int) -> Shipment:
    shipment = db.session.get(Shipment, shipment_id)
    if shipment is None:
        raise NotFound("Shipment not found")
    return shipment


def list_shipments(
    *,
    status: str | None = None,
    order_id: int | None = None,
    page: int | None = None,
    limit: int | None = None,
):
    q = db.session.query(Shipment)
    if status:
        q = q.filter(Shipment.status == status)
    if order_id:
        q = q.filter(Shipment.order_id == order_id)
    q = q.order_by(Shipment.created_at.desc(), Shipment.id.desc())
    return paginate(q, page=page, limit=limit)


def create_shipment(
    *,
    order_id: int,
    carrier: str | None = None,
    tracking_number: str | None = None,
    estimated_delivery: datetime | None = None,
    notes: str | None = None,
) -> Shipment:
    def _op(session: Session) -> Shipment:
        order = get_order_for_update(session, order_id)
        if order.status not in SHIPPABLE_ORDER_STATUSES:
            raise OrderNotReady(f"Cannot create a shipment for a {order.status} order")

        shipment = Shipment(
            shipment_number=next_shipment_number(session),
            order_id=order.id,
            status=SHIPMENT_PENDING,
            carrier=carrier,
            tracking_number=tracking_number,
            estimated_delivery=estimated_delivery,
            notes=notes,
        )
        session.add(shipment)
        session.flush()
        return shipment

    shipment = run_in_transaction(_op)
    current_app.logger.info("Shipment %s created for order_id=%s", shipment.shipment_number, order_id)
    return shipment


def update_shipment_status(
    shipment_id: int,
    *,
    status: str,
    carrier: str | None = None,
    tracking_number: str | None = None,
    actual_delivery: datetime | None = None,
    actor_id: int | None = None,
) -> Shipment:
    """
    Record a shipment status. carrier / tracking_number are only changed
    when given.

    Raises:
        NotFound: unknown shipment
        InvalidTransition: the shipment is closed, or delivering it would
            move the order along a path its lifecycle does not allow
    """
    if status not in SHIPMENT_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(SHIPMENT_STATUSES)}")

    def _op(session: Session) -> Shipment:
        shipment = lock_for_update(session.query(Shipment).filter_by(id=shipment_id)).first()
        if shipment is None:
            raise NotFound("Shipment not found")

        allowed = CLOSED_SHIPMENT_STATUSES.get(shipment.status)
        if allowed is not None and status not in allowed:
            raise InvalidTransition(shipment.status, status, entity="shipment")

        now = utcnow()
        if carrier is not None:
            shipment.carrier = carrier
        if tracking_number is not None:
            shipment.tracking_number = tracking_number
        if status in LEFT_WAREHOUSE_STATUSES and shipment.shipped_at is None:
            shipment.shipped_at = now

        if status == SHIPMENT_DELIVERED:
            shipment.actual_delivery = actual_delivery or now
            order = get_order_for_update(session, shipment.order_id)
            if order.status != ORDER_DELIVERED:
                apply_transition(session, order, ORDER_DELIVERED, actor_id=actor_id)

        shipment.status = status
        session.flush()
        return shipment

    shipment = run_in_transaction(_op)
    current_app.logger.info("Shipment %s status set to %s", shipment.shipment_number, status)
    return shipment

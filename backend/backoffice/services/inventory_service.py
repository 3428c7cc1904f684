# Overview: Inventory engine; the only code that mutates stock counters and appends ledger rows.

# backend/backoffice/services/inventory_service.py

from __future__ import annotations

from flask import current_app
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..errors import InsufficientStock, NotFound, ValidationError
from ..extensions import db
from ..models import InventoryRecord, InventoryTransaction, Product
from ..models.inventory import (
    MANUAL_ADJUSTMENT_TYPES,
    ON_HAND_TRANSACTION_TYPES,
    REFERENCE_ORDER,
    REFERENCE_PURCHASE_ORDER,
    TX_PURCHASE_RECEIPT,
    TX_RESERVATION,
    TX_RESERVATION_RELEASE,
    TX_SALE,
)
from .concurrency import lock_for_update, run_in_transaction

"""
Inventory invariants (authoritative)

Counters:
- Every InventoryRecord satisfies 0 <= quantity_reserved <= quantity_on_hand
  after each committed mutation. quantity_available = on_hand - reserved.

Ledger:
- Every counter mutation appends exactly one InventoryTransaction in the same
  unit of work. Rows are never updated or deleted.
- SUM(quantity_change) over ON_HAND_TRANSACTION_TYPES equals quantity_on_hand.
  Reservation rows (reservation / reservation_release) move quantity_reserved
  only and are excluded from that sum.

Units of work:
- The primitives below take the caller's session and never commit. The
  order/purchase order services compose them into one atomic unit; a failure
  anywhere rolls back every counter change and ledger row.
"""


def _require_positive_quantity(quantity) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise ValidationError("quantity must be a positive integer")
    return quantity


def _get_inventory_record(session: Session, product_id: int) -> InventoryRecord:
    record = lock_for_update(
        session.query(InventoryRecord).filter_by(product_id=product_id)
    ).first()
    if record is None:
        raise NotFound("Product inventory not found")
    return record


def _append_transaction(
    session: Session,
    *,
    product_id: int,
    transaction_type: str,
    quantity_change: int,
    reference_type: str | None = None,
    reference_id: int | None = None,
    notes: str | None = None,
    actor_id: int | None = None,
) -> InventoryTransaction:
    tx = InventoryTransaction(
        product_id=product_id,
        transaction_type=transaction_type,
        quantity_change=quantity_change,
        reference_type=reference_type,
        reference_id=reference_id,
        notes=notes,
        created_by=actor_id,
    )
    session.add(tx)
    session.flush()
    return tx


def adjust_stock(
    session: Session,
    *,
    product_id: int,
    transaction_type: str,
    quantity_change: int,
    notes: str | None = None,
    actor_id: int | None = None,
) -> InventoryRecord:
    """
    Manual stock correction (adjustment / return / write_off).

    Fails when the new on-hand would go negative or drop below what is
    already reserved for orders.
    """
    if transaction_type not in MANUAL_ADJUSTMENT_TYPES:
        raise ValidationError(f"transaction_type must be one of: {', '.join(MANUAL_ADJUSTMENT_TYPES)}")
    if isinstance(quantity_change, bool) or not isinstance(quantity_change, int) or quantity_change == 0:
        raise ValidationError("quantity_change must be a non-zero integer")

    record = _get_inventory_record(session, product_id)
    new_on_hand = record.quantity_on_hand + quantity_change
    if new_on_hand < 0:
        raise InsufficientStock(
            f"Insufficient stock: on hand {record.quantity_on_hand}, change {quantity_change}"
        )
    if new_on_hand < record.quantity_reserved:
        raise InsufficientStock(
            f"Adjustment would leave on hand ({new_on_hand}) below reserved ({record.quantity_reserved})"
        )

    record.quantity_on_hand = new_on_hand
    _append_transaction(
        session,
        product_id=product_id,
        transaction_type=transaction_type,
        quantity_change=quantity_change,
        notes=notes,
        actor_id=actor_id,
    )
    return record


def reserve_stock(
    session: Session,
    *,
    product_id: int,
    quantity: int,
    order_id: int,
    actor_id: int | None = None,
    enforce_available: bool = True,
) -> InventoryRecord:
    """Set stock aside for a confirmed order; on-hand is untouched."""
    quantity = _require_positive_quantity(quantity)
    record = _get_inventory_record(session, product_id)

    if enforce_available and quantity > record.quantity_available:
        sku = record.product.sku if record.product else product_id
        raise InsufficientStock(
            f"Insufficient stock for {sku}: requested {quantity}, available {record.quantity_available}"
        )

    record.quantity_reserved += quantity
    _append_transaction(
        session,
        product_id=product_id,
        transaction_type=TX_RESERVATION,
        quantity_change=-quantity,
        reference_type=REFERENCE_ORDER,
        reference_id=order_id,
        notes="Reserved for order",
        actor_id=actor_id,
    )
    return record


def release_reservation(
    session: Session,
    *,
    product_id: int,
    quantity: int,
    order_id: int,
    actor_id: int | None = None,
) -> InventoryRecord:
    """
    Give back a reservation when an order is cancelled.

    quantity_reserved is clamped at zero; the ledger still records the full
    quantity requested.
    """
    quantity = _require_positive_quantity(quantity)
    record = _get_inventory_record(session, product_id)

    record.quantity_reserved = max(0, record.quantity_reserved - quantity)
    _append_transaction(
        session,
        product_id=product_id,
        transaction_type=TX_RESERVATION_RELEASE,
        quantity_change=quantity,
        reference_type=REFERENCE_ORDER,
        reference_id=order_id,
        notes="Reservation released (order cancelled)",
        actor_id=actor_id,
    )
    return record


def deduct_stock(
    session: Session,
    *,
    product_id: int,
    quantity: int,
    order_id: int,
    actor_id: int | None = None,
) -> InventoryRecord:
    """Stock physically leaves on shipment: on-hand and reserved both drop."""
    quantity = _require_positive_quantity(quantity)
    record = _get_inventory_record(session, product_id)

    if record.quantity_on_hand < quantity:
        sku = record.product.sku if record.product else product_id
        raise InsufficientStock(
            f"Insufficient stock for {sku}: shipping {quantity}, on hand {record.quantity_on_hand}"
        )

    record.quantity_on_hand -= quantity
    record.quantity_reserved = max(0, record.quantity_reserved - quantity)
    _append_transaction(
        session,
        product_id=product_id,
        transaction_type=TX_SALE,
        quantity_change=-quantity,
        reference_type=REFERENCE_ORDER,
        reference_id=order_id,
        notes="Sold / shipped",
        actor_id=actor_id,
    )
    return record


def receive_stock(
    session: Session,
    *,
    product_id: int,
    quantity: int,
    purchase_order_id: int,
    actor_id: int | None = None,
) -> InventoryRecord:
    quantity = _require_positive_quantity(quantity)
    record = _get_inventory_record(session, product_id)

    record.quantity_on_hand += quantity
    _append_transaction(
        session,
        product_id=product_id,
        transaction_type=TX_PURCHASE_RECEIPT,
        quantity_change=quantity,
        reference_type=REFERENCE_PURCHASE_ORDER,
        reference_id=purchase_order_id,
        notes="Received from PO",
        actor_id=actor_id,
    )
    return record


def get_low_stock_products(session: Session | None = None) -> list[Product]:
    """
    Active products at or below their reorder point, most urgent first.

    Urgency is on_hand - reorder_point ascending; ties break on product id.
    """
    session = session or db.session
    shortfall = InventoryRecord.quantity_on_hand - InventoryRecord.reorder_point
    return (
        session.query(Product)
        .join(InventoryRecord, InventoryRecord.product_id == Product.id)
        .filter(
            Product.deleted_at.is_(None),
            InventoryRecord.quantity_on_hand <= InventoryRecord.reorder_point,
        )
        .order_by(shortfall.asc(), Product.id.asc())
        .all()
    )


def get_stock_level(product_id: int) -> Product:
    product = db.session.query(Product).filter(
        Product.id == product_id,
        Product.deleted_at.is_(None),
    ).first()
    if product is None or product.inventory is None:
        raise NotFound("Product not found")
    return product


def list_stock_transactions(product_id: int, *, limit: int = 200) -> list[InventoryTransaction]:
    """Ledger rows for a product, newest first."""
    if db.session.get(Product, product_id) is None:
        raise NotFound("Product not found")
    return (
        db.session.query(InventoryTransaction)
        .filter_by(product_id=product_id)
        .order_by(InventoryTransaction.created_at.desc(), InventoryTransaction.id.desc())
        .limit(limit)
        .all()
    )


def reconstruct_on_hand(product_id: int, session: Session | None = None) -> int:
    """Replay the ledger: sum of on-hand-moving rows for the product."""
    session = session or db.session
    total = session.query(
        func.coalesce(func.sum(InventoryTransaction.quantity_change), 0)
    ).filter(
        InventoryTransaction.product_id == product_id,
        InventoryTransaction.transaction_type.in_(ON_HAND_TRANSACTION_TYPES),
    ).scalar()
    return int(total or 0)


def perform_stock_adjustment(
    *,
    product_id: int,
    transaction_type: str,
    quantity_change: int,
    notes: str | None = None,
    actor_id: int | None = None,
) -> Product:
    """Manual adjustment as its own unit of work (the /inventory/adjust entry point)."""

    def _op(session: Session) -> Product:
        product = session.query(Product).filter(
            Product.id == product_id,
            Product.deleted_at.is_(None),
        ).first()
        if product is None:
            raise NotFound("Product not found")
        adjust_stock(
            session,
            product_id=product_id,
            transaction_type=transaction_type,
            quantity_change=quantity_change,
            notes=notes,
            actor_id=actor_id,
        )
        return product

    product = run_in_transaction(_op)
    current_app.logger.info(
        "Stock adjusted product_id=%s type=%s change=%s actor_id=%s",
        product_id, transaction_type, quantity_change, actor_id,
    )
    return product

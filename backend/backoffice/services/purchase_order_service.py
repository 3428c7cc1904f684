# backend/backoffice/services/purchase_order_service.py
"""
Purchase Order Service

Supplier directory plus the PO lifecycle:

    draft -> sent -> confirmed
    draft / sent / confirmed / partial -> cancelled
    sent / confirmed / partial --receive--> partial | received

sent/confirmed/cancelled are set by hand. partial/received are only ever
derived by receive_purchase_order, which rescans every line after applying
the deltas:
- every line fully received -> received (received_at stamped)
- any line with quantity_received > 0 -> partial
- otherwise the status is left as it was
"""
from __future__ import annotations

from flask import current_app
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..errors import InvalidTransition, NotFound, OverReceipt, ValidationError
from ..extensions import db
from ..models import Product, PurchaseOrder, PurchaseOrderItem, Supplier, SupplierProduct
from ..models.purchasing import (
    PO_CANCELLED,
    PO_CONFIRMED,
    PO_DRAFT,
    PO_PARTIAL,
    PO_RECEIVED,
    PO_SENT,
)
from ..pagination import paginate
from ..time_utils import utcnow
from .concurrency import ConcurrentUpdateError, lock_for_update, run_in_transaction
from .document_service import next_purchase_order_number
from .inventory_service import receive_stock

MANUAL_PO_STATUSES = (PO_SENT, PO_CONFIRMED, PO_CANCELLED)

PO_STATUS_TRANSITIONS = {
    PO_DRAFT: {PO_SENT, PO_CANCELLED},
    PO_SENT: {PO_CONFIRMED, PO_CANCELLED},
    PO_CONFIRMED: {PO_CANCELLED},
    PO_PARTIAL: {PO_CANCELLED},
    PO_RECEIVED: set(),
    PO_CANCELLED: set(),
}

RECEIVABLE_STATUSES = {PO_SENT, PO_CONFIRMED, PO_PARTIAL}

SUPPLIER_MUTABLE_FIELDS = {
    "name", "contact_name", "email", "phone",
    "address", "payment_terms", "notes",
}


# ---------------------------------------------------------------------------
# Suppliers
# ---------------------------------------------------------------------------

def _get_active_supplier(session: Session, supplier_id: int) -> Supplier:
    supplier = session.query(Supplier).filter(
        Supplier.id == supplier_id,
        Supplier.deleted_at.is_(None),
    ).first()
    if supplier is None:
        raise NotFound("Supplier not found")
    return supplier


def list_suppliers(*, search: str | None = None, page: int | None = None, limit: int | None = None):
    q = db.session.query(Supplier).filter(Supplier.deleted_at.is_(None))
    if search:
        pattern = f"%{search}%"
        q = q.filter(or_(Supplier.name.ilike(pattern), Supplier.contact_name.ilike(pattern)))
    q = q.order_by(Supplier.name.asc(), Supplier.id.asc())
    return paginate(q, page=page, limit=limit)


def get_supplier(supplier_id: int) -> Supplier:
    return _get_active_supplier(db.session, supplier_id)


def create_supplier(*, patch: dict) -> Supplier:
    def _op(session: Session) -> Supplier:
        supplier = Supplier()
        for k, v in patch.items():
            if k in SUPPLIER_MUTABLE_FIELDS:
                setattr(supplier, k, v)
        session.add(supplier)
        session.flush()
        return supplier

    return run_in_transaction(_op)


def update_supplier(supplier_id: int, *, patch: dict) -> Supplier:
    def _op(session: Session) -> Supplier:
        supplier = _get_active_supplier(session, supplier_id)
        for k, v in patch.items():
            if k in SUPPLIER_MUTABLE_FIELDS:
                setattr(supplier, k, v)
        return supplier

    return run_in_transaction(_op)


def delete_supplier(supplier_id: int) -> None:
    def _op(session: Session) -> None:
        supplier = _get_active_supplier(session, supplier_id)
        supplier.deleted_at = utcnow()

    run_in_transaction(_op)


def list_supplier_products(supplier_id: int) -> list[SupplierProduct]:
    supplier = _get_active_supplier(db.session, supplier_id)
    return (
        db.session.query(SupplierProduct)
        .filter(SupplierProduct.supplier_id == supplier.id)
        .order_by(SupplierProduct.id.asc())
        .all()
    )


def add_supplier_product(
    supplier_id: int,
    *,
    product_id: int,
    supplier_sku: str | None = None,
    cost_price_cents: int = 0,
    lead_time_days: int = 0,
    min_order_quantity: int = 1,
    is_preferred: bool = False,
) -> list[SupplierProduct]:
    """
    Add a product to a supplier's catalog, or replace its terms if it is
    already listed. Returns the supplier's full catalog.
    """
    def _op(session: Session) -> None:
        supplier = _get_active_supplier(session, supplier_id)
        product = session.query(Product).filter(
            Product.id == product_id,
            Product.deleted_at.is_(None),
        ).first()
        if product is None:
            raise NotFound("Product not found")

        entry = lock_for_update(
            session.query(SupplierProduct).filter_by(supplier_id=supplier.id, product_id=product.id)
        ).first()
        if entry is None:
            entry = SupplierProduct(supplier_id=supplier.id, product_id=product.id)
            session.add(entry)

        entry.supplier_sku = supplier_sku
        entry.cost_price_cents = cost_price_cents
        entry.lead_time_days = lead_time_days
        entry.min_order_quantity = min_order_quantity
        entry.is_preferred = is_preferred
        try:
            session.flush()
        except IntegrityError as exc:
            raise ConcurrentUpdateError("Supplier catalog entry created concurrently") from exc

    run_in_transaction(_op)
    return list_supplier_products(supplier_id)


def remove_supplier_product(supplier_id: int, product_id: int) -> None:
    def _op(session: Session) -> None:
        supplier = _get_active_supplier(session, supplier_id)
        entry = session.query(SupplierProduct).filter_by(
            supplier_id=supplier.id, product_id=product_id
        ).first()
        if entry is None:
            raise NotFound("Product is not in this supplier's catalog")
        session.delete(entry)

    run_in_transaction(_op)


# ---------------------------------------------------------------------------
# Purchase orders
# ---------------------------------------------------------------------------

def _get_po_for_update(session: Session, po_id: int) -> PurchaseOrder:
    po = lock_for_update(session.query(PurchaseOrder).filter_by(id=po_id)).first()
    if po is None:
        raise NotFound("Purchase order not found")
    return po


def get_purchase_order(po_id: int) -> PurchaseOrder:
    po = db.session.get(PurchaseOrder, po_id)
    if po is None:
        raise NotFound("Purchase order not found")
    return po


def list_purchase_orders(
    *,
    status: str | None = None,
    supplier_id: int | None = None,
    page: int | None = None,
    limit: int | None = None,
):
    q = db.session.query(PurchaseOrder)
    if status:
        q = q.filter(PurchaseOrder.status == status)
    if supplier_id:
        q = q.filter(PurchaseOrder.supplier_id == supplier_id)
    q = q.order_by(PurchaseOrder.created_at.desc(), PurchaseOrder.id.desc())
    return paginate(q, page=page, limit=limit)


def create_purchase_order(
    *,
    supplier_id: int,
    items: list[dict],
    expected_date=None,
    notes: str | None = None,
    actor_id: int | None = None,
) -> PurchaseOrder:
    if not items:
        raise ValidationError("Purchase order must have at least one item", [
            {"field": "items", "message": "At least one item is required"},
        ])

    def _op(session: Session) -> PurchaseOrder:
        supplier = _get_active_supplier(session, supplier_id)
        po = PurchaseOrder(
            po_number=next_purchase_order_number(session),
            supplier_id=supplier.id,
            created_by=actor_id,
            status=PO_DRAFT,
            expected_date=expected_date,
            notes=notes,
        )

        for line in items:
            product = session.query(Product).filter(
                Product.id == line["product_id"],
                Product.deleted_at.is_(None),
            ).first()
            if product is None:
                raise NotFound(f"Product {line['product_id']} not found")

            unit_cost = line.get("unit_cost_cents")
            if unit_cost is None:
                unit_cost = product.cost_price_cents
            po.items.append(PurchaseOrderItem(
                product_id=product.id,
                quantity_ordered=line["quantity_ordered"],
                quantity_received=0,
                unit_cost_cents=unit_cost,
                line_total_cents=line["quantity_ordered"] * unit_cost,
            ))

        subtotal = sum(item.line_total_cents for item in po.items)
        po.subtotal_cents = subtotal
        po.total_cents = subtotal
        session.add(po)
        session.flush()
        return po

    po = run_in_transaction(_op)
    current_app.logger.info("Purchase order created %s id=%s total_cents=%s", po.po_number, po.id, po.total_cents)
    return po


def set_purchase_order_status(po_id: int, status: str) -> PurchaseOrder:
    """Manual status write (send / confirm / cancel). No inventory effect."""
    if status not in MANUAL_PO_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(MANUAL_PO_STATUSES)}")

    def _op(session: Session) -> PurchaseOrder:
        po = _get_po_for_update(session, po_id)
        if status not in PO_STATUS_TRANSITIONS.get(po.status, set()):
            raise InvalidTransition(po.status, status, entity="purchase order")
        po.status = status
        return po

    po = run_in_transaction(_op)
    current_app.logger.info("Purchase order %s status set to %s", po.po_number, status)
    return po


def _derive_received_status(po: PurchaseOrder) -> str:
    if all(item.is_fully_received for item in po.items):
        return PO_RECEIVED
    if any(item.quantity_received > 0 for item in po.items):
        return PO_PARTIAL
    return po.status


def receive_purchase_order(po_id: int, *, items: list[dict], actor_id: int | None = None) -> PurchaseOrder:
    """
    Record received quantities against PO lines.

    items: [{"id": <po item id>, "quantity_received": <delta >= 0>}, ...]

    Each positive delta books a purchase_receipt through the inventory
    engine. Lines are processed in request order inside one unit of work.

    Raises:
        NotFound: unknown PO or a line id that is not on this PO
        InvalidTransition: PO is not in a receivable status
        OverReceipt: a delta would take a line past quantity_ordered
    """
    def _op(session: Session) -> PurchaseOrder:
        po = _get_po_for_update(session, po_id)
        if po.status not in RECEIVABLE_STATUSES:
            raise InvalidTransition(po.status, PO_RECEIVED, entity="purchase order")

        lines = {item.id: item for item in po.items}
        for entry in items:
            line = lines.get(entry["id"])
            if line is None:
                raise NotFound(f"Purchase order item {entry['id']} not found")

            delta = entry["quantity_received"]
            new_received = line.quantity_received + delta
            if new_received > line.quantity_ordered:
                raise OverReceipt(
                    f"Cannot receive {delta} for item {line.id}: "
                    f"{line.quantity_received} of {line.quantity_ordered} already received"
                )

            line.quantity_received = new_received
            if delta > 0:
                receive_stock(
                    session,
                    product_id=line.product_id,
                    quantity=delta,
                    purchase_order_id=po.id,
                    actor_id=actor_id,
                )

        new_status = _derive_received_status(po)
        if new_status == PO_RECEIVED and po.status != PO_RECEIVED:
            po.received_at = utcnow()
        po.status = new_status
        session.flush()
        return po

    po = run_in_transaction(_op)
    current_app.logger.info("Purchase order %s received; status=%s", po.po_number, po.status)
    return po

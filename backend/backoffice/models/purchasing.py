from __future__ import annotations

from ..extensions import db
from ..time_utils import to_epoch_ms, utcnow

PO_DRAFT = "draft"
PO_SENT = "sent"
PO_CONFIRMED = "confirmed"
PO_PARTIAL = "partial"
PO_RECEIVED = "received"
PO_CANCELLED = "cancelled"

PO_STATUSES = (PO_DRAFT, PO_SENT, PO_CONFIRMED, PO_PARTIAL, PO_RECEIVED, PO_CANCELLED)


class Supplier(db.Model):
    __tablename__ = "suppliers"
    __table_args__ = (
        db.Index("ix_suppliers_name", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    contact_name = db.Column(db.String(255), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(64), nullable=True)
    address = db.Column(db.Text, nullable=True)
    payment_terms = db.Column(db.String(120), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    deleted_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "contact_name": self.contact_name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "payment_terms": self.payment_terms,
            "notes": self.notes,
            "created_at": to_epoch_ms(self.created_at),
            "updated_at": to_epoch_ms(self.updated_at),
        }


class SupplierProduct(db.Model):
    """
    Supplier catalog entry: what a supplier sells us and on which terms.

    One row per (supplier, product); re-adding a product replaces its terms.
    """
    __tablename__ = "supplier_products"
    __table_args__ = (
        db.UniqueConstraint("supplier_id", "product_id", name="uq_supplier_products_supplier_product"),
        db.CheckConstraint("cost_price_cents >= 0", name="ck_supplier_products_cost_nonneg"),
        db.CheckConstraint("lead_time_days >= 0", name="ck_supplier_products_lead_time_nonneg"),
        db.CheckConstraint("min_order_quantity >= 1", name="ck_supplier_products_moq_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    supplier_id = db.Column(
        db.Integer, db.ForeignKey("suppliers.id", ondelete="CASCADE"), nullable=False, index=True
    )
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    supplier_sku = db.Column(db.String(64), nullable=True)
    cost_price_cents = db.Column(db.Integer, nullable=False, default=0)
    lead_time_days = db.Column(db.Integer, nullable=False, default=0)
    min_order_quantity = db.Column(db.Integer, nullable=False, default=1)
    is_preferred = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    supplier = db.relationship("Supplier", backref=db.backref("catalog", lazy=True))
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "supplier_id": self.supplier_id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "sku": self.product.sku if self.product else None,
            "supplier_sku": self.supplier_sku,
            "cost_price_cents": self.cost_price_cents,
            "lead_time_days": self.lead_time_days,
            "min_order_quantity": self.min_order_quantity,
            "is_preferred": self.is_preferred,
            "created_at": to_epoch_ms(self.created_at),
            "updated_at": to_epoch_ms(self.updated_at),
        }


class PurchaseOrder(db.Model):
    """
    Purchase order header.

    LIFECYCLE:
    1. draft -> sent -> confirmed: set explicitly by the buyer
    2. partial / received: DERIVED from line quantities on every receipt,
       never set directly
    3. cancelled: set explicitly from any open state, including partial
       (a short-shipped PO is closed this way); received stock stays booked
    """
    __tablename__ = "purchase_orders"
    __table_args__ = (
        db.Index("ix_purchase_orders_status", "status"),
        db.Index("ix_purchase_orders_supplier", "supplier_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    po_number = db.Column(db.String(32), nullable=False, unique=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=False)
    created_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    status = db.Column(db.String(16), nullable=False, default=PO_DRAFT)
    expected_date = db.Column(db.DateTime, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    subtotal_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False, default=0)

    received_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    supplier = db.relationship("Supplier", backref=db.backref("purchase_orders", lazy=True))
    items = db.relationship(
        "PurchaseOrderItem",
        back_populates="purchase_order",
        cascade="all, delete-orphan",
        order_by="PurchaseOrderItem.id",
    )

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "po_number": self.po_number,
            "supplier_id": self.supplier_id,
            "supplier_name": self.supplier.name if self.supplier else None,
            "supplier_email": self.supplier.email if self.supplier else None,
            "created_by": self.created_by,
            "status": self.status,
            "expected_date": to_epoch_ms(self.expected_date),
            "notes": self.notes,
            "subtotal_cents": self.subtotal_cents,
            "total_cents": self.total_cents,
            "received_at": to_epoch_ms(self.received_at),
            "created_at": to_epoch_ms(self.created_at),
            "updated_at": to_epoch_ms(self.updated_at),
            "item_count": len(self.items),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class PurchaseOrderItem(db.Model):
    __tablename__ = "purchase_order_items"
    __table_args__ = (
        db.CheckConstraint("quantity_ordered > 0", name="ck_po_items_ordered_positive"),
        db.CheckConstraint("quantity_received >= 0", name="ck_po_items_received_nonneg"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    purchase_order_id = db.Column(
        db.Integer, db.ForeignKey("purchase_orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)

    quantity_ordered = db.Column(db.Integer, nullable=False)
    quantity_received = db.Column(db.Integer, nullable=False, default=0)
    unit_cost_cents = db.Column(db.Integer, nullable=False)
    line_total_cents = db.Column(db.Integer, nullable=False)

    purchase_order = db.relationship("PurchaseOrder", back_populates="items")
    product = db.relationship("Product")

    @property
    def is_fully_received(self) -> bool:
        return self.quantity_received >= self.quantity_ordered

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "purchase_order_id": self.purchase_order_id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "sku": self.product.sku if self.product else None,
            "quantity_ordered": self.quantity_ordered,
            "quantity_received": self.quantity_received,
            "unit_cost_cents": self.unit_cost_cents,
            "line_total_cents": self.line_total_cents,
        }

from __future__ import annotations

from ..extensions import db
from ..time_utils import to_epoch_ms, utcnow

# Ledger transaction types that move quantity_on_hand
TX_ADJUSTMENT = "adjustment"
TX_RETURN = "return"
TX_WRITE_OFF = "write_off"
TX_SALE = "sale"
TX_PURCHASE_RECEIPT = "purchase_receipt"

# Ledger transaction types that only move quantity_reserved
TX_RESERVATION = "reservation"
TX_RESERVATION_RELEASE = "reservation_release"

MANUAL_ADJUSTMENT_TYPES = (TX_ADJUSTMENT, TX_RETURN, TX_WRITE_OFF)
ON_HAND_TRANSACTION_TYPES = (TX_ADJUSTMENT, TX_RETURN, TX_WRITE_OFF, TX_SALE, TX_PURCHASE_RECEIPT)
RESERVATION_TRANSACTION_TYPES = (TX_RESERVATION, TX_RESERVATION_RELEASE)
TRANSACTION_TYPES = ON_HAND_TRANSACTION_TYPES + RESERVATION_TRANSACTION_TYPES

REFERENCE_ORDER = "order"
REFERENCE_PURCHASE_ORDER = "purchase_order"


class Product(db.Model):
    """
    Product master data.

    SKU and name are the product's identity; pricing and classification are
    mutable. Products referenced by historical orders are soft-deleted
    (deleted_at) and never removed.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_name", "name"),
        db.Index("ix_products_category", "category"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sku = db.Column(db.String(64), nullable=False, unique=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    category = db.Column(db.String(120), nullable=True)

    # Authoritative storage in cents
    unit_price_cents = db.Column(db.Integer, nullable=False, default=0)
    cost_price_cents = db.Column(db.Integer, nullable=False, default=0)
    unit = db.Column(db.String(32), nullable=False, default="unit")

    deleted_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    inventory = db.relationship(
        "InventoryRecord",
        uselist=False,
        back_populates="product",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r} name={self.name!r}>"

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "sku": self.sku,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "unit_price_cents": self.unit_price_cents,
            "cost_price_cents": self.cost_price_cents,
            "unit": self.unit,
            "deleted_at": to_epoch_ms(self.deleted_at),
            "created_at": to_epoch_ms(self.created_at),
            "updated_at": to_epoch_ms(self.updated_at),
        }
        if self.inventory is not None:
            data.update(self.inventory.to_dict(include_product_id=False))
        return data


class InventoryRecord(db.Model):
    """
    Stock counters for one product.

    Invariant after every committed mutation:
        0 <= quantity_reserved <= quantity_on_hand

    quantity_available is derived and never stored. Only the inventory
    service writes these counters, always together with one
    InventoryTransaction row.
    """
    __tablename__ = "inventory"
    __table_args__ = (
        db.CheckConstraint("quantity_reserved >= 0", name="ck_inventory_reserved_nonneg"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, unique=True)

    quantity_on_hand = db.Column(db.Integer, nullable=False, default=0)
    quantity_reserved = db.Column(db.Integer, nullable=False, default=0)
    reorder_point = db.Column(db.Integer, nullable=False, default=0)
    reorder_quantity = db.Column(db.Integer, nullable=False, default=0)
    location = db.Column(db.String(120), nullable=True)

    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    product = db.relationship("Product", back_populates="inventory")

    @property
    def quantity_available(self) -> int:
        return self.quantity_on_hand - self.quantity_reserved

    def to_dict(self, include_product_id: bool = True) -> dict:
        data = {
            "quantity_on_hand": self.quantity_on_hand,
            "quantity_reserved": self.quantity_reserved,
            "quantity_available": self.quantity_available,
            "reorder_point": self.reorder_point,
            "reorder_quantity": self.reorder_quantity,
            "location": self.location,
        }
        if include_product_id:
            data["product_id"] = self.product_id
        return data


class InventoryTransaction(db.Model):
    """Append-only stock ledger. Rows are never updated or deleted."""
    __tablename__ = "inventory_transactions"
    __table_args__ = (
        db.Index("ix_invtx_product_created", "product_id", "created_at"),
        db.Index("ix_invtx_reference", "reference_type", "reference_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    transaction_type = db.Column(db.String(32), nullable=False, index=True)
    quantity_change = db.Column(db.Integer, nullable=False)

    reference_type = db.Column(db.String(32), nullable=True)
    reference_id = db.Column(db.Integer, nullable=True)

    notes = db.Column(db.String(255), nullable=True)
    created_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    creator = db.relationship("User", foreign_keys=[created_by])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "transaction_type": self.transaction_type,
            "quantity_change": self.quantity_change,
            "reference_type": self.reference_type,
            "reference_id": self.reference_id,
            "notes": self.notes,
            "created_by": self.created_by,
            "created_by_name": self.creator.name if self.creator else None,
            "created_at": to_epoch_ms(self.created_at),
        }

from __future__ import annotations

from ..extensions import db
from ..time_utils import to_epoch_ms, utcnow

SHIPMENT_PENDING = "pending"
SHIPMENT_PICKED = "picked"
SHIPMENT_PACKED = "packed"
SHIPMENT_DISPATCHED = "dispatched"
SHIPMENT_IN_TRANSIT = "in_transit"
SHIPMENT_DELIVERED = "delivered"
SHIPMENT_RETURNED = "returned"

SHIPMENT_STATUSES = (
    SHIPMENT_PENDING,
    SHIPMENT_PICKED,
    SHIPMENT_PACKED,
    SHIPMENT_DISPATCHED,
    SHIPMENT_IN_TRANSIT,
    SHIPMENT_DELIVERED,
    SHIPMENT_RETURNED,
)


class Shipment(db.Model):
    """
    Outbound shipment for a sales order.

    Status is tracked by the warehouse and is free-form among
    SHIPMENT_STATUSES. shipped_at is stamped when the parcel first leaves
    (dispatched / in_transit) and actual_delivery when it is delivered.
    """
    __tablename__ = "shipments"
    __table_args__ = (
        db.Index("ix_shipments_status", "status"),
        db.Index("ix_shipments_order", "order_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shipment_number = db.Column(db.String(32), nullable=False, unique=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False)

    status = db.Column(db.String(16), nullable=False, default=SHIPMENT_PENDING)
    carrier = db.Column(db.String(120), nullable=True)
    tracking_number = db.Column(db.String(120), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    estimated_delivery = db.Column(db.DateTime, nullable=True)
    actual_delivery = db.Column(db.DateTime, nullable=True)
    shipped_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    order = db.relationship("Order", backref=db.backref("shipments", lazy=True))

    def to_dict(self) -> dict:
        order = self.order
        return {
            "id": self.id,
            "shipment_number": self.shipment_number,
            "order_id": self.order_id,
            "order_number": order.order_number if order else None,
            "customer_name": order.customer.name if order and order.customer else None,
            "status": self.status,
            "carrier": self.carrier,
            "tracking_number": self.tracking_number,
            "notes": self.notes,
            "estimated_delivery": to_epoch_ms(self.estimated_delivery),
            "actual_delivery": to_epoch_ms(self.actual_delivery),
            "shipped_at": to_epoch_ms(self.shipped_at),
            "created_at": to_epoch_ms(self.created_at),
            "updated_at": to_epoch_ms(self.updated_at),
        }

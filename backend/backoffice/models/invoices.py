from __future__ import annotations

from ..extensions import db
from ..time_utils import to_epoch_ms, utcnow

INVOICE_STATUSES = ("draft", "sent", "paid", "overdue", "cancelled")


class Invoice(db.Model):
    """
    Invoice derived 1:1 from a confirmed order.

    Totals are copied from the order at generation time. Payment status is
    tracked independently of the order afterwards.

    The unique constraint on order_id is the real one-invoice-per-order guard;
    the service-level lookup only produces a friendlier error.
    """
    __tablename__ = "invoices"
    __table_args__ = (
        db.UniqueConstraint("order_id", name="uq_invoices_order"),
        db.Index("ix_invoices_status", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    invoice_number = db.Column(db.String(32), nullable=False, unique=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)

    status = db.Column(db.String(16), nullable=False, default="draft")

    subtotal_cents = db.Column(db.Integer, nullable=False)
    discount_cents = db.Column(db.Integer, nullable=False)
    tax_cents = db.Column(db.Integer, nullable=False)
    total_cents = db.Column(db.Integer, nullable=False)
    amount_paid_cents = db.Column(db.Integer, nullable=False, default=0)

    due_date = db.Column(db.DateTime, nullable=False)
    sent_at = db.Column(db.DateTime, nullable=True)
    paid_at = db.Column(db.DateTime, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    order = db.relationship("Order", backref=db.backref("invoice", uselist=False, lazy=True))
    customer = db.relationship("Customer")

    def to_dict(self, include_items: bool = False) -> dict:
        data = {
            "id": self.id,
            "invoice_number": self.invoice_number,
            "order_id": self.order_id,
            "order_number": self.order.order_number if self.order else None,
            "customer_id": self.customer_id,
            "customer_name": self.customer.name if self.customer else None,
            "status": self.status,
            "subtotal_cents": self.subtotal_cents,
            "discount_cents": self.discount_cents,
            "tax_cents": self.tax_cents,
            "total_cents": self.total_cents,
            "amount_paid_cents": self.amount_paid_cents,
            "balance_due_cents": self.total_cents - self.amount_paid_cents,
            "due_date": to_epoch_ms(self.due_date),
            "sent_at": to_epoch_ms(self.sent_at),
            "paid_at": to_epoch_ms(self.paid_at),
            "notes": self.notes,
            "created_at": to_epoch_ms(self.created_at),
            "updated_at": to_epoch_ms(self.updated_at),
        }
        if include_items:
            if self.customer is not None:
                data["customer_email"] = self.customer.email
                data["customer_company"] = self.customer.company
                data["billing_address"] = self.customer.billing_address
            data["items"] = [item.to_dict() for item in self.order.items] if self.order else []
        return data

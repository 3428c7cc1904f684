# Overview: Customer directory CRUD (soft delete, email uniqueness).

from __future__ import annotations

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..errors import AlreadyExists, NotFound
from ..extensions import db
from ..models import Customer, Invoice, Order
from ..pagination import paginate
from ..time_utils import utcnow
from .concurrency import run_in_transaction

CUSTOMER_MUTABLE_FIELDS = {
    "name", "email", "phone", "company",
    "billing_address", "shipping_address", "notes",
}


def _get_active_customer(session: Session, customer_id: int) -> Customer:
    customer = session.query(Customer).filter(
        Customer.id == customer_id,
        Customer.deleted_at.is_(None),
    ).first()
    if customer is None:
        raise NotFound("Customer not found")
    return customer


def _ensure_email_free(session: Session, email: str | None, *, exclude_id: int | None = None) -> None:
    if not email:
        return
    q = session.query(Customer.id).filter(Customer.email == email)
    if exclude_id is not None:
        q = q.filter(Customer.id != exclude_id)
    if q.first() is not None:
        raise AlreadyExists("A customer with this email already exists")


def list_customers(*, search: str | None = None, page: int | None = None, limit: int | None = None):
    q = db.session.query(Customer).filter(Customer.deleted_at.is_(None))
    if search:
        pattern = f"%{search}%"
        q = q.filter(or_(
            Customer.name.ilike(pattern),
            Customer.email.ilike(pattern),
            Customer.company.ilike(pattern),
        ))
    q = q.order_by(Customer.name.asc(), Customer.id.asc())
    return paginate(q, page=page, limit=limit)


def get_customer(customer_id: int) -> Customer:
    return _get_active_customer(db.session, customer_id)


def create_customer(*, patch: dict) -> Customer:
    def _op(session: Session) -> Customer:
        _ensure_email_free(session, patch.get("email"))
        customer = Customer()
        for k, v in patch.items():
            if k in CUSTOMER_MUTABLE_FIELDS:
                setattr(customer, k, v)
        session.add(customer)
        try:
            session.flush()
        except IntegrityError as exc:
            raise AlreadyExists("A customer with this email already exists") from exc
        return customer

    return run_in_transaction(_op)


def update_customer(customer_id: int, *, patch: dict) -> Customer:
    def _op(session: Session) -> Customer:
        customer = _get_active_customer(session, customer_id)
        if patch.get("email") and patch["email"] != customer.email:
            _ensure_email_free(session, patch["email"], exclude_id=customer.id)
        for k, v in patch.items():
            if k in CUSTOMER_MUTABLE_FIELDS:
                setattr(customer, k, v)
        try:
            session.flush()
        except IntegrityError as exc:
            raise AlreadyExists("A customer with this email already exists") from exc
        return customer

    return run_in_transaction(_op)


def delete_customer(customer_id: int) -> None:
    def _op(session: Session) -> None:
        customer = _get_active_customer(session, customer_id)
        customer.deleted_at = utcnow()

    run_in_transaction(_op)


def list_customer_orders(customer_id: int) -> list[Order]:
    """Full order history for one customer, newest first."""
    customer = _get_active_customer(db.session, customer_id)
    return (
        db.session.query(Order)
        .filter(Order.customer_id == customer.id)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )


def list_customer_invoices(customer_id: int) -> list[Invoice]:
    customer = _get_active_customer(db.session, customer_id)
    return (
        db.session.query(Invoice)
        .filter(Invoice.customer_id == customer.id)
        .order_by(Invoice.created_at.desc(), Invoice.id.desc())
        .all()
    )

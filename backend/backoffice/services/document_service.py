# Overview: Sequential per-year document numbers for orders, invoices and purchase orders.

from __future__ import annotations

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..models import DocumentSequence
from ..time_utils import utcnow
from .concurrency import ConcurrentUpdateError

DOC_ORDER = ("ORDER", "ORD")
DOC_INVOICE = ("INVOICE", "INV")
DOC_PURCHASE_ORDER = ("PURCHASE_ORDER", "PO")
DOC_SHIPMENT = ("SHIPMENT", "SHP")


class DocumentSequenceError(Exception):
    """Raised when document sequence operations fail."""
    pass


def next_document_number(
    session: Session,
    *,
    document_type: str,
    prefix: str,
    year: int | None = None,
    pad: int = 5,
) -> str:
    """
    Allocate the next document number for a type within the caller's unit of work.

    Numbers look like ORD-2026-00001 and restart every calendar year. The
    increment is a single UPDATE ... SET next_number = next_number + 1, so two
    writers can never read the same value. If the first number of a year is
    raced, ConcurrentUpdateError asks run_in_transaction to retry.
    """
    if not document_type:
        raise DocumentSequenceError("document_type is required")
    if not prefix:
        raise DocumentSequenceError("prefix is required")

    year = year or utcnow().year

    stmt = (
        update(DocumentSequence)
        .where(
            DocumentSequence.document_type == document_type,
            DocumentSequence.year == year,
        )
        .values(next_number=DocumentSequence.next_number + 1)
        .execution_options(synchronize_session=False)
    )

    result = session.execute(stmt)
    if result.rowcount:
        current = (
            session.query(DocumentSequence.next_number)
            .filter_by(document_type=document_type, year=year)
            .scalar()
        )
        next_num = current - 1
    else:
        seq = DocumentSequence(document_type=document_type, year=year, next_number=2)
        session.add(seq)
        try:
            session.flush()
        except IntegrityError as exc:
            raise ConcurrentUpdateError(f"{document_type} sequence for {year} created concurrently") from exc
        next_num = 1

    return f"{prefix}-{year}-{next_num:0{pad}d}"


def next_order_number(session: Session) -> str:
    document_type, prefix = DOC_ORDER
    return next_document_number(session, document_type=document_type, prefix=prefix)


def next_invoice_number(session: Session) -> str:
    document_type, prefix = DOC_INVOICE
    return next_document_number(session, document_type=document_type, prefix=prefix)


def next_purchase_order_number(session: Session) -> str:
    document_type, prefix = DOC_PURCHASE_ORDER
    return next_document_number(session, document_type=document_type, prefix=prefix)


def next_shipment_number(session: Session) -> str:
    document_type, prefix = DOC_SHIPMENT
    return next_document_number(session, document_type=document_type, prefix=prefix)

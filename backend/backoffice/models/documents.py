from __future__ import annotations

from ..extensions import db
from ..time_utils import utcnow


class DocumentSequence(db.Model):
    """
    Atomic per-type, per-year document sequences.

    WHY: Prevent race conditions when generating order, invoice and
    purchase order numbers. Numbering restarts at 1 every calendar year.
    """
    __tablename__ = "document_sequences"
    __table_args__ = (
        db.UniqueConstraint("document_type", "year", name="uq_doc_sequences_type_year"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    document_type = db.Column(db.String(32), nullable=False, index=True)
    year = db.Column(db.Integer, nullable=False)
    next_number = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

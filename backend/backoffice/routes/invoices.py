# backend/backoffice/routes/invoices.py
"""
Invoice routes. Invoices are generated from orders (POST /orders/<id>/invoice);
here they are listed, fetched with their order lines, and moved between
statuses.
"""
from flask import Blueprint, request

from ..decorators import require_auth, require_roles
from ..permissions import SALES_ROLES
from ..responses import success
from ..services import invoice_service
from ..validation import INVOICE_STATUS_POLICY, validate_payload
from . import API_PREFIX

invoices_bp = Blueprint("invoices", __name__, url_prefix=f"{API_PREFIX}/invoices")


@invoices_bp.get("")
@require_auth
def list_invoices():
    rows, meta = invoice_service.list_invoices(
        status=request.args.get("status"),
        customer_id=request.args.get("customer_id", type=int),
        page=request.args.get("page", type=int),
        limit=request.args.get("limit", type=int),
    )
    return success([inv.to_dict() for inv in rows], meta=meta)


@invoices_bp.get("/<int:invoice_id>")
@require_auth
def get_invoice(invoice_id: int):
    return success(invoice_service.get_invoice(invoice_id).to_dict(include_items=True))


@invoices_bp.patch("/<int:invoice_id>/status")
@require_auth
@require_roles(*SALES_ROLES)
def update_status(invoice_id: int):
    data = validate_payload(request.get_json(silent=True), INVOICE_STATUS_POLICY)
    invoice = invoice_service.update_invoice_status(
        invoice_id,
        status=data["status"],
        amount_paid_cents=data.get("amount_paid_cents"),
        notes=data.get("notes"),
    )
    return success(invoice.to_dict(), message="Invoice updated")

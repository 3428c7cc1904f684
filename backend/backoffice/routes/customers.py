# backend/backoffice/routes/customers.py
from flask import Blueprint, request

from ..decorators import require_auth, require_roles
from ..permissions import SALES_ROLES
from ..responses import success
from ..services import customer_service
from ..validation import CUSTOMER_POLICY, validate_payload
from . import API_PREFIX

customers_bp = Blueprint("customers", __name__, url_prefix=f"{API_PREFIX}/customers")


@customers_bp.get("")
@require_auth
def list_customers():
    rows, meta = customer_service.list_customers(
        search=request.args.get("search"),
        page=request.args.get("page", type=int),
        limit=request.args.get("limit", type=int),
    )
    return success([c.to_dict() for c in rows], meta=meta)


@customers_bp.get("/<int:customer_id>")
@require_auth
def get_customer(customer_id: int):
    return success(customer_service.get_customer(customer_id).to_dict())


@customers_bp.get("/<int:customer_id>/orders")
@require_auth
def customer_orders(customer_id: int):
    orders = customer_service.list_customer_orders(customer_id)
    return success([o.to_dict(include_items=False) for o in orders])


@customers_bp.get("/<int:customer_id>/invoices")
@require_auth
def customer_invoices(customer_id: int):
    invoices = customer_service.list_customer_invoices(customer_id)
    return success([i.to_dict() for i in invoices])


@customers_bp.post("")
@require_auth
@require_roles(*SALES_ROLES)
def create_customer():
    patch = validate_payload(request.get_json(silent=True), CUSTOMER_POLICY)
    customer = customer_service.create_customer(patch=patch)
    return success(customer.to_dict(), message="Customer created", status=201)


@customers_bp.put("/<int:customer_id>")
@require_auth
@require_roles(*SALES_ROLES)
def update_customer(customer_id: int):
    patch = validate_payload(request.get_json(silent=True), CUSTOMER_POLICY, partial=True)
    customer = customer_service.update_customer(customer_id, patch=patch)
    return success(customer.to_dict(), message="Customer updated")


@customers_bp.delete("/<int:customer_id>")
@require_auth
@require_roles(*SALES_ROLES)
def delete_customer(customer_id: int):
    customer_service.delete_customer(customer_id)
    return success(None, message="Customer deleted")

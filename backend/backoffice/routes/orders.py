# backend/backoffice/routes/orders.py
"""
Sales order routes.

All inventory effects of a status change (reserve / release / deduct) happen
inside the order service's unit of work; these handlers only validate input
and render the envelope.
"""
from flask import Blueprint, g, request

from ..decorators import require_auth, require_roles
from ..permissions import SALES_ROLES
from ..responses import success
from ..services import invoice_service, order_service
from ..validation import (
    CREATE_ORDER_POLICY,
    ORDER_STATUS_POLICY,
    UPDATE_ORDER_POLICY,
    validate_payload,
)
from . import API_PREFIX

orders_bp = Blueprint("orders", __name__, url_prefix=f"{API_PREFIX}/orders")


@orders_bp.get("")
@require_auth
def list_orders():
    rows, meta = order_service.list_orders(
        status=request.args.get("status"),
        customer_id=request.args.get("customer_id", type=int),
        search=request.args.get("search"),
        page=request.args.get("page", type=int),
        limit=request.args.get("limit", type=int),
    )
    return success([o.to_dict(include_items=False) for o in rows], meta=meta)


@orders_bp.get("/<int:order_id>")
@require_auth
def get_order(order_id: int):
    return success(order_service.get_order(order_id).to_dict())


@orders_bp.post("")
@require_auth
@require_roles(*SALES_ROLES)
def create_order():
    data = validate_payload(request.get_json(silent=True), CREATE_ORDER_POLICY)
    order = order_service.create_order(actor_id=g.current_user.id, **data)
    return success(order.to_dict(), message="Order created", status=201)


@orders_bp.patch("/<int:order_id>/status")
@require_auth
@require_roles(*SALES_ROLES)
def update_status(order_id: int):
    data = validate_payload(request.get_json(silent=True), ORDER_STATUS_POLICY)
    order = order_service.transition_order(order_id, data["status"], actor_id=g.current_user.id)
    return success(order.to_dict(), message=f"Order {data['status']}")


@orders_bp.put("/<int:order_id>")
@require_auth
@require_roles(*SALES_ROLES)
def update_order(order_id: int):
    patch = validate_payload(request.get_json(silent=True), UPDATE_ORDER_POLICY, partial=True)
    order = order_service.update_order(order_id, patch=patch)
    return success(order.to_dict(), message="Order updated")


@orders_bp.delete("/<int:order_id>")
@require_auth
@require_roles(*SALES_ROLES)
def delete_order(order_id: int):
    order_service.delete_order(order_id)
    return success(None, message="Order deleted")


@orders_bp.post("/<int:order_id>/invoice")
@require_auth
@require_roles(*SALES_ROLES)
def generate_invoice(order_id: int):
    invoice = invoice_service.generate_from_order(order_id, actor_id=g.current_user.id)
    return success(invoice.to_dict(), message="Invoice generated", status=201)

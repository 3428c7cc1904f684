# backend/backoffice/routes/purchase_orders.py
"""
Purchase order routes (admin and warehouse for writes).
"""
from flask import Blueprint, g, request

from ..decorators import require_auth, require_roles
from ..permissions import WAREHOUSE_ROLES
from ..responses import success
from ..services import purchase_order_service
from ..validation import CREATE_PO_POLICY, PO_STATUS_POLICY, RECEIVE_POLICY, validate_payload
from . import API_PREFIX

purchase_orders_bp = Blueprint("purchase_orders", __name__, url_prefix=f"{API_PREFIX}/purchase-orders")


@purchase_orders_bp.get("")
@require_auth
def list_purchase_orders():
    rows, meta = purchase_order_service.list_purchase_orders(
        status=request.args.get("status"),
        supplier_id=request.args.get("supplier_id", type=int),
        page=request.args.get("page", type=int),
        limit=request.args.get("limit", type=int),
    )
    return success([po.to_dict(include_items=False) for po in rows], meta=meta)


@purchase_orders_bp.get("/<int:po_id>")
@require_auth
def get_purchase_order(po_id: int):
    return success(purchase_order_service.get_purchase_order(po_id).to_dict())


@purchase_orders_bp.post("")
@require_auth
@require_roles(*WAREHOUSE_ROLES)
def create_purchase_order():
    data = validate_payload(request.get_json(silent=True), CREATE_PO_POLICY)
    po = purchase_order_service.create_purchase_order(actor_id=g.current_user.id, **data)
    return success(po.to_dict(), message="Purchase order created", status=201)


@purchase_orders_bp.patch("/<int:po_id>/status")
@require_auth
@require_roles(*WAREHOUSE_ROLES)
def update_status(po_id: int):
    data = validate_payload(request.get_json(silent=True), PO_STATUS_POLICY)
    po = purchase_order_service.set_purchase_order_status(po_id, data["status"])
    return success(po.to_dict(), message=f"Purchase order {data['status']}")


@purchase_orders_bp.post("/<int:po_id>/receive")
@require_auth
@require_roles(*WAREHOUSE_ROLES)
def receive(po_id: int):
    """Body: {items: [{id: <po item id>, quantity_received: <delta>}]}"""
    data = validate_payload(request.get_json(silent=True), RECEIVE_POLICY)
    po = purchase_order_service.receive_purchase_order(
        po_id, items=data["items"], actor_id=g.current_user.id
    )
    return success(po.to_dict(), message="Items received")

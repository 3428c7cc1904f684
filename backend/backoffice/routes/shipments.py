# backend/backoffice/routes/shipments.py
"""
Shipment routes (admin and warehouse for writes).
"""
from flask import Blueprint, g, request

from ..decorators import require_auth, require_roles
from ..permissions import WAREHOUSE_ROLES
from ..responses import success
from ..services import shipment_service
from ..validation import SHIPMENT_POLICY, SHIPMENT_STATUS_POLICY, validate_payload
from . import API_PREFIX

shipments_bp = Blueprint("shipments", __name__, url_prefix=f"{API_PREFIX}/shipments")


@shipments_bp.get("")
@require_auth
def list_shipments():
    rows, meta = shipment_service.list_shipments(
        status=request.args.get("status"),
        order_id=request.args.get("order_id", type=int),
        page=request.args.get("page", type=int),
        limit=request.args.get("limit", type=int),
    )
    return success([s.to_dict() for s in rows], meta=meta)


@shipments_bp.get("/<int:shipment_id>")
@require_auth
def get_shipment(shipment_id: int):
    return success(shipment_service.get_shipment(shipment_id).to_dict())


@shipments_bp.post("")
@require_auth
@require_roles(*WAREHOUSE_ROLES)
def create_shipment():
    data = validate_payload(request.get_json(silent=True), SHIPMENT_POLICY)
    shipment = shipment_service.create_shipment(**data)
    return success(shipment.to_dict(), message="Shipment created", status=201)


@shipments_bp.patch("/<int:shipment_id>/status")
@require_auth
@require_roles(*WAREHOUSE_ROLES)
def update_status(shipment_id: int):
    data = validate_payload(request.get_json(silent=True), SHIPMENT_STATUS_POLICY)
    shipment = shipment_service.update_shipment_status(
        shipment_id, actor_id=g.current_user.id, **data
    )
    return success(shipment.to_dict(), message=f"Shipment {data['status']}")

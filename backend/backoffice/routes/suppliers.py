# backend/backoffice/routes/suppliers.py
from flask import Blueprint, request

from ..decorators import require_auth, require_roles
from ..permissions import WAREHOUSE_ROLES
from ..responses import success
from ..services import purchase_order_service
from ..validation import SUPPLIER_POLICY, SUPPLIER_PRODUCT_POLICY, validate_payload
from . import API_PREFIX

suppliers_bp = Blueprint("suppliers", __name__, url_prefix=f"{API_PREFIX}/suppliers")


@suppliers_bp.get("")
@require_auth
def list_suppliers():
    rows, meta = purchase_order_service.list_suppliers(
        search=request.args.get("search"),
        page=request.args.get("page", type=int),
        limit=request.args.get("limit", type=int),
    )
    return success([s.to_dict() for s in rows], meta=meta)


@suppliers_bp.get("/<int:supplier_id>")
@require_auth
def get_supplier(supplier_id: int):
    return success(purchase_order_service.get_supplier(supplier_id).to_dict())


@suppliers_bp.post("")
@require_auth
@require_roles(*WAREHOUSE_ROLES)
def create_supplier():
    patch = validate_payload(request.get_json(silent=True), SUPPLIER_POLICY)
    supplier = purchase_order_service.create_supplier(patch=patch)
    return success(supplier.to_dict(), message="Supplier created", status=201)


@suppliers_bp.put("/<int:supplier_id>")
@require_auth
@require_roles(*WAREHOUSE_ROLES)
def update_supplier(supplier_id: int):
    patch = validate_payload(request.get_json(silent=True), SUPPLIER_POLICY, partial=True)
    supplier = purchase_order_service.update_supplier(supplier_id, patch=patch)
    return success(supplier.to_dict(), message="Supplier updated")


@suppliers_bp.delete("/<int:supplier_id>")
@require_auth
@require_roles(*WAREHOUSE_ROLES)
def delete_supplier(supplier_id: int):
    purchase_order_service.delete_supplier(supplier_id)
    return success(None, message="Supplier deleted")


@suppliers_bp.get("/<int:supplier_id>/products")
@require_auth
def list_supplier_products(supplier_id: int):
    entries = purchase_order_service.list_supplier_products(supplier_id)
    return success([e.to_dict() for e in entries])


@suppliers_bp.post("/<int:supplier_id>/products")
@require_auth
@require_roles(*WAREHOUSE_ROLES)
def add_supplier_product(supplier_id: int):
    data = validate_payload(request.get_json(silent=True), SUPPLIER_PRODUCT_POLICY)
    entries = purchase_order_service.add_supplier_product(supplier_id, **data)
    return success([e.to_dict() for e in entries], message="Supplier product saved", status=201)


@suppliers_bp.delete("/<int:supplier_id>/products/<int:product_id>")
@require_auth
@require_roles(*WAREHOUSE_ROLES)
def remove_supplier_product(supplier_id: int, product_id: int):
    purchase_order_service.remove_supplier_product(supplier_id, product_id)
    return success(None, message="Supplier product removed")

# backend/backoffice/routes/products.py
"""
Product catalog routes.

Reads are open to every authenticated role; writes need admin or warehouse.
"""
from flask import Blueprint, g, request

from ..decorators import require_auth, require_roles
from ..permissions import WAREHOUSE_ROLES
from ..responses import success
from ..services import products_service
from ..validation import PRODUCT_POLICY, PRODUCT_UPDATE_POLICY, validate_payload
from . import API_PREFIX

products_bp = Blueprint("products", __name__, url_prefix=f"{API_PREFIX}/products")


@products_bp.get("")
@require_auth
def list_products():
    """
    Query params:
    - search: matches name or SKU
    - category: exact category
    - page / limit: pagination (default 20, max 100)
    """
    rows, meta = products_service.list_products(
        search=request.args.get("search"),
        category=request.args.get("category"),
        page=request.args.get("page", type=int),
        limit=request.args.get("limit", type=int),
    )
    return success([p.to_dict() for p in rows], meta=meta)


@products_bp.get("/categories")
@require_auth
def list_categories():
    return success(products_service.list_categories())


@products_bp.get("/<int:product_id>")
@require_auth
def get_product(product_id: int):
    return success(products_service.get_product(product_id).to_dict())


@products_bp.post("")
@require_auth
@require_roles(*WAREHOUSE_ROLES)
def create_product():
    patch = validate_payload(request.get_json(silent=True), PRODUCT_POLICY)
    opening_quantity = patch.pop("opening_quantity", 0)
    product = products_service.create_product(
        patch=patch,
        opening_quantity=opening_quantity,
        actor_id=g.current_user.id,
    )
    return success(product.to_dict(), message="Product created", status=201)


@products_bp.put("/<int:product_id>")
@require_auth
@require_roles(*WAREHOUSE_ROLES)
def update_product(product_id: int):
    patch = validate_payload(request.get_json(silent=True), PRODUCT_UPDATE_POLICY, partial=True)
    product = products_service.update_product(product_id, patch=patch)
    return success(product.to_dict(), message="Product updated")


@products_bp.delete("/<int:product_id>")
@require_auth
@require_roles(*WAREHOUSE_ROLES)
def delete_product(product_id: int):
    products_service.delete_product(product_id)
    return success(None, message="Product deleted")

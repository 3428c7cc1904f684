# backend/backoffice/routes/inventory.py
"""
Inventory routes: stock levels, the transaction ledger, low-stock report and
manual adjustments. Counters only ever change through the inventory engine.
"""
from flask import Blueprint, g, request

from ..decorators import require_auth, require_roles
from ..permissions import WAREHOUSE_ROLES
from ..responses import success
from ..services import inventory_service
from ..validation import ADJUSTMENT_POLICY, validate_payload
from . import API_PREFIX

inventory_bp = Blueprint("inventory", __name__, url_prefix=f"{API_PREFIX}/inventory")


@inventory_bp.get("/low-stock")
@require_auth
def low_stock():
    products = inventory_service.get_low_stock_products()
    return success([p.to_dict() for p in products])


@inventory_bp.get("/<int:product_id>")
@require_auth
def stock_level(product_id: int):
    return success(inventory_service.get_stock_level(product_id).to_dict())


@inventory_bp.get("/<int:product_id>/transactions")
@require_auth
def stock_transactions(product_id: int):
    limit = min(max(request.args.get("limit", 200, type=int), 1), 500)
    rows = inventory_service.list_stock_transactions(product_id, limit=limit)
    return success([tx.to_dict() for tx in rows])


@inventory_bp.post("/<int:product_id>/adjust")
@require_auth
@require_roles(*WAREHOUSE_ROLES)
def adjust(product_id: int):
    """
    Body: {transaction_type: adjustment|return|write_off, quantity_change: non-zero int, notes?}
    """
    data = validate_payload(request.get_json(silent=True), ADJUSTMENT_POLICY)
    product = inventory_service.perform_stock_adjustment(
        product_id=product_id,
        transaction_type=data["transaction_type"],
        quantity_change=data["quantity_change"],
        notes=data.get("notes"),
        actor_id=g.current_user.id,
    )
    return success(product.to_dict(), message="Stock adjusted")

# backend/backoffice/services/products_service.py
"""
Products Service

Product master data plus its single InventoryRecord. Stock counters are never
patched here: opening stock is booked through the inventory engine so the
ledger stays in step with quantity_on_hand.
"""
from __future__ import annotations

from flask import current_app
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..errors import AlreadyExists, NotFound
from ..extensions import db
from ..models import InventoryRecord, Product
from ..models.inventory import TX_ADJUSTMENT
from ..pagination import paginate
from ..time_utils import utcnow
from .concurrency import run_in_transaction
from .inventory_service import adjust_stock

PRODUCT_MUTABLE_FIELDS = {
    "sku", "name", "description", "category",
    "unit_price_cents", "cost_price_cents", "unit",
}
INVENTORY_MUTABLE_FIELDS = {"reorder_point", "reorder_quantity", "location"}


def apply_product_patch(product: Product, record: InventoryRecord, patch: dict) -> None:
    for k, v in patch.items():
        if k in PRODUCT_MUTABLE_FIELDS:
            setattr(product, k, v)
        elif k in INVENTORY_MUTABLE_FIELDS:
            setattr(record, k, v)


def _get_active_product(session: Session, product_id: int) -> Product:
    product = session.query(Product).filter(
        Product.id == product_id,
        Product.deleted_at.is_(None),
    ).first()
    if product is None:
        raise NotFound("Product not found")
    return product


def _ensure_sku_free(session: Session, sku: str, *, exclude_id: int | None = None) -> None:
    # Soft-deleted products keep their SKU reserved
    q = session.query(Product.id).filter(Product.sku == sku)
    if exclude_id is not None:
        q = q.filter(Product.id != exclude_id)
    if q.first() is not None:
        raise AlreadyExists("SKU already exists")


def list_products(
    *,
    search: str | None = None,
    category: str | None = None,
    page: int | None = None,
    limit: int | None = None,
) -> tuple[list[Product], dict]:
    q = db.session.query(Product).filter(Product.deleted_at.is_(None))
    if search:
        pattern = f"%{search}%"
        q = q.filter(or_(Product.name.ilike(pattern), Product.sku.ilike(pattern)))
    if category:
        q = q.filter(Product.category == category)
    q = q.order_by(Product.name.asc(), Product.id.asc())
    return paginate(q, page=page, limit=limit)


def list_categories() -> list[str]:
    rows = (
        db.session.query(Product.category)
        .filter(Product.deleted_at.is_(None), Product.category.isnot(None))
        .distinct()
        .order_by(Product.category.asc())
        .all()
    )
    return [r[0] for r in rows]


def get_product(product_id: int) -> Product:
    return _get_active_product(db.session, product_id)


def create_product(*, patch: dict, opening_quantity: int = 0, actor_id: int | None = None) -> Product:
    """
    Create a product with its inventory record.

    An opening_quantity > 0 is booked as an 'adjustment' ledger row in the
    same unit of work.
    """
    sku = patch.get("sku")
    if not sku:
        raise ValueError("sku is required")

    def _op(session: Session) -> Product:
        _ensure_sku_free(session, sku)

        product = Product()
        record = InventoryRecord(quantity_on_hand=0, quantity_reserved=0)
        product.inventory = record
        apply_product_patch(product, record, patch)
        session.add(product)
        try:
            session.flush()
        except IntegrityError as exc:
            raise AlreadyExists("SKU already exists") from exc

        if opening_quantity:
            adjust_stock(
                session,
                product_id=product.id,
                transaction_type=TX_ADJUSTMENT,
                quantity_change=opening_quantity,
                notes="Opening balance",
                actor_id=actor_id,
            )
        return product

    product = run_in_transaction(_op)
    current_app.logger.info("Product created id=%s sku=%s", product.id, product.sku)
    return product


def update_product(product_id: int, *, patch: dict) -> Product:
    def _op(session: Session) -> Product:
        product = _get_active_product(session, product_id)
        if "sku" in patch and patch["sku"] != product.sku:
            _ensure_sku_free(session, patch["sku"], exclude_id=product.id)
        apply_product_patch(product, product.inventory, patch)
        try:
            session.flush()
        except IntegrityError as exc:
            raise AlreadyExists("SKU already exists") from exc
        return product

    return run_in_transaction(_op)


def delete_product(product_id: int) -> None:
    """Soft delete; the product stays referenced by historical orders."""
    def _op(session: Session) -> None:
        product = _get_active_product(session, product_id)
        product.deleted_at = utcnow()

    run_in_transaction(_op)
    current_app.logger.info("Product soft-deleted id=%s", product_id)

# backend/ims/services/catalog_service.py
"""
Catalog Service: categories and products.

Every write is audited (Category / Inventory modules) in the same unit of work.
Stock is not editable here: create_product seeds current_stock from
opening_stock, after which only stock_service moves it.
"""
from __future__ import annotations

from ..extensions import db
from ..models import Category, Product
from ..errors import ConstraintViolation, NotFound, ValidationError
from .audit_service import (
    append_audit,
    MODULE_CATEGORY,
    MODULE_INVENTORY,
    ACTION_CREATE,
    ACTION_UPDATE,
    ACTION_DELETE,
)
from .concurrency import lock_for_update, run_atomic

PRODUCT_MUTABLE_FIELDS = {"name", "category_id", "cost_price_cents", "selling_price_cents"}
PRODUCT_STOCK_FIELDS = {"current_stock", "opening_stock"}


def _require_non_negative_cents(name: str, value) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{name} must be an integer amount in cents")
    if value < 0:
        raise ValidationError(f"{name} cannot be negative")
    return value


def _require_category(category_id: int | None) -> None:
    if category_id is None:
        return
    if db.session.query(Category.id).filter_by(id=category_id).first() is None:
        raise NotFound("Category", category_id)


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


# =============================================================================
# CATEGORIES
# =============================================================================

def list_categories() -> list[Category]:
    return db.session.query(Category).order_by(Category.name.asc()).all()


def create_category(*, name: str, created_by: str) -> Category:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Category name is required")

    def _op():
        if db.session.query(Category.id).filter_by(name=name).first() is not None:
            raise ConstraintViolation(f"Category {name!r} already exists")

        category = Category(name=name)
        db.session.add(category)
        db.session.flush()

        append_audit(
            target_id=category.id,
            module=MODULE_CATEGORY,
            action=ACTION_CREATE,
            old_state=None,
            new_state=category.to_dict(),
            changed_by=created_by,
        )
        return category

    return run_atomic(_op, label="category create")


def delete_category(*, category_id: int, deleted_by: str) -> None:
    """Delete a category. Blocked while any product still references it."""
    def _op():
        category = lock_for_update(db.session.query(Category).filter_by(id=category_id)).first()
        if category is None:
            raise NotFound("Category", category_id)

        in_use = db.session.query(Product.id).filter_by(category_id=category_id).count()
        if in_use:
            raise ConstraintViolation(
                "Category is still referenced by products",
                details={"category_id": category_id, "product_count": in_use},
            )

        snapshot = category.to_dict()
        db.session.delete(category)
        db.session.flush()

        append_audit(
            target_id=category_id,
            module=MODULE_CATEGORY,
            action=ACTION_DELETE,
            old_state=snapshot,
            new_state=None,
            changed_by=deleted_by,
        )

    run_atomic(_op, label="category delete")


# =============================================================================
# PRODUCTS
# =============================================================================

def get_product(product_id: int) -> Product:
    product = db.session.query(Product).filter_by(id=product_id).first()
    if product is None:
        raise NotFound("Product", product_id)
    return product


def list_products(category_id: int | None = None) -> list[Product]:
    query = db.session.query(Product)
    if category_id is not None:
        query = query.filter_by(category_id=category_id)
    return query.order_by(Product.name.asc(), Product.id.asc()).all()


def create_product(
    *,
    name: str,
    created_by: str,
    category_id: int | None = None,
    cost_price_cents: int = 0,
    selling_price_cents: int = 0,
    opening_stock: int = 0,
) -> Product:
    """
    Create a product. current_stock starts equal to opening_stock.

    Raises:
        ValidationError: blank name, negative prices or opening stock
        NotFound: category_id does not exist
    """
    name = (name or "").strip()
    if not name:
        raise ValidationError("Product name is required")
    _require_non_negative_cents("cost_price_cents", cost_price_cents)
    _require_non_negative_cents("selling_price_cents", selling_price_cents)
    if isinstance(opening_stock, bool) or not isinstance(opening_stock, int) or opening_stock < 0:
        raise ValidationError("opening_stock must be a non-negative integer")

    def _op():
        _require_category(category_id)

        product = Product(
            name=name,
            category_id=category_id,
            cost_price_cents=cost_price_cents,
            selling_price_cents=selling_price_cents,
            opening_stock=opening_stock,
            current_stock=opening_stock,
        )
        db.session.add(product)
        db.session.flush()  # ensure product.id exists before audit append

        append_audit(
            target_id=product.id,
            module=MODULE_INVENTORY,
            action=ACTION_CREATE,
            old_state=None,
            new_state=product.to_dict(),
            changed_by=created_by,
        )
        return product

    return run_atomic(_op, label="product create")


def update_product(*, product_id: int, patch: dict, changed_by: str) -> Product:
    """
    Update descriptive and pricing fields of a product.

    Raises:
        ValidationError: patch touches stock fields or unknown fields
        NotFound: product or new category does not exist
    """
    stock_fields = PRODUCT_STOCK_FIELDS & set(patch)
    if stock_fields:
        raise ValidationError(
            "Stock cannot be edited directly; record a purchase or a stock correction",
            details={"fields": sorted(stock_fields)},
        )
    unknown = set(patch) - PRODUCT_MUTABLE_FIELDS
    if unknown:
        raise ValidationError("Unknown product fields", details={"fields": sorted(unknown)})
    if "name" in patch:
        patch = {**patch, "name": (patch["name"] or "").strip()}
        if not patch["name"]:
            raise ValidationError("Product name is required")
    for field in ("cost_price_cents", "selling_price_cents"):
        if field in patch:
            _require_non_negative_cents(field, patch[field])

    def _op():
        product = lock_for_update(db.session.query(Product).filter_by(id=product_id)).first()
        if product is None:
            raise NotFound("Product", product_id)
        if "category_id" in patch:
            _require_category(patch["category_id"])

        old_state = {k: getattr(product, k) for k in patch}
        apply_product_patch(product, patch)
        db.session.flush()

        append_audit(
            target_id=product.id,
            module=MODULE_INVENTORY,
            action=ACTION_UPDATE,
            old_state=old_state,
            new_state={k: getattr(product, k) for k in patch},
            changed_by=changed_by,
        )
        return product

    return run_atomic(_op, label="product update")

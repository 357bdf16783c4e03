from __future__ import annotations

from ..extensions import db
from ims.time_utils import to_utc_z


class Category(db.Model):
    """Product grouping. Cannot be deleted while products still reference it."""
    __tablename__ = "categories"
    __table_args__ = (
        db.UniqueConstraint("name", name="uq_categories_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Category id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "created_at": to_utc_z(self.created_at),
        }


class Product(db.Model):
    """
    Product master data plus the authoritative stock counter.

    STOCK MODEL:
    current_stock is a stored counter, not derived from a transaction sum.
    - It is only ever changed by stock_service.adjust_stock() with a signed delta
    - The delta is applied by a single conditional UPDATE against the stored value
    - opening_stock is the baseline captured at creation and never changes
    - ck_products_current_stock_non_negative holds for writes outside the ledger too
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("current_stock >= 0", name="ck_products_current_stock_non_negative"),
        db.Index("ix_products_category_name", "category_id", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=True, index=True)
    name = db.Column(db.String(255), nullable=False)

    # Authoritative storage in cents (frontend may only format for display)
    cost_price_cents = db.Column(db.Integer, nullable=False, default=0)
    selling_price_cents = db.Column(db.Integer, nullable=False, default=0)

    opening_stock = db.Column(db.Integer, nullable=False, default=0)
    current_stock = db.Column(db.Integer, nullable=False, default=0)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} current_stock={self.current_stock}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "category_id": self.category_id,
            "name": self.name,
            "cost_price_cents": self.cost_price_cents,
            "selling_price_cents": self.selling_price_cents,
            "opening_stock": self.opening_stock,
            "current_stock": self.current_stock,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }

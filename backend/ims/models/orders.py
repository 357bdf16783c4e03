from __future__ import annotations

from ..extensions import db
from ims.time_utils import to_utc_z, to_iso_date
from .order_values import Delivery, PaymentState, Financials, OrderMeta, Discount


class Order(db.Model):
    """
    Customer order for a single product.

    Only delivery.status and payment.* change after creation. The JSON
    sub-objects are read and written through the typed properties below
    (delivery_info, payment_state, ...) so no caller mutates a dict in place.

    version_id: status and payment updates are read-modify-write on a JSON
    column. The row is locked for update; a concurrent write that slips past
    the lock surfaces as StaleDataError.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_orders_quantity_positive"),
        db.Index("ix_orders_order_date", "order_date"),
        db.Index("ix_orders_product_date", "product_id", "order_date"),
    )

    id = db.Column(db.String(50), primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    product_name = db.Column(db.String(255), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    subtotal_cents = db.Column(db.Integer, nullable=False)

    ref_numbers = db.Column(db.JSON, nullable=True)
    customer = db.Column(db.JSON, nullable=True)
    discount = db.Column(db.JSON, nullable=True)
    delivery = db.Column(db.JSON, nullable=False)
    payment = db.Column(db.JSON, nullable=False)
    financials = db.Column(db.JSON, nullable=False)
    meta = db.Column(db.JSON, nullable=False)

    order_date = db.Column(db.Date, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    # Typed accessors; setters always assign a fresh dict so the JSON column is flagged dirty

    @property
    def delivery_info(self) -> Delivery:
        return Delivery.from_dict(self.delivery)

    @delivery_info.setter
    def delivery_info(self, value: Delivery) -> None:
        self.delivery = value.to_dict()

    @property
    def payment_state(self) -> PaymentState:
        return PaymentState.from_dict(self.payment)

    @payment_state.setter
    def payment_state(self, value: PaymentState) -> None:
        self.payment = value.to_dict()

    @property
    def financial_summary(self) -> Financials:
        return Financials.from_dict(self.financials)

    @property
    def discount_terms(self) -> Discount:
        return Discount.from_dict(self.discount)

    @property
    def meta_info(self) -> OrderMeta:
        return OrderMeta.from_dict(self.meta)

    @property
    def status(self) -> str:
        return self.delivery_info.status

    def __repr__(self) -> str:
        return f"<Order id={self.id!r} product_id={self.product_id} quantity={self.quantity} status={self.status!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "subtotal_cents": self.subtotal_cents,
            "ref_numbers": self.ref_numbers or {},
            "customer": self.customer or {},
            "discount": self.discount or {},
            "delivery": self.delivery,
            "payment": self.payment,
            "financials": self.financials,
            "meta": self.meta,
            "order_date": to_iso_date(self.order_date),
            "created_at": to_utc_z(self.created_at),
            "version_id": self.version_id,
        }

"""
Stock ledger tests: signed-delta adjustments, corrections, reconciliation.
"""

import pytest

from ims.errors import InsufficientStock, NotFound, ValidationError
from ims.models.order_values import STATUS_CANCELLED
from ims.services import audit_service, order_service, purchase_service, stock_service
from ims.services.audit_service import MODULE_INVENTORY, ACTION_UPDATE


class TestAdjustStock:
    """adjust_stock runs inside the caller's unit of work and never commits."""

    def test_increment_and_decrement(self, db_session, product):
        assert stock_service.adjust_stock(product.id, 5) == 15
        assert stock_service.adjust_stock(product.id, -12) == 3
        db_session.commit()

        assert stock_service.get_current_stock(product.id) == 3

    def test_zero_delta_returns_current_stock(self, db_session, product):
        assert stock_service.adjust_stock(product.id, 0) == 10

    def test_decrement_to_exactly_zero_is_allowed(self, db_session, product):
        assert stock_service.adjust_stock(product.id, -10) == 0

    def test_decrement_below_zero_raises(self, db_session, product):
        with pytest.raises(InsufficientStock) as excinfo:
            stock_service.adjust_stock(product.id, -11)
        db_session.rollback()

        err = excinfo.value
        assert err.product_id == product.id
        assert err.requested == 11
        assert err.available == 10
        assert err.details["requested_quantity"] == 11
        assert stock_service.get_current_stock(product.id) == 10

    def test_rejects_non_integer_delta(self, db_session, product):
        with pytest.raises(ValidationError):
            stock_service.adjust_stock(product.id, 1.5)
        with pytest.raises(ValidationError):
            stock_service.adjust_stock(product.id, True)

    def test_unknown_product(self, db_session):
        with pytest.raises(NotFound):
            stock_service.adjust_stock(999999, 1)

    def test_bumps_version(self, db_session, product):
        before = product.version_id
        stock_service.adjust_stock(product.id, 1)
        assert product.version_id == before + 1


class TestCorrectStock:

    def test_correction_is_applied_and_audited(self, db_session, product):
        updated = stock_service.correct_stock(
            product_id=product.id, delta=-2, changed_by="manager", reason="Damaged in transit"
        )
        assert updated.current_stock == 8

        entries = audit_service.list_for_target(product.id, module=MODULE_INVENTORY)
        correction = entries[-1]
        assert correction.action == ACTION_UPDATE
        assert correction.old_state == {"current_stock": 10}
        assert correction.new_state == {"current_stock": 8, "delta": -2, "reason": "Damaged in transit"}
        assert correction.changed_by == "manager"

    def test_correction_cannot_go_negative(self, db_session, product):
        audit_count = len(audit_service.list_recent())

        with pytest.raises(InsufficientStock):
            stock_service.correct_stock(product_id=product.id, delta=-50, changed_by="manager")

        assert stock_service.get_current_stock(product.id) == 10
        assert len(audit_service.list_recent()) == audit_count

    def test_zero_correction_rejected(self, db_session, product):
        with pytest.raises(ValidationError):
            stock_service.correct_stock(product_id=product.id, delta=0, changed_by="manager")


class TestStockSummary:

    def test_reconciles_purchases_orders_and_corrections(self, db_session, product):
        purchase_service.record_purchase(
            product_id=product.id, quantity=5, purchase_price_cents=150, created_by="clerk"
        )
        order_service.create_order(product_id=product.id, quantity=3, received_by="clerk")
        cancelled = order_service.create_order(product_id=product.id, quantity=2, received_by="clerk")
        order_service.update_status(order_id=cancelled.id, new_status=STATUS_CANCELLED, changed_by="clerk")
        stock_service.correct_stock(product_id=product.id, delta=-1, changed_by="manager")

        summary = stock_service.get_stock_summary(product.id)

        assert summary["opening_stock"] == 10
        assert summary["purchased"] == 5
        assert summary["reserved_by_active_orders"] == 3
        assert summary["expected_stock"] == 12
        assert summary["current_stock"] == 11
        assert summary["correction_delta"] == -1

import pytest

from ims.errors import NotFound, ValidationError
from ims.models.order_values import (
    PAYMENT_STATUS_PAID,
    PAYMENT_STATUS_PARTIAL,
    PAYMENT_STATUS_UNPAID,
    STATUS_CANCELLED,
)
from ims.services import audit_service, order_service, payment_service
from ims.services.audit_service import MODULE_FINANCIAL, ACTION_PAYMENT
from ims.services.payment_service import METHOD_CASH, METHOD_MOBILE_BANKING


@pytest.fixture
def order(db_session, product):
    """Order with net payable 12.00 (4 x 3.00)."""
    return order_service.create_order(product_id=product.id, quantity=4, received_by="clerk")


def _assert_balanced(order_id):
    summary = payment_service.get_payment_summary(order_id)
    assert summary["due_amount_cents"] == summary["net_payable_cents"] - summary["paid_amount_cents"]
    return summary


class TestApplyPayment:

    def test_partial_then_full_payment(self, db_session, order):
        assert order.financial_summary.net_payable_cents == 1200

        updated = payment_service.apply_payment(
            order_id=order.id, amount_cents=500, method=METHOD_CASH, received_by="cashier"
        )
        state = updated.payment_state
        assert state.paid_amount_cents == 500
        assert state.due_amount_cents == 700
        assert state.status == PAYMENT_STATUS_PARTIAL
        _assert_balanced(order.id)

        updated = payment_service.apply_payment(
            order_id=order.id, amount_cents=700, method=METHOD_MOBILE_BANKING,
            received_by="cashier", transaction_id="TXN-889",
        )
        state = updated.payment_state
        assert state.paid_amount_cents == 1200
        assert state.due_amount_cents == 0
        assert state.status == PAYMENT_STATUS_PAID
        assert [h.amount_cents for h in state.history] == [500, 700]
        assert state.history[1].transaction_id == "TXN-889"
        _assert_balanced(order.id)

    def test_payment_ids_are_sequential(self, db_session, order):
        payment_service.apply_payment(order_id=order.id, amount_cents=100, method=METHOD_CASH, received_by="c")
        payment_service.apply_payment(order_id=order.id, amount_cents=100, method=METHOD_CASH, received_by="c")

        history = payment_service.get_payment_summary(order.id)["history"]
        assert [h["id"] for h in history] == ["PAY-000001", "PAY-000002"]

    def test_overpayment_is_recorded(self, db_session, order):
        payment_service.apply_payment(order_id=order.id, amount_cents=1500, method=METHOD_CASH, received_by="c")

        summary = _assert_balanced(order.id)
        assert summary["paid_amount_cents"] == 1500
        assert summary["due_amount_cents"] == -300
        assert summary["status"] == PAYMENT_STATUS_PAID

    def test_payment_is_audited(self, db_session, order):
        payment_service.apply_payment(order_id=order.id, amount_cents=500, method=METHOD_CASH, received_by="cashier")

        entries = audit_service.list_for_target(order.id, module=MODULE_FINANCIAL)
        assert len(entries) == 1
        entry = entries[0]
        assert entry.action == ACTION_PAYMENT
        assert entry.changed_by == "cashier"
        assert entry.old_state["paid_amount_cents"] == 0
        assert entry.old_state["status"] == PAYMENT_STATUS_UNPAID
        assert entry.new_state["paid_amount_cents"] == 500
        assert entry.new_state["due_amount_cents"] == 700

    def test_payment_allowed_on_cancelled_order(self, db_session, order):
        order_service.update_status(order_id=order.id, new_status=STATUS_CANCELLED, changed_by="clerk")

        updated = payment_service.apply_payment(
            order_id=order.id, amount_cents=200, method=METHOD_CASH, received_by="cashier"
        )
        assert updated.payment_state.paid_amount_cents == 200

    @pytest.mark.parametrize("amount", [0, -100, 12.5])
    def test_rejects_bad_amount(self, db_session, order, amount):
        with pytest.raises(ValidationError):
            payment_service.apply_payment(order_id=order.id, amount_cents=amount, method=METHOD_CASH, received_by="c")

    def test_rejects_unknown_method(self, db_session, order):
        with pytest.raises(ValidationError):
            payment_service.apply_payment(order_id=order.id, amount_cents=100, method="Barter", received_by="c")

    def test_unknown_order(self, db_session):
        with pytest.raises(NotFound):
            payment_service.apply_payment(order_id="ORD-404", amount_cents=100, method=METHOD_CASH, received_by="c")

    def test_payment_does_not_touch_stock_or_status(self, db_session, product, order):
        payment_service.apply_payment(order_id=order.id, amount_cents=1200, method=METHOD_CASH, received_by="c")

        assert order_service.get_order(order.id).status == "Pending"
        assert product.current_stock == 6

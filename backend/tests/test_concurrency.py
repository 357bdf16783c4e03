# Overview: Concurrency tests for the stock ledger against a file-backed SQLite database.

"""
Threaded tests: concurrent writers must never oversell, never share a document number,
and never lose a payment or a stock movement on the same order.

Each worker runs in its own app context (own session, own connection), so
the database, not the identity map, decides who wins.
"""
import os
import tempfile
import threading
import unittest

from ims import create_app
from ims.errors import InsufficientStock
from ims.extensions import db
from ims.models import Order
from ims.models.order_values import STATUS_CANCELLED, STATUS_CONFIRMED, is_active_status
from ims.services import catalog_service, order_service, payment_service, purchase_service, stock_service
from ims.services.payment_service import METHOD_CASH


class ConcurrencyTests(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        db_path = os.path.join(self.tmpdir.name, "concurrency.db")
        self.app = create_app({
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": f"sqlite:///{db_path}",
        })

        with self.app.app_context():
            db.drop_all()
            db.create_all()

            last_unit = catalog_service.create_product(
                name="Last Unit", selling_price_cents=1000, opening_stock=1, created_by="seed"
            )
            self.last_unit_id = last_unit.id

            stocked = catalog_service.create_product(
                name="Stocked", selling_price_cents=500, opening_stock=20, created_by="seed"
            )
            self.stocked_id = stocked.id

    def tearDown(self):
        with self.app.app_context():
            db.session.remove()
            db.drop_all()
            db.session.remove()
            db.engine.dispose()
        self.tmpdir.cleanup()

    def _run_workers(self, targets):
        results = []
        lock = threading.Lock()
        barrier = threading.Barrier(len(targets))

        def worker(target):
            with self.app.app_context():
                try:
                    barrier.wait()
                    outcome = target()
                    with lock:
                        results.append(("ok", outcome))
                except Exception as exc:
                    with lock:
                        results.append(("error", exc))
                finally:
                    db.session.remove()

        threads = [threading.Thread(target=worker, args=(t,)) for t in targets]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        return results

    def test_two_orders_for_the_last_unit(self):
        def place(order_id):
            return lambda: order_service.create_order(
                product_id=self.last_unit_id, quantity=1, received_by="clerk", order_id=order_id
            ).id

        results = self._run_workers([place("RACE-A"), place("RACE-B")])

        successes = [value for kind, value in results if kind == "ok"]
        failures = [value for kind, value in results if kind == "error"]
        self.assertEqual(len(successes), 1)
        self.assertEqual(len(failures), 1)
        self.assertIsInstance(failures[0], InsufficientStock)

        with self.app.app_context():
            self.assertEqual(stock_service.get_current_stock(self.last_unit_id), 0)
            self.assertEqual(db.session.query(Order).count(), 1)

    def test_many_orders_never_oversell(self):
        # 20 units, 8 workers asking for 3 each: at most 6 can succeed
        targets = [
            (lambda: order_service.create_order(product_id=self.stocked_id, quantity=3, received_by="clerk").id)
            for _ in range(8)
        ]

        results = self._run_workers(targets)

        successes = [value for kind, value in results if kind == "ok"]
        failures = [value for kind, value in results if kind == "error"]
        self.assertEqual(len(successes), 6)
        self.assertTrue(all(isinstance(f, InsufficientStock) for f in failures))
        self.assertEqual(len(set(successes)), len(successes))

        with self.app.app_context():
            self.assertEqual(stock_service.get_current_stock(self.stocked_id), 2)

    def test_concurrent_purchases_all_land(self):
        targets = [
            (lambda: purchase_service.record_purchase(
                product_id=self.last_unit_id, quantity=2, purchase_price_cents=700, created_by="clerk"
            ).id)
            for _ in range(5)
        ]

        results = self._run_workers(targets)

        self.assertTrue(all(kind == "ok" for kind, _ in results), results)
        numbers = [value for _, value in results]
        self.assertEqual(sorted(numbers), [f"PUR-{n:06d}" for n in range(1, 6)])

        with self.app.app_context():
            self.assertEqual(stock_service.get_current_stock(self.last_unit_id), 11)

    def test_payments_and_status_flips_on_one_order(self):
        with self.app.app_context():
            order_id = order_service.create_order(
                product_id=self.stocked_id, quantity=5, received_by="clerk"
            ).id

        def pay():
            return payment_service.apply_payment(
                order_id=order_id, amount_cents=10, method=METHOD_CASH, received_by="cashier"
            ).id

        def flip(status):
            return lambda: order_service.update_status(
                order_id=order_id, new_status=status, changed_by="clerk"
            ).id

        targets = [pay for _ in range(8)]
        targets += [flip(s) for s in (STATUS_CANCELLED, STATUS_CONFIRMED, STATUS_CANCELLED, STATUS_CONFIRMED)]

        results = self._run_workers(targets)

        self.assertTrue(all(kind == "ok" for kind, _ in results), results)

        with self.app.app_context():
            order = order_service.get_order(order_id)
            state = order.payment_state
            self.assertEqual(state.paid_amount_cents, 80)
            self.assertEqual(len(state.history), 8)
            self.assertEqual(len({h.id for h in state.history}), 8)
            self.assertEqual(state.due_amount_cents, order.financial_summary.net_payable_cents - 80)

            expected_stock = 15 if is_active_status(order.status) else 20
            self.assertEqual(stock_service.get_current_stock(self.stocked_id), expected_stock)


if __name__ == "__main__":
    unittest.main()

"""
Threaded concurrency tests against a file-backed SQLite database.

Run with:
    pytest backend/tests/test_concurrency.py
"""
import os
import tempfile
import threading
import unittest

from supplychain import create_app
from supplychain.errors import Unauthorized
from supplychain.extensions import db
from supplychain.models import HistoryEntry, PendingRequestSlot, SystemState
from supplychain.roles import ItemStatus, Role
from supplychain.services import custody_service, registration_service, registry_service, system_service


ADMIN = "0xadmin"
MAKER = "0xmaker"
SHIPPERS = ("0xshipper-a", "0xshipper-b")


class ConcurrencyTests(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        db_path = os.path.join(self.tmpdir.name, "concurrency.db")
        self.app = create_app({
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": f"sqlite:///{db_path}",
            "ADMIN_IDENTITY": ADMIN,
            "RETRY_ATTEMPTS": 10,
            "RETRY_BACKOFF_BASE": 0.05,
        })

        with self.app.app_context():
            db.drop_all()
            db.create_all()

            registry_service.register_participant(MAKER, Role.MANUFACTURER, "Acme", caller=ADMIN)
            for shipper in SHIPPERS:
                registry_service.register_participant(shipper, Role.DISTRIBUTOR, shipper, caller=ADMIN)

            item = custody_service.register_item("Widget", "desc", caller=MAKER)
            self.item_id = item.id

    def tearDown(self):
        with self.app.app_context():
            db.session.remove()
            db.drop_all()
            db.session.remove()
            db.engine.dispose()
        self.tmpdir.cleanup()

    def _run_threads(self, targets):
        threads = [threading.Thread(target=t) for t in targets]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

    def test_concurrent_transfer_single_winner(self):
        results = []
        lock = threading.Lock()

        def worker(recipient):
            def run():
                with self.app.app_context():
                    try:
                        custody_service.transfer_item(
                            self.item_id, recipient, ItemStatus.IN_TRANSIT, caller=MAKER
                        )
                        with lock:
                            results.append(("transferred", recipient))
                    except Exception as exc:
                        with lock:
                            results.append((exc, recipient))
                    finally:
                        db.session.remove()
            return run

        self._run_threads([worker(s) for s in SHIPPERS])

        winners = [r for r in results if r[0] == "transferred"]
        losers = [r for r in results if r[0] != "transferred"]
        self.assertEqual(len(winners), 1)
        self.assertEqual(len(losers), 1)
        self.assertIsInstance(losers[0][0], Unauthorized)

        with self.app.app_context():
            item = custody_service.get_item(self.item_id)
            self.assertEqual(item.current_holder, winners[0][1])
            history = db.session.query(HistoryEntry).filter_by(item_id=self.item_id).count()
            self.assertEqual(history, 2)

    def test_concurrent_item_ids_unique(self):
        created = []
        errors = []
        lock = threading.Lock()

        def worker():
            with self.app.app_context():
                try:
                    item = custody_service.register_item("Gadget", "desc", caller=MAKER)
                    with lock:
                        created.append(item.id)
                except Exception as exc:
                    with lock:
                        errors.append(exc)
                finally:
                    db.session.remove()

        self._run_threads([worker for _ in range(6)])

        self.assertFalse(errors)
        self.assertEqual(sorted(created), [2, 3, 4, 5, 6, 7])

    def test_concurrent_requests_keep_index_dense(self):
        errors = []
        lock = threading.Lock()
        identities = [f"0xcustomer-{i}" for i in range(5)]

        def worker(identity):
            def run():
                with self.app.app_context():
                    try:
                        registration_service.request_registration(identity, Role.CUSTOMER, identity)
                    except Exception as exc:
                        with lock:
                            errors.append(exc)
                    finally:
                        db.session.remove()
            return run

        self._run_threads([worker(i) for i in identities])

        self.assertFalse(errors)
        with self.app.app_context():
            positions = [p for (p,) in db.session.query(PendingRequestSlot.position).order_by(PendingRequestSlot.position)]
            self.assertEqual(positions, list(range(len(identities))))
            pending = registration_service.list_pending_identities(caller=ADMIN)
            self.assertEqual(sorted(pending), sorted(identities))


    def test_concurrent_first_use_creates_one_system_state(self):
        with self.app.app_context():
            db.session.query(SystemState).delete()
            db.session.commit()

        errors = []
        lock = threading.Lock()
        identities = [f"0xfresh-{i}" for i in range(4)]

        def worker(identity):
            def run():
                with self.app.app_context():
                    try:
                        registration_service.request_registration(identity, Role.RETAILER, identity)
                    except Exception as exc:
                        with lock:
                            errors.append(exc)
                    finally:
                        db.session.remove()
            return run

        self._run_threads([worker(i) for i in identities])

        self.assertFalse(errors)
        with self.app.app_context():
            states = db.session.query(SystemState).all()
            self.assertEqual(len(states), 1)
            self.assertEqual(states[0].id, system_service.SYSTEM_STATE_ID)
            self.assertEqual(states[0].admin_identity, ADMIN)
            self.assertEqual(states[0].registry_revision, len(identities))
            pending = registration_service.list_pending_identities(caller=ADMIN)
            self.assertEqual(sorted(pending), sorted(identities))


if __name__ == "__main__":
    unittest.main()

import tempfile
import threading
import unittest
from pathlib import Path

from evatlottery.config import Settings
from evatlottery.db.engine import make_engine
from evatlottery.errors import DuplicateReceiptError, RateLimitedError
from evatlottery.ledger import LedgerStore, LockRegistry
from evatlottery.models import RedemptionEntry
from evatlottery.workflows import participant_stats, submit_scan

THREADS = 8


def _run_concurrently(target, args_list):
    barrier = threading.Barrier(len(args_list))
    results: list = [None] * len(args_list)

    def worker(index, args):
        barrier.wait()
        try:
            results[index] = target(*args)
        except Exception as exc:  # collected for assertions
            results[index] = exc

    threads = [
        threading.Thread(target=worker, args=(i, args))
        for i, args in enumerate(args_list)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)
    return results


class ConcurrentRedemptionTestCase(unittest.TestCase):
    def setUp(self):
        # A file database, so every thread gets its own connection.
        self._tmpdir = tempfile.TemporaryDirectory()
        url = f"sqlite+pysqlite:///{Path(self._tmpdir.name) / 'ledger.db'}"
        self.store = LedgerStore(make_engine(url))
        self.store.init()

    def tearDown(self):
        self.store.dispose()
        self._tmpdir.cleanup()

    def test_same_receipt_is_redeemed_exactly_once(self):
        code = "GRA-VAT-2025-RACE-0001-ABCD"
        phones = [f"02400000{i:02d}" for i in range(THREADS)]

        results = _run_concurrently(
            lambda phone: submit_scan(self.store, code, phone),
            [(phone,) for phone in phones],
        )

        successes = [r for r in results if not isinstance(r, Exception)]
        duplicates = [r for r in results if isinstance(r, DuplicateReceiptError)]
        self.assertEqual(len(successes), 1)
        self.assertEqual(len(duplicates), THREADS - 1)

        with self.store.session_scope() as session:
            self.assertEqual(session.query(RedemptionEntry).count(), 1)

    def test_rate_limit_holds_under_concurrent_scans(self):
        settings = Settings(max_scans_per_hour=3)
        phone = "0241234567"
        codes = [f"GRA-VAT-2025-RATE-{i:04d}-ABCD" for i in range(THREADS)]

        results = _run_concurrently(
            lambda code: submit_scan(self.store, code, phone, settings=settings),
            [(code,) for code in codes],
        )

        successes = [r for r in results if not isinstance(r, Exception)]
        limited = [r for r in results if isinstance(r, RateLimitedError)]
        self.assertEqual(len(successes), 3)
        self.assertEqual(len(limited), THREADS - 3)
        self.assertEqual(participant_stats(self.store, phone).scans, 3)


class LockRegistryTestCase(unittest.TestCase):
    def test_locks_are_released_after_use(self):
        registry = LockRegistry()
        with registry.hold("a"):
            with registry.hold("b"):
                self.assertEqual(len(registry), 2)
        self.assertEqual(len(registry), 0)

    def test_same_key_is_mutually_exclusive(self):
        registry = LockRegistry()
        inside = []
        overlaps = []

        def worker():
            with registry.hold("receipt"):
                inside.append(1)
                if len(inside) > 1:
                    overlaps.append(True)
                threading.Event().wait(0.01)
                inside.pop()

        threads = [threading.Thread(target=worker) for _ in range(5)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10)

        self.assertEqual(overlaps, [])
        self.assertEqual(len(registry), 0)


if __name__ == "__main__":
    unittest.main()

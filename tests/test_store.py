import tempfile
import unittest
from pathlib import Path

from utr_review.store import STATUS_COMPLETED, STATUS_PENDING, ReviewStore, StoreError, TTLCache


class _Clock:
    def __init__(self, now: float) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class ReviewStoreTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        self.store = ReviewStore(self.root)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_missing_record(self) -> None:
        self.assertIsNone(self.store.get("1234", 2025))

    def test_status_flow_keeps_created_at(self) -> None:
        pending = self.store.mark_pending("1234", 2025)
        self.assertEqual(pending["status"], STATUS_PENDING)
        done = self.store.mark_completed("1234", 2025, {"year": 2025})
        self.assertEqual(done["createdAt"], pending["createdAt"])
        record = self.store.get("1234", 2025)
        self.assertEqual(record["status"], STATUS_COMPLETED)
        self.assertEqual(record["data"], {"year": 2025})
        self.assertTrue((self.root / "reviews" / "1234" / "2025.json").exists())

    def test_failed_record_keeps_error(self) -> None:
        self.store.mark_failed("1234", 2025, "code=login_failed")
        self.assertEqual(self.store.get("1234", 2025)["error"], "code=login_failed")

    def test_bad_player_id(self) -> None:
        with self.assertRaises(StoreError) as cm:
            self.store.get("../etc", 2025)
        self.assertIn("code=bad_player_id", str(cm.exception))

    def test_bad_status(self) -> None:
        with self.assertRaises(StoreError):
            self.store.put("1234", 2025, status="running")

    def test_corrupt_record(self) -> None:
        path = self.root / "reviews" / "1234" / "2025.json"
        path.parent.mkdir(parents=True)
        path.write_text("{not json", encoding="utf-8")
        with self.assertRaises(StoreError) as cm:
            self.store.get("1234", 2025)
        self.assertIn("code=corrupt_record", str(cm.exception))


class TTLCacheTests(unittest.TestCase):
    def test_entries_expire(self) -> None:
        clock = _Clock(1000.0)
        cache = TTLCache(60, clock=clock)
        cache.set("history:1", [1, 2])
        self.assertEqual(cache.get("history:1"), [1, 2])
        self.assertIn("history:1", cache)
        clock.now += 61
        self.assertIsNone(cache.get("history:1"))
        self.assertEqual(len(cache), 0)

    def test_entries_survive_reload(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "cache.json"
            clock = _Clock(1000.0)
            TTLCache(60, path=path, clock=clock).set("k", {"v": 1})
            reloaded = TTLCache(60, path=path, clock=clock)
            self.assertEqual(reloaded.get("k"), {"v": 1})
            self.assertIsNone(TTLCache(60, path=Path(tmp) / "missing.json").get("k"))


if __name__ == "__main__":
    unittest.main()

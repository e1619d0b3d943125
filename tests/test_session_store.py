import json
import tempfile
import unittest
from datetime import datetime, timedelta, UTC
from pathlib import Path

from fakes import SNAPSHOT
from session_crawler.session_store import SessionStore, is_valid_snapshot, session_key


class TestSessionStore(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.directory = Path(self._tmp.name) / "sessions"
        self.store = SessionStore(self.directory, session_key("taobao", "https://www.taobao.com"))

    def tearDown(self):
        self._tmp.cleanup()

    def test_key_is_stable_per_site_and_base_url(self):
        key = session_key("taobao", "https://www.taobao.com")
        self.assertEqual(key, session_key("taobao", "https://www.taobao.com"))
        self.assertTrue(key.startswith("taobao-"))
        self.assertNotEqual(key, session_key("taobao", "https://world.taobao.com"))

    def test_save_then_load_returns_same_document(self):
        path = self.store.save(SNAPSHOT)
        self.assertEqual(path, self.store.path)
        self.assertTrue(self.store.exists())
        self.assertEqual(self.store.load(), SNAPSHOT)

    def test_save_leaves_no_temp_files(self):
        self.store.save(SNAPSHOT)
        self.store.save(SNAPSHOT)
        self.assertEqual([p.name for p in self.directory.iterdir()], [self.store.path.name])

    def test_missing_snapshot(self):
        self.assertFalse(self.store.exists())
        self.assertIsNone(self.store.load())
        self.assertFalse(self.store.has_snapshot())
        self.assertIsNone(self.store.modified_at())

    def test_corrupt_snapshot_is_treated_as_absent(self):
        self.directory.mkdir(parents=True)
        self.store.path.write_text("{not json", encoding="utf-8")
        self.assertTrue(self.store.exists())
        self.assertIsNone(self.store.load())
        self.assertFalse(self.store.has_snapshot())

    def test_malformed_snapshot_is_treated_as_absent(self):
        self.directory.mkdir(parents=True)
        self.store.path.write_text(json.dumps({"cookies": "nope"}), encoding="utf-8")
        self.assertIsNone(self.store.load())

    def test_save_rejects_malformed_snapshot(self):
        with self.assertRaises(ValueError):
            self.store.save({"cookies": []})
        self.assertFalse(self.store.exists())

    def test_delete(self):
        self.store.save(SNAPSHOT)
        self.assertTrue(self.store.delete())
        self.assertFalse(self.store.exists())
        self.assertFalse(self.store.delete())

    def test_modified_at_is_recent_utc(self):
        self.store.save(SNAPSHOT)
        modified = self.store.modified_at()
        self.assertIsNotNone(modified)
        self.assertEqual(modified.tzinfo, UTC)
        self.assertLess(abs(datetime.now(UTC) - modified), timedelta(minutes=1))

    def test_is_valid_snapshot(self):
        self.assertTrue(is_valid_snapshot({"cookies": [], "origins": []}))
        self.assertFalse(is_valid_snapshot([]))
        self.assertFalse(is_valid_snapshot({"cookies": []}))

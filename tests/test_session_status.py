import tempfile
import unittest
from datetime import timedelta
from pathlib import Path

from fakes import HOME_ANONYMOUS, HOME_URL, SNAPSHOT, FakeEngine, Route, logged_in_engine
from session_crawler.config import CrawlerConfig
from session_crawler.crawler import SessionCrawler


class TestSessionStatus(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.config = CrawlerConfig(session_dir=Path(self._tmp.name), session_ttl_days=7)

    def tearDown(self):
        self._tmp.cleanup()

    def make_crawler(self, engine: FakeEngine) -> SessionCrawler:
        crawler = SessionCrawler(self.config, engine=engine)
        self.addAsyncCleanup(crawler.close)
        return crawler

    async def test_no_snapshot_never_touches_the_browser(self):
        engine = FakeEngine()
        crawler = self.make_crawler(engine)

        status = await crawler.get_session_status()

        self.assertFalse(status.is_active)
        self.assertFalse(status.is_logged_in)
        self.assertIsNone(status.expires_at)
        self.assertEqual(engine.launches, 0)
        self.assertEqual(engine.pages_opened, 0)

    async def test_logged_in_snapshot(self):
        engine = logged_in_engine()
        crawler = self.make_crawler(engine)
        crawler.store.save(SNAPSHOT)

        status = await crawler.get_session_status()

        self.assertTrue(status.is_active)
        self.assertTrue(status.is_logged_in)
        self.assertEqual(status.username, "tb_buyer_88")
        self.assertEqual(status.last_updated, crawler.store.modified_at())
        self.assertEqual(status.expires_at - status.last_updated, timedelta(days=7))
        self.assertEqual(engine.navigations, [HOME_URL])
        self.assertEqual(engine.pages_opened, engine.pages_closed)

    async def test_expired_cookies_report_logged_out(self):
        engine = FakeEngine({HOME_URL: Route(html=HOME_ANONYMOUS)})
        crawler = self.make_crawler(engine)
        crawler.store.save(SNAPSHOT)

        status = await crawler.get_session_status()

        self.assertTrue(status.is_active)
        self.assertFalse(status.is_logged_in)
        self.assertIsNone(status.username)

    async def test_verification_failure_reports_inactive(self):
        engine = FakeEngine({HOME_URL: Route(error=RuntimeError("net::ERR_TIMED_OUT"))})
        crawler = self.make_crawler(engine)
        crawler.store.save(SNAPSHOT)

        status = await crawler.get_session_status()

        self.assertFalse(status.is_active)
        self.assertFalse(status.is_logged_in)
        self.assertEqual(engine.pages_opened, engine.pages_closed)

    async def test_launch_failure_reports_inactive(self):
        engine = FakeEngine()
        engine.launch_error = RuntimeError("no display")
        crawler = self.make_crawler(engine)
        crawler.store.save(SNAPSHOT)

        status = await crawler.get_session_status()

        self.assertFalse(status.is_active)
        self.assertFalse(status.is_logged_in)

    async def test_clear_then_status_is_logged_out(self):
        engine = logged_in_engine()
        crawler = self.make_crawler(engine)
        crawler.store.save(SNAPSHOT)

        await crawler.clear_session()
        status = await crawler.get_session_status()

        self.assertFalse(status.is_active)
        self.assertFalse(status.is_logged_in)
        self.assertEqual(engine.launches, 0)

    async def test_corrupt_snapshot_counts_as_missing(self):
        engine = logged_in_engine()
        crawler = self.make_crawler(engine)
        crawler.store.directory.mkdir(parents=True, exist_ok=True)
        crawler.store.path.write_text("garbage", encoding="utf-8")

        status = await crawler.get_session_status()

        self.assertFalse(status.is_active)
        self.assertEqual(engine.launches, 0)

import tempfile
import unittest
from datetime import datetime, timedelta, UTC
from pathlib import Path

from fakes import DETAIL_HTML, ITEM_URL, SNAPSHOT, FakeEngine, Route, logged_in_engine
from session_crawler.config import CrawlerConfig
from session_crawler.crawler import SessionCrawler
from session_crawler.db import ProductDatabase
from session_crawler.errors import AuthenticationRequiredError
from session_crawler.ingest import (
    ingest_detail,
    ingest_search,
    item_id_from_url,
    product_from_item,
    search_to_result,
)
from session_crawler.models import (
    Pagination,
    Product,
    ScrapeResult,
    SearchMetadata,
    SearchQuery,
    SearchResultItem,
    SearchResultPage,
)


class TestProductDatabase(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.db = ProductDatabase(db_path=Path(self._tmp.name) / "products.db")

    def tearDown(self):
        self._tmp.cleanup()

    def result(self, price: float, scraped_at: datetime) -> ScrapeResult:
        return ScrapeResult(
            source="taobao",
            source_url="https://s.taobao.com/search?q=x",
            scraped_at=scraped_at,
            products=[Product(name="手机壳", price=price, currency="CNY", url=ITEM_URL, item_id="1001")],
        )

    def test_save_and_history(self):
        first = datetime(2026, 1, 1, tzinfo=UTC)
        self.assertEqual(self.db.save_results(self.result(19.9, first)), 1)
        self.db.save_results(self.result(17.5, first + timedelta(days=1)))

        history = self.db.get_product_price_history("taobao", "1001")
        self.assertEqual([row["price"] for row in history], [17.5, 19.9])
        self.assertEqual(history[0]["product_key"], "1001")

        latest = self.db.get_latest_scrape("taobao")
        self.assertEqual(len(latest), 1)
        self.assertEqual(latest[0]["price"], 17.5)

        self.assertEqual(self.db.find_by_url(ITEM_URL)["price"], 17.5)
        self.assertIsNone(self.db.find_by_url("https://item.taobao.com/item.htm?id=2"))


class TestMapping(unittest.TestCase):
    def test_item_id_from_url(self):
        self.assertEqual(item_id_from_url("https://item.taobao.com/item.htm?spm=a&id=42"), "42")
        self.assertIsNone(item_id_from_url("https://item.taobao.com/item.htm"))
        self.assertIsNone(item_id_from_url(None))

    def test_product_from_item(self):
        product = product_from_item(
            SearchResultItem(title="耳机", price_text="¥ 1,299.00", product_url=ITEM_URL)
        )
        self.assertEqual(product.price, 1299.0)
        self.assertEqual(product.currency, "CNY")
        self.assertEqual(product.item_id, "1001")
        self.assertIsNone(product.image_url)

    def test_search_to_result_skips_untitled_items(self):
        page = SearchResultPage(
            items=[SearchResultItem(title="耳机", price_text="99"), SearchResultItem()],
            pagination=Pagination.compute(1, 44, 2),
            metadata=SearchMetadata(searched_at=datetime.now(UTC), keyword="耳机", response_time_ms=5),
        )
        result = search_to_result("taobao", "https://s.taobao.com/search?q=x", page)
        self.assertEqual([p.name for p in result.products], ["耳机"])
        self.assertEqual(result.scraped_at, page.metadata.searched_at)


class TestIngest(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        root = Path(self._tmp.name)
        self.config = CrawlerConfig(session_dir=root / "sessions", db_path=root / "products.db")
        self.db = ProductDatabase(self.config.db_path)

    def tearDown(self):
        self._tmp.cleanup()

    def make_crawler(self, engine: FakeEngine) -> SessionCrawler:
        crawler = SessionCrawler(self.config, engine=engine)
        self.addAsyncCleanup(crawler.close)
        return crawler

    async def test_ingest_detail_stores_product(self):
        crawler = self.make_crawler(logged_in_engine({ITEM_URL: Route(html=DETAIL_HTML)}))
        crawler.store.save(SNAPSHOT)

        detail, product = await ingest_detail(crawler, self.db, ITEM_URL)

        self.assertEqual(product.name, detail.title)
        self.assertEqual(product.item_id, "1001")
        self.assertEqual(product.image_url, "https://img.alicdn.com/bao/main.jpg")
        row = self.db.find_by_url(ITEM_URL)
        self.assertEqual(row["source"], "taobao")
        self.assertEqual(row["price"], 19.9)

    async def test_ingest_search_stores_every_hit(self):
        crawler = self.make_crawler(logged_in_engine())
        crawler.store.save(SNAPSHOT)

        page, result = await ingest_search(crawler, self.db, SearchQuery(keyword="手机壳"))

        self.assertTrue(page.success)
        self.assertEqual(len(result.products), 2)
        self.assertEqual(len(self.db.get_latest_scrape("taobao")), 2)

    async def test_ingest_requires_logged_in_session(self):
        engine = logged_in_engine({ITEM_URL: Route(html=DETAIL_HTML)})
        crawler = self.make_crawler(engine)

        with self.assertRaises(AuthenticationRequiredError):
            await ingest_detail(crawler, self.db, ITEM_URL)
        self.assertEqual(engine.launches, 0)
        self.assertIsNone(self.db.find_by_url(ITEM_URL))

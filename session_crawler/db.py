"""SQLite storage for crawled product records."""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

from .models import Product, ScrapeResult

logger = logging.getLogger(__name__)


class ProductDatabase:
    """SQLite database for storing crawled products with history."""

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or Path(__file__).parent.parent / "output" / "products.db"
        self._init_db()

    def _init_db(self):
        """Initialize the database schema."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        with sqlite3.connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS products (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                source TEXT NOT NULL,
                source_url TEXT,
                scraped_at TEXT NOT NULL,
                name TEXT NOT NULL,
                price REAL,
                currency TEXT,
                url TEXT,
                item_id TEXT,
                image_url TEXT,
                product_key TEXT
            )
            """)
            # Index for efficient querying by source and time
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_source_time
                ON products (source, scraped_at)
            """)
            # Composite index for historical lookups per item
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_source_item_time
                ON products (source, item_id, scraped_at)
            """)
            conn.commit()

    def save_results(self, result: ScrapeResult) -> int:
        """Append a crawl result (history is kept). Returns the row count."""
        scraped_at = result.scraped_at.isoformat()

        with sqlite3.connect(self.db_path) as conn:
            for product in result.products:
                conn.execute(
                    """
                    INSERT INTO products
                        (source, source_url, scraped_at, name, price, currency, url, item_id, image_url, product_key)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        result.source,
                        result.source_url,
                        scraped_at,
                        product.name,
                        product.price,
                        product.currency,
                        product.url,
                        product.item_id,
                        product.image_url,
                        self._build_product_key(product) or None,
                    ),
                )
            conn.commit()

        logger.info(f"[db] Saved {len(result.products)} products from '{result.source}' to {self.db_path}")
        return len(result.products)

    def get_latest_scrape(self, source: str) -> list[dict]:
        """Get products from the most recent crawl for a source."""
        with sqlite3.connect(self.db_path) as conn:
            conn.row_factory = sqlite3.Row
            cursor = conn.execute(
                """
                SELECT * FROM products
                WHERE source = ? AND scraped_at = (
                    SELECT MAX(scraped_at) FROM products WHERE source = ?
                )
                """,
                (source, source),
            )
            return [dict(row) for row in cursor.fetchall()]

    def get_product_price_history(self, source: str, item_id: str) -> list[dict]:
        """Get price history for a specific product across all crawls."""
        with sqlite3.connect(self.db_path) as conn:
            conn.row_factory = sqlite3.Row
            cursor = conn.execute(
                """
                SELECT * FROM products
                WHERE source = ? AND item_id = ?
                ORDER BY scraped_at DESC
                """,
                (source, item_id),
            )
            return [dict(row) for row in cursor.fetchall()]

    def find_by_url(self, url: str) -> dict | None:
        """Latest stored row for a product URL, if any."""
        with sqlite3.connect(self.db_path) as conn:
            conn.row_factory = sqlite3.Row
            row = conn.execute(
                "SELECT * FROM products WHERE url = ? ORDER BY scraped_at DESC LIMIT 1",
                (url,),
            ).fetchone()
            return dict(row) if row else None

    def _build_product_key(self, product: Product) -> str:
        """Return a stable key for identifying a product across crawls."""
        for value in (product.item_id, product.url, product.name):
            if value:
                cleaned = str(value).strip()
                if cleaned.lower() in {"", "none", "null"}:
                    continue
                return cleaned
        return ""

"""Map crawler output into product records and store them."""

from __future__ import annotations

from datetime import datetime, UTC
from urllib.parse import parse_qs, urlparse

from .crawler import SessionCrawler
from .db import ProductDatabase
from .errors import AuthenticationRequiredError
from .models import Product, ProductDetail, ScrapeResult, SearchQuery, SearchResultItem, SearchResultPage
from .utils import parse_price


def item_id_from_url(url: str | None) -> str | None:
    """Pull the listing id out of URLs like ".../item.htm?id=123"."""
    if not url:
        return None
    ids = parse_qs(urlparse(url).query).get("id")
    return ids[0] if ids else None


def product_from_item(item: SearchResultItem) -> Product:
    price, currency = parse_price(item.price_text)
    return Product(
        name=item.title,
        price=price,
        currency=currency or "CNY",
        url=item.product_url or None,
        item_id=item_id_from_url(item.product_url),
        image_url=item.image_url or None,
    )


def product_from_detail(detail: ProductDetail) -> Product:
    return Product(
        name=detail.title,
        price=detail.price.current or None,
        currency=detail.price.currency,
        url=detail.url,
        item_id=item_id_from_url(detail.url),
        image_url=detail.images[0] if detail.images else None,
    )


def search_to_result(source: str, source_url: str, page: SearchResultPage) -> ScrapeResult:
    return ScrapeResult(
        source=source,
        source_url=source_url,
        scraped_at=page.metadata.searched_at,
        products=[product_from_item(item) for item in page.items if item.title],
    )


async def _require_session(crawler: SessionCrawler) -> None:
    status = await crawler.get_session_status()
    if not (status.is_active and status.is_logged_in):
        raise AuthenticationRequiredError("A logged-in session is required; run the login flow first")


async def ingest_detail(crawler: SessionCrawler, db: ProductDatabase, url: str) -> tuple[ProductDetail, Product]:
    """Fetch one product page and append it to the product table."""
    await _require_session(crawler)
    detail = await crawler.get_detail(url)
    product = product_from_detail(detail)
    db.save_results(
        ScrapeResult(
            source=crawler.site.name,
            source_url=url,
            scraped_at=datetime.now(UTC),
            products=[product],
        )
    )
    return detail, product


async def ingest_search(
    crawler: SessionCrawler, db: ProductDatabase, query: SearchQuery
) -> tuple[SearchResultPage, ScrapeResult]:
    """Run a search and append every hit to the product table.

    A failed search raises its typed error and stores nothing.
    """
    await _require_session(crawler)
    page = await crawler.search(query)
    page.raise_for_error()
    result = search_to_result(crawler.site.name, crawler.site.build_search_url(query), page)
    db.save_results(result)
    return page, result

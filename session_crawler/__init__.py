"""Authenticated storefront crawler driven through a persisted browser session."""

from .config import CrawlerConfig
from .crawler import SessionCrawler
from .errors import (
    AuthenticationRequiredError,
    CrawlerError,
    CrawlTimeoutError,
    DetailFetchError,
    InitializationError,
    SearchError,
)
from .models import CrawlerState, ProductDetail, SearchFilters, SearchQuery, SearchResultPage, SortBy
from .retry import BackoffStrategy, with_retry

__all__ = [
    "AuthenticationRequiredError",
    "BackoffStrategy",
    "CrawlerConfig",
    "CrawlerError",
    "CrawlerState",
    "CrawlTimeoutError",
    "DetailFetchError",
    "InitializationError",
    "ProductDetail",
    "SearchError",
    "SearchFilters",
    "SearchQuery",
    "SearchResultPage",
    "SessionCrawler",
    "SortBy",
    "with_retry",
]

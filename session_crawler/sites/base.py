"""Base class for target site profiles."""

from __future__ import annotations

from abc import ABC, abstractmethod
from urllib.parse import urlparse

from ..extraction import Field, Schema, extract_all, extract_field, parse_html
from ..models import ProductDetail, SearchQuery, SearchResultItem, SortBy
from ..utils import parse_count


class BaseSite(ABC):
    """Everything the crawler needs to know about one storefront.

    The crawler itself is site-agnostic: URLs, selectors and extraction
    schemas live on the subclass.
    """

    name: str
    display_name: str
    domain: str
    base_url: str
    login_url: str
    home_url: str
    search_url: str
    default_page_size: int = 44
    sort_params: dict[SortBy, str] = {}

    # Present on the home surface only for anonymous visitors.
    not_logged_in_selector: str
    username_selector: str
    result_selector: str
    total_selector: str
    search_item_schema: Schema

    @abstractmethod
    def build_search_url(self, query: SearchQuery) -> str:
        """Build the deterministic search URL for ``query``."""
        ...

    @abstractmethod
    def parse_detail(self, html: str, url: str) -> ProductDetail:
        """Extract a product detail record from page markup."""
        ...

    def is_on_domain(self, url: str) -> bool:
        host = (urlparse(url).hostname or "").lower()
        return host == self.domain or host.endswith("." + self.domain)

    def is_login_url(self, url: str) -> bool:
        parsed = urlparse(url or "")
        host = (parsed.hostname or "").lower()
        return host.startswith("login.") or "login" in parsed.path.lower()

    def is_authenticated_url(self, url: str) -> bool:
        """True once the browser has left the login surface for the target domain."""
        return self.is_on_domain(url) and not self.is_login_url(url)

    def parse_search_results(
        self, html: str, base_url: str
    ) -> tuple[list[SearchResultItem], int | None]:
        """Return (items, total_items). total_items is None when unparsable."""
        soup = parse_html(html)
        rows = extract_all(soup, self.result_selector, self.search_item_schema, base_url)
        items = [SearchResultItem(**row) for row in rows]
        total = extract_field(soup, Field(self.total_selector, transform=parse_count, default=None))
        return items, total

    def is_logged_in(self, html: str) -> bool:
        return parse_html(html).select_one(self.not_logged_in_selector) is None

    def extract_username(self, html: str) -> str | None:
        username = extract_field(parse_html(html), Field(self.username_selector, default=None))
        return username or None

"""Data models for the session crawler."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class CrawlerState(Enum):
    IDLE = "idle"
    INITIALIZING = "initializing"
    READY = "ready"
    CRAWLING = "crawling"
    ERROR = "error"
    CLOSED = "closed"


class SortBy(Enum):
    DEFAULT = "default"
    PRICE_ASC = "price_asc"
    PRICE_DESC = "price_desc"
    SALES = "sales"
    NEWEST = "newest"


@dataclass
class ErrorInfo:
    """Machine-readable failure attached to an operation result."""

    code: str
    message: str

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


@dataclass
class SearchFilters:
    min_price: float | None = None
    max_price: float | None = None
    free_shipping: bool = False

    def __post_init__(self):
        for name in ("min_price", "max_price"):
            value = getattr(self, name)
            if value is not None and value < 0:
                raise ValueError(f"{name} must be >= 0, got {value}")


@dataclass
class SearchQuery:
    """Structured search parameters.

    ``page_size`` defaults to the target site's page size when left unset.
    """

    keyword: str
    page: int = 1
    page_size: int | None = None
    sort_by: SortBy = SortBy.DEFAULT
    filters: SearchFilters | None = None

    def __post_init__(self):
        self.keyword = (self.keyword or "").strip()
        if not self.keyword:
            raise ValueError("keyword is required")
        if self.page < 1:
            raise ValueError(f"page must be >= 1, got {self.page}")
        if self.page_size is not None and not 1 <= self.page_size <= 100:
            raise ValueError(f"page_size must be between 1 and 100, got {self.page_size}")
        if isinstance(self.sort_by, str):
            self.sort_by = SortBy(self.sort_by)

    @classmethod
    def from_dict(cls, data: dict) -> SearchQuery:
        filters = data.get("filters")
        return cls(
            keyword=data.get("keyword", ""),
            page=data.get("page") or 1,
            page_size=data.get("page_size"),
            sort_by=data.get("sort_by") or SortBy.DEFAULT,
            filters=SearchFilters(**filters) if filters else None,
        )


@dataclass
class SearchResultItem:
    """One search hit. Every field is best-effort text; missing nodes give ``""``."""

    title: str = ""
    price_text: str = ""
    image_url: str = ""
    product_url: str = ""
    shop_name: str = ""
    sales_text: str = ""
    location: str = ""

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "price_text": self.price_text,
            "image_url": self.image_url,
            "product_url": self.product_url,
            "shop_name": self.shop_name,
            "sales_text": self.sales_text,
            "location": self.location,
        }


@dataclass
class Pagination:
    current_page: int
    page_size: int
    total_items: int
    total_pages: int

    @classmethod
    def compute(cls, current_page: int, page_size: int, total_items: int) -> Pagination:
        total_pages = math.ceil(total_items / page_size) if page_size else 0
        return cls(current_page, page_size, total_items, total_pages)

    def to_dict(self) -> dict:
        return {
            "current_page": self.current_page,
            "page_size": self.page_size,
            "total_items": self.total_items,
            "total_pages": self.total_pages,
        }


@dataclass
class SearchMetadata:
    searched_at: datetime
    keyword: str
    response_time_ms: int

    def to_dict(self) -> dict:
        return {
            "searched_at": self.searched_at.isoformat(),
            "keyword": self.keyword,
            "response_time_ms": self.response_time_ms,
        }


@dataclass
class SearchResultPage:
    """Result of a search operation, successful or not."""

    items: list[SearchResultItem]
    pagination: Pagination
    metadata: SearchMetadata
    error: ErrorInfo | None = None

    @property
    def success(self) -> bool:
        return self.error is None

    def raise_for_error(self) -> None:
        """Raise the typed exception matching ``error.code``, if any."""
        if self.error is None:
            return
        from .errors import error_from_code

        raise error_from_code(self.error.code, self.error.message)

    def to_dict(self) -> dict:
        data = {
            "success": self.success,
            "items": [item.to_dict() for item in self.items],
            "pagination": self.pagination.to_dict(),
            "metadata": self.metadata.to_dict(),
        }
        if self.error is not None:
            data["error"] = self.error.to_dict()
        return data


@dataclass
class Price:
    current: float = 0.0
    original: float | None = None
    currency: str = "CNY"


@dataclass
class Seller:
    name: str = ""
    id: str | None = None
    rating: float | None = None
    location: str | None = None


@dataclass
class Reviews:
    count: int = 0
    average_rating: float | None = None


@dataclass
class Shipping:
    fee: float | None = None
    free_shipping: bool | None = None


@dataclass
class ProductDetail:
    """A product detail page extracted into a fixed schema."""

    url: str
    title: str = ""
    price: Price = field(default_factory=Price)
    images: list[str] = field(default_factory=list)
    seller: Seller = field(default_factory=Seller)
    description: str | None = None
    specifications: dict[str, str] | None = None
    category: str | None = None
    sales: int = 0
    reviews: Reviews | None = None
    shipping: Shipping | None = None

    def to_dict(self) -> dict:
        return {
            "url": self.url,
            "title": self.title,
            "price": {
                "current": self.price.current,
                "original": self.price.original,
                "currency": self.price.currency,
            },
            "images": list(self.images),
            "seller": {
                "id": self.seller.id,
                "name": self.seller.name,
                "rating": self.seller.rating,
                "location": self.seller.location,
            },
            "description": self.description,
            "specifications": self.specifications,
            "category": self.category,
            "sales": self.sales,
            "reviews": (
                {"count": self.reviews.count, "average_rating": self.reviews.average_rating}
                if self.reviews
                else None
            ),
            "shipping": (
                {"fee": self.shipping.fee, "free_shipping": self.shipping.free_shipping}
                if self.shipping
                else None
            ),
        }


@dataclass
class SessionStatus:
    """Read model composed from the stored snapshot and a live verification."""

    is_active: bool
    is_logged_in: bool
    last_updated: datetime
    expires_at: datetime | None = None
    username: str | None = None

    def to_dict(self) -> dict:
        return {
            "is_active": self.is_active,
            "is_logged_in": self.is_logged_in,
            "last_updated": self.last_updated.isoformat(),
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
            "username": self.username,
        }


@dataclass
class LoginSession:
    id: str
    expires_at: datetime
    username: str | None = None


@dataclass
class LoginResult:
    success: bool
    message: str
    session: LoginSession | None = None
    error: ErrorInfo | None = None

    def to_dict(self) -> dict:
        data: dict = {"success": self.success, "message": self.message}
        if self.session is not None:
            data["session"] = {
                "id": self.session.id,
                "expires_at": self.session.expires_at.isoformat(),
                "username": self.session.username,
            }
        if self.error is not None:
            data["error"] = self.error.to_dict()
        return data


@dataclass
class Product:
    """A scraped product, as stored by the product database."""

    name: str
    price: float | None
    currency: str | None
    url: str | None
    item_id: str | None
    image_url: str | None = None

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "name": self.name,
            "price": self.price,
            "currency": self.currency,
            "url": self.url,
            "item_id": self.item_id,
            "image_url": self.image_url,
        }


@dataclass
class ScrapeResult:
    """Products captured from one crawler call."""

    source: str
    source_url: str
    scraped_at: datetime
    products: list[Product]

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "source": self.source,
            "source_url": self.source_url,
            "scraped_at": self.scraped_at.isoformat(),
            "total_products": len(self.products),
            "products": [p.to_dict() for p in self.products],
        }

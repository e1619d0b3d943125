"""FastAPI routes driving the session crawler."""

import logging
from datetime import datetime, UTC
from typing import Literal
from urllib.parse import urlparse, urlunparse

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ..crawler import SessionCrawler
from ..db import ProductDatabase
from ..errors import AuthenticationRequiredError, CrawlerError, DetailFetchError
from ..ingest import ingest_detail
from ..models import SearchQuery
from .auth import verify_api_key

logger = logging.getLogger(__name__)

router = APIRouter()
api = APIRouter(prefix="/api/v1", dependencies=[Depends(verify_api_key)])

SESSION_REQUIRED_MESSAGE = "A logged-in session is required. Call POST /api/v1/crawling/login first."


def get_crawler(request: Request) -> SessionCrawler:
    """Get the crawler instance from app state."""
    return request.app.state.crawler


def get_db(request: Request) -> ProductDatabase:
    """Get database instance from app state."""
    return request.app.state.db


def _error(status_code: int, code: str, message: str, **extra) -> JSONResponse:
    return JSONResponse(
        {"success": False, "error": {"code": code, "message": message}, **extra},
        status_code=status_code,
    )


def _normalize_target_url(url: str) -> str:
    raw = (url or "").strip()
    if not raw:
        raise HTTPException(status_code=400, detail="URL is required")
    if raw.startswith("//"):
        raw = "https:" + raw
    elif "://" not in raw:
        raw = "https://" + raw

    parsed = urlparse(raw)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise HTTPException(status_code=400, detail="URL must be http(s) and include a hostname")
    parsed = parsed._replace(fragment="")
    return urlunparse(parsed)


async def _has_verified_session(crawler: SessionCrawler) -> bool:
    status = await crawler.get_session_status()
    return status.is_active and status.is_logged_in


class LoginRequest(BaseModel):
    wait_for_login: int = Field(120, ge=30, le=300)


class SearchFiltersBody(BaseModel):
    min_price: float | None = Field(None, ge=0)
    max_price: float | None = Field(None, ge=0)
    free_shipping: bool = False


class SearchRequest(BaseModel):
    keyword: str = Field(..., min_length=1)
    page: int = Field(1, ge=1)
    page_size: int | None = Field(None, ge=1, le=100)
    sort_by: Literal["default", "price_asc", "price_desc", "sales", "newest"] = "default"
    filters: SearchFiltersBody | None = None


class ProductDetailRequest(BaseModel):
    product_url: str


class CrawlRequest(BaseModel):
    url: str


@router.get("/health")
async def health(crawler: SessionCrawler = Depends(get_crawler)):
    """Health check endpoint (no auth required)."""
    return {
        "status": "ok",
        "timestamp": datetime.now(UTC).isoformat(),
        "crawler_state": crawler.get_status().value,
    }


# --- Session ---


@api.get("/crawling/session")
async def get_session(crawler: SessionCrawler = Depends(get_crawler)):
    """Stored session status, verified against the live site."""
    logger.info("[api] Checking session status...")
    status = await crawler.get_session_status()
    return {"success": True, "data": status.to_dict()}


@api.delete("/crawling/session")
async def delete_session(crawler: SessionCrawler = Depends(get_crawler)):
    """Delete the stored session."""
    logger.info("[api] Clearing session...")
    await crawler.clear_session()
    return {"success": True, "message": "Session cleared"}


@api.post("/crawling/login")
async def login(body: LoginRequest, crawler: SessionCrawler = Depends(get_crawler)):
    """Open a browser for manual login and store the resulting session."""
    logger.info(f"[api] Starting login session (wait: {body.wait_for_login}s)...")
    result = await crawler.create_login_session(body.wait_for_login)
    if not result.success:
        code = result.error.code if result.error else "LOGIN_FAILED"
        message = result.error.message if result.error else result.message
        return _error(400, code, message)
    return {"success": True, "data": result.to_dict()["session"], "message": result.message}


# --- Crawling ---


@api.post("/crawling/search")
async def search(body: SearchRequest, crawler: SessionCrawler = Depends(get_crawler)):
    """Search the storefront through the logged-in session."""
    try:
        query = SearchQuery.from_dict(body.model_dump())
    except ValueError as e:
        return _error(400, "VALIDATION_ERROR", str(e))

    logger.info(f"[api] Searching products: {query.keyword}")
    if not await _has_verified_session(crawler):
        return _error(401, "SESSION_REQUIRED", SESSION_REQUIRED_MESSAGE)

    result = await crawler.search(query)
    payload = result.to_dict()
    if not result.success:
        status_code = 401 if result.error.code == AuthenticationRequiredError.code else 400
        return _error(status_code, result.error.code, result.error.message, metadata=payload["metadata"])
    return {
        "success": True,
        "data": {"items": payload["items"], "pagination": payload["pagination"]},
        "metadata": payload["metadata"],
    }


@api.post("/crawling/product")
async def product_detail(body: ProductDetailRequest, crawler: SessionCrawler = Depends(get_crawler)):
    """Fetch one product detail page through the logged-in session."""
    url = _normalize_target_url(body.product_url)
    logger.info(f"[api] Fetching product detail: {url}")
    if not await _has_verified_session(crawler):
        return _error(401, "SESSION_REQUIRED", SESSION_REQUIRED_MESSAGE)

    try:
        detail = await crawler.get_detail(url)
    except AuthenticationRequiredError as e:
        return _error(401, e.code, e.message)
    except DetailFetchError as e:
        return _error(502, e.code, e.message)
    return {"success": True, "data": detail.to_dict()}


@api.post("/products/crawl", status_code=201)
async def crawl_product(
    body: CrawlRequest,
    crawler: SessionCrawler = Depends(get_crawler),
    db: ProductDatabase = Depends(get_db),
):
    """Fetch a product page and store it as a product record."""
    url = _normalize_target_url(body.url)
    if existing := db.find_by_url(url):
        return _error(409, "DUPLICATE_URL", "Product URL already stored", data={"existing_id": existing["id"]})

    try:
        detail, product = await ingest_detail(crawler, db, url)
    except AuthenticationRequiredError as e:
        return _error(401, "SESSION_REQUIRED", e.message)
    except CrawlerError as e:
        return _error(502, e.code, e.message)
    return {"success": True, "data": {"product": product.to_dict(), "detail": detail.to_dict()}}


router.include_router(api)

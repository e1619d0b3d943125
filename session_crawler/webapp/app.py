"""FastAPI application factory."""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from ..config import CrawlerConfig
from ..crawler import SessionCrawler
from ..db import ProductDatabase
from .routes import router


def create_app(
    config: CrawlerConfig | None = None,
    crawler: SessionCrawler | None = None,
    db: ProductDatabase | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = config or (crawler.config if crawler else CrawlerConfig.from_env())
    session_crawler = crawler or SessionCrawler(settings)
    database = db or ProductDatabase(settings.db_path)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """The browser is started lazily by the first request and closed on shutdown."""
        yield
        await session_crawler.close()

    app = FastAPI(
        title="Session Crawler",
        description="Authenticated storefront search and product detail crawling",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.config = settings
    app.state.crawler = session_crawler
    app.state.db = database

    app.include_router(router)

    return app

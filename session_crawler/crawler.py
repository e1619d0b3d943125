"""Session-based crawler for storefronts that require a logged-in browser.

The crawler keeps one browser process and one shared browsing context. The
context is seeded from the stored session snapshot at startup, and every
operation borrows it to open (and always close) its own page.
"""

from __future__ import annotations

import asyncio
import logging
import time
from contextlib import asynccontextmanager, contextmanager
from datetime import datetime, timedelta, UTC
from typing import AsyncIterator, Iterator

from playwright.async_api import BrowserContext, Error as PlaywrightError, Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from .browser import PlaywrightEngine
from .config import CrawlerConfig
from .errors import (
    AuthenticationRequiredError,
    CrawlerError,
    CrawlerNotReadyError,
    CrawlTimeoutError,
    DetailFetchError,
    InitializationError,
    SearchError,
)
from .models import (
    CrawlerState,
    ErrorInfo,
    LoginResult,
    LoginSession,
    Pagination,
    ProductDetail,
    SearchMetadata,
    SearchQuery,
    SearchResultItem,
    SearchResultPage,
    SessionStatus,
)
from .session_store import SessionStore, session_key
from .sites import BaseSite, get_site
from .state import CrawlerEvent, transition

logger = logging.getLogger(__name__)

LOGIN_TIMEOUT = "LOGIN_TIMEOUT"
LOGIN_ERROR = "LOGIN_ERROR"
SEARCH_TIMEOUT = "SEARCH_TIMEOUT"


class SessionCrawler:
    """Crawl one target site through a persisted, authenticated browser session.

    Collaborators are injected so tests can substitute a fake engine or a
    temporary session store. Callers own the instance and must ``close()`` it
    (or use it as an async context manager).
    """

    def __init__(
        self,
        config: CrawlerConfig | None = None,
        *,
        engine: PlaywrightEngine | None = None,
        store: SessionStore | None = None,
        site: BaseSite | None = None,
    ):
        self.config = config or CrawlerConfig()
        self.site = site or get_site(self.config.site)
        self.engine = engine or PlaywrightEngine(self.config)
        self.store = store or SessionStore(
            self.config.session_dir, session_key(self.site.name, self.site.base_url)
        )
        self._context: BrowserContext | None = None
        self._state = CrawlerState.IDLE
        self._lock = asyncio.Lock()
        self._active_searches = 0
        # Bumped by close(); searches started before a close must not end CRAWLING after it.
        self._generation = 0

    async def __aenter__(self) -> SessionCrawler:
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    # --- Lifecycle ---

    def get_status(self) -> CrawlerState:
        """Current lifecycle state."""
        return self._state

    def _apply(self, event: CrawlerEvent) -> None:
        previous = self._state
        self._state = transition(previous, event)
        logger.debug(f"[{self.site.name}] {previous.value} -> {self._state.value} ({event.value})")

    async def initialize(self) -> None:
        """Launch the browser and create the shared context.

        Restores the stored session when one exists. Calling this on a ready
        crawler does nothing.
        """
        async with self._lock:
            if self._state in (CrawlerState.READY, CrawlerState.CRAWLING):
                logger.debug(f"[{self.site.name}] Already initialized")
                return

            self._apply(CrawlerEvent.INITIALIZE)
            logger.info(f"[{self.site.name}] Initializing browser...")
            try:
                snapshot = self.store.load()
                if snapshot is not None:
                    logger.info(f"[{self.site.name}] Restoring session from {self.store.path}")
                else:
                    logger.info(f"[{self.site.name}] Creating new context")
                await self.engine.launch()
                self._context = await self.engine.new_context(storage_state=snapshot)
            except Exception as exc:
                logger.error(f"[{self.site.name}] Initialization failed: {exc}")
                await self._release()
                self._apply(CrawlerEvent.FAIL)
                raise InitializationError(f"Browser initialization failed: {exc}") from exc

            self._apply(CrawlerEvent.INITIALIZED)
            logger.info(f"[{self.site.name}] Initialization completed")

    async def _release(self) -> None:
        """Close the context, then the browser. Failures are logged, not raised."""
        if self._context is not None:
            try:
                await self._context.close()
            except Exception as e:
                logger.warning(f"[{self.site.name}] Context close failed: {e}")
            self._context = None
        try:
            await self.engine.close()
        except Exception as e:
            logger.warning(f"[{self.site.name}] Browser close failed: {e}")

    async def close(self) -> None:
        """Release the context and browser. Safe to call at any time."""
        async with self._lock:
            logger.info(f"[{self.site.name}] Closing browser...")
            await self._release()
            self._active_searches = 0
            self._generation += 1
            self._apply(CrawlerEvent.CLOSE)
            logger.info(f"[{self.site.name}] Browser closed")

    async def _ensure_ready(self) -> BrowserContext:
        if self._context is None:
            await self.initialize()
        if self._context is None or self._state not in (CrawlerState.READY, CrawlerState.CRAWLING):
            raise CrawlerNotReadyError(
                f"Browser context not initialized (state: {self._state.value})"
            )
        return self._context

    @asynccontextmanager
    async def _open_page(self) -> AsyncIterator[Page]:
        """A page on the shared context, closed on every exit path."""
        if self._context is None:
            raise CrawlerNotReadyError("Browser context not initialized")
        page = await self._context.new_page()
        try:
            yield page
        finally:
            try:
                await page.close()
            except PlaywrightError as e:
                logger.warning(f"[{self.site.name}] Page close failed: {e}")

    @contextmanager
    def _crawling(self) -> Iterator[None]:
        """Hold the CRAWLING state while at least one search is running."""
        generation = self._generation
        self._active_searches += 1
        if self._state is CrawlerState.READY:
            self._apply(CrawlerEvent.CRAWL_START)
        try:
            yield
        finally:
            if generation == self._generation:
                self._active_searches = max(0, self._active_searches - 1)
                if self._active_searches == 0 and self._state is CrawlerState.CRAWLING:
                    self._apply(CrawlerEvent.CRAWL_END)

    # --- Session ---

    def has_session(self) -> bool:
        """True when a readable session snapshot is stored."""
        return self.store.has_snapshot()

    async def save_session(self) -> None:
        """Persist the live context's cookies and local storage."""
        if self._context is None:
            raise CrawlerNotReadyError("Context not initialized")
        snapshot = await self._context.storage_state()
        self.store.save(snapshot)

    async def clear_session(self) -> None:
        """Delete the stored snapshot. Missing snapshots are not an error."""
        self.store.delete()

    async def create_login_session(self, wait_seconds: int = 120) -> LoginResult:
        """Open the login page and wait for the user to log in manually.

        Args:
            wait_seconds: How long to wait for the browser to leave the login
                surface.

        Returns:
            LoginResult; failures carry LOGIN_TIMEOUT or LOGIN_ERROR.
        """
        await self._ensure_ready()

        async with self._open_page() as page:
            try:
                logger.info(f"[{self.site.name}] Opening login page...")
                await page.goto(
                    self.site.login_url,
                    wait_until=self.config.wait_until,
                    timeout=self.config.timeout_ms,
                )
                logger.info(
                    f"[{self.site.name}] Please login manually. Waiting for {wait_seconds} seconds..."
                )

                try:
                    await page.wait_for_url(
                        self.site.is_authenticated_url, timeout=wait_seconds * 1000
                    )
                except PlaywrightTimeoutError:
                    logger.warning(f"[{self.site.name}] Login not completed within {wait_seconds}s")
                    return LoginResult(
                        success=False,
                        message="Login wait timed out",
                        error=ErrorInfo(
                            LOGIN_TIMEOUT,
                            f"Login was not completed within {wait_seconds} seconds",
                        ),
                    )

                logger.info(f"[{self.site.name}] Login detected! Saving session...")
                await self.save_session()
                username = await self._extract_username(page)

                return LoginResult(
                    success=True,
                    message="Login session created",
                    session=LoginSession(
                        id=self.store.path.stem,
                        expires_at=datetime.now(UTC) + timedelta(days=self.config.session_ttl_days),
                        username=username,
                    ),
                )
            except Exception as exc:
                logger.error(f"[{self.site.name}] Login session creation failed: {exc}")
                return LoginResult(
                    success=False,
                    message="Login session creation failed",
                    error=ErrorInfo(LOGIN_ERROR, str(exc)),
                )

    async def _extract_username(self, page: Page) -> str | None:
        try:
            html = await page.content()
        except PlaywrightError as e:
            logger.debug(f"[{self.site.name}] Could not read page for username: {e}")
            return None
        return self.site.extract_username(html)

    async def get_session_status(self) -> SessionStatus:
        """Report whether a session is stored and whether it is still logged in.

        Never raises: a failed verification reports an inactive session.
        """
        if not self.store.has_snapshot():
            return SessionStatus(is_active=False, is_logged_in=False, last_updated=datetime.now(UTC))

        try:
            await self._ensure_ready()
            is_logged_in, username = await self._verify_login()
        except Exception as exc:
            logger.warning(f"[{self.site.name}] Session verification failed: {exc}")
            return SessionStatus(is_active=False, is_logged_in=False, last_updated=datetime.now(UTC))

        last_updated = self.store.modified_at() or datetime.now(UTC)
        return SessionStatus(
            is_active=True,
            is_logged_in=is_logged_in,
            last_updated=last_updated,
            expires_at=last_updated + timedelta(days=self.config.session_ttl_days),
            username=username,
        )

    async def _verify_login(self) -> tuple[bool, str | None]:
        """Load the home surface and look for the anonymous-visitor marker."""
        async with self._open_page() as page:
            await page.goto(
                self.site.home_url,
                wait_until=self.config.wait_until,
                timeout=self.config.verify_timeout_ms,
            )
            html = await page.content()

        if not self.site.is_logged_in(html):
            return False, None
        return True, self.site.extract_username(html)

    # --- Scraping ---

    async def search(self, query: SearchQuery) -> SearchResultPage:
        """Search the site and return one page of results.

        Failures are reported on the result (AUTH_REQUIRED, SEARCH_TIMEOUT,
        SEARCH_ERROR) with no partial items.
        """
        started = time.perf_counter()
        await self._ensure_ready()

        page_size = query.page_size or self.site.default_page_size
        url = self.site.build_search_url(query)
        items: list[SearchResultItem] = []
        total_items: int | None = None
        error: ErrorInfo | None = None

        with self._crawling():
            try:
                items, total_items = await self._run_search(query, url)
            except CrawlerNotReadyError:
                raise
            except CrawlerError as exc:
                error = ErrorInfo(exc.code, exc.message)
            except Exception as exc:
                error = ErrorInfo(SearchError.code, str(exc))

        if error is not None:
            logger.error(f"[{self.site.name}] Search failed ({error.code}): {error.message}")
            items, total_items = [], 0
        elif total_items is None:
            total_items = len(items)

        elapsed_ms = int((time.perf_counter() - started) * 1000)
        if error is None:
            logger.info(
                f"[{self.site.name}] Search '{query.keyword}' returned {len(items)} items in {elapsed_ms}ms"
            )
        return SearchResultPage(
            items=items,
            pagination=Pagination.compute(query.page, page_size, total_items),
            metadata=SearchMetadata(
                searched_at=datetime.now(UTC),
                keyword=query.keyword,
                response_time_ms=elapsed_ms,
            ),
            error=error,
        )

    async def _run_search(
        self, query: SearchQuery, url: str
    ) -> tuple[list[SearchResultItem], int | None]:
        async with self._open_page() as page:
            logger.info(f"[{self.site.name}] Searching for: {query.keyword}")
            try:
                await page.goto(url, wait_until=self.config.wait_until, timeout=self.config.timeout_ms)
            except PlaywrightTimeoutError as e:
                if self.site.is_login_url(page.url):
                    raise AuthenticationRequiredError(
                        "Login required: run the login flow before searching"
                    ) from e
                raise CrawlTimeoutError(
                    f"Search page did not load within {self.config.timeout_ms}ms",
                    self.config.timeout_ms,
                    code=SEARCH_TIMEOUT,
                ) from e

            if self.site.is_login_url(page.url):
                raise AuthenticationRequiredError(
                    "Login required: run the login flow before searching"
                )

            try:
                await page.wait_for_selector(
                    self.site.result_selector, timeout=self.config.result_timeout_ms
                )
            except PlaywrightTimeoutError as e:
                raise CrawlTimeoutError(
                    f"No search results rendered within {self.config.result_timeout_ms}ms",
                    self.config.result_timeout_ms,
                    code=SEARCH_TIMEOUT,
                ) from e

            html = await page.content()
            return self.site.parse_search_results(html, page.url or url)

    async def get_detail(self, product_url: str) -> ProductDetail:
        """Fetch a product page and extract its detail record.

        Raises:
            AuthenticationRequiredError: the page redirected to the login surface.
            DetailFetchError: navigation or page access failed.
        """
        await self._ensure_ready()

        async with self._open_page() as page:
            logger.info(f"[{self.site.name}] Fetching product detail: {product_url}")
            try:
                await page.goto(
                    product_url, wait_until=self.config.wait_until, timeout=self.config.timeout_ms
                )
                if self.site.is_login_url(page.url):
                    raise AuthenticationRequiredError(
                        "Login required: run the login flow before fetching details"
                    )
                html = await page.content()
            except AuthenticationRequiredError:
                raise
            except Exception as exc:
                if self.site.is_login_url(page.url):
                    raise AuthenticationRequiredError(
                        "Login required: run the login flow before fetching details"
                    ) from exc
                logger.error(f"[{self.site.name}] Product detail fetch failed: {exc}")
                raise DetailFetchError(f"Product detail fetch failed: {exc}") from exc

        return self.site.parse_detail(html, product_url)

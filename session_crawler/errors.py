"""Exception hierarchy for crawler failures.

Every error carries a stable ``code`` so results crossing the HTTP boundary can
be told apart without string matching.
"""

from __future__ import annotations


class CrawlerError(Exception):
    code = "CRAWLER_ERROR"

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        if code is not None:
            self.code = code

    @property
    def message(self) -> str:
        return str(self)


class InitializationError(CrawlerError):
    """Browser or context could not be created."""

    code = "INIT_ERROR"


class CrawlerNotReadyError(CrawlerError):
    """An operation ran without a browsing context."""

    code = "NOT_INITIALIZED"


class InvalidTransitionError(CrawlerError):
    code = "INVALID_TRANSITION"


class AuthenticationRequiredError(CrawlerError):
    """The target redirected to its login surface; re-run the login flow."""

    code = "AUTH_REQUIRED"


class CrawlTimeoutError(CrawlerError):
    """A bounded wait elapsed."""

    code = "TIMEOUT"

    def __init__(self, message: str, timeout_ms: int, code: str | None = None):
        super().__init__(message, code=code)
        self.timeout_ms = timeout_ms


class SearchError(CrawlerError):
    code = "SEARCH_ERROR"


class DetailFetchError(CrawlerError):
    code = "DETAIL_ERROR"


def error_from_code(code: str, message: str) -> CrawlerError:
    """Rebuild a typed exception from a result's error code."""
    if code == AuthenticationRequiredError.code:
        return AuthenticationRequiredError(message)
    if code.endswith("TIMEOUT"):
        return CrawlTimeoutError(message, timeout_ms=0, code=code)
    if code == SearchError.code:
        return SearchError(message)
    if code == DetailFetchError.code:
        return DetailFetchError(message)
    return CrawlerError(message, code=code)

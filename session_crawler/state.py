"""Crawler lifecycle state machine."""

from __future__ import annotations

from enum import Enum

from .errors import InvalidTransitionError
from .models import CrawlerState


class CrawlerEvent(Enum):
    INITIALIZE = "initialize"
    INITIALIZED = "initialized"
    FAIL = "fail"
    CRAWL_START = "crawl_start"
    CRAWL_END = "crawl_end"
    CLOSE = "close"


S = CrawlerState
E = CrawlerEvent

TRANSITIONS: dict[tuple[CrawlerState, CrawlerEvent], CrawlerState] = {
    (S.IDLE, E.INITIALIZE): S.INITIALIZING,
    (S.ERROR, E.INITIALIZE): S.INITIALIZING,
    (S.CLOSED, E.INITIALIZE): S.INITIALIZING,
    (S.INITIALIZING, E.INITIALIZED): S.READY,
    (S.INITIALIZING, E.FAIL): S.ERROR,
    (S.READY, E.CRAWL_START): S.CRAWLING,
    (S.CRAWLING, E.CRAWL_END): S.READY,
    # close is accepted from every state, including a repeated close
    **{(state, E.CLOSE): S.CLOSED for state in CrawlerState},
}


def transition(current: CrawlerState, event: CrawlerEvent) -> CrawlerState:
    """Return the state reached from ``current`` on ``event``.

    Raises InvalidTransitionError when the pair is not in the table.
    """
    try:
        return TRANSITIONS[(current, event)]
    except KeyError:
        raise InvalidTransitionError(
            f"Cannot apply {event.value!r} in state {current.value!r}"
        ) from None

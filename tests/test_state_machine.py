import unittest

from session_crawler.errors import InvalidTransitionError
from session_crawler.models import CrawlerState
from session_crawler.state import CrawlerEvent, transition


class TestStateMachine(unittest.TestCase):
    def test_initialize_path(self):
        state = transition(CrawlerState.IDLE, CrawlerEvent.INITIALIZE)
        self.assertEqual(state, CrawlerState.INITIALIZING)
        self.assertEqual(transition(state, CrawlerEvent.INITIALIZED), CrawlerState.READY)
        self.assertEqual(transition(state, CrawlerEvent.FAIL), CrawlerState.ERROR)

    def test_crawling_round_trip(self):
        crawling = transition(CrawlerState.READY, CrawlerEvent.CRAWL_START)
        self.assertEqual(crawling, CrawlerState.CRAWLING)
        self.assertEqual(transition(crawling, CrawlerEvent.CRAWL_END), CrawlerState.READY)

    def test_reinitialize_from_error_and_closed(self):
        for state in (CrawlerState.ERROR, CrawlerState.CLOSED):
            self.assertEqual(transition(state, CrawlerEvent.INITIALIZE), CrawlerState.INITIALIZING)

    def test_close_accepted_from_every_state(self):
        for state in CrawlerState:
            self.assertEqual(transition(state, CrawlerEvent.CLOSE), CrawlerState.CLOSED)

    def test_illegal_transitions_raise(self):
        for state, event in [
            (CrawlerState.IDLE, CrawlerEvent.CRAWL_START),
            (CrawlerState.READY, CrawlerEvent.INITIALIZE),
            (CrawlerState.CRAWLING, CrawlerEvent.INITIALIZED),
            (CrawlerState.ERROR, CrawlerEvent.CRAWL_END),
            (CrawlerState.CLOSED, CrawlerEvent.CRAWL_START),
        ]:
            with self.subTest(state=state, event=event):
                with self.assertRaises(InvalidTransitionError) as ctx:
                    transition(state, event)
                self.assertEqual(ctx.exception.code, "INVALID_TRANSITION")

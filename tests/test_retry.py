import unittest

from tenacity import RetryCallState

from session_crawler.errors import AuthenticationRequiredError, CrawlTimeoutError, SearchError
from session_crawler.retry import BackoffStrategy, build_wait, is_retryable, with_retry


def wait_for_attempt(wait, attempt: int) -> float:
    state = RetryCallState(retry_object=None, fn=None, args=(), kwargs={})
    state.attempt_number = attempt
    return wait(state)


class TestBuildWait(unittest.TestCase):
    def test_exponential(self):
        wait = build_wait(BackoffStrategy.EXPONENTIAL, initial_delay=1.0, multiplier=2.0, max_delay=5.0)
        self.assertEqual([wait_for_attempt(wait, n) for n in (1, 2, 3, 4)], [1.0, 2.0, 4.0, 5.0])

    def test_linear(self):
        wait = build_wait(BackoffStrategy.LINEAR, initial_delay=0.5, max_delay=30.0)
        self.assertEqual([wait_for_attempt(wait, n) for n in (1, 2, 3)], [0.5, 1.0, 1.5])

    def test_fixed(self):
        wait = build_wait(BackoffStrategy.FIXED, initial_delay=2.0)
        self.assertEqual(wait_for_attempt(wait, 3), 2.0)

    def test_random_jitter_is_bounded(self):
        wait = build_wait(BackoffStrategy.RANDOM_JITTER, initial_delay=1.0, multiplier=2.0, max_delay=3.0)
        for attempt in range(1, 6):
            delay = wait_for_attempt(wait, attempt)
            self.assertGreaterEqual(delay, 0)
            self.assertLessEqual(delay, 3.0)


class TestRetryPredicate(unittest.TestCase):
    def test_retryable_errors(self):
        self.assertTrue(is_retryable(CrawlTimeoutError("slow", 1000)))
        self.assertTrue(is_retryable(SearchError("boom")))
        self.assertFalse(is_retryable(AuthenticationRequiredError("login")))
        self.assertFalse(is_retryable(ValueError("bad input")))


class TestWithRetry(unittest.IsolatedAsyncioTestCase):
    async def test_retries_until_success(self):
        calls = []
        retries = []

        async def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise SearchError("temporarily blocked")
            return "ok"

        result = await with_retry(
            flaky,
            max_attempts=3,
            strategy=BackoffStrategy.FIXED,
            initial_delay=0,
            on_retry=lambda exc, attempt, delay: retries.append((type(exc), attempt, delay)),
        )

        self.assertEqual(result, "ok")
        self.assertEqual(len(calls), 3)
        self.assertEqual(retries, [(SearchError, 2, 0), (SearchError, 3, 0)])

    async def test_reraises_last_error(self):
        calls = []

        async def always_slow():
            calls.append(1)
            raise CrawlTimeoutError(f"attempt {len(calls)}", 10)

        with self.assertRaises(CrawlTimeoutError) as ctx:
            await with_retry(always_slow, max_attempts=2, strategy=BackoffStrategy.FIXED, initial_delay=0)
        self.assertEqual(len(calls), 2)
        self.assertEqual(ctx.exception.message, "attempt 2")

    async def test_auth_required_is_not_retried(self):
        calls = []

        async def needs_login():
            calls.append(1)
            raise AuthenticationRequiredError("login")

        with self.assertRaises(AuthenticationRequiredError):
            await with_retry(needs_login, max_attempts=5, initial_delay=0)
        self.assertEqual(len(calls), 1)

    async def test_custom_predicate(self):
        calls = []

        async def broken():
            calls.append(1)
            raise ValueError("nope")

        with self.assertRaises(ValueError):
            await with_retry(
                broken,
                max_attempts=2,
                strategy=BackoffStrategy.FIXED,
                initial_delay=0,
                should_retry=lambda exc: isinstance(exc, ValueError),
            )
        self.assertEqual(len(calls), 2)

    async def test_invalid_attempts(self):
        async def ok():
            return 1

        with self.assertRaises(ValueError):
            await with_retry(ok, max_attempts=0)

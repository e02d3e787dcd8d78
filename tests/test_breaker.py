from __future__ import annotations

import unittest

from sources.breaker import BudgetExhausted, CircuitBreaker, CircuitOpen, FetchCancelled
from sources.common import FetchError, ResponseShapeError


class _Clock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class _Flaky:
    def __init__(self, failures: int, value: float = 1.0) -> None:
        self.failures = failures
        self.value = value
        self.calls = 0

    def __call__(self) -> float:
        self.calls += 1
        if self.calls <= self.failures:
            raise FetchError("connection reset")
        return self.value


class CircuitBreakerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.sleeps: list[float] = []
        self.clock = _Clock()

    def _breaker(self, **kwargs) -> CircuitBreaker:
        params = {"max_attempts": 3, "failure_limit": 5, "cooldown_seconds": 60.0}
        params.update(kwargs)
        return CircuitBreaker(sleep=self.sleeps.append, clock=self.clock, **params)

    def test_success_on_first_try(self) -> None:
        breaker = self._breaker()
        self.assertEqual(7.0, breaker.execute(lambda: 7.0))
        self.assertEqual([], self.sleeps)

    def test_retries_with_capped_backoff(self) -> None:
        breaker = self._breaker(backoff_base_seconds=0.8, backoff_cap_seconds=1.0)
        action = _Flaky(failures=2, value=42.0)
        self.assertEqual(42.0, breaker.execute(action))
        self.assertEqual(3, action.calls)
        self.assertEqual([0.8, 1.0], self.sleeps)
        self.assertEqual(2, breaker.recent_failures)

    def test_budget_exhausted_after_max_attempts(self) -> None:
        breaker = self._breaker()
        action = _Flaky(failures=10)
        with self.assertRaises(BudgetExhausted) as ctx:
            breaker.execute(action)
        self.assertIsInstance(ctx.exception, FetchCancelled)
        self.assertEqual(3, action.calls)
        self.assertEqual(2, len(self.sleeps))

    def test_circuit_opens_after_failure_limit(self) -> None:
        breaker = self._breaker(max_attempts=2, failure_limit=3)
        breaker.execute(_Flaky(failures=1))
        breaker.execute(_Flaky(failures=1))
        with self.assertRaises(CircuitOpen):
            breaker.execute(_Flaky(failures=1))
        self.assertTrue(breaker.is_open)

        untouched = _Flaky(failures=0)
        with self.assertRaises(CircuitOpen):
            breaker.execute(untouched)
        self.assertEqual(0, untouched.calls)

    def test_circuit_closes_after_cooldown(self) -> None:
        breaker = self._breaker(max_attempts=1, failure_limit=1, cooldown_seconds=30.0)
        with self.assertRaises(CircuitOpen):
            breaker.execute(_Flaky(failures=1))
        self.clock.now = 31.0
        self.assertFalse(breaker.is_open)
        self.assertEqual(1.0, breaker.execute(_Flaky(failures=0)))

    def test_non_transient_errors_are_not_retried(self) -> None:
        breaker = self._breaker()
        calls = []

        def action() -> float:
            calls.append(1)
            raise ResponseShapeError("bad payload")

        with self.assertRaises(ResponseShapeError):
            breaker.execute(action)
        self.assertEqual(1, len(calls))
        self.assertEqual(0, breaker.recent_failures)

    def test_rejects_invalid_configuration(self) -> None:
        with self.assertRaises(ValueError):
            CircuitBreaker(max_attempts=0)
        with self.assertRaises(ValueError):
            CircuitBreaker(failure_limit=0)


if __name__ == "__main__":
    unittest.main()

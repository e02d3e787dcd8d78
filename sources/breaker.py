from __future__ import annotations

import logging
import time
from collections import deque
from typing import Callable, TypeVar

from series_policy import BREAKER_POLICY
from .common import FetchError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class FetchCancelled(Exception):
    """The remote source is unreachable; the run must stop fetching."""


class BudgetExhausted(FetchCancelled):
    pass


class CircuitOpen(FetchCancelled):
    pass


class CircuitBreaker:
    """Retry wrapper for remote calls.

    Each call gets up to ``max_attempts`` tries with capped exponential
    backoff between them. Only ``FetchError`` counts as transient, anything
    else propagates on the first try. Every failed try is remembered for
    ``cooldown_seconds``; once ``failure_limit`` of them pile up the circuit
    opens and further calls are refused without touching the network.
    """

    def __init__(
        self,
        max_attempts: int = BREAKER_POLICY["max_attempts"],
        failure_limit: int = BREAKER_POLICY["failure_limit"],
        cooldown_seconds: float = BREAKER_POLICY["cooldown_seconds"],
        backoff_base_seconds: float = BREAKER_POLICY["backoff_base_seconds"],
        backoff_cap_seconds: float = BREAKER_POLICY["backoff_cap_seconds"],
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if failure_limit < 1:
            raise ValueError("failure_limit must be at least 1")
        self.max_attempts = max_attempts
        self.failure_limit = failure_limit
        self.cooldown_seconds = cooldown_seconds
        self.backoff_base_seconds = backoff_base_seconds
        self.backoff_cap_seconds = backoff_cap_seconds
        self._sleep = sleep
        self._clock = clock
        self._failures: deque[float] = deque()

    def _prune(self) -> None:
        horizon = self._clock() - self.cooldown_seconds
        while self._failures and self._failures[0] <= horizon:
            self._failures.popleft()

    @property
    def is_open(self) -> bool:
        self._prune()
        return len(self._failures) >= self.failure_limit

    @property
    def recent_failures(self) -> int:
        self._prune()
        return len(self._failures)

    def backoff(self, attempt: int) -> float:
        return min(self.backoff_cap_seconds, self.backoff_base_seconds * (2 ** (attempt - 1)))

    def execute(self, action: Callable[[], T]) -> T:
        if self.is_open:
            raise CircuitOpen(f"circuit open after {self.recent_failures} recent failures")

        last_err: FetchError | None = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                return action()
            except FetchError as err:
                last_err = err
                self._failures.append(self._clock())
                logger.warning("attempt %d/%d failed: %s", attempt, self.max_attempts, err)
                if self.is_open:
                    raise CircuitOpen(f"circuit opened after {self.recent_failures} recent failures: {err}") from err
                if attempt < self.max_attempts:
                    self._sleep(self.backoff(attempt))
        raise BudgetExhausted(f"gave up after {self.max_attempts} attempts: {last_err}") from last_err

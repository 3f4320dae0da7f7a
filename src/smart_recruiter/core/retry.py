from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from tenacity import Retrying, before_sleep_log, nap, retry_if_result, stop_after_attempt, wait_incrementing
from tenacity.wait import wait_base

from smart_recruiter.types import Result

logger = logging.getLogger(__name__)

T = TypeVar("T")


def linear_backoff(step_sec: float = 1.0) -> wait_base:
    """Wait ``n * step_sec`` after failed attempt ``n``."""
    return wait_incrementing(start=step_sec, increment=step_sec)


def always_retry(result: Result) -> bool:
    return True


@dataclass(slots=True)
class RetryOutcome(Generic[T]):
    result: Result[T]
    attempts: int

    @property
    def ok(self) -> bool:
        return self.result.ok


@dataclass(slots=True)
class RetryPolicy:
    """Bounded retry around an operation returning a Result.

    ``backoff`` is a tenacity wait strategy; ``retryable`` decides whether a
    failed result is worth another attempt.
    """

    max_attempts: int = 3
    backoff: wait_base = field(default_factory=linear_backoff)
    retryable: Callable[[Result], bool] = always_retry
    sleep: Callable[[float], None] = nap.sleep

    def run(
        self,
        operation: Callable[[int], Result[T]],
        *,
        on_failure: Callable[[int, Result[T]], None] | None = None,
        before_retry: Callable[[int], None] | None = None,
    ) -> RetryOutcome[T]:
        attempts = 0

        def attempt() -> Result[T]:
            nonlocal attempts
            attempts += 1
            if attempts > 1 and before_retry is not None:
                before_retry(attempts)

            try:
                result = operation(attempts)
            except Exception as exc:
                result = Result.failure(str(exc) or exc.__class__.__name__)

            if not result.ok and on_failure is not None:
                on_failure(attempts, result)
            return result

        retrying = Retrying(
            stop=stop_after_attempt(max(1, self.max_attempts)),
            wait=self.backoff,
            retry=retry_if_result(lambda result: not result.ok and self.retryable(result)),
            before_sleep=before_sleep_log(logger, logging.DEBUG),
            sleep=self.sleep,
            retry_error_callback=lambda state: state.outcome.result(),
        )
        result = retrying(attempt)
        return RetryOutcome(result=result, attempts=attempts)

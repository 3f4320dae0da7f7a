from __future__ import annotations

from types import SimpleNamespace

from smart_recruiter.core.retry import RetryPolicy, linear_backoff
from smart_recruiter.types import Result


def _scripted(results: list[Result]):
    calls: list[int] = []

    def operation(attempt: int) -> Result:
        calls.append(attempt)
        return results[attempt - 1]

    return operation, calls


def test_linear_backoff_grows_with_attempt() -> None:
    backoff = linear_backoff(1.0)
    assert [backoff(SimpleNamespace(attempt_number=n)) for n in (1, 2, 3)] == [1.0, 2.0, 3.0]


def test_success_on_third_attempt_waits_one_then_two_seconds() -> None:
    sleeps: list[float] = []
    retried: list[int] = []
    operation, calls = _scripted([Result.failure("boom"), Result.failure("boom"), Result.success("ok")])

    outcome = RetryPolicy(max_attempts=3, sleep=sleeps.append).run(operation, before_retry=retried.append)

    assert outcome.ok
    assert outcome.result.value == "ok"
    assert outcome.attempts == 3
    assert calls == [1, 2, 3]
    assert sleeps == [1.0, 2.0]
    assert retried == [2, 3]


def test_exhaustion_returns_last_error_without_final_sleep() -> None:
    sleeps: list[float] = []
    failures: list[tuple[int, str]] = []
    operation, _ = _scripted([Result.failure("e1"), Result.failure("e2"), Result.failure("e3")])

    outcome = RetryPolicy(max_attempts=3, sleep=sleeps.append).run(
        operation, on_failure=lambda attempt, result: failures.append((attempt, result.error))
    )

    assert not outcome.ok
    assert outcome.result.error == "e3"
    assert outcome.attempts == 3
    assert sleeps == [1.0, 2.0]
    assert failures == [(1, "e1"), (2, "e2"), (3, "e3")]


def test_exceptions_count_as_failed_attempts() -> None:
    def operation(attempt: int) -> Result:
        if attempt == 1:
            raise RuntimeError("network down")
        return Result.success(attempt)

    outcome = RetryPolicy(max_attempts=3, sleep=lambda _: None).run(operation)

    assert outcome.ok
    assert outcome.attempts == 2


def test_non_retryable_failure_stops_immediately() -> None:
    operation, calls = _scripted([Result.failure("fatal"), Result.success("never")])

    outcome = RetryPolicy(max_attempts=3, retryable=lambda result: False, sleep=lambda _: None).run(operation)

    assert not outcome.ok
    assert calls == [1]

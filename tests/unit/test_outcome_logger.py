from __future__ import annotations

from smart_recruiter.core.outcome_log import OutcomeLogger
from smart_recruiter.db.repositories import RecordStore
from smart_recruiter.types import Result


class BrokenStore:
    def append_log(self, **kwargs):
        return Result.failure("database is locked")


class ExplodingStore:
    def append_log(self, **kwargs):
        raise RuntimeError("disk full")


def test_entries_are_persisted_with_context(store: RecordStore) -> None:
    events = OutcomeLogger(store)

    events.success("ai_success", "Cover letter generated", user_id="u1", application_id="a1", metadata={"attempt": 2})

    rows, _ = store.list_user_logs("u1").value
    assert rows[0].level == "success"
    assert rows[0].event == "ai_success"
    assert rows[0].application_id == "a1"
    assert rows[0].metadata_json == {"attempt": 2}
    assert rows[0].source == "backend"


def test_error_entries_carry_exception_details(store: RecordStore) -> None:
    OutcomeLogger(store).error("application_failed", "Crash", error=ValueError("bad value"), user_id="u1")

    rows, _ = store.list_user_logs("u1", level="error").value
    assert rows[0].metadata_json == {"error": {"type": "ValueError", "message": "bad value"}}


def test_store_failures_never_propagate(caplog) -> None:
    OutcomeLogger(BrokenStore()).info("job_received", "hello")
    OutcomeLogger(ExplodingStore()).warning("retry_attempted", "again")

    assert "database is locked" in caplog.text
    assert "disk full" in caplog.text

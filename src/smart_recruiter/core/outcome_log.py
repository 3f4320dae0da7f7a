from __future__ import annotations

import logging
from typing import Any

from smart_recruiter.db.repositories import RecordStore
from smart_recruiter.types import LogEvent, LogLevel

logger = logging.getLogger(__name__)

_PY_LEVELS = {
    "info": logging.INFO,
    "success": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


class OutcomeLogger:
    """Append-only event log persisted through the record store.

    Writes are best-effort: a failing store only produces a ``logging`` line.
    """

    def __init__(self, store: RecordStore, *, source: str = "backend"):
        self.store = store
        self.source = source

    def log(
        self,
        level: LogLevel,
        event: LogEvent,
        message: str,
        *,
        user_id: str | None = None,
        application_id: str | None = None,
        job_offer_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        logger.log(_PY_LEVELS.get(level, logging.INFO), "[%s] %s", event, message)
        try:
            result = self.store.append_log(
                level=level,
                event=event,
                message=message,
                user_id=user_id,
                application_id=application_id,
                job_offer_id=job_offer_id,
                metadata=metadata,
                source=self.source,
            )
        except Exception:
            logger.exception("Fatal error while persisting log entry event=%s", event)
            return
        if not result.ok:
            logger.error("Error logging to database: %s", result.error)

    def info(self, event: LogEvent, message: str, **context: Any) -> None:
        self.log("info", event, message, **context)

    def success(self, event: LogEvent, message: str, **context: Any) -> None:
        self.log("success", event, message, **context)

    def warning(self, event: LogEvent, message: str, **context: Any) -> None:
        self.log("warning", event, message, **context)

    def error(self, event: LogEvent, message: str, *, error: BaseException | None = None, **context: Any) -> None:
        if error is not None:
            metadata = dict(context.pop("metadata", None) or {})
            metadata["error"] = {"type": error.__class__.__name__, "message": str(error)}
            context["metadata"] = metadata
        self.log("error", event, message, **context)

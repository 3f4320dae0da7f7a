from __future__ import annotations

from collections.abc import Generator

from fastapi import Request
from sqlalchemy.orm import Session

from smart_recruiter.core.pipeline import ApplicationPipeline
from smart_recruiter.core.runtime import get_pipeline as get_default_pipeline
from smart_recruiter.db.session import get_db_session


def get_db() -> Generator[Session, None, None]:
    yield from get_db_session()


def get_pipeline(request: Request) -> ApplicationPipeline:
    pipeline = getattr(request.app.state, "pipeline", None)
    if pipeline is None:
        pipeline = get_default_pipeline()
        request.app.state.pipeline = pipeline
    return pipeline

from __future__ import annotations

import logging
import time
from datetime import UTC, datetime

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from smart_recruiter.api.deps import get_db, get_pipeline
from smart_recruiter.api.schemas import (
    ApplicationResponse,
    HealthResponse,
    LogEntryResponse,
    LogListResponse,
    LogStatsResponse,
    NotificationResponse,
    ProcessJobPayload,
    ProcessJobResponse,
)
from smart_recruiter.config import get_settings
from smart_recruiter.core.pipeline import ApplicationPipeline
from smart_recruiter.core.validation import normalize_trigger
from smart_recruiter.db.models import LogEntry
from smart_recruiter.db.repositories import RecordStore
from smart_recruiter.types import LogLevel, PipelineOutcome, TriggerRejection

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["api"])

_STARTED_AT = time.monotonic()


def health_payload() -> HealthResponse:
    settings = get_settings()
    return HealthResponse(
        status="ok",
        service=settings.app_name,
        version=settings.app_version,
        environment=settings.app_env,
        timestamp=datetime.now(UTC),
        uptime_sec=round(time.monotonic() - _STARTED_AT, 3),
    )


@router.post("/webhook/process-job", response_model=ProcessJobResponse)
def process_job(
    payload: ProcessJobPayload,
    background_tasks: BackgroundTasks,
    pipeline: ApplicationPipeline = Depends(get_pipeline),
) -> ProcessJobResponse:
    trigger = normalize_trigger(payload.model_dump())
    if isinstance(trigger, TriggerRejection):
        logger.warning("Trigger rejected (%s): %s", trigger.reason, trigger.message)
        return ProcessJobResponse(success=False, accepted=False, reason=trigger.reason, error=trigger.message)

    background_tasks.add_task(pipeline.run_detached, trigger)
    logger.info("Trigger accepted for user %s", trigger.user_id)
    return ProcessJobResponse(
        success=True,
        accepted=True,
        message="Job received, processing started",
        user_id=trigger.user_id,
    )


@router.post("/webhook/process-job/sync", response_model=PipelineOutcome)
def process_job_sync(
    payload: ProcessJobPayload,
    pipeline: ApplicationPipeline = Depends(get_pipeline),
) -> PipelineOutcome:
    trigger = normalize_trigger(payload.model_dump())
    if isinstance(trigger, TriggerRejection):
        raise HTTPException(status_code=400, detail={"reason": trigger.reason, "error": trigger.message})
    return pipeline.process(trigger)


@router.get("/webhook/health", response_model=HealthResponse)
def webhook_health() -> HealthResponse:
    return health_payload()


@router.get("/logs/users/{user_id}", response_model=LogListResponse)
def list_user_logs(
    user_id: str,
    level: LogLevel | None = Query(None),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
) -> LogListResponse:
    result = RecordStore(db).list_user_logs(user_id, level=level, limit=limit, offset=offset)
    if not result.ok:
        raise HTTPException(status_code=500, detail=result.error)

    rows, total = result.value
    return LogListResponse(logs=[_log_response(row) for row in rows], total=total, limit=limit, offset=offset)


@router.get("/logs/users/{user_id}/stats", response_model=LogStatsResponse)
def user_log_stats(user_id: str, db: Session = Depends(get_db)) -> LogStatsResponse:
    result = RecordStore(db).log_stats(user_id)
    if not result.ok:
        raise HTTPException(status_code=500, detail=result.error)
    return LogStatsResponse(user_id=user_id, **result.value)


@router.get("/logs/applications/{application_id}", response_model=list[LogEntryResponse])
def list_application_logs(application_id: str, db: Session = Depends(get_db)) -> list[LogEntryResponse]:
    store = RecordStore(db)
    if not store.get_application(application_id).ok:
        raise HTTPException(status_code=404, detail="Application not found")

    result = store.list_application_logs(application_id)
    if not result.ok:
        raise HTTPException(status_code=500, detail=result.error)
    return [_log_response(row) for row in result.value]


@router.get("/users/{user_id}/applications", response_model=list[ApplicationResponse])
def list_user_applications(
    user_id: str,
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
) -> list[ApplicationResponse]:
    result = RecordStore(db).list_applications(user_id, limit=limit)
    if not result.ok:
        raise HTTPException(status_code=500, detail=result.error)
    return [ApplicationResponse.model_validate(row) for row in result.value]


@router.get("/users/{user_id}/notifications", response_model=list[NotificationResponse])
def list_user_notifications(
    user_id: str,
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
) -> list[NotificationResponse]:
    result = RecordStore(db).list_notifications(user_id, limit=limit)
    if not result.ok:
        raise HTTPException(status_code=500, detail=result.error)
    return [NotificationResponse.model_validate(row) for row in result.value]


def _log_response(row: LogEntry) -> LogEntryResponse:
    return LogEntryResponse(
        id=row.id,
        level=row.level,
        event=row.event,
        message=row.message,
        user_id=row.user_id,
        application_id=row.application_id,
        job_offer_id=row.job_offer_id,
        metadata=row.metadata_json or {},
        source=row.source,
        created_at=row.created_at,
    )

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ProcessJobPayload(BaseModel):
    """Raw trigger body; sentinel handling happens in ``normalize_trigger``."""

    model_config = ConfigDict(extra="allow")

    # automation tools send numbers or booleans as placeholders; clean_value decides
    user_id: Any = None
    job_id: Any = None
    job_title: Any = None
    company: Any = None
    job_url: Any = None
    description: Any = None
    city: Any = None
    country: Any = None
    contact_email: Any = None
    recipient_email: Any = None


class ProcessJobResponse(BaseModel):
    success: bool
    accepted: bool
    message: str | None = None
    user_id: str | None = None
    reason: str | None = None
    error: str | None = None


class HealthResponse(BaseModel):
    status: str
    service: str
    version: str
    environment: str
    timestamp: datetime
    uptime_sec: float


class ApplicationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    job_offer_id: str
    cv_id: str
    status: str
    subject: str
    cover_letter: str
    retry_count: int
    error_message: str | None = None
    last_retry_at: datetime | None = None
    applied_at: datetime | None = None
    created_at: datetime


class NotificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    application_id: str | None = None
    type: str
    message: str
    sent_at: datetime


class LogEntryResponse(BaseModel):
    id: int
    level: str
    event: str
    message: str
    user_id: str | None = None
    application_id: str | None = None
    job_offer_id: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    source: str
    created_at: datetime


class LogListResponse(BaseModel):
    logs: list[LogEntryResponse]
    total: int
    limit: int
    offset: int


class LogStatsResponse(BaseModel):
    user_id: str
    total: int
    info: int
    success: int
    warning: int
    error: int

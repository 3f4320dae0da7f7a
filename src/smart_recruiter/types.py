from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, Literal, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")

ApplicationStatus = Literal["processing", "pending", "sent", "failed", "accepted", "rejected", "interview"]
NotificationType = Literal["generated", "sent", "email_failed", "generation_failed", "error"]
SMSStatus = Literal["sent", "pending", "failed"]
LogLevel = Literal["info", "success", "warning", "error"]
LogEvent = Literal[
    "job_received",
    "user_fetched",
    "offer_fetched",
    "application_created",
    "ai_called",
    "ai_success",
    "ai_failed",
    "retry_attempted",
    "email_sent",
    "email_failed",
    "sms_sent",
    "sms_failed",
    "application_failed",
    "status_changed",
    "job_processed",
]


@dataclass(slots=True)
class Result(Generic[T]):
    """Tagged outcome returned across every client and store boundary."""

    value: T | None = None
    error: str = ""

    @property
    def ok(self) -> bool:
        return not self.error

    @classmethod
    def success(cls, value: T) -> Result[T]:
        return cls(value=value)

    @classmethod
    def failure(cls, error: str) -> Result[T]:
        return cls(error=error or "unknown error")


class JobDetails(BaseModel):
    title: str
    company: str
    job_url: str
    description: str | None = None
    city: str | None = None
    country: str | None = None
    contact_email: str | None = None
    profession: str | None = None


class TriggerRequest(BaseModel):
    user_id: str
    job_id: str | None = None
    job: JobDetails | None = None
    recipient_email: str | None = None


class TriggerRejection(BaseModel):
    reason: Literal["missing_user_id", "missing_job_reference"]
    message: str
    user_id: str | None = None


class CoverLetter(BaseModel):
    subject: str
    body: str

    @property
    def word_count(self) -> int:
        return len(self.body.split())


class SentEmail(BaseModel):
    message_id: str
    recipient: str


class SenderIdentity(BaseModel):
    full_name: str
    email: str
    phone: str | None = None


class PipelineOutcome(BaseModel):
    success: bool
    application_id: str | None = None
    job_offer_id: str | None = None
    status: ApplicationStatus | None = None
    subject: str | None = None
    cover_letter: str | None = None
    email_sent: bool = False
    notified: bool = False
    error: str | None = None
    execution_time_ms: int = 0
    metadata: dict[str, Any] = Field(default_factory=dict)

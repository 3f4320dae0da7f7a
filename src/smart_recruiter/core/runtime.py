from __future__ import annotations

from smart_recruiter.config import Settings, get_settings
from smart_recruiter.core.pipeline import ApplicationPipeline
from smart_recruiter.core.retry import RetryPolicy, linear_backoff
from smart_recruiter.db.session import SessionLocal
from smart_recruiter.delivery.attachments import CVFileStore
from smart_recruiter.delivery.client import DeliveryClient
from smart_recruiter.delivery.transports import build_transport
from smart_recruiter.llm.generator import LetterGenerator
from smart_recruiter.llm.providers import build_provider
from smart_recruiter.notify.sms import SMSNotifier

_PIPELINE: ApplicationPipeline | None = None


def build_pipeline(settings: Settings | None = None) -> ApplicationPipeline:
    settings = settings or get_settings()
    files = CVFileStore(settings.cv_storage_dir, timeout_sec=settings.attachment_timeout_sec)
    return ApplicationPipeline(
        session_factory=SessionLocal,
        generator=LetterGenerator(build_provider(settings), settings=settings),
        delivery=DeliveryClient(build_transport(settings), files),
        sms=SMSNotifier.from_settings(settings),
        retry_policy=RetryPolicy(
            max_attempts=settings.generation_max_attempts,
            backoff=linear_backoff(settings.generation_backoff_sec),
        ),
    )


def get_pipeline() -> ApplicationPipeline:
    global _PIPELINE
    if _PIPELINE is None:
        _PIPELINE = build_pipeline()
    return _PIPELINE

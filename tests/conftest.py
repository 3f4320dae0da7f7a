from __future__ import annotations

import os

os.environ.setdefault("DATABASE_URL", "sqlite:///./.pytest_smart_recruiter.db")
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("EMAIL_BACKEND", "disabled")
os.environ.setdefault("TWILIO_ACCOUNT_SID", "")
os.environ.setdefault("GROQ_API_KEY", "")

from collections.abc import Callable, Iterator
from pathlib import Path
from types import SimpleNamespace
from typing import Any

import pytest

from smart_recruiter.core.pipeline import ApplicationPipeline
from smart_recruiter.core.retry import RetryPolicy, linear_backoff
from smart_recruiter.db.base import Base
from smart_recruiter.db.repositories import RecordStore
from smart_recruiter.db.session import SessionLocal, engine
from smart_recruiter.delivery.attachments import CVFileStore
from smart_recruiter.delivery.client import DeliveryClient
from smart_recruiter.delivery.transports import OutgoingEmail
from smart_recruiter.llm.generator import LetterGenerator
from smart_recruiter.llm.providers import ModelResponse
from smart_recruiter.notify.sms import SMSNotifier

LETTER_JSON = '{"subject": "Backend Engineer application", "body": "I build reliable APIs.\\nLet us talk."}'


class FakeProvider:
    """Replays scripted outputs; exceptions in the script are raised."""

    def __init__(self, outputs: list[Any] | None = None):
        self.outputs = list(outputs or [LETTER_JSON])
        self.calls: list[dict[str, str]] = []

    def complete_text(self, *, model: str, prompt: str, system: str = "") -> ModelResponse:
        self.calls.append({"model": model, "prompt": prompt, "system": system})
        output = self.outputs.pop(0) if len(self.outputs) > 1 else self.outputs[0]
        if isinstance(output, Exception):
            raise output
        return ModelResponse(content=output, api_path="chat_completions")


class FakeTransport:
    name = "fake"

    def __init__(self, *, fail_with: Exception | None = None):
        self.fail_with = fail_with
        self.sent: list[OutgoingEmail] = []

    def send(self, message: OutgoingEmail) -> str:
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append(message)
        return f"<msg-{len(self.sent)}@fake>"

    def verify(self, timeout_sec: int = 5) -> bool:
        return True


class FakeHTTPResponse:
    def __init__(self, status_code: int = 201, payload: dict | None = None):
        self.status_code = status_code
        self._payload = payload or {}
        self.text = str(self._payload)

    def json(self) -> dict:
        return self._payload


class FakeHTTPSession:
    def __init__(self, response: FakeHTTPResponse | None = None):
        self.response = response or FakeHTTPResponse(201, {"sid": "SM123", "id": "re_123"})
        self.posts: list[dict[str, Any]] = []

    def post(self, url: str, **kwargs: Any) -> FakeHTTPResponse:
        self.posts.append({"url": url, **kwargs})
        return self.response


@pytest.fixture(autouse=True)
def reset_db() -> Iterator[None]:
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def store() -> Iterator[RecordStore]:
    with SessionLocal() as session:
        yield RecordStore(session)


@pytest.fixture
def cv_dir(tmp_path: Path) -> Path:
    root = tmp_path / "cvs"
    root.mkdir()
    (root / "cv_camille.pdf").write_bytes(b"%PDF-1.4 fake cv")
    return root


@pytest.fixture
def seed_candidate() -> Callable[..., tuple[str, str]]:
    def _seed(*, auto_send: bool = False, phone: str | None = None, user_id: str | None = None) -> tuple[str, str]:
        with SessionLocal() as session:
            records = RecordStore(session)
            user = records.create_user(
                email="camille@example.com",
                full_name="Camille Martin",
                phone=phone,
                profession="Backend Engineer",
                city="Lyon",
                country="France",
                auto_send_enabled=auto_send,
                user_id=user_id,
            ).value
            cv = records.create_cv(
                user_id=user.id,
                file_url="cv_camille.pdf",
                skills=["Python", "FastAPI", "PostgreSQL"],
                experience_years=5,
                education="MSc Computer Science",
            ).value
            return user.id, cv.id

    return _seed


@pytest.fixture
def sleeps() -> list[float]:
    return []


@pytest.fixture
def make_pipeline(cv_dir: Path, sleeps: list[float]) -> Callable[..., ApplicationPipeline]:
    def _make(
        *,
        provider: FakeProvider | None = None,
        transport: FakeTransport | None = None,
        sms: SMSNotifier | None = None,
    ) -> ApplicationPipeline:
        return ApplicationPipeline(
            session_factory=SessionLocal,
            generator=LetterGenerator(provider or FakeProvider()),
            delivery=DeliveryClient(transport, CVFileStore(cv_dir)),
            sms=sms or SMSNotifier(account_sid="", auth_token="", from_number=""),
            retry_policy=RetryPolicy(max_attempts=3, backoff=linear_backoff(1.0), sleep=sleeps.append),
        )

    return _make


@pytest.fixture
def fakes() -> SimpleNamespace:
    return SimpleNamespace(
        Provider=FakeProvider,
        Transport=FakeTransport,
        HTTPSession=FakeHTTPSession,
        HTTPResponse=FakeHTTPResponse,
        letter_json=LETTER_JSON,
    )

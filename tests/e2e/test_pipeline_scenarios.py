from __future__ import annotations

from types import SimpleNamespace

from sqlalchemy import func, select

from smart_recruiter.db.models import Application, JobOffer, LogEntry, Notification
from smart_recruiter.db.repositories import RecordStore
from smart_recruiter.db.session import SessionLocal
from smart_recruiter.delivery.transports import TransportError
from smart_recruiter.notify.sms import SMSNotifier
from smart_recruiter.types import JobDetails, Result, TriggerRequest

ACME = JobDetails(title="Backend Engineer", company="Acme", job_url="https://acme.example/jobs/backend")


def _count(model) -> int:
    with SessionLocal() as session:
        return session.scalar(select(func.count()).select_from(model))


def _applications() -> list[Application]:
    with SessionLocal() as session:
        return list(session.scalars(select(Application).order_by(Application.created_at)))


def _notifications() -> list[Notification]:
    with SessionLocal() as session:
        return list(session.scalars(select(Notification).order_by(Notification.sent_at)))


def _logs(user_id: str) -> list[LogEntry]:
    with SessionLocal() as session:
        rows, _ = RecordStore(session).list_user_logs(user_id, limit=200).value
        return rows


def test_backend_engineer_at_acme_is_generated_for_review(make_pipeline, seed_candidate, fakes) -> None:
    user_id, cv_id = seed_candidate()
    transport = fakes.Transport()

    outcome = make_pipeline(transport=transport).process(TriggerRequest(user_id=user_id, job=ACME))

    assert outcome.success
    assert outcome.status == "pending"
    assert outcome.subject == "Backend Engineer application"
    assert outcome.email_sent is False
    assert _count(JobOffer) == 1
    [application] = _applications()
    assert application.status == "pending"
    assert application.cv_id == cv_id
    assert application.cover_letter == "I build reliable APIs.\nLet us talk."
    assert application.error_message is None
    assert transport.sent == []
    [notification] = _notifications()
    assert notification.type == "generated"
    assert notification.application_id == application.id
    assert "Backend Engineer" in notification.message


def test_duplicate_submission_reuses_offer(make_pipeline, seed_candidate) -> None:
    user_id, _ = seed_candidate()
    pipeline = make_pipeline()

    first = pipeline.process(TriggerRequest(user_id=user_id, job=ACME))
    second = pipeline.process(TriggerRequest(user_id=user_id, job=ACME))

    assert first.job_offer_id == second.job_offer_id
    assert _count(JobOffer) == 1
    assert len(_applications()) == 2
    assert [n.type for n in _notifications()] == ["generated", "generated"]


def test_existing_job_id_is_used_directly(make_pipeline, seed_candidate) -> None:
    user_id, _ = seed_candidate()
    pipeline = make_pipeline()
    offer_id = pipeline.process(TriggerRequest(user_id=user_id, job=ACME)).job_offer_id

    outcome = pipeline.process(TriggerRequest(user_id=user_id, job_id=offer_id))

    assert outcome.success
    assert outcome.job_offer_id == offer_id


def test_third_attempt_success_records_two_retries(make_pipeline, seed_candidate, sleeps, fakes) -> None:
    user_id, _ = seed_candidate()
    provider = fakes.Provider([RuntimeError("503 upstream"), RuntimeError("503 upstream"), fakes.letter_json])

    outcome = make_pipeline(provider=provider).process(TriggerRequest(user_id=user_id, job=ACME))

    assert outcome.success
    [application] = _applications()
    assert application.status == "pending"
    assert application.retry_count == 2
    assert application.last_retry_at is not None
    assert sleeps == [1.0, 2.0]
    assert len(provider.calls) == 3


def test_exhausted_retries_mark_application_failed(make_pipeline, seed_candidate, sleeps, fakes) -> None:
    user_id, _ = seed_candidate()
    provider = fakes.Provider([RuntimeError("first"), RuntimeError("second"), RuntimeError("quota exceeded")])

    outcome = make_pipeline(provider=provider).process(TriggerRequest(user_id=user_id, job=ACME))

    assert not outcome.success
    assert outcome.status == "failed"
    [application] = _applications()
    assert application.status == "failed"
    assert application.retry_count == 3
    assert "quota exceeded" in application.error_message
    [notification] = _notifications()
    assert notification.type == "generation_failed"
    assert "quota exceeded" in notification.message
    assert sleeps == [1.0, 2.0]


def test_email_failure_keeps_application_pending(make_pipeline, seed_candidate, fakes) -> None:
    user_id, _ = seed_candidate(auto_send=True)
    transport = fakes.Transport(fail_with=TransportError("SMTP error: 535 auth failed"))

    outcome = make_pipeline(transport=transport).process(TriggerRequest(user_id=user_id, job=ACME))

    assert outcome.success
    assert outcome.email_sent is False
    [application] = _applications()
    assert application.status == "pending"
    assert application.applied_at is None
    [notification] = _notifications()
    assert notification.type == "email_failed"
    assert "535 auth failed" in notification.message


def test_unexpected_transport_error_is_isolated(make_pipeline, seed_candidate, fakes) -> None:
    user_id, _ = seed_candidate(auto_send=True)

    outcome = make_pipeline(transport=fakes.Transport(fail_with=RuntimeError("socket closed"))).process(
        TriggerRequest(user_id=user_id, job=ACME)
    )

    assert outcome.success
    assert _applications()[0].status == "pending"
    assert [n.type for n in _notifications()] == ["email_failed"]


def test_auto_send_delivers_and_notifies(make_pipeline, seed_candidate, fakes) -> None:
    user_id, _ = seed_candidate(auto_send=True, phone="06 12 34 56 78")
    transport = fakes.Transport()
    sms_session = fakes.HTTPSession()
    sms = SMSNotifier(account_sid="AC1", auth_token="token", from_number="+33700000000", session=sms_session)
    trigger = TriggerRequest(user_id=user_id, job=ACME, recipient_email="hr@acme.example")

    outcome = make_pipeline(transport=transport, sms=sms).process(trigger)

    assert outcome.success
    assert outcome.email_sent is True
    assert outcome.status == "sent"
    [application] = _applications()
    assert application.status == "sent"
    assert application.applied_at is not None
    assert transport.sent[0].to == "hr@acme.example"
    assert transport.sent[0].subject == "Backend Engineer application"
    assert [n.type for n in _notifications()] == ["sent"]
    assert sms_session.posts[0]["data"]["Body"].startswith("Application sent for Backend Engineer")


def test_unknown_user_stops_before_any_application(make_pipeline, fakes) -> None:
    provider = fakes.Provider()

    outcome = make_pipeline(provider=provider).process(TriggerRequest(user_id="ghost", job=ACME))

    assert not outcome.success
    assert outcome.application_id is None
    assert _count(Application) == 0
    assert _count(JobOffer) == 0
    [notification] = _notifications()
    assert notification.type == "error"
    assert notification.user_id == "ghost"
    assert provider.calls == []


def test_unknown_job_id_is_reported(make_pipeline, seed_candidate) -> None:
    user_id, _ = seed_candidate()

    outcome = make_pipeline().process(TriggerRequest(user_id=user_id, job_id="missing-offer"))

    assert not outcome.success
    assert _count(Application) == 0
    [notification] = _notifications()
    assert notification.type == "error"
    assert "missing-offer" in notification.message


def test_unexpected_crash_marks_application_failed(make_pipeline, seed_candidate) -> None:
    user_id, _ = seed_candidate()
    pipeline = make_pipeline()
    pipeline.generator = SimpleNamespace(generate=lambda user, job_offer, cv: Result.success(None))

    outcome = pipeline.process(TriggerRequest(user_id=user_id, job=ACME))

    assert not outcome.success
    assert _applications()[0].status == "failed"
    assert [n.type for n in _notifications()] == ["error"]


def test_run_detached_swallows_errors(make_pipeline) -> None:
    def broken_session_factory():
        raise RuntimeError("no database")

    pipeline = make_pipeline()
    pipeline.session_factory = broken_session_factory

    pipeline.run_detached(TriggerRequest(user_id="u1", job=ACME))


def test_draft_creation_failure_stops_without_application(make_pipeline, seed_candidate, monkeypatch) -> None:
    user_id, _ = seed_candidate()
    monkeypatch.setattr(RecordStore, "create_application", lambda self, **fields: Result.failure("disk full"))

    outcome = make_pipeline().process(TriggerRequest(user_id=user_id, job=ACME))

    assert not outcome.success
    assert outcome.application_id is None
    assert outcome.status is None
    assert _count(Application) == 0
    assert _notifications() == []
    assert [row.level for row in _logs(user_id) if row.event == "application_created"] == ["error"]


def test_letter_save_failure_keeps_processing_status(make_pipeline, seed_candidate, monkeypatch) -> None:
    user_id, _ = seed_candidate()
    original = RecordStore.update_application

    def update_application(self, application_id, **fields):
        if fields.get("status") == "pending":
            return Result.failure("database is locked")
        return original(self, application_id, **fields)

    monkeypatch.setattr(RecordStore, "update_application", update_application)

    outcome = make_pipeline().process(TriggerRequest(user_id=user_id, job=ACME))

    assert not outcome.success
    assert outcome.status == "processing"
    [application] = _applications()
    assert application.status == "processing"
    assert [n.type for n in _notifications()] == ["error"]
    assert "database is locked" in _notifications()[0].message
    assert not [row for row in _logs(user_id) if row.event == "job_processed"]


def test_sms_crash_is_not_fatal(make_pipeline, seed_candidate) -> None:
    user_id, _ = seed_candidate(phone="+33612345678")
    pipeline = make_pipeline()

    def notify(phone, job_title, company, status):
        raise ConnectionError("twilio unreachable")

    pipeline.sms = SimpleNamespace(notify=notify)

    outcome = pipeline.process(TriggerRequest(user_id=user_id, job=ACME))

    assert outcome.success
    assert outcome.status == "pending"
    assert [n.type for n in _notifications()] == ["generated"]
    logs = _logs(user_id)
    assert [row.level for row in logs if row.event == "sms_failed"] == ["warning"]
    assert not [row for row in logs if row.level == "error"]

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from sqlalchemy.orm import Session

from smart_recruiter.core.outcome_log import OutcomeLogger
from smart_recruiter.core.retry import RetryPolicy, linear_backoff
from smart_recruiter.core.states import ApplicationStateMachine
from smart_recruiter.db.models import CV, DRAFT_COVER_LETTER, Application, JobOffer, User
from smart_recruiter.db.repositories import RecordStore
from smart_recruiter.delivery.client import DeliveryClient
from smart_recruiter.llm.generator import LetterGenerator
from smart_recruiter.notify.sms import SMSNotifier
from smart_recruiter.types import (
    CoverLetter,
    NotificationType,
    PipelineOutcome,
    Result,
    SenderIdentity,
    TriggerRequest,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RunState:
    """Mutable bookkeeping for a single pipeline run."""

    request: TriggerRequest
    store: RecordStore
    events: OutcomeLogger
    started: float = field(default_factory=time.monotonic)
    user: User | None = None
    cv: CV | None = None
    job_offer: JobOffer | None = None
    application: Application | None = None
    machine: ApplicationStateMachine = field(default_factory=ApplicationStateMachine)
    letter: CoverLetter | None = None
    email_sent: bool = False
    email_error: str | None = None
    generation_error: str | None = None

    @property
    def user_id(self) -> str:
        return self.request.user_id

    @property
    def application_id(self) -> str | None:
        return self.application.id if self.application is not None else None

    @property
    def job_offer_id(self) -> str | None:
        if self.job_offer is not None:
            return self.job_offer.id
        return self.request.job_id

    @property
    def job_label(self) -> str:
        if self.job_offer is not None:
            return f'"{self.job_offer.title}" at {self.job_offer.company}'
        if self.request.job is not None:
            return f'"{self.request.job.title}" at {self.request.job.company}'
        return f"job {self.request.job_id}"

    def elapsed_ms(self) -> int:
        return int((time.monotonic() - self.started) * 1000)

    def context(self, **metadata: Any) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "user_id": self.user_id,
            "application_id": self.application_id,
            "job_offer_id": self.job_offer_id,
        }
        if metadata:
            payload["metadata"] = metadata
        return payload


class ApplicationPipeline:
    """Runs one trigger through letter generation, delivery and notification.

    Each run opens its own store session from ``session_factory``. Every
    failure ends in a persisted state plus a user notification; ``process``
    only returns outcomes and never raises.
    """

    def __init__(
        self,
        *,
        session_factory: Callable[[], Session],
        generator: LetterGenerator,
        delivery: DeliveryClient,
        sms: SMSNotifier,
        retry_policy: RetryPolicy | None = None,
    ):
        self.session_factory = session_factory
        self.generator = generator
        self.delivery = delivery
        self.sms = sms
        self.retry_policy = retry_policy or RetryPolicy(max_attempts=3, backoff=linear_backoff(1.0))

    def run_detached(self, request: TriggerRequest) -> None:
        """Entry point for background execution; nothing propagates to the caller."""
        try:
            outcome = self.process(request)
        except Exception:
            logger.exception("Unhandled error in detached pipeline run for user %s", request.user_id)
            return
        logger.info(
            "Detached run finished user=%s application=%s status=%s",
            request.user_id,
            outcome.application_id,
            outcome.status,
        )

    def process(self, request: TriggerRequest) -> PipelineOutcome:
        with self.session_factory() as session:
            store = RecordStore(session)
            state = RunState(request=request, store=store, events=OutcomeLogger(store))
            state.events.info(
                "job_received",
                f"New job received for user {request.user_id}",
                **state.context(has_job_id=request.job_id is not None, has_details=request.job is not None),
            )
            try:
                return self._run(state)
            except Exception as exc:
                logger.exception("Pipeline run crashed for user %s", request.user_id)
                return self._fail_unexpected(state, exc)

    def _run(self, state: RunState) -> PipelineOutcome:
        if not self._resolve_user(state):
            return self._outcome(state, success=False, error="user or CV not found")
        if not self._resolve_job_offer(state):
            return self._outcome(state, success=False, error="job offer could not be resolved")
        if not self._create_draft(state):
            return self._outcome(state, success=False, error="application could not be created")
        if not self._generate_letter(state):
            return self._outcome(state, success=False, error=state.generation_error)
        if not self._persist_letter(state):
            return self._outcome(state, success=False, error="cover letter could not be saved")

        if state.user.auto_send_enabled:
            self._send_email(state)
        else:
            logger.info("Auto-send disabled for user %s; letter kept for review", state.user_id)

        self._notify_sms(state, "sent" if state.email_sent else "pending")
        notified = self._notify_outcome(state)

        state.events.success(
            "job_processed",
            "Job processed",
            **state.context(
                status=state.machine.status,
                email_sent=state.email_sent,
                execution_time_ms=state.elapsed_ms(),
            ),
        )
        return self._outcome(state, success=True, notified=notified)

    def _resolve_user(self, state: RunState) -> bool:
        result = state.store.get_user_with_latest_cv(state.user_id)
        if not result.ok:
            state.events.error("user_fetched", result.error, **state.context())
            self._notify(state, "error", f"Error: user or CV not found for {state.job_label}")
            return False

        state.user, state.cv = result.value
        state.events.info(
            "user_fetched",
            f"User {state.user.full_name} with CV {state.cv.id}",
            **state.context(experience_years=state.cv.experience_years),
        )
        return True

    def _resolve_job_offer(self, state: RunState) -> bool:
        request = state.request
        if request.job_id is not None:
            result = state.store.get_job_offer(request.job_id)
            failure_message = f"Error: job offer {request.job_id} not found"
        else:
            result = state.store.create_or_get_job_offer(request.job)
            failure_message = f'Error: unable to create the job offer "{request.job.title}" at {request.job.company}'

        if not result.ok:
            state.events.error("offer_fetched", result.error, **state.context())
            self._notify(state, "error", failure_message)
            return False

        state.job_offer = result.value
        state.events.info("offer_fetched", f"Job offer {state.job_label}", **state.context())
        return True

    def _create_draft(self, state: RunState) -> bool:
        result = state.store.create_application(
            user_id=state.user.id,
            cv_id=state.cv.id,
            job_offer_id=state.job_offer.id,
            cover_letter=DRAFT_COVER_LETTER,
            status="processing",
        )
        if not result.ok:
            state.events.error(
                "application_created", "Error creating draft application", **state.context(error=result.error)
            )
            return False

        state.application = result.value
        state.machine = ApplicationStateMachine(status=state.application.status)
        state.events.success(
            "application_created", f"Application {state.application.id} created", **state.context()
        )
        return True

    def _generate_letter(self, state: RunState) -> bool:
        policy = self.retry_policy
        state.events.info(
            "ai_called", "Calling generation backend for cover letter", **state.context(max_attempts=policy.max_attempts)
        )

        def attempt(number: int) -> Result[CoverLetter]:
            return self.generator.generate(state.user, state.job_offer, state.cv)

        def on_failure(number: int, result: Result[CoverLetter]) -> None:
            state.events.error(
                "ai_failed",
                f"Generation error (attempt {number})",
                **state.context(attempt=number, error=result.error),
            )

        def before_retry(number: int) -> None:
            state.events.warning(
                "retry_attempted",
                f"Attempt {number}/{policy.max_attempts}",
                **state.context(attempt=number),
            )
            updated = state.store.update_application(
                state.application_id, retry_count=number - 1, last_retry_at=datetime.now(UTC)
            )
            if not updated.ok:
                logger.warning("Could not record retry count: %s", updated.error)

        outcome = policy.run(attempt, on_failure=on_failure, before_retry=before_retry)
        if outcome.ok:
            state.letter = outcome.result.value
            state.events.success(
                "ai_success",
                f"Cover letter generated (attempt {outcome.attempts})",
                **state.context(
                    attempt=outcome.attempts,
                    subject=state.letter.subject,
                    word_count=state.letter.word_count,
                ),
            )
            return True

        last_error = outcome.result.error
        state.generation_error = f"Generation failed: {last_error}"
        self._transition(
            state,
            "failed",
            error_message=state.generation_error,
            retry_count=policy.max_attempts,
        )
        state.events.error(
            "ai_failed",
            f"Generation failed after {outcome.attempts} attempts",
            **state.context(error=last_error, retries=outcome.attempts),
        )
        self._notify(
            state,
            "generation_failed",
            f"Cover letter generation failed for {state.job_label} after "
            f"{outcome.attempts} attempts. Error: {last_error}",
        )
        self._notify_sms(state, "failed")
        return False

    def _persist_letter(self, state: RunState) -> bool:
        result = self._transition(
            state,
            "pending",
            subject=state.letter.subject,
            cover_letter=state.letter.body,
            error_message=None,
        )
        if not result.ok:
            state.events.error(
                "application_failed", "Error saving generated letter", **state.context(error=result.error)
            )
            self._notify(
                state, "error", f"Error saving the cover letter for {state.job_label}. Error: {result.error}"
            )
            return False
        return True

    def _send_email(self, state: RunState) -> None:
        user, job_offer = state.user, state.job_offer
        sender = SenderIdentity(full_name=user.full_name, email=user.email, phone=user.phone)
        try:
            result = self.delivery.send(
                job_offer,
                state.cv.file_url,
                state.letter.body,
                sender,
                recipient_email=state.request.recipient_email,
                subject=state.letter.subject,
            )
            if not result.ok:
                state.email_error = result.error
                state.events.warning("email_failed", "Email could not be sent", **state.context(error=result.error))
                return

            state.email_sent = True
            updated = self._transition(state, "sent", applied_at=datetime.now(UTC))
            if not updated.ok:
                logger.warning("Email sent but status update failed: %s", updated.error)
            state.events.success(
                "email_sent",
                "Email sent",
                **state.context(message_id=result.value.message_id, to=result.value.recipient),
            )
        except Exception as exc:
            state.email_error = str(exc) or exc.__class__.__name__
            state.events.error("email_failed", "Error while sending email", error=exc, **state.context())

    def _notify_sms(self, state: RunState, status: str) -> None:
        phone = getattr(state.user, "phone", None)
        try:
            result = self.sms.notify(phone, state.job_offer.title, state.job_offer.company, status)
        except Exception as exc:
            state.events.warning("sms_failed", f"SMS error (non-blocking): {exc}", **state.context())
            return
        if result.ok:
            state.events.info("sms_sent", "SMS notification sent", **state.context(sid=result.value))
        else:
            logger.info("SMS not sent for user %s: %s", state.user_id, result.error)

    def _notify_outcome(self, state: RunState) -> bool:
        if state.email_sent:
            return self._notify(state, "sent", f"Application sent for {state.job_label}")
        if state.email_error is not None:
            return self._notify(
                state,
                "email_failed",
                f"The cover letter was generated but the email could not be sent for "
                f"{state.job_label}. Error: {state.email_error}",
            )
        return self._notify(state, "generated", f"Cover letter generated for {state.job_label}, ready for review")

    def _transition(self, state: RunState, target: str, **fields: Any) -> Result[Application]:
        if not state.machine.can_move_to(target):
            message = f"application cannot move from '{state.machine.status}' to '{target}'"
            logger.error("Refusing status change for application %s: %s", state.application_id, message)
            return Result.failure(message)

        # the in-memory status follows the stored row, never ahead of it
        result = state.store.update_application(state.application_id, status=target, **fields)
        if result.ok:
            state.machine.move_to(target)
            state.application = result.value
            state.events.info("status_changed", f"Application moved to {target}", **state.context(status=target))
        return result

    def _notify(self, state: RunState, type: NotificationType, message: str) -> bool:
        result = state.store.create_notification(
            user_id=state.user_id,
            application_id=state.application_id,
            type=type,
            message=message,
        )
        if not result.ok:
            logger.error("Notification for user %s not stored: %s", state.user_id, result.error)
        return result.ok

    def _fail_unexpected(self, state: RunState, exc: Exception) -> PipelineOutcome:
        message = str(exc) or exc.__class__.__name__
        state.store.session.rollback()
        state.events.error("application_failed", "Unexpected pipeline error", error=exc, **state.context())
        if state.application is not None and state.machine.can_move_to("failed"):
            self._transition(state, "failed", error_message=message)
        notified = self._notify(state, "error", f"Unexpected error while processing {state.job_label}. Error: {message}")
        return self._outcome(state, success=False, error=message, notified=notified)

    def _outcome(
        self,
        state: RunState,
        *,
        success: bool,
        error: str | None = None,
        notified: bool = True,
    ) -> PipelineOutcome:
        return PipelineOutcome(
            success=success,
            application_id=state.application_id,
            job_offer_id=state.job_offer.id if state.job_offer is not None else None,
            status=state.machine.status if state.application is not None else None,
            subject=state.letter.subject if state.letter else None,
            cover_letter=state.letter.body if state.letter else None,
            email_sent=state.email_sent,
            notified=notified,
            error=error,
            execution_time_ms=state.elapsed_ms(),
        )

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any, TypeVar

from sqlalchemy import func, inspect, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from smart_recruiter.db.models import (
    CV,
    UNSPECIFIED,
    Application,
    JobOffer,
    LogEntry,
    Notification,
    User,
)
from smart_recruiter.types import JobDetails, Result

logger = logging.getLogger(__name__)

T = TypeVar("T")

APPLICATION_FIELDS = {attr.key for attr in inspect(Application).column_attrs} - {"id", "created_at"}


class RecordStore:
    """Gateway over the relational store.

    Every public operation returns a :class:`Result`; database errors are
    rolled back and reported as failures instead of propagating.
    """

    def __init__(self, session: Session):
        self.session = session

    def _guard(self, operation: str, fn: Callable[[], Result[T]]) -> Result[T]:
        try:
            return fn()
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.error("Store operation %s failed: %s", operation, exc)
            return Result.failure(f"{operation} failed: {exc.__class__.__name__}: {exc}")

    def _save(self, obj: T) -> T:
        self.session.add(obj)
        self.session.commit()
        self.session.refresh(obj)
        return obj

    def get_user(self, user_id: str) -> Result[User]:
        def run() -> Result[User]:
            user = self.session.get(User, user_id)
            if user is None:
                return Result.failure(f"user {user_id} not found")
            return Result.success(user)

        return self._guard("get_user", run)

    def get_latest_cv(self, user_id: str) -> Result[CV]:
        def run() -> Result[CV]:
            statement = (
                select(CV).where(CV.user_id == user_id).order_by(CV.created_at.desc()).limit(1)
            )
            cv = self.session.scalar(statement)
            if cv is None:
                return Result.failure(f"no CV found for user {user_id}")
            return Result.success(cv)

        return self._guard("get_latest_cv", run)

    def get_user_with_latest_cv(self, user_id: str) -> Result[tuple[User, CV]]:
        def run() -> Result[tuple[User, CV]]:
            statement = (
                select(User, CV)
                .join(CV, CV.user_id == User.id)
                .where(User.id == user_id)
                .order_by(CV.created_at.desc())
                .limit(1)
            )
            row = self.session.execute(statement).first()
            if row is None:
                return Result.failure(f"user {user_id} or their CV not found")
            return Result.success((row[0], row[1]))

        return self._guard("get_user_with_latest_cv", run)

    def get_job_offer(self, job_offer_id: str) -> Result[JobOffer]:
        def run() -> Result[JobOffer]:
            offer = self.session.get(JobOffer, job_offer_id)
            if offer is None:
                return Result.failure(f"job offer {job_offer_id} not found")
            return Result.success(offer)

        return self._guard("get_job_offer", run)

    def find_job_offer_by_url(self, job_url: str) -> JobOffer | None:
        return self.session.scalar(select(JobOffer).where(JobOffer.job_url == job_url))

    def create_or_get_job_offer(self, details: JobDetails) -> Result[JobOffer]:
        def run() -> Result[JobOffer]:
            existing = self.find_job_offer_by_url(details.job_url)
            if existing is not None:
                logger.info("Reusing job offer %s for %s", existing.id, details.job_url)
                return Result.success(existing)

            offer = JobOffer(
                title=details.title,
                company=details.company,
                city=details.city or UNSPECIFIED,
                country=details.country or UNSPECIFIED,
                job_url=details.job_url,
                description=details.description or "",
                profession=details.profession or details.title,
                contact_email=details.contact_email,
                scraped_at=datetime.now(UTC),
            )
            try:
                offer = self._save(offer)
            except IntegrityError:
                # a concurrent trigger inserted the same url first
                self.session.rollback()
                existing = self.find_job_offer_by_url(details.job_url)
                if existing is None:
                    raise
                return Result.success(existing)

            logger.info("Created job offer %s for %s", offer.id, details.job_url)
            return Result.success(offer)

        return self._guard("create_or_get_job_offer", run)

    def create_application(self, **fields: Any) -> Result[Application]:
        unknown = set(fields) - APPLICATION_FIELDS
        if unknown:
            return Result.failure(f"unknown application fields: {sorted(unknown)}")
        return self._guard("create_application", lambda: Result.success(self._save(Application(**fields))))

    def update_application(self, application_id: str, **fields: Any) -> Result[Application]:
        unknown = set(fields) - APPLICATION_FIELDS
        if unknown:
            return Result.failure(f"unknown application fields: {sorted(unknown)}")

        def run() -> Result[Application]:
            application = self.session.get(Application, application_id)
            if application is None:
                return Result.failure(f"application {application_id} not found")
            for key, value in fields.items():
                setattr(application, key, value)
            self.session.commit()
            self.session.refresh(application)
            return Result.success(application)

        return self._guard("update_application", run)

    def get_application(self, application_id: str) -> Result[Application]:
        def run() -> Result[Application]:
            application = self.session.get(Application, application_id)
            if application is None:
                return Result.failure(f"application {application_id} not found")
            return Result.success(application)

        return self._guard("get_application", run)

    def create_notification(
        self,
        *,
        user_id: str,
        message: str,
        type: str,
        application_id: str | None = None,
    ) -> Result[Notification]:
        notification = Notification(
            user_id=user_id,
            application_id=application_id,
            type=type,
            message=message,
            sent_at=datetime.now(UTC),
        )
        return self._guard("create_notification", lambda: Result.success(self._save(notification)))

    def append_log(
        self,
        *,
        level: str,
        event: str,
        message: str,
        user_id: str | None = None,
        application_id: str | None = None,
        job_offer_id: str | None = None,
        metadata: dict[str, Any] | None = None,
        source: str = "backend",
    ) -> Result[LogEntry]:
        entry = LogEntry(
            user_id=user_id,
            application_id=application_id,
            job_offer_id=job_offer_id,
            level=level,
            event=event,
            message=message,
            metadata_json=metadata,
            source=source,
        )
        return self._guard("append_log", lambda: Result.success(self._save(entry)))

    def create_user(
        self,
        *,
        email: str,
        full_name: str,
        phone: str | None = None,
        profession: str | None = None,
        city: str | None = None,
        country: str | None = None,
        auto_send_enabled: bool = False,
        user_id: str | None = None,
    ) -> Result[User]:
        user = User(
            email=email,
            full_name=full_name,
            phone=phone,
            profession=profession,
            city=city,
            country=country,
            auto_send_enabled=auto_send_enabled,
        )
        if user_id:
            user.id = user_id
        return self._guard("create_user", lambda: Result.success(self._save(user)))

    def set_auto_send(self, user_id: str, enabled: bool) -> Result[User]:
        def run() -> Result[User]:
            user = self.session.get(User, user_id)
            if user is None:
                return Result.failure(f"user {user_id} not found")
            user.auto_send_enabled = enabled
            self.session.commit()
            self.session.refresh(user)
            return Result.success(user)

        return self._guard("set_auto_send", run)

    def create_cv(
        self,
        *,
        user_id: str,
        file_url: str,
        skills: list[str] | None = None,
        experience_years: int | None = None,
        education: str | None = None,
    ) -> Result[CV]:
        cv = CV(
            user_id=user_id,
            file_url=file_url,
            skills_json=list(skills or []),
            experience_years=experience_years,
            education=education,
        )
        return self._guard("create_cv", lambda: Result.success(self._save(cv)))

    def list_applications(self, user_id: str, limit: int = 50) -> Result[list[Application]]:
        statement = (
            select(Application)
            .where(Application.user_id == user_id)
            .order_by(Application.created_at.desc())
            .limit(limit)
        )
        return self._guard(
            "list_applications", lambda: Result.success(list(self.session.scalars(statement).all()))
        )

    def list_notifications(self, user_id: str, limit: int = 50) -> Result[list[Notification]]:
        statement = (
            select(Notification)
            .where(Notification.user_id == user_id)
            .order_by(Notification.sent_at.desc())
            .limit(limit)
        )
        return self._guard(
            "list_notifications", lambda: Result.success(list(self.session.scalars(statement).all()))
        )

    def list_user_logs(
        self,
        user_id: str,
        *,
        level: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Result[tuple[list[LogEntry], int]]:
        def run() -> Result[tuple[list[LogEntry], int]]:
            conditions = [LogEntry.user_id == user_id]
            if level:
                conditions.append(LogEntry.level == level)

            total = self.session.scalar(select(func.count(LogEntry.id)).where(*conditions)) or 0
            statement = (
                select(LogEntry)
                .where(*conditions)
                .order_by(LogEntry.created_at.desc(), LogEntry.id.desc())
                .offset(offset)
                .limit(limit)
            )
            return Result.success((list(self.session.scalars(statement).all()), int(total)))

        return self._guard("list_user_logs", run)

    def list_application_logs(self, application_id: str) -> Result[list[LogEntry]]:
        statement = (
            select(LogEntry)
            .where(LogEntry.application_id == application_id)
            .order_by(LogEntry.created_at.asc(), LogEntry.id.asc())
        )
        return self._guard(
            "list_application_logs", lambda: Result.success(list(self.session.scalars(statement).all()))
        )

    def log_stats(self, user_id: str) -> Result[dict[str, int]]:
        def run() -> Result[dict[str, int]]:
            statement = (
                select(LogEntry.level, func.count(LogEntry.id))
                .where(LogEntry.user_id == user_id)
                .group_by(LogEntry.level)
            )
            stats = {"total": 0, "info": 0, "success": 0, "warning": 0, "error": 0}
            for level, count in self.session.execute(statement).all():
                stats[level] = int(count)
                stats["total"] += int(count)
            return Result.success(stats)

        return self._guard("log_stats", run)

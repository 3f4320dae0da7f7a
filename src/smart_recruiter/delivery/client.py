from __future__ import annotations

import logging
from typing import Any

from smart_recruiter.delivery.attachments import AttachmentError, CVFileStore
from smart_recruiter.delivery.rendering import attachment_filename, default_subject, render_html, render_text
from smart_recruiter.delivery.transports import Attachment, EmailTransport, OutgoingEmail, TransportError
from smart_recruiter.types import Result, SenderIdentity, SentEmail

logger = logging.getLogger(__name__)


class DeliveryClient:
    def __init__(self, transport: EmailTransport | None, files: CVFileStore):
        self.transport = transport
        self.files = files

    @property
    def enabled(self) -> bool:
        return self.transport is not None

    def send(
        self,
        job_offer: Any,
        cv_file_ref: str,
        letter_body: str,
        sender: SenderIdentity,
        recipient_email: str | None = None,
        subject: str | None = None,
    ) -> Result[SentEmail]:
        if self.transport is None:
            return Result.failure("email delivery is disabled (no transport configured)")

        try:
            cv_bytes = self.files.fetch(cv_file_ref)
        except AttachmentError as exc:
            logger.warning("Cannot attach CV %s: %s", cv_file_ref, exc)
            return Result.failure(f"unable to fetch CV: {exc}")

        recipient = resolve_recipient(recipient_email, job_offer, sender)
        job_url = getattr(job_offer, "job_url", None)
        message = OutgoingEmail(
            sender_name=sender.full_name,
            to=recipient,
            subject=subject or default_subject(job_offer, sender),
            text=render_text(letter_body, sender, job_url),
            html=render_html(letter_body, sender, job_url),
            reply_to=sender.email,
            attachments=[Attachment(filename=attachment_filename(sender), content=cv_bytes)],
        )

        logger.info(
            "Sending application for %s via %s to %s (attachment %d KB)",
            getattr(job_offer, "title", ""),
            self.transport.name,
            recipient,
            round(len(cv_bytes) / 1024),
        )
        try:
            message_id = self.transport.send(message)
        except TransportError as exc:
            logger.warning("Email transport %s failed: %s", self.transport.name, exc)
            return Result.failure(str(exc))

        return Result.success(SentEmail(message_id=message_id, recipient=recipient))


def resolve_recipient(recipient_email: str | None, job_offer: Any, sender: SenderIdentity) -> str:
    return recipient_email or getattr(job_offer, "contact_email", None) or sender.email

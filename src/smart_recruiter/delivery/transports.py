from __future__ import annotations

import base64
import logging
import smtplib
from dataclasses import dataclass, field
from email.message import EmailMessage
from email.utils import formataddr, make_msgid
from typing import Protocol

import requests

from smart_recruiter.config import Settings

logger = logging.getLogger(__name__)


class TransportError(Exception):
    pass


@dataclass(slots=True)
class Attachment:
    filename: str
    content: bytes
    content_type: str = "application/pdf"


@dataclass(slots=True)
class OutgoingEmail:
    sender_name: str
    to: str
    subject: str
    text: str
    html: str
    reply_to: str | None = None
    attachments: list[Attachment] = field(default_factory=list)


class EmailTransport(Protocol):
    name: str

    def send(self, message: OutgoingEmail) -> str:
        """Deliver the message and return the provider message id."""
        ...

    def verify(self, timeout_sec: int = 5) -> bool: ...


class SMTPTransport:
    name = "smtp"

    def __init__(self, *, host: str, port: int, user: str, password: str, use_tls: bool = True, timeout_sec: int = 30):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.use_tls = use_tls
        self.timeout_sec = timeout_sec

    def build_message(self, message: OutgoingEmail) -> EmailMessage:
        mime = EmailMessage()
        mime["From"] = formataddr((message.sender_name, self.user))
        mime["To"] = message.to
        mime["Subject"] = message.subject
        if message.reply_to:
            mime["Reply-To"] = message.reply_to
        mime["Message-ID"] = make_msgid(domain=self.user.split("@")[-1] or None)
        mime.set_content(message.text)
        mime.add_alternative(message.html, subtype="html")
        for item in message.attachments:
            maintype, _, subtype = item.content_type.partition("/")
            mime.add_attachment(item.content, maintype=maintype, subtype=subtype, filename=item.filename)
        return mime

    def send(self, message: OutgoingEmail) -> str:
        mime = self.build_message(message)
        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout_sec) as server:
                if self.use_tls:
                    server.starttls()
                server.login(self.user, self.password)
                server.send_message(mime)
        except (smtplib.SMTPException, OSError) as exc:
            raise TransportError(f"SMTP error: {exc}") from exc
        return str(mime["Message-ID"])

    def verify(self, timeout_sec: int = 5) -> bool:
        try:
            with smtplib.SMTP(self.host, self.port, timeout=timeout_sec) as server:
                if self.use_tls:
                    server.starttls()
                server.login(self.user, self.password)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("SMTP configuration invalid: %s", exc)
            logger.warning("Emails cannot be sent; the server keeps running")
            return False
        logger.info("SMTP configuration valid")
        return True


class ResendTransport:
    name = "resend"

    def __init__(
        self,
        *,
        api_key: str,
        from_email: str,
        base_url: str = "https://api.resend.com",
        timeout_sec: int = 30,
        session: requests.Session | None = None,
    ):
        self.api_key = api_key
        self.from_email = from_email
        self.base_url = base_url.rstrip("/")
        self.timeout_sec = timeout_sec
        self.http = session or requests.Session()

    def build_payload(self, message: OutgoingEmail) -> dict:
        payload = {
            "from": f"{message.sender_name} <{self.from_email}>",
            "to": [message.to],
            "subject": message.subject,
            "html": message.html,
            "text": message.text,
            "attachments": [
                {
                    "filename": item.filename,
                    "content": base64.b64encode(item.content).decode("ascii"),
                }
                for item in message.attachments
            ],
        }
        if message.reply_to:
            payload["reply_to"] = message.reply_to
        return payload

    def send(self, message: OutgoingEmail) -> str:
        try:
            response = self.http.post(
                f"{self.base_url}/emails",
                json=self.build_payload(message),
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=self.timeout_sec,
            )
        except requests.RequestException as exc:
            raise TransportError(f"Resend request failed: {exc}") from exc

        if response.status_code >= 400:
            raise TransportError(f"Resend error {response.status_code}: {response.text[:300]}")

        try:
            data = response.json()
        except ValueError as exc:
            raise TransportError("Resend returned a non-JSON response") from exc
        return str(data.get("id", ""))

    def verify(self, timeout_sec: int = 5) -> bool:
        if not self.api_key:
            logger.error("RESEND_API_KEY missing")
            return False
        logger.info("Resend configuration present")
        return True


def build_transport(settings: Settings) -> EmailTransport | None:
    backend = settings.email_backend
    if backend == "auto":
        if settings.resend_configured:
            backend = "resend"
        elif settings.smtp_configured:
            backend = "smtp"
        else:
            backend = "disabled"

    if backend == "resend" and settings.resend_configured:
        return ResendTransport(
            api_key=settings.resend_api_key,
            from_email=settings.resend_from_email,
            base_url=settings.resend_base_url,
        )
    if backend == "smtp" and settings.smtp_configured:
        return SMTPTransport(
            host=settings.smtp_host,
            port=settings.smtp_port,
            user=settings.smtp_user,
            password=settings.smtp_password,
            use_tls=settings.smtp_use_tls,
        )

    logger.warning("Email delivery disabled (backend=%s, credentials missing or disabled)", settings.email_backend)
    return None

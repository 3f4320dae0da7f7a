from __future__ import annotations

import logging
import re

import requests

from smart_recruiter.config import PLACEHOLDER_SECRETS, Settings
from smart_recruiter.types import Result, SMSStatus

logger = logging.getLogger(__name__)

_SEPARATORS_RE = re.compile(r"[\s\-.()]")

MESSAGES: dict[str, str] = {
    "sent": "Application sent for {job_title} at {company}!",
    "failed": "Sending failed for {job_title} at {company}. Check your dashboard.",
    "pending": "A new application for {job_title} at {company} has just been generated!",
}


def normalize_phone(phone: str | None, default_country_code: str = "+33") -> str | None:
    """Return ``phone`` in E.164 form, or None when the format is not recognised."""
    if not phone:
        return None

    cleaned = _SEPARATORS_RE.sub("", phone)
    if not cleaned:
        return None
    if cleaned.startswith("+"):
        return cleaned if cleaned[1:].isdigit() else None
    if not cleaned.isdigit():
        return None

    country_digits = default_country_code.lstrip("+")
    if cleaned.startswith("00"):
        return "+" + cleaned[2:]
    if cleaned.startswith("0"):
        return default_country_code + cleaned[1:]
    if country_digits and cleaned.startswith(country_digits):
        return "+" + cleaned

    logger.warning("Unrecognised phone number format: %s", phone)
    return None


class SMSNotifier:
    """Twilio SMS sender. Never raises; every outcome is a Result."""

    def __init__(
        self,
        *,
        account_sid: str,
        auth_token: str,
        from_number: str,
        base_url: str = "https://api.twilio.com/2010-04-01",
        default_country_code: str = "+33",
        timeout_sec: int = 15,
        session: requests.Session | None = None,
    ):
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = from_number
        self.base_url = base_url.rstrip("/")
        self.default_country_code = default_country_code
        self.timeout_sec = timeout_sec
        self.http = session or requests.Session()
        if not self.enabled:
            logger.warning(
                "Twilio not configured (SMS disabled); set TWILIO_ACCOUNT_SID, "
                "TWILIO_AUTH_TOKEN and TWILIO_PHONE_NUMBER to enable"
            )

    @classmethod
    def from_settings(cls, settings: Settings) -> SMSNotifier:
        return cls(
            account_sid=settings.twilio_account_sid,
            auth_token=settings.twilio_auth_token,
            from_number=settings.twilio_phone_number,
            base_url=settings.twilio_base_url,
            default_country_code=settings.sms_default_country_code,
            timeout_sec=settings.sms_timeout_sec,
        )

    @property
    def enabled(self) -> bool:
        return bool(
            self.account_sid.startswith("AC")
            and self.auth_token not in PLACEHOLDER_SECRETS
            and self.from_number
        )

    def notify(self, phone: str | None, job_title: str, company: str, status: SMSStatus = "pending") -> Result[str]:
        if not self.enabled:
            return Result.failure("Twilio configuration missing or invalid")

        to_number = normalize_phone(phone, self.default_country_code)
        if to_number is None:
            return Result.failure("invalid phone number")

        body = MESSAGES.get(status, MESSAGES["pending"]).format(job_title=job_title, company=company)
        return self.send(to_number, body)

    def send(self, to_number: str, body: str) -> Result[str]:
        url = f"{self.base_url}/Accounts/{self.account_sid}/Messages.json"
        try:
            response = self.http.post(
                url,
                data={"To": to_number, "From": self.from_number, "Body": body},
                auth=(self.account_sid, self.auth_token),
                timeout=self.timeout_sec,
            )
        except requests.RequestException as exc:
            logger.error("SMS request failed: %s", exc)
            return Result.failure(str(exc))

        if response.status_code >= 400:
            logger.error("Twilio rejected SMS (%s): %s", response.status_code, response.text[:200])
            return Result.failure(f"Twilio error {response.status_code}")

        try:
            sid = str(response.json().get("sid", ""))
        except ValueError:
            sid = ""
        logger.info("SMS sent to %s (sid=%s)", to_number, sid)
        return Result.success(sid)

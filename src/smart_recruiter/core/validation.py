from __future__ import annotations

from typing import Any

from smart_recruiter.types import JobDetails, TriggerRejection, TriggerRequest

# placeholders emitted by misconfigured automation scenarios
SENTINEL_VALUES = frozenset({"", "null", "undefined", "0"})

REQUIRED_JOB_FIELDS = ("job_title", "company", "job_url")


def clean_value(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    if text.lower() in SENTINEL_VALUES:
        return None
    return text


def normalize_trigger(payload: dict[str, Any] | None) -> TriggerRequest | TriggerRejection:
    """Turn a raw trigger body into a typed request or a named rejection."""
    payload = payload or {}
    user_id = clean_value(payload.get("user_id"))
    if user_id is None:
        return TriggerRejection(reason="missing_user_id", message="user_id is required")

    recipient_email = clean_value(payload.get("recipient_email"))
    job_id = clean_value(payload.get("job_id") or payload.get("job_offer_id"))
    if job_id is not None:
        return TriggerRequest(user_id=user_id, job_id=job_id, recipient_email=recipient_email)

    fields = {name: clean_value(payload.get(name)) for name in REQUIRED_JOB_FIELDS}
    missing = [name for name, value in fields.items() if value is None]
    if missing:
        return TriggerRejection(
            reason="missing_job_reference",
            message=(
                "provide either job_id or job_title + company + job_url "
                f"(missing: {', '.join(missing)})"
            ),
            user_id=user_id,
        )

    job = JobDetails(
        title=fields["job_title"],
        company=fields["company"],
        job_url=fields["job_url"],
        description=clean_value(payload.get("description")),
        city=clean_value(payload.get("city")),
        country=clean_value(payload.get("country")),
        contact_email=clean_value(payload.get("contact_email")),
    )
    return TriggerRequest(user_id=user_id, job=job, recipient_email=recipient_email)

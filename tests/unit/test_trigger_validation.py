from __future__ import annotations

import pytest

from smart_recruiter.core.validation import clean_value, normalize_trigger
from smart_recruiter.types import TriggerRejection, TriggerRequest


@pytest.mark.parametrize("value", [None, "", "   ", "null", "NULL", "undefined", "0", 0])
def test_clean_value_treats_sentinels_as_absent(value) -> None:
    assert clean_value(value) is None


def test_clean_value_strips_real_values() -> None:
    assert clean_value("  Acme  ") == "Acme"
    assert clean_value(42) == "42"


def test_literal_none_text_is_kept_as_a_value() -> None:
    assert clean_value("None") == "None"


def test_missing_user_id_is_rejected() -> None:
    result = normalize_trigger({"user_id": "undefined", "job_id": "job-1"})

    assert isinstance(result, TriggerRejection)
    assert result.reason == "missing_user_id"


def test_job_id_takes_precedence_over_details() -> None:
    result = normalize_trigger(
        {
            "user_id": "u1",
            "job_id": "job-1",
            "job_title": "Backend Engineer",
            "company": "Acme",
            "job_url": "https://acme.example/jobs/1",
        }
    )

    assert isinstance(result, TriggerRequest)
    assert result.job_id == "job-1"
    assert result.job is None


def test_full_details_build_job() -> None:
    result = normalize_trigger(
        {
            "user_id": "u1",
            "job_title": "Backend Engineer",
            "company": "Acme",
            "job_url": "https://acme.example/jobs/1",
            "city": "null",
            "description": "Build APIs",
            "recipient_email": "",
        }
    )

    assert isinstance(result, TriggerRequest)
    assert result.job is not None
    assert result.job.title == "Backend Engineer"
    assert result.job.city is None
    assert result.job.description == "Build APIs"
    assert result.recipient_email is None


def test_partial_details_name_missing_fields() -> None:
    result = normalize_trigger({"user_id": "u1", "job_title": "Backend Engineer", "company": "0"})

    assert isinstance(result, TriggerRejection)
    assert result.reason == "missing_job_reference"
    assert "company" in result.message
    assert "job_url" in result.message
    assert result.user_id == "u1"


def test_empty_payload_is_rejected() -> None:
    result = normalize_trigger(None)

    assert isinstance(result, TriggerRejection)
    assert result.reason == "missing_user_id"

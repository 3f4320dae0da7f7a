from __future__ import annotations

import logging
from typing import Any

from smart_recruiter.config import Settings, get_settings
from smart_recruiter.llm.prompts import COVER_LETTER_PROMPT, COVER_LETTER_SYSTEM_PROMPT
from smart_recruiter.llm.providers import LLMProvider, build_provider, parse_json
from smart_recruiter.types import CoverLetter, Result

logger = logging.getLogger(__name__)

DESCRIPTION_LIMIT = 300
TOP_SKILLS = 5


class LetterGenerator:
    """Builds the cover-letter prompt and parses the model's answer.

    Retries are the caller's concern; a single call either yields a letter or
    a failure result when the backend raises or returns nothing.
    """

    def __init__(self, provider: LLMProvider | None = None, *, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self.provider = provider or build_provider(self.settings)

    def generate(self, user: Any, job_offer: Any, cv: Any) -> Result[CoverLetter]:
        prompt = build_cover_letter_prompt(user, job_offer, cv, language=self.settings.letter_language)
        system = COVER_LETTER_SYSTEM_PROMPT.format(language=self.settings.letter_language)
        logger.info(
            "Generating cover letter for %s at %s (candidate=%s)",
            getattr(job_offer, "title", ""),
            getattr(job_offer, "company", ""),
            getattr(user, "full_name", ""),
        )

        try:
            response = self.provider.complete_text(model=self.settings.groq_model, prompt=prompt, system=system)
        except Exception as exc:
            logger.warning("Cover letter generation call failed: %s", exc)
            return Result.failure(str(exc) or exc.__class__.__name__)

        raw = response.content.strip()
        if not raw:
            return Result.failure("empty response from generation backend")

        return Result.success(parse_cover_letter(raw, user=user, job_offer=job_offer))


def build_cover_letter_prompt(user: Any, job_offer: Any, cv: Any, *, language: str = "French") -> str:
    skills = list(getattr(cv, "skills", None) or [])
    description = (getattr(job_offer, "description", None) or "").strip()
    description_block = f"DESCRIPTION: {description[:DESCRIPTION_LIMIT]}" if description else ""

    return COVER_LETTER_PROMPT.format(
        full_name=getattr(user, "full_name", "") or "Candidate",
        profession=getattr(user, "profession", None) or "Professional",
        experience_years=getattr(cv, "experience_years", None) or 0,
        skills=", ".join(skills[:TOP_SKILLS]) if skills else "Diverse skills",
        education=getattr(cv, "education", None) or "Professional training",
        job_title=getattr(job_offer, "title", ""),
        company=getattr(job_offer, "company", ""),
        description_block=description_block,
        language=language,
    )


def parse_cover_letter(raw: str, *, user: Any, job_offer: Any) -> CoverLetter:
    data = parse_json(raw)
    subject = str(data.get("subject") or "").strip()
    body = str(data.get("body") or "").strip()
    if subject and body:
        return CoverLetter(subject=subject, body=body)

    logger.warning("Generation backend did not return a usable JSON letter; using raw text")
    lines = [line.strip() for line in raw.splitlines() if line.strip()]
    profession = getattr(user, "profession", None) or "Professional"
    return CoverLetter(
        subject=f"Application {profession} - {getattr(job_offer, 'title', '')}",
        body="\n\n".join(lines),
    )

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any

from openai import OpenAI

from smart_recruiter.config import Settings

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?\s*\n?", re.IGNORECASE)


@dataclass(slots=True)
class ProviderConfig:
    name: str
    base_url: str
    api_key: str
    timeout_sec: int
    temperature: float = 0.8
    max_tokens: int = 500


@dataclass(slots=True)
class ModelResponse:
    content: str
    api_path: str


class LLMProvider:
    """OpenAI-compatible text completion with a chat.completions fallback."""

    def __init__(self, config: ProviderConfig):
        self.config = config
        self.client = OpenAI(
            base_url=config.base_url,
            api_key=config.api_key or "missing",
            timeout=float(config.timeout_sec),
        )

    @property
    def enabled(self) -> bool:
        return bool(self.config.api_key)

    def complete_text(self, *, model: str, prompt: str, system: str = "") -> ModelResponse:
        try:
            return self._complete_via_responses(model=model, prompt=prompt, system=system)
        except Exception as exc:
            if not self._is_unsupported_responses_endpoint(exc):
                raise

            logger.warning(
                "Responses API unavailable for provider=%s base_url=%s; "
                "falling back to chat.completions (%s)",
                self.config.name,
                self.config.base_url,
                exc,
            )
            return self._complete_via_chat_completions(model=model, prompt=prompt, system=system)

    def _complete_via_responses(self, *, model: str, prompt: str, system: str) -> ModelResponse:
        kwargs: dict[str, Any] = {
            "model": model,
            "input": [
                {
                    "role": "user",
                    "content": [{"type": "input_text", "text": prompt}],
                }
            ],
            "temperature": self.config.temperature,
            "max_output_tokens": self.config.max_tokens,
        }
        if system:
            kwargs["instructions"] = system
        response = self.client.responses.create(**kwargs)
        text = getattr(response, "output_text", "") or ""
        return ModelResponse(content=text, api_path="responses")

    def _complete_via_chat_completions(self, *, model: str, prompt: str, system: str) -> ModelResponse:
        messages = [{"role": "user", "content": prompt}]
        if system:
            messages.insert(0, {"role": "system", "content": system})
        response = self.client.chat.completions.create(
            model=model,
            messages=messages,
            temperature=self.config.temperature,
            max_tokens=self.config.max_tokens,
            top_p=0.95,
        )
        return ModelResponse(content=self._extract_chat_text(response), api_path="chat_completions")

    @staticmethod
    def _extract_chat_text(response: Any) -> str:
        choices = getattr(response, "choices", None) or []
        if not choices:
            return ""

        message = getattr(choices[0], "message", None)
        if message is None:
            return ""

        content = getattr(message, "content", "")
        if isinstance(content, str):
            return content
        if content is None:
            return ""
        return str(content)

    @staticmethod
    def _is_unsupported_responses_endpoint(exc: Exception) -> bool:
        status_code = getattr(exc, "status_code", None)
        if status_code == 404:
            return True

        message = str(exc).strip().lower()
        if not message:
            return False

        return "not found" in message or "404" in message


def strip_code_fences(content: str) -> str:
    return _FENCE_RE.sub("", content).replace("```", "").strip()


def parse_json(content: str) -> dict[str, Any]:
    candidate = strip_code_fences(content)
    if not candidate:
        return {}

    try:
        value = json.loads(candidate)
    except json.JSONDecodeError:
        logger.warning("Failed to parse JSON model output")
        return {}
    return value if isinstance(value, dict) else {}


def build_provider(settings: Settings) -> LLMProvider:
    return LLMProvider(
        ProviderConfig(
            name="groq",
            base_url=settings.groq_base_url,
            api_key=settings.groq_api_key,
            timeout_sec=settings.groq_timeout_sec,
            temperature=settings.groq_temperature,
            max_tokens=settings.groq_max_tokens,
        )
    )

"""
Content adapter backed by an OpenAI-compatible chat completions endpoint.

Intent:
    Turn an operator's prompt into a professional HTML email body. Only the
    body is generated; subject and recipient stay under caller control.

Privacy:
    Do not log prompts or generated content; they may contain student data.
"""

from __future__ import annotations

import logging

import requests

from backend.notifications.config import NotificationConfig
from backend.notifications.ports import ContentGenerationError


logger = logging.getLogger("smartattend.notifications.openai")

SYSTEM_PROMPT = (
    "You are a helpful assistant that generates professional email content. "
    "Return only the email body content in HTML format."
)


class OpenAIContentAdapter:
    def __init__(self, config: NotificationConfig) -> None:
        self._url = f"{config.openai_base_url}/chat/completions"
        self._api_key = config.openai_api_key
        self._model = config.openai_model
        self._max_tokens = config.max_tokens
        self._timeout = config.timeout_seconds

    def generate(self, *, prompt: str) -> str:
        if not self._api_key:
            raise ContentGenerationError("OPENAI_API_KEY is not configured")
        payload = {
            "model": self._model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "max_tokens": self._max_tokens,
        }
        headers = {"Authorization": f"Bearer {self._api_key}", "Content-Type": "application/json"}
        try:
            r = requests.post(self._url, json=payload, headers=headers, timeout=self._timeout)
        except requests.RequestException as exc:
            logger.warning("notifications.content.request_failed reason=%s", exc.__class__.__name__)
            raise ContentGenerationError("Failed to generate AI content") from exc
        if not r.ok:
            logger.warning("notifications.content.http_error status=%s", r.status_code)
            raise ContentGenerationError("Failed to generate AI content")
        try:
            content = r.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise ContentGenerationError("Failed to generate AI content") from exc
        text = str(content or "").strip()
        if not text:
            raise ContentGenerationError("Failed to generate AI content")
        logger.info("notifications.content.completed model=%s", self._model)
        return text


def build(config: NotificationConfig) -> OpenAIContentAdapter:
    """Factory used by the dispatcher to construct the adapter instance."""
    return OpenAIContentAdapter(config)

"""
Deterministic content adapter for local development and tests.

Intent:
    Satisfy `ContentAdapterProtocol` without calling a text generation service.

Behavior:
    - Wraps the prompt into a minimal HTML paragraph so the pipeline continues.
"""

from __future__ import annotations

import html

from backend.notifications.config import NotificationConfig


class StubContentAdapter:
    """Return a placeholder HTML body derived from the prompt."""

    def generate(self, *, prompt: str) -> str:
        return f"<p>{html.escape(prompt.strip())}</p>"


def build(config: NotificationConfig | None = None) -> StubContentAdapter:
    """Factory used by the dispatcher to instantiate the adapter."""
    return StubContentAdapter()

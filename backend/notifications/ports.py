"""
Ports for notification adapters: request/result types, protocols, and errors.

Intent:
    Provide framework-agnostic contracts between the dispatcher and concrete
    adapters (stub, OpenAI-compatible text generation, Brevo delivery).
    Keeping these definitions in a dedicated module avoids circular imports
    and clarifies boundaries.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Protocol


# ----------------------------- Request/Result --------------------------------


@dataclass(frozen=True)
class EmailRequest:
    """Outgoing email as submitted to `/functions/send-ai-email`.

    Parameters:
        to: Recipient address.
        subject: Subject line.
        prompt: Instruction for the text generator (used when `use_ai`).
        use_ai: Generate the HTML body from `prompt` instead of using `content`.
        content: Pre-written HTML body.
    """

    to: str
    subject: str
    prompt: Optional[str] = None
    use_ai: bool = False
    content: str = ""

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "EmailRequest":
        if not isinstance(payload, Mapping):
            raise ValueError("invalid_body")
        to = str(payload.get("to") or "").strip()
        subject = str(payload.get("subject") or "").strip()
        if not to or "@" not in to:
            raise ValueError("invalid_recipient")
        if not subject:
            raise ValueError("subject_required")
        prompt = payload.get("prompt")
        use_ai = payload.get("useAI")
        if use_ai is None:
            use_ai = False
        if not isinstance(use_ai, bool):
            raise ValueError("invalid_use_ai")
        return cls(
            to=to,
            subject=subject,
            prompt=str(prompt) if prompt else None,
            use_ai=use_ai,
            content=str(payload.get("content") or ""),
        )


@dataclass(frozen=True)
class DispatchResult:
    message_id: Optional[str]
    content: str

    def to_dict(self) -> dict:
        return {"success": True, "messageId": self.message_id, "content": self.content}


# ----------------------------- Protocols ------------------------------------


class ContentAdapterProtocol(Protocol):
    """Turns a prompt into an HTML email body."""

    def generate(self, *, prompt: str) -> str:
        ...


class DeliveryAdapterProtocol(Protocol):
    """Hands a rendered email to a transactional email provider."""

    def send(self, *, to: str, subject: str, html_content: str) -> Optional[str]:
        ...


# ------------------------------ Errors --------------------------------------


class NotificationError(Exception):
    """Base class for notification failures."""


class ContentGenerationError(NotificationError):
    """The text generation provider failed or returned an unusable body."""


class DeliveryError(NotificationError):
    """The email provider rejected the message."""


__all__ = [
    "ContentAdapterProtocol",
    "ContentGenerationError",
    "DeliveryAdapterProtocol",
    "DeliveryError",
    "DispatchResult",
    "EmailRequest",
    "NotificationError",
]

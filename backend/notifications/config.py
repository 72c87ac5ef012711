"""
Notification configuration parsing and validation.

Intent:
    Provide a single place to read environment variables that control
    adapter selection (DI), model name, provider keys, sender identity and
    timeouts for the email function.

Why:
    Centralising configuration keeps validation and defaults explicit and lets
    tests exercise config behaviour without booting the web app.
"""
from __future__ import annotations

from dataclasses import dataclass
import os
from urllib.parse import urlparse


@dataclass(frozen=True)
class NotificationConfig:
    backend: str  # "stub" | "openai"
    content_adapter_path: str
    delivery_adapter_path: str
    openai_api_key: str
    openai_base_url: str
    openai_model: str
    max_tokens: int
    brevo_api_key: str
    brevo_url: str
    sender_name: str
    sender_email: str
    timeout_seconds: int


def _int_env(name: str, default: int, *, upper: int = 300) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got: {raw!r}")
    if value <= 0 or value > upper:
        raise ValueError(f"{name} out of range (1..{upper}), got: {value}")
    return value


def _validate_http_url(name: str, url: str) -> None:
    parsed = urlparse(url)
    if parsed.scheme not in {"http", "https"} or not parsed.hostname:
        raise ValueError(f"{name} must be an http(s) URL")


def _is_prod_like() -> bool:
    env = (os.getenv("SMARTATTEND_ENV") or "dev").lower()
    return env in {"prod", "production", "stage", "staging"}


def load_notification_config() -> NotificationConfig:
    """
    Parse and validate notification configuration from environment variables.

    Behavior:
        - `AI_BACKEND` selects the content adapter: "stub" or "openai" (default: stub).
        - Explicit `NOTIFY_CONTENT_ADAPTER` / `NOTIFY_DELIVERY_ADAPTER` take precedence.
        - Validates the timeout (1..300 seconds) and provider URLs.
    """
    backend = (os.getenv("AI_BACKEND") or "stub").strip().lower()
    if backend not in {"stub", "openai"}:
        raise ValueError("AI_BACKEND must be 'stub' or 'openai'")
    if backend == "stub" and _is_prod_like():
        raise ValueError("AI_BACKEND=stub is not allowed in production/staging environments.")

    default_content = (
        "backend.notifications.adapters.openai_content"
        if backend == "openai"
        else "backend.notifications.adapters.stub_content"
    )
    content_adapter = os.getenv("NOTIFY_CONTENT_ADAPTER", default_content)
    delivery_adapter = os.getenv("NOTIFY_DELIVERY_ADAPTER", "backend.notifications.adapters.brevo")

    openai_base = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1").rstrip("/")
    _validate_http_url("OPENAI_BASE_URL", openai_base)
    brevo_url = os.getenv("BREVO_API_URL", "https://api.brevo.com/v3/smtp/email")
    _validate_http_url("BREVO_API_URL", brevo_url)

    return NotificationConfig(
        backend=backend,
        content_adapter_path=content_adapter,
        delivery_adapter_path=delivery_adapter,
        openai_api_key=(os.getenv("OPENAI_API_KEY") or "").strip(),
        openai_base_url=openai_base,
        openai_model=os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
        max_tokens=_int_env("OPENAI_MAX_TOKENS", 1000, upper=16000),
        brevo_api_key=(os.getenv("BREVO_API_KEY") or "").strip(),
        brevo_url=brevo_url,
        sender_name=os.getenv("EMAIL_SENDER_NAME", "School Attendance System"),
        sender_email=os.getenv("EMAIL_SENDER_ADDRESS", "noreply@schoolattendance.com"),
        timeout_seconds=_int_env("NOTIFY_TIMEOUT_SECONDS", 30),
    )


__all__ = ["NotificationConfig", "load_notification_config"]

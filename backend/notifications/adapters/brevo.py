"""
Brevo transactional email adapter.

Sends a single HTML email through Brevo's SMTP API. Callers are responsible
for the body content; this adapter only fills in the configured sender.

Security:
- Never log the API key.
"""

from __future__ import annotations

import logging
from typing import Optional

import requests

from backend.notifications.config import NotificationConfig
from backend.notifications.ports import DeliveryError


logger = logging.getLogger("smartattend.notifications.brevo")


class BrevoDeliveryAdapter:
    def __init__(self, config: NotificationConfig) -> None:
        self._url = config.brevo_url
        self._api_key = config.brevo_api_key
        self._sender = {"name": config.sender_name, "email": config.sender_email}
        self._timeout = config.timeout_seconds

    def send(self, *, to: str, subject: str, html_content: str) -> Optional[str]:
        if not self._api_key:
            raise DeliveryError("BREVO_API_KEY is not configured")
        headers = {
            "accept": "application/json",
            "api-key": self._api_key,
            "content-type": "application/json",
        }
        body = {
            "sender": self._sender,
            "to": [{"email": to}],
            "subject": subject,
            "htmlContent": html_content,
            "type": "classic",
        }
        try:
            r = requests.post(self._url, json=body, headers=headers, timeout=self._timeout)
        except requests.RequestException as exc:
            raise DeliveryError(f"Brevo API error: {exc.__class__.__name__}") from exc
        if not r.ok:
            raise DeliveryError(f"Brevo API error: {r.text}")
        try:
            data = r.json() or {}
        except ValueError:
            data = {}
        message_id = data.get("messageId") if isinstance(data, dict) else None
        logger.info("Email sent successfully: messageId=%s", message_id)
        return message_id


def build(config: NotificationConfig) -> BrevoDeliveryAdapter:
    """Factory used by the dispatcher to construct the adapter instance."""
    return BrevoDeliveryAdapter(config)

"""
Notification dispatcher: optional AI-drafted body, then transactional delivery.

Flow:
    1. Start from the request's `content`.
    2. If `use_ai` and a prompt are given, replace it with generated HTML.
    3. Deliver via the configured email provider and return its message id
       together with the final content.
Any adapter failure propagates as a NotificationError subclass.
"""

from __future__ import annotations

import logging
from importlib import import_module
from typing import Optional

from .config import NotificationConfig, load_notification_config
from .ports import (
    ContentAdapterProtocol,
    DeliveryAdapterProtocol,
    DispatchResult,
    EmailRequest,
)


logger = logging.getLogger("smartattend.notifications")


class NotificationDispatcher:
    def __init__(self, *, content: ContentAdapterProtocol, delivery: DeliveryAdapterProtocol) -> None:
        self._content = content
        self._delivery = delivery

    def send(self, request: EmailRequest) -> DispatchResult:
        body = request.content
        if request.use_ai and request.prompt:
            body = self._content.generate(prompt=request.prompt)
        message_id = self._delivery.send(to=request.to, subject=request.subject, html_content=body)
        logger.info("notifications.sent ai=%s", bool(request.use_ai and request.prompt))
        return DispatchResult(message_id=message_id, content=body)


def build_dispatcher(config: Optional[NotificationConfig] = None) -> NotificationDispatcher:
    """Load adapters by dotted path and wire a dispatcher."""
    cfg = config or load_notification_config()
    content_module = import_module(cfg.content_adapter_path)
    delivery_module = import_module(cfg.delivery_adapter_path)
    return NotificationDispatcher(
        content=content_module.build(cfg),  # type: ignore[attr-defined]
        delivery=delivery_module.build(cfg),  # type: ignore[attr-defined]
    )


__all__ = ["NotificationDispatcher", "build_dispatcher"]

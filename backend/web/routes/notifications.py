"""
Notification endpoint: send a (optionally AI-drafted) email to one recipient.

The dispatcher is built lazily from the environment on first use; tests
inject a dispatcher with fake adapters via `set_dispatcher`.
"""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Request
from fastapi.concurrency import run_in_threadpool

from backend.notifications.dispatcher import NotificationDispatcher, build_dispatcher
from backend.notifications.ports import EmailRequest, NotificationError
from backend.web.routes.security import function_key_error, preflight_response, private_json


logger = logging.getLogger("smartattend.web.notifications")

notifications_router = APIRouter(tags=["Notifications"])

_DISPATCHER: Optional[NotificationDispatcher] = None


def set_dispatcher(dispatcher: Optional[NotificationDispatcher]) -> None:
    global _DISPATCHER
    _DISPATCHER = dispatcher


def _get_dispatcher() -> NotificationDispatcher:
    global _DISPATCHER
    if _DISPATCHER is None:
        _DISPATCHER = build_dispatcher()
    return _DISPATCHER


@notifications_router.options("/functions/send-ai-email")
async def send_ai_email_preflight():
    return preflight_response()


@notifications_router.post("/functions/send-ai-email")
async def send_ai_email(request: Request):
    """
    Send an email, generating the HTML body from `prompt` when `useAI` is set.

    Request body: `{to, subject, prompt?, useAI?, content?}`.
    Responses:
        200 `{success: true, messageId, content}`
        400 `{success: false, error}` for a malformed body
        500 `{success: false, error}` when generation or delivery fails
    """
    error = function_key_error(request)
    if error:
        return error
    try:
        payload = await request.json()
    except ValueError:
        return private_json({"success": False, "error": "invalid_json"}, status_code=400, cors=True)
    try:
        email = EmailRequest.from_payload(payload)
    except ValueError as exc:
        return private_json({"success": False, "error": str(exc)}, status_code=400, cors=True)

    try:
        dispatcher = _get_dispatcher()
        result = await run_in_threadpool(dispatcher.send, email)
    except NotificationError as exc:
        logger.error("Error in send-ai-email function: %s", str(exc))
        return private_json({"success": False, "error": str(exc)}, status_code=500, cors=True)
    except (ValueError, ImportError) as exc:
        # Misconfigured adapters (bad env values, unknown adapter path)
        logger.error("Notification dispatcher unavailable: %s: %s", exc.__class__.__name__, str(exc))
        return private_json({"success": False, "error": str(exc)}, status_code=500, cors=True)
    return private_json(result.to_dict(), cors=True)

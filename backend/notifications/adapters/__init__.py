"""Adapter factory helpers for the notification dispatcher.

Intent:
    Keep runtime adapters discoverable via dotted paths so the dispatcher can
    load them dynamically (see `NOTIFY_CONTENT_ADAPTER` / `NOTIFY_DELIVERY_ADAPTER`).

Exports:
    The individual modules expose a `build(config)` function returning an object
    that implements the respective protocol used by the dispatcher.
"""

__all__ = ["brevo", "openai_content", "stub_content"]

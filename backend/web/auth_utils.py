"""
Shared authentication utilities.

Why:
    The session cookie is set by the login route and cleared by logout; both
    must agree on the same flags or the browser keeps a stale cookie.

Design:
    The helper is framework-agnostic and pure: it accepts an environment string
    and returns the corresponding cookie flags.
"""

from __future__ import annotations

SESSION_COOKIE_NAME = "smartattend_session"


def cookie_opts(environment: str) -> dict:
    """Return cookie flags for the given environment.

    Returns a mapping with keys:
      - secure: True in prod/stage, False in dev so plain-HTTP local setups work
      - samesite: "lax"
    """
    env = (environment or "").lower()
    return {"secure": env in {"prod", "production", "stage", "staging"}, "samesite": "lax"}

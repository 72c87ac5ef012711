"ZETECH SmartAttend backend"
from __future__ import annotations

import logging
import os
import sys

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from backend.identity_access.errors import ProfileFetchError
from backend.identity_access.password_gate import GateState, state_for
from backend.identity_access.stores import SessionStore
from backend.web import config as _cfg
from backend.web.auth_utils import SESSION_COOKIE_NAME
from backend.web.routes.auth import auth_router
from backend.web.routes.notifications import notifications_router
from backend.web.routes.operations import operations_router
from backend.web.routes.users import users_router
from backend.web.supabase_wiring import get_backends, wire_supabase_if_configured


def _should_load_dotenv() -> bool:
    """Decide if we should load a local .env file.

    - Never load under pytest to avoid contaminating test env.
    - Allow explicit opt-out via SMARTATTEND_ENABLE_DOTENV (default true
      outside pytest).
    """
    if "pytest" in sys.modules or os.getenv("PYTEST_CURRENT_TEST"):
        return False
    flag = (os.getenv("SMARTATTEND_ENABLE_DOTENV", "true") or "").strip().lower()
    return flag in ("1", "true", "yes")


if _should_load_dotenv():
    load_dotenv()

# Minimal production safety checks (fail-fast on insecure config)
_cfg.ensure_secure_config_on_startup()

logger = logging.getLogger("smartattend.web")
SETTINGS = _cfg.load_settings()
SESSION_STORE = SessionStore()

app = FastAPI(title="ZETECH SmartAttend", description="Attendance platform backend", version="0.1.0")

# Early wiring; routes retry lazily when Supabase is not reachable yet.
wire_supabase_if_configured()

# Reachable while the password gate demands a change.
GATE_EXEMPT_PATHS = ("/api/me", "/api/me/password")


def _private_error(error: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": error}, status_code=status_code, headers={"Cache-Control": "private, no-store"})


@app.middleware("http")
async def auth_enforcement(request: Request, call_next):
    """Resolve the session and profile for `/api/*`, then enforce the password gate.

    The profile is re-read on every request so a flag set in another session
    (or cleared by a password change) takes effect immediately.
    """
    path = request.url.path
    if not path.startswith("/api/"):
        return await call_next(request)

    sid = request.cookies.get(SESSION_COOKIE_NAME)
    rec = SESSION_STORE.get(sid) if sid else None
    if not rec:
        return _private_error("unauthenticated", 401)

    profiles, _ = get_backends()
    if profiles is None:
        return _private_error("backend_unavailable", 503)
    try:
        profile = await run_in_threadpool(profiles.get_by_user_id, rec.user_id)
    except ProfileFetchError as exc:
        logger.error("Error fetching user profile for %s: %s", rec.user_id, exc.message)
        return _private_error("profile_lookup_failed", 502)

    request.state.session = rec
    request.state.profile = profile
    if path not in GATE_EXEMPT_PATHS and state_for(profile) is GateState.MUST_CHANGE:
        return _private_error("password_change_required", 403)
    return await call_next(request)


@app.middleware("http")
async def security_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
    response.headers.setdefault("X-Frame-Options", "DENY")
    if SETTINGS.prod_like:
        response.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
    return response


app.include_router(auth_router)
app.include_router(users_router)
app.include_router(operations_router)
app.include_router(notifications_router)


@app.get("/health")
async def health_check():
    # Minimal health endpoint used by orchestrators and tests.
    return JSONResponse({"status": "healthy"}, headers={"Cache-Control": "private, no-store"})

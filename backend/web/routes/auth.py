"""
Authentication routes: password sign-in against Supabase Auth and logout.

Why:
    Users sign in with their admission number, ID number, birth certificate
    number or email. The identifier is mapped to the Supabase email, the
    password is checked by Supabase, and the server keeps the resulting tokens
    in its session store. On success the password gate inspects whether the
    default credential was used and flags the profile.

Notes:
    - Shared state (session store, settings) lives in `main`; it is imported
      inside the handlers to avoid an import cycle with the app module.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from backend.identity_access.credentials import resolve_login_email
from backend.identity_access.errors import AuthenticationError, ProfileFetchError
from backend.identity_access.identity_provider import ANON_CLIENT_NOT_CONFIGURED
from backend.identity_access.password_gate import GateState, PasswordStateGate, state_for
from backend.web.auth_utils import SESSION_COOKIE_NAME, cookie_opts
from backend.web.routes.security import is_same_origin, private_json
from backend.web.supabase_wiring import get_backends


auth_router = APIRouter(tags=["Auth"])  # explicit paths, no prefix
logger = logging.getLogger("smartattend.web.auth")

INVALID_CREDENTIALS_MESSAGE = "Invalid credentials. Please check your details and try again."


class LoginPayload(BaseModel):
    identifier: str
    password: str
    login_type: str = "admission"


def _main():
    from backend.web import main as mod

    return mod


def _set_session_cookie(response: JSONResponse, value: str, *, environment: str, max_age: int | None) -> None:
    opts = cookie_opts(environment)
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=value,
        httponly=True,
        secure=opts["secure"],
        samesite=opts["samesite"],
        path="/",
        max_age=max_age,
    )


def _failure_message(exc: AuthenticationError) -> str:
    if "invalid login credentials" in (exc.message or "").lower():
        return INVALID_CREDENTIALS_MESSAGE
    return f"Authentication failed: {exc.message}"


@auth_router.post("/auth/login")
async def auth_login(request: Request, payload: LoginPayload):
    """
    Sign in with identifier and password.

    Behavior:
        - 400 on an unknown `login_type` or empty identifier.
        - 401 with a user-facing message when Supabase rejects the credentials.
        - 200 with `{user_id, gate, force_password_change_requested}` and the
          session cookie otherwise. `gate` is `must_change` when the user must
          replace their password before using the app.
    Security:
        Tokens stay server-side; the cookie carries an opaque session id.
    """
    if not is_same_origin(request):
        return private_json({"error": "csrf_violation"}, status_code=403)
    mod = _main()
    settings = mod.SETTINGS
    try:
        email = resolve_login_email(payload.identifier, payload.login_type, settings.institution_domain)
    except ValueError as exc:
        return private_json({"error": str(exc)}, status_code=400)

    profiles, identities = get_backends()
    if profiles is None or identities is None:
        return private_json({"error": "backend_unavailable"}, status_code=503)

    try:
        auth = await run_in_threadpool(identities.authenticate, email=email, password=payload.password)
    except AuthenticationError as exc:
        if exc.message == ANON_CLIENT_NOT_CONFIGURED:
            logger.error("Sign-in unavailable: SUPABASE_ANON_KEY is not configured")
            return private_json({"error": "backend_unavailable"}, status_code=503)
        logger.warning("Sign-in rejected for login_type=%s", payload.login_type)
        return private_json({"error": _failure_message(exc)}, status_code=401)

    try:
        profile = await run_in_threadpool(profiles.get_by_user_id, auth.user_id)
    except ProfileFetchError as exc:
        logger.error("Profile lookup after sign-in failed for user %s: %s", auth.user_id, exc.message)
        profile = None

    gate = PasswordStateGate(profiles, identities)
    flagged = await run_in_threadpool(gate.after_login, profile, payload.password)
    state = GateState.MUST_CHANGE if flagged else state_for(profile)

    sess = mod.SESSION_STORE.create(auth=auth, ttl_seconds=settings.session_ttl_seconds)
    logger.info("Login successful for user %s", auth.user_id)
    resp = private_json(
        {
            "user_id": auth.user_id,
            "gate": state.value,
            "force_password_change_requested": flagged,
        }
    )
    max_age = settings.session_ttl_seconds if settings.prod_like else None
    _set_session_cookie(resp, sess.session_id, environment=settings.environment, max_age=max_age)
    return resp


@auth_router.post("/auth/logout")
async def auth_logout(request: Request):
    """
    Delete the server-side session (if any) and expire the session cookie.

    Public; always answers 200 so repeated logouts are harmless.
    """
    if not is_same_origin(request):
        return private_json({"error": "csrf_violation"}, status_code=403)
    mod = _main()
    sid = request.cookies.get(SESSION_COOKIE_NAME)
    if sid:
        mod.SESSION_STORE.delete(sid)
    resp = private_json({"status": "logged_out"})
    opts = cookie_opts(mod.SETTINGS.environment)
    resp.set_cookie(
        key=SESSION_COOKIE_NAME,
        value="",
        httponly=True,
        secure=opts["secure"],
        samesite=opts["samesite"],
        path="/",
        expires=0,
        max_age=0,
    )
    return resp

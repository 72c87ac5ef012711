"""
Signed-in user routes: own profile, password change, landing view selection.

Why:
    The client needs the caller's profile together with the password-gate
    state to decide whether to show the forced password dialog or the
    role-specific landing view. The profile is loaded per request by the gate
    middleware in `main` and exposed as `request.state.profile`.
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel

from backend.identity_access.domain import ADMIN
from backend.identity_access.errors import PasswordUpdateError, PasswordValidationError
from backend.identity_access.identity_provider import ANON_CLIENT_NOT_CONFIGURED
from backend.identity_access.password_gate import PasswordStateGate, notice_for, state_for
from backend.web.routes.security import is_same_origin, private_json
from backend.web.supabase_wiring import get_backends


users_router = APIRouter(tags=["Users"])  # explicit paths below
logger = logging.getLogger("smartattend.web.users")

PROFILE_NOT_FOUND_DETAIL = "Your account exists but no profile was found. Please contact administrator."


class PasswordChangePayload(BaseModel):
    new_password: str = ""
    confirm_password: str = ""


def _profile_not_found():
    return private_json({"error": "profile_not_found", "detail": PROFILE_NOT_FOUND_DETAIL}, status_code=404)


@users_router.get("/api/me")
async def get_me(request: Request):
    """Return the caller's profile, gate state and role-specific notice."""
    profile = getattr(request.state, "profile", None)
    if profile is None:
        return _profile_not_found()
    body = profile.to_public_dict()
    body["gate"] = state_for(profile).value
    body["notice"] = notice_for(profile)
    return private_json(body)


@users_router.post("/api/me/password")
async def change_password(request: Request, payload: PasswordChangePayload):
    """
    Replace the caller's password and clear the forced-change flag.

    Responses:
        200 `{gate: "normal"}`
        400 `{error: "validation_failed", detail}` (no remote call was made)
        502 `{error: "password_update_failed", detail}` when Supabase rejects
            the new password or the flag reset fails
    """
    if not is_same_origin(request):
        return private_json({"error": "csrf_violation"}, status_code=403)
    profile = getattr(request.state, "profile", None)
    if profile is None:
        return _profile_not_found()
    profiles, identities = get_backends()
    if profiles is None or identities is None:
        return private_json({"error": "backend_unavailable"}, status_code=503)

    gate = PasswordStateGate(profiles, identities)
    try:
        state = await run_in_threadpool(
            gate.change_password,
            request.state.session.auth,
            profile,
            payload.new_password,
            payload.confirm_password,
        )
    except PasswordValidationError as exc:
        return private_json({"error": "validation_failed", "detail": exc.message}, status_code=400)
    except PasswordUpdateError as exc:
        if exc.message == ANON_CLIENT_NOT_CONFIGURED:
            return private_json({"error": "backend_unavailable"}, status_code=503)
        return private_json({"error": "password_update_failed", "detail": exc.message}, status_code=502)
    return private_json({"gate": state.value})


@users_router.get("/api/landing")
async def get_landing(request: Request):
    """Select the post-login view: administrators get the admin view, everyone else the student view.

    Only reachable once the password gate is normal (enforced by middleware).
    """
    profile = getattr(request.state, "profile", None)
    if profile is None:
        return _profile_not_found()
    view = "admin" if profile.role == ADMIN else "student"
    return private_json({"view": view, "display_name": profile.display_name, "role": profile.role})

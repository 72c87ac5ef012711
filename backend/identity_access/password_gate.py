"""
Forced password change gate.

Intent:
    Users provisioned with a default credential must pick their own password
    before anything else in the application becomes reachable. The gate state
    is derived from the profile's `force_password_change` flag each time the
    profile is read; it is never cached on the session.

States:
    UNKNOWN      profile not loaded yet
    NORMAL       force_password_change = false
    MUST_CHANGE  force_password_change = true (blocks all other endpoints)

Transitions:
    - after_login: a sign-in with the default password sets the flag. The
      session is established regardless; only the next profile read enforces
      the gate.
    - change_password: local validation, then the identity password update,
      then the flag is cleared. The two remote calls are sequential and not
      transactional: if the flag update fails after the password changed, the
      user stays gated on the next load and may simply resubmit.
"""

from __future__ import annotations

import enum
import logging
from typing import Optional

from .credentials import is_default_password
from .domain import STAFF_ROLES, STUDENT, Profile
from .errors import PasswordUpdateError, PasswordValidationError, ProfileUpdateError
from .identity_provider import AuthSession, IdentityProviderProtocol
from .profiles import ProfileStoreProtocol

logger = logging.getLogger("smartattend.identity_access.password_gate")

MIN_PASSWORD_LENGTH = 6

STUDENT_NOTICE = (
    "You are using your admission number as password. For security reasons, please update your password."
)
STAFF_NOTICE = "You are using the default password. For security reasons, please update your password."


class GateState(str, enum.Enum):
    UNKNOWN = "unknown"
    NORMAL = "normal"
    MUST_CHANGE = "must_change"


def state_for(profile: Optional[Profile]) -> GateState:
    if profile is None:
        return GateState.UNKNOWN
    return GateState.MUST_CHANGE if profile.force_password_change else GateState.NORMAL


def notice_for(profile: Optional[Profile]) -> Optional[str]:
    """Role-specific explanation shown next to the password form."""
    if profile is None:
        return None
    if profile.role == STUDENT and profile.admission_number:
        return STUDENT_NOTICE
    if profile.role in STAFF_ROLES:
        return STAFF_NOTICE
    return None


def validate_new_password(new_password: str, confirm_password: str) -> None:
    """Raise PasswordValidationError when the request must be rejected locally."""
    if not new_password:
        raise PasswordValidationError("Password is required")
    if new_password != confirm_password:
        raise PasswordValidationError("Passwords do not match")
    if len(new_password) < MIN_PASSWORD_LENGTH:
        raise PasswordValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")


class PasswordStateGate:
    def __init__(self, profiles: ProfileStoreProtocol, identities: IdentityProviderProtocol) -> None:
        self._profiles = profiles
        self._identities = identities

    def after_login(self, profile: Optional[Profile], supplied_password: str) -> bool:
        """Flag the profile when the user signed in with the default password.

        Returns True when the flag update was issued and persisted. Failures
        are logged only: the login itself has already succeeded.
        """
        if profile is None or not profile.user_id:
            return False
        if not is_default_password(profile, supplied_password):
            return False
        try:
            self._profiles.update_by_user_id(profile.user_id, {"force_password_change": True})
        except ProfileUpdateError as exc:
            logger.error("Error checking default password for user %s: %s", profile.user_id, exc.message)
            return False
        logger.info("Default password in use; password change required for user %s", profile.user_id)
        return True

    def change_password(
        self,
        session: AuthSession,
        profile: Profile,
        new_password: str,
        confirm_password: str,
    ) -> GateState:
        validate_new_password(new_password, confirm_password)
        self._identities.update_own_password(session, new_password)
        try:
            self._profiles.update_by_user_id(session.user_id, {"force_password_change": False})
        except ProfileUpdateError as exc:
            logger.error(
                "Password changed but flag reset failed for user %s: %s", session.user_id, exc.message
            )
            raise PasswordUpdateError(exc.message) from exc
        logger.info("Password changed for user %s (role=%s)", session.user_id, profile.role)
        return GateState.NORMAL


__all__ = [
    "GateState",
    "MIN_PASSWORD_LENGTH",
    "PasswordStateGate",
    "STAFF_NOTICE",
    "STUDENT_NOTICE",
    "notice_for",
    "state_for",
    "validate_new_password",
]

"""
Error taxonomy for identity and profile operations.

Adapters translate client-library exceptions (supabase, httpx) into these
types so that the provisioning job, the password gate and the web layer can
react without knowing which backend produced the failure. Every error keeps
a human-readable message; the web layer may surface it verbatim.
"""

from __future__ import annotations


class IdentityAccessError(Exception):
    """Base class for identity and profile failures."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ProfileFetchError(IdentityAccessError):
    """Reading profiles failed; fatal to a provisioning run."""


class ProfileUpdateError(IdentityAccessError):
    """Writing a profile (link or flag update) failed."""


class IdentityCreationError(IdentityAccessError):
    """The identity provider rejected identity creation (e.g. duplicate email)."""


class AuthenticationError(IdentityAccessError):
    """Email/password authentication was rejected."""


class PasswordValidationError(IdentityAccessError):
    """A password change request failed local validation; no remote call was made."""


class PasswordUpdateError(IdentityAccessError):
    """A remote step of the password change failed; the gate stays closed."""


__all__ = [
    "AuthenticationError",
    "IdentityAccessError",
    "IdentityCreationError",
    "PasswordUpdateError",
    "PasswordValidationError",
    "ProfileFetchError",
    "ProfileUpdateError",
]

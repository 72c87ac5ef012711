"""
Supabase Auth adapter (identity provisioning, password sign-in, self-service
password change).

Design:
- Framework-agnostic, callable from the provisioning job and web adapters.
- Uses supabase clients under the hood; failures are translated into the
  identity_access error taxonomy so callers never see gotrue exceptions.
- Admin operations need a client built with the Service Role key. Sign-in and
  own-password updates use a fresh anon client per call so that no user
  session is ever shared between requests.

Security:
- Do not log credentials or tokens.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Protocol

from .errors import AuthenticationError, IdentityCreationError, PasswordUpdateError
from .profiles import error_message

logger = logging.getLogger("smartattend.identity_access.identity_provider")

ANON_CLIENT_NOT_CONFIGURED = "anon_client_not_configured"


@dataclass(frozen=True)
class AuthSession:
    """Tokens of an authenticated Supabase user; kept server-side only."""

    user_id: str
    email: str
    access_token: str
    refresh_token: str


class IdentityProviderProtocol(Protocol):
    def create_identity(
        self, *, email: str, password: str, email_verified: bool, metadata: Dict[str, Any]
    ) -> str:
        ...

    def authenticate(self, *, email: str, password: str) -> AuthSession:
        ...

    def update_own_password(self, session: AuthSession, new_password: str) -> None:
        ...


def _attr(obj: Any, name: str) -> Any:
    if obj is None:
        return None
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


class SupabaseIdentityProvider:
    def __init__(self, admin_client: Any, anon_client_factory: Optional[Callable[[], Any]] = None) -> None:
        self._admin = admin_client
        self._anon_factory = anon_client_factory

    def _anon(self, error_cls: type) -> Any:
        if self._anon_factory is None:
            raise error_cls(ANON_CLIENT_NOT_CONFIGURED)
        return self._anon_factory()

    def create_identity(
        self, *, email: str, password: str, email_verified: bool, metadata: Dict[str, Any]
    ) -> str:
        attrs = {
            "email": email,
            "password": password,
            "email_confirm": bool(email_verified),
            "user_metadata": dict(metadata),
        }
        try:
            res = self._admin.auth.admin.create_user(attrs)
        except Exception as exc:
            raise IdentityCreationError(error_message(exc)) from exc
        user_id = _attr(_attr(res, "user"), "id")
        if not user_id:
            raise IdentityCreationError("user_id_missing")
        return str(user_id)

    def authenticate(self, *, email: str, password: str) -> AuthSession:
        client = self._anon(AuthenticationError)
        try:
            res = client.auth.sign_in_with_password({"email": email, "password": password})
        except Exception as exc:
            raise AuthenticationError(error_message(exc)) from exc
        user = _attr(res, "user")
        session = _attr(res, "session")
        if not user or not session:
            raise AuthenticationError("Sign-in returned no session")
        return AuthSession(
            user_id=str(_attr(user, "id")),
            email=str(_attr(user, "email") or email),
            access_token=str(_attr(session, "access_token") or ""),
            refresh_token=str(_attr(session, "refresh_token") or ""),
        )

    def update_own_password(self, session: AuthSession, new_password: str) -> None:
        client = self._anon(PasswordUpdateError)
        try:
            client.auth.set_session(session.access_token, session.refresh_token)
            client.auth.update_user({"password": new_password})
        except Exception as exc:
            logger.warning("Password update rejected for user %s: %s", session.user_id, exc.__class__.__name__)
            raise PasswordUpdateError(error_message(exc)) from exc


__all__ = ["ANON_CLIENT_NOT_CONFIGURED", "AuthSession", "IdentityProviderProtocol", "SupabaseIdentityProvider"]

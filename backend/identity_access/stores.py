"""
In-memory session store.

Why: Keep Supabase access/refresh tokens server-side. The browser only holds
an opaque session id cookie; the tokens are needed later to let the user
change their own password.

Security: Cookies carry only an opaque session id. Session data stays server-side.
For multi-instance deployments, replace with a shared (DB/Redis) store that
implements the same methods.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional
import secrets
import time

from .identity_provider import AuthSession


def _now() -> int:
    return int(time.time())


@dataclass
class SessionRecord:
    session_id: str
    auth: AuthSession
    expires_at: Optional[int] = None

    @property
    def user_id(self) -> str:
        return self.auth.user_id


class SessionStore:
    def __init__(self):
        self._data: Dict[str, SessionRecord] = {}

    def create(self, *, auth: AuthSession, ttl_seconds: int = 3600) -> SessionRecord:
        self.purge_expired()
        sid = secrets.token_urlsafe(24)
        rec = SessionRecord(session_id=sid, auth=auth, expires_at=_now() + ttl_seconds)
        self._data[sid] = rec
        return rec

    def purge_expired(self) -> int:
        """Drop sessions past their expiry; returns how many were removed."""
        now = _now()
        expired = [sid for sid, rec in self._data.items() if rec.expires_at and rec.expires_at < now]
        for sid in expired:
            self._data.pop(sid, None)
        return len(expired)

    def get(self, session_id: str) -> Optional[SessionRecord]:
        rec = self._data.get(session_id)
        if not rec:
            return None
        if rec.expires_at and rec.expires_at < _now():
            self._data.pop(session_id, None)
            return None
        return rec

    def delete(self, session_id: str) -> None:
        self._data.pop(session_id, None)

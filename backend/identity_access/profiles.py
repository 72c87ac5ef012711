"""
Supabase-backed profile store.

This adapter implements ProfileStoreProtocol on top of a supabase client's
PostgREST query builder. It is intentionally duck-typed to avoid a hard
dependency during testing. The client is expected to expose
`.table(name)` returning a builder offering:

- select(columns).is_(column, "null").execute() -> response with `.data`
- select(columns).eq(column, value).limit(n).execute()
- update(fields).eq(column, value).execute()

Security:
- Provisioning requires a client initialized with the Service Role key
  (bypasses RLS to see every unlinked profile).
- Per-user reads and flag updates may use a user-scoped client under RLS.
"""

from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional, Protocol

from .domain import PROFILE_COLUMNS, Profile
from .errors import ProfileFetchError, ProfileUpdateError

logger = logging.getLogger("smartattend.identity_access.profiles")


class ProfileStoreProtocol(Protocol):
    def list_unlinked(self) -> List[Profile]:
        ...

    def get_by_user_id(self, user_id: str) -> Optional[Profile]:
        ...

    def update(self, profile_id: str, fields: Mapping[str, Any]) -> None:
        ...

    def update_by_user_id(self, user_id: str, fields: Mapping[str, Any]) -> None:
        ...


def error_message(exc: BaseException) -> str:
    """Extract the human-readable message from supabase/postgrest/gotrue errors."""
    msg = getattr(exc, "message", None)
    if isinstance(msg, str) and msg.strip():
        return msg.strip()
    text = str(exc).strip()
    return text or exc.__class__.__name__


def _rows(response: Any) -> list:
    data = getattr(response, "data", None)
    if data is None and isinstance(response, dict):
        data = response.get("data")
    if data is None:
        return []
    if isinstance(data, dict):
        return [data]
    return list(data)


class SupabaseProfileStore:
    """Profile store using a supabase client for table operations."""

    def __init__(self, client: Any, table: str = "profiles") -> None:
        self._client = client
        self._table = table

    def _query(self) -> Any:
        return self._client.table(self._table)

    def list_unlinked(self) -> List[Profile]:
        try:
            res = self._query().select(PROFILE_COLUMNS).is_("user_id", "null").execute()
        except Exception as exc:
            logger.error("Error fetching profiles: %s", exc.__class__.__name__)
            raise ProfileFetchError(error_message(exc)) from exc
        return [Profile.from_row(row) for row in _rows(res)]

    def get_by_user_id(self, user_id: str) -> Optional[Profile]:
        try:
            res = self._query().select(PROFILE_COLUMNS).eq("user_id", user_id).limit(1).execute()
        except Exception as exc:
            logger.error("Error fetching user profile: %s", exc.__class__.__name__)
            raise ProfileFetchError(error_message(exc)) from exc
        rows = _rows(res)
        return Profile.from_row(rows[0]) if rows else None

    def update(self, profile_id: str, fields: Mapping[str, Any]) -> None:
        self._update("id", profile_id, fields)

    def update_by_user_id(self, user_id: str, fields: Mapping[str, Any]) -> None:
        self._update("user_id", user_id, fields)

    def _update(self, column: str, value: str, fields: Mapping[str, Any]) -> None:
        try:
            res = self._query().update(dict(fields)).eq(column, value).execute()
        except Exception as exc:
            logger.error("Error updating profile %s=%s: %s", column, value, exc.__class__.__name__)
            raise ProfileUpdateError(error_message(exc)) from exc
        data = getattr(res, "data", None)
        # PostgREST returns the updated rows; an empty list means nothing matched (or RLS hid it).
        if isinstance(data, list) and not data:
            raise ProfileUpdateError("No profile matched the update")


__all__ = ["ProfileStoreProtocol", "SupabaseProfileStore", "error_message"]

"""
Supabase client construction shared by the web app and the operator CLI.

Why:
    Both entry points need the same two client flavours: a Service Role client
    for admin/provisioning work and short-lived anon clients for user sign-in
    and self-service password changes. Neither flavour may persist or refresh
    sessions on its own; the server owns the tokens.
"""
from __future__ import annotations

from typing import Any, Callable

from supabase import ClientOptions, create_client


def _options() -> ClientOptions:
    return ClientOptions(auto_refresh_token=False, persist_session=False)


def build_service_client(url: str, service_role_key: str) -> Any:
    """Client with the Service Role key (bypasses RLS). Server-side only."""
    if not url or not service_role_key:
        raise RuntimeError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY are required")
    return create_client(url, service_role_key, options=_options())


def anon_client_factory(url: str, anon_key: str) -> Callable[[], Any]:
    """Return a factory producing a fresh anon client per call."""
    if not url or not anon_key:
        raise RuntimeError("SUPABASE_URL and SUPABASE_ANON_KEY are required")

    def _build() -> Any:
        return create_client(url, anon_key, options=_options())

    return _build


__all__ = ["anon_client_factory", "build_service_client"]

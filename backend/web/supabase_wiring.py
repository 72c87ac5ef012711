"""
Shared helper for wiring the Supabase-backed identity adapters.

Why:
    App startup may occur before Supabase is reachable locally, leaving the
    profile store and identity provider unset. This module provides an
    idempotent helper used both at startup and lazily from routes to
    (re)attempt wiring when configuration is present. Tests inject fakes via
    `set_backends` and never touch the network.

Security:
    Requires SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY. Sign-in and
    self-service password changes use a separate anon-key client per call so
    the service role never acts on behalf of an end user.
"""
from __future__ import annotations

import logging
import os
from typing import Optional, Tuple

from backend.identity_access.identity_provider import IdentityProviderProtocol
from backend.identity_access.profiles import ProfileStoreProtocol


logger = logging.getLogger("smartattend.web")

_PROFILE_STORE: Optional[ProfileStoreProtocol] = None
_IDENTITY_PROVIDER: Optional[IdentityProviderProtocol] = None


def set_backends(
    profiles: Optional[ProfileStoreProtocol],
    identities: Optional[IdentityProviderProtocol],
) -> None:
    """Inject (or reset with None) the profile store and identity provider."""
    global _PROFILE_STORE, _IDENTITY_PROVIDER
    _PROFILE_STORE = profiles
    _IDENTITY_PROVIDER = identities


def wire_supabase_if_configured() -> bool:
    """Attempt to wire Supabase adapters from the environment.

    Behavior:
        - Returns True when wiring succeeds (adapters injected).
        - Returns False when not configured or any error occurs.
        - Safe and idempotent to call multiple times.
    """
    url = (os.getenv("SUPABASE_URL") or "").strip()
    key = (os.getenv("SUPABASE_SERVICE_ROLE_KEY") or "").strip()
    anon = (os.getenv("SUPABASE_ANON_KEY") or "").strip()
    if not url or not key:
        return False
    try:
        from backend.identity_access.clients import anon_client_factory, build_service_client
        from backend.identity_access.identity_provider import SupabaseIdentityProvider
        from backend.identity_access.profiles import SupabaseProfileStore

        client = build_service_client(url, key)
        table = (os.getenv("PROFILES_TABLE") or "profiles").strip()
        factory = anon_client_factory(url, anon) if anon else None
        if factory is None:
            logger.warning("SUPABASE_ANON_KEY unset: sign-in and password change will answer 503")
        set_backends(
            SupabaseProfileStore(client, table=table),
            SupabaseIdentityProvider(client, anon_client_factory=factory),
        )
        logger.info("Identity adapters wired: Supabase")
        return True
    except Exception as exc:
        logger.warning("Supabase wiring skipped due to error: %s: %s", exc.__class__.__name__, str(exc))
        return False


def get_backends() -> Tuple[Optional[ProfileStoreProtocol], Optional[IdentityProviderProtocol]]:
    """Return wired adapters, attempting a lazy rewire when unset."""
    if _PROFILE_STORE is None or _IDENTITY_PROVIDER is None:
        wire_supabase_if_configured()
    return _PROFILE_STORE, _IDENTITY_PROVIDER


__all__ = ["set_backends", "wire_supabase_if_configured", "get_backends"]

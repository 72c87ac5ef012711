"""
Configuration and startup security checks for SmartAttend.

Why: Accounts are provisioned with predictable default passwords, so an
insecure deployment (open provisioning endpoint, dummy keys, plain HTTP to
Supabase) would hand out every account. This module provides the settings
object and a single guard that enforces minimal production safety
constraints without burdening local development.

Permissions: The caller needs no special privileges. The functions simply read
environment variables; the guard raises `SystemExit` on fatal misconfiguration.
"""
from __future__ import annotations

from dataclasses import dataclass
import os

from backend.identity_access.domain import DEFAULT_INSTITUTION_DOMAIN


def _is_prod_like(env: str) -> bool:
    env_l = (env or "").lower()
    return env_l in {"prod", "production", "stage", "staging"}


@dataclass(frozen=True)
class Settings:
    environment: str
    supabase_url: str
    supabase_anon_key: str
    supabase_service_role_key: str
    profiles_table: str
    institution_domain: str
    provisioning_api_key: str
    session_ttl_seconds: int

    @property
    def prod_like(self) -> bool:
        return _is_prod_like(self.environment)


def load_settings() -> Settings:
    ttl_raw = os.getenv("SESSION_TTL_SECONDS", "3600")
    try:
        ttl = int(ttl_raw)
    except ValueError:
        raise ValueError(f"SESSION_TTL_SECONDS must be an integer, got: {ttl_raw!r}")
    if ttl <= 0:
        raise ValueError("SESSION_TTL_SECONDS must be positive")
    domain = (os.getenv("INSTITUTION_EMAIL_DOMAIN") or DEFAULT_INSTITUTION_DOMAIN).strip().lstrip("@").lower()
    return Settings(
        environment=(os.getenv("SMARTATTEND_ENV", "dev") or "dev").lower(),
        supabase_url=(os.getenv("SUPABASE_URL") or "").strip(),
        supabase_anon_key=(os.getenv("SUPABASE_ANON_KEY") or "").strip(),
        supabase_service_role_key=(os.getenv("SUPABASE_SERVICE_ROLE_KEY") or "").strip(),
        profiles_table=(os.getenv("PROFILES_TABLE") or "profiles").strip(),
        institution_domain=domain,
        provisioning_api_key=(os.getenv("PROVISIONING_API_KEY") or "").strip(),
        session_ttl_seconds=ttl,
    )


def ensure_secure_config_on_startup() -> None:
    """Fail fast on insecure production configuration.

    Intent: Abort process startup when obviously insecure settings are detected
    in production/staging. Development remains permissive for convenience.

    Checks:
    - Supabase Service Role key must be set and not a known dummy placeholder.
    - SUPABASE_URL must use https.
    - SUPABASE_ANON_KEY must be set (sign-in and password change need it).
    - PROVISIONING_API_KEY must be set (the provisioning and email functions
      are otherwise callable by anyone).
    - AI_BACKEND must not be the stub adapter.
    """

    env = os.getenv("SMARTATTEND_ENV", "dev")
    if not _is_prod_like(env):
        return  # dev/test remain permissive

    srole = os.getenv("SUPABASE_SERVICE_ROLE_KEY", "").strip()
    if not srole or srole.upper() == "DUMMY_DO_NOT_USE":
        raise SystemExit(
            "Refusing to start: SUPABASE_SERVICE_ROLE_KEY is unset or a dummy placeholder in production."
        )

    url = (os.getenv("SUPABASE_URL", "") or "").strip().lower()
    if not url.startswith("https://"):
        raise SystemExit("Refusing to start: SUPABASE_URL must use https in production.")

    if not (os.getenv("SUPABASE_ANON_KEY", "") or "").strip():
        raise SystemExit("Refusing to start: SUPABASE_ANON_KEY is required for sign-in in production.")

    api_key = (os.getenv("PROVISIONING_API_KEY", "") or "").strip()
    if not api_key or api_key.upper().startswith("CHANGE_ME"):
        raise SystemExit(
            "Refusing to start: PROVISIONING_API_KEY is unset or a placeholder in production."
        )

    ai_backend = (os.getenv("AI_BACKEND") or "stub").strip().lower()
    if ai_backend == "stub":
        raise SystemExit(
            "Refusing to start: AI_BACKEND=stub is not allowed in production/staging. Configure a real adapter."
        )

"""
Security config guard tests.

Validates that production/staging environments fail fast on an insecure
setup (dummy service role key, plain-HTTP Supabase URL, missing anon key,
open provisioning endpoint, stub text generator) while development stays
permissive.
"""
from __future__ import annotations

import pytest

from backend.web import config as cfg


def _prod_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SMARTATTEND_ENV", "prod")
    monkeypatch.setenv("SUPABASE_SERVICE_ROLE_KEY", "REAL_NON_DUMMY")
    monkeypatch.setenv("SUPABASE_URL", "https://project.supabase.co")
    monkeypatch.setenv("SUPABASE_ANON_KEY", "anon-public-key")
    monkeypatch.setenv("PROVISIONING_API_KEY", "a-long-random-key")
    monkeypatch.setenv("AI_BACKEND", "openai")


def test_secure_prod_config_passes(monkeypatch: pytest.MonkeyPatch):
    _prod_env(monkeypatch)
    cfg.ensure_secure_config_on_startup()


def test_dev_allows_dummy_settings(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("SMARTATTEND_ENV", "dev")
    monkeypatch.setenv("SUPABASE_SERVICE_ROLE_KEY", "DUMMY_DO_NOT_USE")
    monkeypatch.setenv("SUPABASE_URL", "http://127.0.0.1:54321")
    cfg.ensure_secure_config_on_startup()


@pytest.mark.parametrize(
    "var, value",
    [
        ("SUPABASE_SERVICE_ROLE_KEY", "DUMMY_DO_NOT_USE"),
        ("SUPABASE_SERVICE_ROLE_KEY", ""),
        ("SUPABASE_URL", "http://project.supabase.co"),
        ("SUPABASE_ANON_KEY", ""),
        ("PROVISIONING_API_KEY", ""),
        ("PROVISIONING_API_KEY", "CHANGE_ME"),
        ("AI_BACKEND", "stub"),
    ],
)
def test_prod_guard_rejects_insecure_values(monkeypatch: pytest.MonkeyPatch, var, value):
    _prod_env(monkeypatch)
    monkeypatch.setenv(var, value)
    with pytest.raises(SystemExit):
        cfg.ensure_secure_config_on_startup()


def test_staging_is_prod_like(monkeypatch: pytest.MonkeyPatch):
    _prod_env(monkeypatch)
    monkeypatch.setenv("SMARTATTEND_ENV", "staging")
    monkeypatch.setenv("AI_BACKEND", "stub")
    with pytest.raises(SystemExit):
        cfg.ensure_secure_config_on_startup()


def test_load_settings_defaults():
    settings = cfg.load_settings()
    assert settings.environment == "dev"
    assert settings.profiles_table == "profiles"
    assert settings.institution_domain == "zetech.ac.ke"
    assert settings.session_ttl_seconds == 3600
    assert settings.prod_like is False


def test_load_settings_normalizes_domain_and_validates_ttl(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("INSTITUTION_EMAIL_DOMAIN", " @Students.Example.EDU ")
    assert cfg.load_settings().institution_domain == "students.example.edu"
    monkeypatch.setenv("SESSION_TTL_SECONDS", "abc")
    with pytest.raises(ValueError):
        cfg.load_settings()

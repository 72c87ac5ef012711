"""
Pytest configuration for backend tests.

Why: Force AnyIO to use the asyncio backend to avoid sandbox restrictions
that can affect the Trio backend (e.g., socketpair permission errors).
"""
import importlib
import sys
from pathlib import Path

import pytest

# Ensure the repo root (for `backend.*`) and the tests dir (for shared fakes)
# are importable across tests.
REPO_ROOT = Path(__file__).resolve().parents[2]
TESTS_DIR = REPO_ROOT / "backend" / "tests"
for p in (str(REPO_ROOT), str(TESTS_DIR)):
    if p not in sys.path:
        sys.path.insert(0, p)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def _clear_env_toggles(monkeypatch: pytest.MonkeyPatch):
    """Start every test from a dev environment without live credentials.

    Why:
        A developer shell may carry real Supabase, OpenAI or Brevo settings.
        Tests must never reach those services; individual tests opt into the
        variables they need.
    """
    for var in (
        "SMARTATTEND_ENV",
        "SUPABASE_URL",
        "SUPABASE_ANON_KEY",
        "SUPABASE_SERVICE_ROLE_KEY",
        "PROFILES_TABLE",
        "INSTITUTION_EMAIL_DOMAIN",
        "PROVISIONING_API_KEY",
        "AI_BACKEND",
        "OPENAI_API_KEY",
        "OPENAI_BASE_URL",
        "OPENAI_MODEL",
        "OPENAI_MAX_TOKENS",
        "BREVO_API_KEY",
        "BREVO_API_URL",
        "NOTIFY_CONTENT_ADAPTER",
        "NOTIFY_DELIVERY_ADAPTER",
        "NOTIFY_TIMEOUT_SECONDS",
        "EMAIL_SENDER_NAME",
        "EMAIL_SENDER_ADDRESS",
        "SMARTATTEND_TRUST_PROXY",
        "SESSION_TTL_SECONDS",
    ):
        monkeypatch.delenv(var, raising=False)
    yield


@pytest.fixture(autouse=True)
def _reset_web_wiring(monkeypatch: pytest.MonkeyPatch):
    """Reset the session store and injected adapters between tests.

    Why:
        API tests inject fakes into module-level singletons; without a reset
        they leak into unrelated tests in a full run.
    """
    try:
        main = importlib.import_module("backend.web.main")
        from backend.identity_access.stores import SessionStore
        from backend.web import supabase_wiring
        from backend.web.routes import notifications
    except Exception:
        yield
        return
    monkeypatch.setattr(main, "SESSION_STORE", SessionStore())
    supabase_wiring.set_backends(None, None)
    notifications.set_dispatcher(None)
    yield
    supabase_wiring.set_backends(None, None)
    notifications.set_dispatcher(None)

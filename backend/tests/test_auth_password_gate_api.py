"""
Auth and signed-in user API: login, gate enforcement, password change, logout.

Supabase is replaced by in-memory fakes injected through the wiring module;
sessions live in the app's in-memory store.
"""
from __future__ import annotations

import httpx
import pytest
from httpx import ASGITransport

from backend.identity_access.domain import Profile
from backend.identity_access.identity_provider import AuthSession, SupabaseIdentityProvider
from backend.identity_access.password_gate import STUDENT_NOTICE
from backend.web import main
from backend.web.auth_utils import SESSION_COOKIE_NAME
from backend.web.supabase_wiring import set_backends

from identity_fakes import FakeIdentityProvider, FakeProfileStore


pytestmark = pytest.mark.anyio("asyncio")


def _client() -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=ASGITransport(app=main.app), base_url="http://test")


@pytest.fixture
def backends():
    store = FakeProfileStore(
        [
            Profile(id="s-1", role="student", admission_number="A123", first_name="Ann", last_name="W", user_id="u-s"),
            Profile(id="a-1", role="admin", email="a@x.com", first_name="Ada", last_name="K", user_id="u-a"),
        ]
    )
    idp = FakeIdentityProvider()
    idp.add_account("A123@zetech.ac.ke", "A123", "u-s")
    idp.add_account("a@x.com", "s3cret-pass", "u-a")
    set_backends(store, idp)
    return store, idp


async def _login(c: httpx.AsyncClient, identifier: str, password: str, login_type: str = "admission"):
    r = await c.post("/auth/login", json={"identifier": identifier, "password": password, "login_type": login_type})
    sid = r.cookies.get(SESSION_COOKIE_NAME)
    if sid:
        c.cookies.clear()
        c.cookies.set(SESSION_COOKIE_NAME, sid)
    return r


@pytest.mark.anyio
async def test_login_with_admission_number_flags_default_password(backends):
    store, _ = backends
    async with _client() as c:
        r = await _login(c, "A123", "A123")
    assert r.status_code == 200
    assert r.json() == {"user_id": "u-s", "gate": "must_change", "force_password_change_requested": True}
    assert r.headers.get("Cache-Control") == "private, no-store"
    assert store.rows["s-1"].force_password_change is True
    set_cookie = r.headers.get("set-cookie", "")
    assert "HttpOnly" in set_cookie
    assert "samesite=lax" in set_cookie.lower()


@pytest.mark.anyio
async def test_login_with_custom_password_keeps_gate_normal(backends):
    store, _ = backends
    async with _client() as c:
        r = await _login(c, "a@x.com", "s3cret-pass", login_type="email")
    assert r.status_code == 200
    assert r.json()["gate"] == "normal"
    assert r.json()["force_password_change_requested"] is False
    assert store.updates == []


@pytest.mark.anyio
async def test_login_invalid_credentials_message(backends):
    async with _client() as c:
        r = await _login(c, "A123", "wrong")
    assert r.status_code == 401
    assert r.json() == {"error": "Invalid credentials. Please check your details and try again."}
    assert SESSION_COOKIE_NAME not in r.cookies


@pytest.mark.anyio
async def test_login_other_provider_error_is_prefixed(backends):
    _, idp = backends
    idp.auth_error = "Email not confirmed"
    async with _client() as c:
        r = await _login(c, "A123", "A123")
    assert r.status_code == 401
    assert r.json() == {"error": "Authentication failed: Email not confirmed"}


@pytest.mark.anyio
async def test_login_rejects_unknown_login_type(backends):
    async with _client() as c:
        r = await _login(c, "A123", "A123", login_type="passport")
    assert r.status_code == 400
    assert r.json() == {"error": "invalid_login_type"}


@pytest.mark.anyio
async def test_login_without_wired_backend_is_503():
    async with _client() as c:
        r = await _login(c, "A123", "A123")
    assert r.status_code == 503


@pytest.mark.anyio
async def test_api_requires_session():
    async with _client() as c:
        r = await c.get("/api/me")
    assert r.status_code == 401
    assert r.json() == {"error": "unauthenticated"}
    assert r.headers.get("Cache-Control") == "private, no-store"


@pytest.mark.anyio
async def test_forced_change_flow_end_to_end(backends):
    store, idp = backends
    async with _client() as c:
        await _login(c, "A123", "A123")

        me = await c.get("/api/me")
        assert me.status_code == 200
        body = me.json()
        assert body["gate"] == "must_change"
        assert body["notice"] == STUDENT_NOTICE
        assert body["admission_number"] == "A123"

        blocked = await c.get("/api/landing")
        assert blocked.status_code == 403
        assert blocked.json() == {"error": "password_change_required"}

        mismatch = await c.post("/api/me/password", json={"new_password": "abcdef", "confirm_password": "abcdeg"})
        assert mismatch.status_code == 400
        assert mismatch.json() == {"error": "validation_failed", "detail": "Passwords do not match"}
        assert idp.password_updates == []

        ok = await c.post("/api/me/password", json={"new_password": "n3w-pass", "confirm_password": "n3w-pass"})
        assert ok.status_code == 200
        assert ok.json() == {"gate": "normal"}
        assert store.rows["s-1"].force_password_change is False

        landing = await c.get("/api/landing")
        assert landing.status_code == 200
        assert landing.json() == {"view": "student", "display_name": "Ann W", "role": "student"}


@pytest.mark.anyio
async def test_password_change_provider_rejection_is_502(backends):
    _, idp = backends
    idp.fail_password_update = "New password should be different from the old password."
    async with _client() as c:
        await _login(c, "A123", "A123")
        r = await c.post("/api/me/password", json={"new_password": "A123456", "confirm_password": "A123456"})
    assert r.status_code == 502
    assert r.json() == {
        "error": "password_update_failed",
        "detail": "New password should be different from the old password.",
    }


@pytest.mark.anyio
async def test_password_change_rejects_cross_origin(backends):
    async with _client() as c:
        await _login(c, "A123", "A123")
        r = await c.post(
            "/api/me/password",
            json={"new_password": "abcdef", "confirm_password": "abcdef"},
            headers={"Origin": "http://evil.example"},
        )
    assert r.status_code == 403
    assert r.json() == {"error": "csrf_violation"}


@pytest.mark.anyio
async def test_admin_landing_view_selection(backends):
    async with _client() as c:
        await _login(c, "a@x.com", "s3cret-pass", login_type="email")
        r = await c.get("/api/landing")
    assert r.status_code == 200
    assert r.json()["view"] == "admin"


@pytest.mark.anyio
async def test_gate_rereads_profile_on_every_request(backends):
    store, _ = backends
    async with _client() as c:
        await _login(c, "a@x.com", "s3cret-pass", login_type="email")
        assert (await c.get("/api/landing")).status_code == 200
        store.update_by_user_id("u-a", {"force_password_change": True})
        assert (await c.get("/api/landing")).status_code == 403


@pytest.mark.anyio
async def test_me_without_profile_is_404(backends):
    sess = main.SESSION_STORE.create(
        auth=AuthSession(user_id="u-orphan", email="o@x.com", access_token="at", refresh_token="rt")
    )
    async with _client() as c:
        c.cookies.set(SESSION_COOKIE_NAME, sess.session_id)
        r = await c.get("/api/me")
    assert r.status_code == 404
    assert r.json() == {
        "error": "profile_not_found",
        "detail": "Your account exists but no profile was found. Please contact administrator.",
    }


@pytest.mark.anyio
async def test_profile_lookup_failure_is_502(backends):
    store, _ = backends
    async with _client() as c:
        await _login(c, "a@x.com", "s3cret-pass", login_type="email")
        store.fail_fetch = True
        r = await c.get("/api/me")
    assert r.status_code == 502
    assert r.json() == {"error": "profile_lookup_failed"}


@pytest.mark.anyio
async def test_logout_clears_session(backends):
    async with _client() as c:
        await _login(c, "a@x.com", "s3cret-pass", login_type="email")
        sid = c.cookies.get(SESSION_COOKIE_NAME)
        r = await c.post("/auth/logout")
        assert r.status_code == 200
        assert main.SESSION_STORE.get(sid) is None
        c.cookies.set(SESSION_COOKIE_NAME, sid)
        assert (await c.get("/api/me")).status_code == 401


@pytest.mark.anyio
async def test_health_is_public():
    async with _client() as c:
        r = await c.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "healthy"}


@pytest.fixture
def backends_without_anon_key():
    store = FakeProfileStore(
        [Profile(id="s-1", role="student", admission_number="A123", first_name="Ann", last_name="W", user_id="u-s")]
    )
    set_backends(store, SupabaseIdentityProvider(object(), anon_client_factory=None))
    return store


@pytest.mark.anyio
async def test_login_without_anon_key_is_503(backends_without_anon_key):
    async with _client() as c:
        r = await _login(c, "A123", "A123")
    assert r.status_code == 503
    assert r.json() == {"error": "backend_unavailable"}
    assert SESSION_COOKIE_NAME not in r.cookies


@pytest.mark.anyio
async def test_password_change_without_anon_key_is_503(backends_without_anon_key):
    store = backends_without_anon_key
    sess = main.SESSION_STORE.create(
        auth=AuthSession(user_id="u-s", email="A123@zetech.ac.ke", access_token="at", refresh_token="rt")
    )
    async with _client() as c:
        c.cookies.set(SESSION_COOKIE_NAME, sess.session_id)
        r = await c.post("/api/me/password", json={"new_password": "n3w-pass", "confirm_password": "n3w-pass"})
    assert r.status_code == 503
    assert r.json() == {"error": "backend_unavailable"}
    assert store.updates == []

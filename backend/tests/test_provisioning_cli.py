from __future__ import annotations

import json

import pytest

from backend.identity_access.domain import Profile
from backend.provisioning import cli
from backend.provisioning.job import BulkProvisioningJob

from identity_fakes import FakeIdentityProvider, FakeProfileStore


ARGS = ["--supabase-url", "https://example.supabase.co", "--service-role-key", "srk"]


@pytest.fixture
def fakes(monkeypatch: pytest.MonkeyPatch):
    store = FakeProfileStore(
        [
            Profile(id="s-1", role="student", admission_number="A123"),
            Profile(id="a-1", role="admin", email="a@x.com"),
        ]
    )
    idp = FakeIdentityProvider()
    captured = {}

    def fake_build_job(args):
        captured["args"] = args
        return BulkProvisioningJob(profiles=store, identities=idp, domain=args.domain)

    monkeypatch.setattr(cli, "build_job", fake_build_job)
    return store, idp, captured


def test_requires_url_and_key():
    with pytest.raises(SystemExit):
        cli.main([])
    with pytest.raises(SystemExit):
        cli.main(["--supabase-url", "https://example.supabase.co"])


def test_dry_run_plans_without_creating(fakes):
    store, idp, _ = fakes
    assert cli.main(ARGS + ["--dry-run"]) == 0
    assert idp.created == []
    assert store.updates == []


def test_run_prints_json_report(fakes, capsys: pytest.CaptureFixture[str]):
    store, idp, captured = fakes
    assert cli.main(ARGS + ["--json", "--domain", "students.example.edu"]) == 0

    report = json.loads(capsys.readouterr().out)
    assert report["created"] == 2
    assert report["results"][0]["email"] == "A123@students.example.edu"
    assert captured["args"].table == "profiles"


def test_exit_code_reflects_profile_errors(fakes):
    store, idp, _ = fakes
    idp.add_account("a@x.com", "x", "existing")
    assert cli.main(ARGS) == 1


def test_fetch_failure_returns_2(fakes):
    store, _, _ = fakes
    store.fail_fetch = True
    assert cli.main(ARGS) == 2


def test_defaults_come_from_environment(monkeypatch: pytest.MonkeyPatch, fakes):
    _, _, captured = fakes
    monkeypatch.setenv("SUPABASE_URL", "https://env.supabase.co")
    monkeypatch.setenv("SUPABASE_SERVICE_ROLE_KEY", "env-key")
    monkeypatch.setenv("PROFILES_TABLE", "people")
    assert cli.main(["--dry-run"]) == 0
    assert captured["args"].supabase_url == "https://env.supabase.co"
    assert captured["args"].table == "people"

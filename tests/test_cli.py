from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

import scripts.caas_cli as caas_cli
from caas.core.cordys import CordysSystem, CredentialRefreshFailedError, IdentityPath, Organization, User
from caas.core.cordys.exceptions import TransportError
from caas.core.cordys.saml import CredentialArtifact
from tests.conftest import ORG_DN, SYSTEM_DN

USER_DN = f"cn=jdoe,cn=organizational users,{ORG_DN}"


class FakeSession:
    """Stands in for CaasSession; records the system each call targets."""

    instances = []
    error = None

    def __init__(self, settings):
        self.settings = settings
        self.calls = []
        system = CordysSystem("dev", SYSTEM_DN)
        self.org = Organization(system, IdentityPath.parse(ORG_DN))
        self.user = User(self.org, IdentityPath.parse(USER_DN))
        FakeSession.instances.append(self)

    def resolve(self, dn, system=None):
        self.calls.append(("resolve", dn, system))
        return self.user if dn == USER_DN else None

    def organization_of(self, dn, system=None):
        self.calls.append(("organization", dn, system))
        return self.org if dn == USER_DN else None

    def current_artifact(self, system=None):
        self.calls.append(("artifact", system))
        if FakeSession.error is not None:
            raise FakeSession.error
        return CredentialArtifact(
            "AAFRn7jXiLGMeKZy8fQ",
            datetime(2024, 1, 1, 12, tzinfo=timezone.utc),
            datetime(2024, 1, 1, 20, tzinfo=timezone.utc),
        )


@pytest.fixture(autouse=True)
def fake_session(monkeypatch):
    FakeSession.instances = []
    FakeSession.error = None
    settings = SimpleNamespace(log_level="INFO")
    monkeypatch.setattr(caas_cli, "load_settings", lambda config_file=None: settings)
    monkeypatch.setattr(caas_cli, "CaasSession", FakeSession)
    return FakeSession


def test_resolve_prints_kind_and_parent(capsys):
    assert caas_cli.main(["--system", "dev", "resolve", "--dn", USER_DN]) == 0

    out = capsys.readouterr().out
    assert out.strip() == f"user\t{IdentityPath.parse(USER_DN)}\tparent={IdentityPath.parse(ORG_DN)}"
    assert FakeSession.instances[0].calls == [("resolve", USER_DN, "dev")]


def test_resolve_absent_entry(capsys):
    assert caas_cli.main(["resolve", "--dn", f"cn=ghost,{ORG_DN}"]) == 0
    assert "not found" in capsys.readouterr().out


def test_organization_prints_org_dn(capsys):
    assert caas_cli.main(["organization", "--dn", USER_DN]) == 0
    assert capsys.readouterr().out.strip() == str(IdentityPath.parse(ORG_DN))


def test_artifact_is_masked(capsys):
    assert caas_cli.main(["artifact"]) == 0

    out = capsys.readouterr().out
    assert "AAFRn7jXiLGMeKZy8fQ" not in out
    assert "expires_at=2024-01-01T20:00:00+00:00" in out


def test_refresh_failure_exits_non_zero(capsys):
    FakeSession.error = CredentialRefreshFailedError("dev", TransportError("connection refused"))

    assert caas_cli.main(["artifact"]) == 1
    assert "[artifact] Error:" in capsys.readouterr().err


def test_settings_error_exits_non_zero(monkeypatch, capsys):
    def broken(config_file=None):
        raise RuntimeError("Configuration file missing.yaml not found")

    monkeypatch.setattr(caas_cli, "load_settings", broken)

    assert caas_cli.main(["--config", "missing.yaml", "artifact"]) == 1
    assert "[settings] Error:" in capsys.readouterr().err


def test_no_command_prints_help(capsys):
    assert caas_cli.main([]) == 0
    assert "usage" in capsys.readouterr().out


def test_resolve_system_root(monkeypatch, capsys):
    def resolve_root(self, dn, system=None):
        return self.org.parent

    monkeypatch.setattr(FakeSession, "resolve", resolve_root)

    assert caas_cli.main(["resolve", "--dn", SYSTEM_DN]) == 0
    assert capsys.readouterr().out.strip() == f"system\t{IdentityPath.parse(SYSTEM_DN)}\tparent=-"

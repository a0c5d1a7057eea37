"""Pytest shared fixtures for directory and credential tests."""
import pathlib
import sys
from datetime import datetime, timedelta, timezone

# Add project root to Python path
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest
import requests

from caas.core.cordys import CordysSystem, DirectoryEntry, IdentityPath

SYSTEM_DN = "cn=cordys,cn=defaultInst,o=vanenburg.com"
ORG_DN = f"o=acme,{SYSTEM_DN}"
SYSTEM_ORG_DN = f"o=system,{SYSTEM_DN}"


# ─────────────────────────────────────────────────────────────────────────────
# Network Guard Rails
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture(autouse=True)
def _block_network(monkeypatch, request):
    """
    Prevent unit tests from hitting a real gateway.

    Integration tests are explicitly marked with @pytest.mark.integration and
    are allowed to perform real HTTP calls by skipping this fixture.
    """
    if request.node.get_closest_marker("integration"):
        return

    def _stub_post(url, *args, **kwargs):
        raise RuntimeError(f"Unexpected HTTP POST in unit test: {url}")

    monkeypatch.setattr(requests, "post", _stub_post)


# ─────────────────────────────────────────────────────────────────────────────
# Fake LDAP
# ─────────────────────────────────────────────────────────────────────────────
class FakeDirectory:
    """In-memory LDAP: DN string -> objectclass tokens."""

    def __init__(self, entries=None, packages=()):
        self.entries = {}
        self.fetches = []
        self.package_names = list(packages)
        self.package_listings = 0
        for dn, object_classes in (entries or {}).items():
            self.add(dn, *object_classes)

    def add(self, dn, *object_classes):
        path = IdentityPath.parse(dn)
        self.entries[path] = DirectoryEntry(path, tuple(object_classes), {"dn": dn})
        return self.entries[path]

    def fetch_entry(self, system, dn):
        self.fetches.append(str(dn))
        return self.entries.get(IdentityPath.coerce(dn))

    def list_packages(self, system):
        self.package_listings += 1
        return [
            DirectoryEntry(IdentityPath.parse(f"cn={name},{SYSTEM_DN}"), ("busruntimepackage",))
            for name in self.package_names
        ]


@pytest.fixture()
def system():
    return CordysSystem("dev", SYSTEM_DN)


@pytest.fixture()
def directory():
    """A small LDAP tree with one organization and the system organization."""
    return FakeDirectory({
        ORG_DN: ("top", "organization"),
        SYSTEM_ORG_DN: ("top", "organization"),
        f"cn=jdoe,cn=organizational users,{ORG_DN}": ("top", "busorganizationaluser"),
        f"cn=Admin,cn=organizational roles,{ORG_DN}": ("top", "busorganizationalrole"),
        f"cn=WS-AppServer,cn=soap nodes,{ORG_DN}": ("top", "bussoapnode"),
        f"cn=WS-AppServer Container,cn=WS-AppServer,cn=soap nodes,{ORG_DN}": ("top", "bussoapprocessor"),
        f"cn=licinfo,{SYSTEM_DN}": ("top", "groupOfNames"),
    }, packages=["Cordys WS-AppServer"])


# ─────────────────────────────────────────────────────────────────────────────
# Clock & SAML helpers
# ─────────────────────────────────────────────────────────────────────────────
class FakeClock:
    def __init__(self, start=None):
        self.now = start or datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture()
def clock():
    return FakeClock()


class StubResponse:
    def __init__(self, text: str, status_code: int = 200):
        self.text = text
        self.status_code = status_code


def saml_response(artifact="AAFRn7jXiLGMeKZy8fQ", not_before="2024-01-01T12:00:00.512Z",
                  not_on_or_after="2024-01-01T20:00:00.512Z") -> str:
    return (
        '<SOAP:Envelope xmlns:SOAP="http://schemas.xmlsoap.org/soap/envelope/"><SOAP:Body>'
        '<samlp:Response xmlns:samlp="urn:oasis:names:tc:SAML:1.0:protocol" MajorVersion="1" MinorVersion="1">'
        '<samlp:Status><samlp:StatusCode Value="samlp:Success"/></samlp:Status>'
        '<saml:Assertion xmlns:saml="urn:oasis:names:tc:SAML:1.0:assertion">'
        f'<saml:Conditions NotBefore="{not_before}" NotOnOrAfter="{not_on_or_after}"/>'
        '</saml:Assertion>'
        f'<samlp:AssertionArtifact>{artifact}</samlp:AssertionArtifact>'
        '</samlp:Response></SOAP:Body></SOAP:Envelope>'
    )


def soap_fault(message="Access denied") -> str:
    return (
        '<SOAP:Envelope xmlns:SOAP="http://schemas.xmlsoap.org/soap/envelope/"><SOAP:Body>'
        f'<SOAP:Fault><faultcode>SOAP:Client</faultcode><faultstring>{message}</faultstring></SOAP:Fault>'
        '</SOAP:Body></SOAP:Envelope>'
    )


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests (requires a reachable gateway)"
    )

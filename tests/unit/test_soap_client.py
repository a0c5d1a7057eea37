import xml.etree.ElementTree as ET
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
import requests

from caas.core.cordys.client import SoapClient, parse_entry
from caas.core.cordys.dn import IdentityPath
from caas.core.cordys.exceptions import SoapFaultError, TransportError
from caas.core.cordys.saml import CredentialArtifact
from tests.conftest import ORG_DN, SYSTEM_DN, StubResponse, soap_fault

GATEWAY = "https://cordys.example.com/cordys/com.eibus.web.soap.Gateway.wcp"


class StaticCredentials:
    def __init__(self):
        self.requested = []

    def get_artifact(self, target):
        self.requested.append(target)
        now = datetime.now(timezone.utc)
        return CredentialArtifact("ART-123", now, now + timedelta(hours=1))


def ldap_response(body: str) -> str:
    return (
        '<SOAP:Envelope xmlns:SOAP="http://schemas.xmlsoap.org/soap/envelope/"><SOAP:Body>'
        f'<GetLDAPObjectResponse xmlns="http://schemas.cordys.com/1.0/ldap">{body}</GetLDAPObjectResponse>'
        '</SOAP:Body></SOAP:Envelope>'
    )


def entry_xml(dn: str, *object_classes: str) -> str:
    strings = "".join(f"<string>{oc}</string>" for oc in object_classes)
    return f'<tuple><old><entry dn="{dn}"><objectclass>{strings}</objectclass><cn><string>x</string></cn></entry></old></tuple>'


@pytest.fixture()
def client():
    config = SimpleNamespace(name="dev", gateway_url=GATEWAY, ldap_root=SYSTEM_DN, timeout=7, verify_tls=True)
    return SoapClient(config, StaticCredentials())


def test_fetch_entry_parses_entry(monkeypatch, client):
    calls = []

    def fake_post(url, *args, **kwargs):
        calls.append((url, kwargs))
        return StubResponse(ldap_response(entry_xml(ORG_DN, "top", "organization")))

    monkeypatch.setattr(requests, "post", fake_post)

    entry = client.fetch_entry(ORG_DN)

    assert entry.dn == IdentityPath.parse(ORG_DN)
    assert entry.object_classes == ("top", "organization")
    url, kwargs = calls[0]
    assert url == GATEWAY
    assert kwargs["params"]["SAMLart"] == "ART-123"
    assert kwargs["timeout"] == 7
    assert ORG_DN.encode() in kwargs["data"]
    assert client.credentials.requested == ["dev"]


def test_fetch_entry_absent(monkeypatch, client):
    monkeypatch.setattr(requests, "post", lambda url, *a, **kw: StubResponse(ldap_response("")))
    assert client.fetch_entry(f"cn=ghost,{ORG_DN}") is None


def test_soap_fault_raises(monkeypatch, client):
    monkeypatch.setattr(requests, "post", lambda url, *a, **kw: StubResponse(soap_fault("LDAP error"), 500))

    with pytest.raises(SoapFaultError) as excinfo:
        client.fetch_entry(ORG_DN)

    assert excinfo.value.faultstring == "LDAP error"
    assert excinfo.value.status_code == 500


def test_http_error_without_envelope(monkeypatch, client):
    monkeypatch.setattr(requests, "post", lambda url, *a, **kw: StubResponse("<html>Bad gateway</html>", 502))

    with pytest.raises(TransportError) as excinfo:
        client.fetch_entry(ORG_DN)

    assert excinfo.value.status_code == 502


def test_connection_error(monkeypatch, client):
    def fake_post(url, *args, **kwargs):
        raise requests.Timeout("read timed out")

    monkeypatch.setattr(requests, "post", fake_post)

    with pytest.raises(TransportError, match="read timed out"):
        client.fetch_entry(ORG_DN)


def test_list_packages(monkeypatch, client):
    body = entry_xml(f"cn=Cordys WS-AppServer,{SYSTEM_DN}", "busruntimepackage") + entry_xml(
        f"cn=Cordys ESBServer,{SYSTEM_DN}", "busruntimepackage"
    )
    monkeypatch.setattr(requests, "post", lambda url, *a, **kw: StubResponse(ldap_response(body)))

    packages = client.list_packages()

    assert [p.dn.local_name() for p in packages] == ["Cordys WS-AppServer", "Cordys ESBServer"]


def test_parse_entry_requires_dn():
    with pytest.raises(TransportError):
        parse_entry(ET.fromstring("<entry><objectclass/></entry>"))


def test_call_routes_to_organization_and_processor(monkeypatch, client):
    calls = []

    def fake_post(url, *args, **kwargs):
        calls.append(kwargs["params"])
        return StubResponse(ldap_response(""))

    monkeypatch.setattr(requests, "post", fake_post)
    processor = f"cn=LDAP Container,cn=LDAP,cn=soap nodes,{ORG_DN}"

    client.call(ET.Element("GetLDAPObject"), organization=ORG_DN, processor=processor)
    client.call(ET.Element("GetLDAPObject"))

    assert calls[0] == {"SAMLart": "ART-123", "organization": ORG_DN, "receiver": processor}
    assert calls[1] == {"SAMLart": "ART-123"}

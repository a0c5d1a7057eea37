"""SOAP client for the Cordys web gateway.

Every call is authenticated with the system's current SAML artifact,
obtained from the shared CredentialManager.
"""
from __future__ import annotations
import logging
import xml.etree.ElementTree as ET
from typing import List, Optional, Union

import requests

from .dn import IdentityPath
from .exceptions import SoapFaultError, TransportError
from .objects import DirectoryEntry
from .saml import REQUEST_TIMEOUT, CredentialManager
from .soap import LDAP_NS, build_envelope, fault_string, find_child, iter_children, parse_body

logger = logging.getLogger(__name__)


class SoapClient:
    """HTTP client for one Cordys system.

    Usage:
        client = SoapClient(settings.systems["dev"], manager)
        entry = client.fetch_entry("o=acme,cn=cordys,cn=defaultInst,o=vanenburg.com")
    """

    def __init__(self, system_config, credentials: CredentialManager):
        """Initialize SOAP client.

        Args:
            system_config: SystemConfig with ``name``, ``gateway_url``,
                ``timeout`` and ``verify_tls``
            credentials: Manager providing SAML artifacts for this system
        """
        self.config = system_config
        self.credentials = credentials

    @property
    def name(self) -> str:
        return self.config.name

    def call(
        self, method: ET.Element, organization: Optional[str] = None, processor: Optional[str] = None
    ) -> ET.Element:
        """Send one SOAP method and return the response element.

        Args:
            method: Method element (namespaced)
            organization: Optional organization DN to run the call in
            processor: Optional SOAP processor DN to route the call to

        Returns:
            First child of the SOAP Body

        Raises:
            CredentialRefreshFailedError: If no SAML artifact can be obtained
            SoapFaultError: If the gateway returns a SOAP fault
            TransportError: On connection failures, HTTP errors or unparsable responses
        """
        artifact = self.credentials.get_artifact(self.name)
        url = self.config.gateway_url
        params = {"SAMLart": artifact.token}
        if organization:
            params["organization"] = organization
        if processor:
            params["receiver"] = processor

        try:
            resp = requests.post(
                url,
                params=params,
                data=build_envelope(method),
                headers={"Content-Type": "text/xml; charset=utf-8"},
                timeout=getattr(self.config, "timeout", REQUEST_TIMEOUT),
                verify=getattr(self.config, "verify_tls", True),
            )
        except requests.RequestException as exc:
            raise TransportError(str(exc), url) from exc

        try:
            body = parse_body(resp.text)
        except (ET.ParseError, ValueError) as exc:
            raise TransportError(f"Invalid SOAP response: {exc}", url, resp.status_code) from exc

        fault = fault_string(body)
        if fault is not None:
            raise SoapFaultError(fault, url, resp.status_code)
        if resp.status_code >= 400:
            raise TransportError(resp.text[:200], url, resp.status_code)

        response = next(iter(body), None)
        if response is None:
            raise TransportError("Empty SOAP Body", url, resp.status_code)
        return response

    def fetch_entry(self, dn: Union[str, IdentityPath]) -> Optional[DirectoryEntry]:
        """Retrieve one LDAP entry with GetLDAPObject.

        Returns:
            The entry, or None if it does not exist
        """
        method = ET.Element(f"{{{LDAP_NS}}}GetLDAPObject")
        ET.SubElement(method, f"{{{LDAP_NS}}}dn").text = str(dn)
        response = self.call(method)

        entry = find_child(response, "tuple/old/entry")
        if entry is None:
            logger.debug("[soap] %s: no entry for %s", self.name, dn)
            return None
        return parse_entry(entry)

    def list_packages(self) -> List[DirectoryEntry]:
        """Retrieve the loaded (runtime) packages of the system."""
        method = ET.Element(f"{{{LDAP_NS}}}GetSoftwarePackages")
        ET.SubElement(method, f"{{{LDAP_NS}}}dn").text = str(self.config.ldap_root)
        ET.SubElement(method, f"{{{LDAP_NS}}}sort").text = "ascending"
        response = self.call(method)

        packages = []
        for tuple_node in iter_children(response, "tuple"):
            entry = find_child(tuple_node, "old/entry")
            if entry is not None:
                packages.append(parse_entry(entry))
        return packages


def parse_entry(entry: ET.Element) -> DirectoryEntry:
    """Convert an LDAP ``<entry dn="...">`` element into a DirectoryEntry."""
    dn = entry.get("dn")
    if not dn:
        raise TransportError("LDAP entry without dn attribute")

    object_classes = []
    objectclass = find_child(entry, "objectclass")
    if objectclass is not None:
        for node in iter_children(objectclass, "string"):
            if node.text and node.text.strip():
                object_classes.append(node.text.strip())

    return DirectoryEntry(IdentityPath.parse(dn), tuple(object_classes), entry)

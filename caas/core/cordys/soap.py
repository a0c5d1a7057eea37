"""SOAP envelope helpers shared by the gateway client and the SAML exchange."""
from __future__ import annotations
import xml.etree.ElementTree as ET
from typing import Iterator, Optional

SOAP_NS = "http://schemas.xmlsoap.org/soap/envelope/"
LDAP_NS = "http://schemas.cordys.com/1.0/ldap"

ET.register_namespace("SOAP", SOAP_NS)


def local_name(tag: str) -> str:
    """Strip the ``{namespace}`` prefix ElementTree puts on tags."""
    return tag.rsplit("}", 1)[-1]


def iter_children(elem: ET.Element, name: str) -> Iterator[ET.Element]:
    for child in elem:
        if local_name(child.tag) == name:
            yield child


def find_child(elem: Optional[ET.Element], path: str) -> Optional[ET.Element]:
    """Follow a slash-separated path of local names, ignoring namespaces.

    Example:
        find_child(body, "tuple/old/entry")
    """
    current = elem
    for step in path.split("/"):
        if current is None:
            return None
        current = next(iter_children(current, step), None)
    return current


def child_text(elem: Optional[ET.Element], path: str) -> Optional[str]:
    node = find_child(elem, path)
    if node is None or node.text is None:
        return None
    return node.text.strip()


def build_envelope(body: ET.Element, header: Optional[ET.Element] = None) -> bytes:
    envelope = ET.Element(f"{{{SOAP_NS}}}Envelope")
    if header is not None:
        soap_header = ET.SubElement(envelope, f"{{{SOAP_NS}}}Header")
        soap_header.append(header)
    soap_body = ET.SubElement(envelope, f"{{{SOAP_NS}}}Body")
    soap_body.append(body)
    return ET.tostring(envelope, encoding="utf-8")


def parse_body(text: str) -> ET.Element:
    """Parse a SOAP response and return its Body element.

    Raises:
        ET.ParseError: If text is not well-formed XML
        ValueError: If the document is not a SOAP envelope with a body
    """
    root = ET.fromstring(text)
    if local_name(root.tag) != "Envelope":
        raise ValueError(f"Expected SOAP Envelope, got <{local_name(root.tag)}>")
    body = find_child(root, "Body")
    if body is None:
        raise ValueError("SOAP Envelope has no Body")
    return body


def fault_string(body: ET.Element) -> Optional[str]:
    """Return the faultstring when the body carries a SOAP:Fault."""
    fault = find_child(body, "Fault")
    if fault is None:
        return None
    return child_text(fault, "faultstring") or "SOAP fault without faultstring"

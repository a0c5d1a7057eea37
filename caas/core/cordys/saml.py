"""SAML artifact lifecycle for Cordys gateways.

Each target system gets at most one cached artifact. An artifact is
treated as expired once less than ``SAFETY_MARGIN`` of validity remains,
and is then replaced by a fresh one on the next request.
"""
from __future__ import annotations
import logging
import threading
import uuid
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Mapping, Optional, Tuple

import requests

from .exceptions import (
    AuthFaultError,
    CredentialRefreshFailedError,
    MalformedResponseError,
    TransportError,
)
from .soap import build_envelope, child_text, fault_string, find_child, parse_body

logger = logging.getLogger(__name__)

SAFETY_MARGIN = timedelta(minutes=5)
REQUEST_TIMEOUT = 30

WSSE_NS = "http://docs.oasis-open.org/wss/2004/01/oasis-200401-wss-wssecurity-secext-1.0.xsd"
SAMLP_NS = "urn:oasis:names:tc:SAML:1.0:protocol"
SAML_NS = "urn:oasis:names:tc:SAML:1.0:assertion"
NAMEID_UNSPECIFIED = "urn:oasis:names:tc:SAML:1.1:nameid-format:unspecified"

ET.register_namespace("wsse", WSSE_NS)
ET.register_namespace("samlp", SAMLP_NS)
ET.register_namespace("saml", SAML_NS)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Credentials:
    username: str
    password: str

    def __repr__(self) -> str:
        return f"Credentials(username={self.username!r}, password='***')"


@dataclass(frozen=True)
class CredentialArtifact:
    """A SAML assertion artifact and its validity window.

    Attributes:
        token: AssertionArtifact value sent as ``SAMLart``
        issued_at: NotBefore of the assertion (UTC)
        expires_at: NotOnOrAfter of the assertion (UTC)
    """

    token: str
    issued_at: datetime
    expires_at: datetime

    def remaining(self, now: datetime) -> timedelta:
        return self.expires_at - now

    def is_expired(self, now: datetime, margin: timedelta = SAFETY_MARGIN) -> bool:
        return self.remaining(now) <= margin

    def __repr__(self) -> str:
        return (
            f"CredentialArtifact(token='{mask_token(self.token)}', "
            f"issued_at={self.issued_at.isoformat()}, expires_at={self.expires_at.isoformat()})"
        )


Exchange = Callable[[str, Credentials], Tuple[str, datetime, datetime]]


def mask_token(token: str) -> str:
    if len(token) <= 8:
        return "***"
    return f"{token[:4]}...{token[-4:]}"


class CredentialManager:
    """Process-wide cache of SAML artifacts keyed by target (system) name.

    Features:
    - Lazy refresh when the cached artifact is inside the safety margin
    - At most one refresh in flight per target
    - Failed refreshes leave the previous slot untouched and are not retried

    Usage:
        manager = CredentialManager(SamlAuthenticator(settings.systems), settings.credentials())
        artifact = manager.get_artifact("dev")
    """

    def __init__(
        self,
        exchange: Exchange,
        credentials: Mapping[str, Credentials],
        clock: Callable[[], datetime] = utc_now,
        margin: timedelta = SAFETY_MARGIN,
    ):
        """Initialize credential manager.

        Args:
            exchange: Performs the authentication exchange for a target
            credentials: Credentials per target name
            clock: Returns the current UTC time
            margin: Remaining validity below which an artifact counts as expired
        """
        self.exchange = exchange
        self.credentials = credentials
        self.clock = clock
        self.margin = margin
        self._lock = threading.Lock()
        self._target_locks: Dict[str, threading.Lock] = {}
        self._artifacts: Dict[str, CredentialArtifact] = {}

    def get_artifact(self, target_name: str) -> CredentialArtifact:
        """Return a usable artifact for the target, refreshing it if needed.

        Args:
            target_name: System name as configured

        Returns:
            Artifact with more than ``margin`` validity left

        Raises:
            ValueError: If target_name is blank
            CredentialRefreshFailedError: If a required refresh fails
        """
        target = _normalize_target(target_name)

        with self._target_lock(target):
            artifact = self.peek(target)
            if artifact is not None and not artifact.is_expired(self.clock(), self.margin):
                return artifact

            if artifact is None:
                logger.debug("[saml] No artifact cached for '%s'", target)
            else:
                logger.debug("[saml] Artifact for '%s' expires at %s, refreshing", target, artifact.expires_at)

            artifact = self._refresh(target)
            with self._lock:
                self._artifacts[target] = artifact
            return artifact

    get_current_artifact = get_artifact

    def peek(self, target_name: str) -> Optional[CredentialArtifact]:
        """Return the cached artifact (possibly expired) without refreshing."""
        with self._lock:
            return self._artifacts.get(_normalize_target(target_name))

    def invalidate(self, target_name: str) -> None:
        """Forget the cached artifact so the next request refreshes it."""
        target = _normalize_target(target_name)
        with self._target_lock(target):
            with self._lock:
                self._artifacts.pop(target, None)

    def _target_lock(self, target: str) -> threading.Lock:
        with self._lock:
            lock = self._target_locks.get(target)
            if lock is None:
                lock = self._target_locks[target] = threading.Lock()
            return lock

    def _refresh(self, target: str) -> CredentialArtifact:
        try:
            credentials = self.credentials[target]
        except KeyError as exc:
            raise CredentialRefreshFailedError(target, KeyError(f"No credentials configured for '{target}'")) from exc

        try:
            token, issued_at, expires_at = self.exchange(target, credentials)
        except (TransportError, AuthFaultError, MalformedResponseError) as exc:
            logger.error("[saml] Artifact refresh for '%s' failed: %s", target, exc)
            raise CredentialRefreshFailedError(target, exc) from exc

        artifact = CredentialArtifact(token, issued_at, expires_at)
        if artifact.is_expired(self.clock(), self.margin):
            cause = MalformedResponseError(
                f"Artifact expires at {expires_at.isoformat()}, within the {self.margin} safety margin"
            )
            logger.error("[saml] Artifact refresh for '%s' failed: %s", target, cause)
            raise CredentialRefreshFailedError(target, cause)

        logger.info("[saml] New artifact for '%s' valid until %s", target, expires_at.isoformat())
        return artifact


def _normalize_target(target_name: Optional[str]) -> str:
    if target_name is None or not target_name.strip():
        raise ValueError("System name can not be empty")
    return target_name.strip()


class SamlAuthenticator:
    """SAML 1.1 authentication exchange against a Cordys web gateway.

    Args:
        systems: System configurations by name (need ``gateway_url``,
            ``timeout`` and ``verify_tls``)
    """

    def __init__(self, systems: Mapping[str, object]):
        self.systems = systems

    def __call__(self, target_name: str, credentials: Credentials) -> Tuple[str, datetime, datetime]:
        return self.authenticate(target_name, credentials)

    def authenticate(self, target_name: str, credentials: Credentials) -> Tuple[str, datetime, datetime]:
        """Obtain a new assertion artifact.

        Returns:
            (artifact, issued_at, expires_at)

        Raises:
            TransportError: On connection failures or HTTP errors
            AuthFaultError: If the gateway answers with a SOAP fault
            MalformedResponseError: If the response lacks artifact or conditions
        """
        system = self.systems.get(target_name)
        if system is None:
            raise TransportError(f"No gateway configured for system '{target_name}'")
        url = system.gateway_url
        payload = build_saml_request(credentials.username, credentials.password)

        try:
            resp = requests.post(
                url,
                data=payload,
                headers={"Content-Type": "text/xml; charset=utf-8"},
                timeout=getattr(system, "timeout", REQUEST_TIMEOUT),
                verify=getattr(system, "verify_tls", True),
            )
        except requests.RequestException as exc:
            raise TransportError(str(exc), url) from exc

        return parse_saml_response(resp.text, url, resp.status_code)


def build_saml_request(username: str, password: str, now: Optional[datetime] = None) -> bytes:
    """Build the SOAP envelope for a SAML AuthenticationQuery."""
    security = ET.Element(f"{{{WSSE_NS}}}Security")
    token = ET.SubElement(security, f"{{{WSSE_NS}}}UsernameToken")
    ET.SubElement(token, f"{{{WSSE_NS}}}Username").text = username
    ET.SubElement(token, f"{{{WSSE_NS}}}Password").text = password

    issue_instant = (now or utc_now()).strftime("%Y-%m-%dT%H:%M:%SZ")
    request = ET.Element(
        f"{{{SAMLP_NS}}}Request",
        {
            "MajorVersion": "1",
            "MinorVersion": "1",
            "IssueInstant": issue_instant,
            "RequestID": f"a{uuid.uuid4().hex}",
        },
    )
    query = ET.SubElement(request, f"{{{SAMLP_NS}}}AuthenticationQuery")
    subject = ET.SubElement(query, f"{{{SAML_NS}}}Subject")
    name_id = ET.SubElement(subject, f"{{{SAML_NS}}}NameIdentifier", {"Format": NAMEID_UNSPECIFIED})
    name_id.text = username

    return build_envelope(request, header=security)


def parse_saml_response(text: str, endpoint: str = "", status_code: int = 200) -> Tuple[str, datetime, datetime]:
    """Extract artifact and validity window from a SAML response envelope."""
    try:
        body = parse_body(text)
    except (ET.ParseError, ValueError) as exc:
        if status_code >= 400:
            raise TransportError(text[:200], endpoint, status_code) from exc
        raise MalformedResponseError(f"Invalid SAML response: {exc}") from exc

    fault = fault_string(body)
    if fault is not None:
        raise AuthFaultError(fault)
    if status_code >= 400:
        raise TransportError(text[:200], endpoint, status_code)

    artifact = child_text(body, "Response/AssertionArtifact")
    conditions = find_child(body, "Response/Assertion/Conditions")
    not_before = conditions.get("NotBefore") if conditions is not None else None
    not_on_or_after = conditions.get("NotOnOrAfter") if conditions is not None else None

    if not artifact or not not_before or not not_on_or_after:
        raise MalformedResponseError(
            f"Invalid SAML Response. artifactId: {artifact} issueTime: {not_before} expiryTime: {not_on_or_after}"
        )

    return artifact, parse_saml_time(not_before), parse_saml_time(not_on_or_after)


def parse_saml_time(value: str) -> datetime:
    """Parse ``2013-06-21T10:05:41.123Z``; fractional seconds are dropped."""
    stamp = value.strip()
    if stamp.endswith("Z"):
        stamp = stamp[:-1]
    stamp = stamp.split(".", 1)[0]
    try:
        return datetime.strptime(stamp, "%Y-%m-%dT%H:%M:%S").replace(tzinfo=timezone.utc)
    except ValueError as exc:
        raise MalformedResponseError(f"Invalid SAML timestamp '{value}'") from exc

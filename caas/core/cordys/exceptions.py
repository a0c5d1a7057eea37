"""Cordys-specific exceptions for error handling."""
from __future__ import annotations


class CaasError(Exception):
    """Base exception for all CAAS operations."""
    pass


class MalformedIdentityError(CaasError, ValueError):
    """A DN string could not be parsed into components."""
    pass


class EmptyPathError(CaasError, IndexError):
    """An operation needed a DN component but the path is empty."""
    pass


class UnclassifiableEntryError(CaasError):
    """LDAP entry carries no objectclass known to the type registry.
    
    Attributes:
        dn: DN of the offending entry
        object_classes: Objectclass tokens found on the entry
    """
    
    def __init__(self, dn, object_classes=()):
        self.dn = dn
        self.object_classes = tuple(object_classes)
        super().__init__(
            f"Could not determine class for entry {dn} (objectclass: {', '.join(self.object_classes) or '-'})"
        )


class OrphanEntryError(CaasError):
    """No parent could be established for an entry.
    
    Attributes:
        dn: DN of the entry whose ancestry is inconsistent
    """
    
    def __init__(self, dn, reason: str = "Could not find a parent"):
        self.dn = dn
        super().__init__(f"{reason} for {dn}")


class TransportError(CaasError):
    """HTTP or protocol failure while talking to the Cordys gateway.
    
    Attributes:
        endpoint: Gateway URL that failed
        status_code: HTTP status code, when a response was received
    """
    
    def __init__(self, message: str, endpoint: str = "", status_code: int | None = None):
        self.message = message
        self.endpoint = endpoint
        self.status_code = status_code
        prefix = f"[{status_code}] " if status_code is not None else ""
        super().__init__(f"{prefix}{endpoint}: {message}" if endpoint else f"{prefix}{message}")


class SoapFaultError(TransportError):
    """The gateway answered with a SOAP:Fault."""
    
    def __init__(self, faultstring: str, endpoint: str = "", status_code: int | None = None):
        self.faultstring = faultstring
        super().__init__(faultstring, endpoint, status_code)


class AuthFaultError(CaasError):
    """The SAML exchange was answered with an explicit fault."""
    pass


class MalformedResponseError(CaasError):
    """A response lacked fields required to build a credential artifact."""
    pass


class CredentialRefreshFailedError(CaasError):
    """A SAML artifact could not be obtained for a target system.
    
    Attributes:
        target: Target (system) name
        cause: Underlying exception
    """
    
    def __init__(self, target: str, cause: BaseException):
        self.target = target
        self.cause = cause
        super().__init__(f"Could not refresh SAML artifact for '{target}': {cause}")

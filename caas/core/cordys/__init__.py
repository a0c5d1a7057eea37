"""Cordys directory and credential client library.

This package models the LDAP configuration store of a Cordys system as a
typed, cached object graph and keeps the SAML artifacts needed to call it.

Architecture:
- dn.py: Distinguished names (IdentityPath)
- objects.py: Typed LDAP objects, the CordysSystem root and its identity cache
- registry.py: Objectclass -> kind mapping, grouping-container and package DN predicates
- resolver.py: Materialization of entries and parent-chain resolution
- saml.py: SAML exchange and the per-system artifact cache
- soap.py / client.py: SOAP gateway transport
- packages.py: Loaded package lookup by name
- session.py: Wiring for one CLI or script run
- exceptions.py: Typed exceptions for error handling

Usage:
    from caas.config import load_settings
    from caas.core.cordys import CaasSession

    session = CaasSession(load_settings())
    org = session.resolve("o=acme,cn=cordys,cn=defaultInst,o=vanenburg.com")
    artifact = session.current_artifact()
"""
from .dn import IdentityPath
from .exceptions import (
    CaasError,
    MalformedIdentityError,
    EmptyPathError,
    UnclassifiableEntryError,
    OrphanEntryError,
    TransportError,
    SoapFaultError,
    AuthFaultError,
    MalformedResponseError,
    CredentialRefreshFailedError,
)
from .objects import (
    DirectoryEntry,
    IdentityCache,
    CordysObject,
    CordysSystem,
    LdapObject,
    ObjectKind,
    Organization,
    User,
    AuthenticatedUser,
    Role,
    ServiceGroup,
    ServiceContainer,
    WebServiceInterface,
    WebService,
    Xsd,
    ConnectionPoint,
    OsProcess,
    Dso,
    DsoType,
    Package,
)
from .registry import (
    Classification,
    classify,
    is_synthetic,
    is_package_location,
)
from .resolver import DirectoryResolver, MAX_PARENT_DEPTH
from .saml import (
    SAFETY_MARGIN,
    Credentials,
    CredentialArtifact,
    CredentialManager,
    SamlAuthenticator,
)
from .client import SoapClient
from .packages import PackageService
from .session import CaasSession

__all__ = [
    # Identity
    "IdentityPath",

    # Exceptions
    "CaasError",
    "MalformedIdentityError",
    "EmptyPathError",
    "UnclassifiableEntryError",
    "OrphanEntryError",
    "TransportError",
    "SoapFaultError",
    "AuthFaultError",
    "MalformedResponseError",
    "CredentialRefreshFailedError",

    # Objects
    "DirectoryEntry",
    "IdentityCache",
    "CordysObject",
    "CordysSystem",
    "LdapObject",
    "ObjectKind",
    "Organization",
    "User",
    "AuthenticatedUser",
    "Role",
    "ServiceGroup",
    "ServiceContainer",
    "WebServiceInterface",
    "WebService",
    "Xsd",
    "ConnectionPoint",
    "OsProcess",
    "Dso",
    "DsoType",
    "Package",

    # Registry
    "Classification",
    "classify",
    "is_synthetic",
    "is_package_location",

    # Resolution
    "DirectoryResolver",
    "MAX_PARENT_DEPTH",

    # Credentials
    "SAFETY_MARGIN",
    "Credentials",
    "CredentialArtifact",
    "CredentialManager",
    "SamlAuthenticator",

    # Services
    "SoapClient",
    "PackageService",
    "CaasSession",
]

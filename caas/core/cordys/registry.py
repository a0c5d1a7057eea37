"""Objectclass registry and structural DN predicates.

Maps the objectclass tokens found on LDAP entries to the object kinds CAAS
models, and recognizes the container entries that exist in LDAP purely for
grouping and are never materialized.
"""
from __future__ import annotations
from enum import Enum
from typing import Any, Dict, Iterable, Type, Union

from .dn import IdentityPath
from .objects import (
    AuthenticatedUser,
    ConnectionPoint,
    CordysObject,
    Dso,
    DsoType,
    LdapObject,
    ObjectKind,
    Organization,
    OsProcess,
    Package,
    Role,
    ServiceContainer,
    ServiceGroup,
    User,
    WebService,
    WebServiceInterface,
    Xsd,
)


class Classification(Enum):
    """Non-kind outcomes of classify()."""

    NOT_FOUND = "not_found"
    SUPPRESSED = "suppressed"


OBJECT_CLASSES: Dict[str, ObjectKind] = {
    "busauthenticatedusers": ObjectKind.AUTHENTICATED_USER,
    "busauthenticationuser": ObjectKind.AUTHENTICATED_USER,
    "busmethod": ObjectKind.WEB_SERVICE,
    "busmethodset": ObjectKind.WEB_SERVICE_INTERFACE,
    "busmethodtype": ObjectKind.XSD,
    "organization": ObjectKind.ORGANIZATION,
    "busorganizationalrole": ObjectKind.ROLE,
    "bussoapnode": ObjectKind.SERVICE_GROUP,
    "bussoapprocessor": ObjectKind.SERVICE_CONTAINER,
    "busorganizationaluser": ObjectKind.USER,
    "busconnectionpoint": ObjectKind.CONNECTION_POINT,
    "busosprocess": ObjectKind.OS_PROCESS,
    "datasource": ObjectKind.DSO,
    "datasourcetype": ObjectKind.DSO_TYPE,
    "busruntimepackage": ObjectKind.PACKAGE,
}

CONSTRUCTORS: Dict[ObjectKind, Type[LdapObject]] = {
    ObjectKind.AUTHENTICATED_USER: AuthenticatedUser,
    ObjectKind.WEB_SERVICE: WebService,
    ObjectKind.WEB_SERVICE_INTERFACE: WebServiceInterface,
    ObjectKind.XSD: Xsd,
    ObjectKind.ORGANIZATION: Organization,
    ObjectKind.ROLE: Role,
    ObjectKind.SERVICE_GROUP: ServiceGroup,
    ObjectKind.SERVICE_CONTAINER: ServiceContainer,
    ObjectKind.USER: User,
    ObjectKind.CONNECTION_POINT: ConnectionPoint,
    ObjectKind.OS_PROCESS: OsProcess,
    ObjectKind.DSO: Dso,
    ObjectKind.DSO_TYPE: DsoType,
    ObjectKind.PACKAGE: Package,
}

# Sub-trees under the LDAP root that look like packages but are not modeled
SUPPRESSED_HEADS = frozenset({
    ("cn", "licinfo"),
    ("cn", "authenticated users"),
    ("cn", "consortia"),
})

SYNTHETIC_CONTAINERS = frozenset({
    "organizational users",
    "organizational roles",
    "soap nodes",
    "method sets",
})

AUTHENTICATED_USERS = "authenticated users"
CORDYS_COMPONENT = ("cn", "cordys")


def classify_object_classes(dn: IdentityPath, object_classes: Iterable[str]) -> Union[ObjectKind, Classification]:
    """Classify an entry from its DN and objectclass tokens.

    The first token with a registered kind wins; unknown tokens are skipped.
    """
    kind = None
    for token in object_classes:
        kind = OBJECT_CLASSES.get(token)
        if kind is not None:
            break

    if kind in (None, ObjectKind.PACKAGE) and dn.components and dn.head() in SUPPRESSED_HEADS:
        return Classification.SUPPRESSED
    if kind is None:
        return Classification.NOT_FOUND
    return kind


def classify(entry) -> Union[ObjectKind, Classification]:
    """Classify a DirectoryEntry."""
    return classify_object_classes(entry.dn, entry.object_classes)


def construct(kind: ObjectKind, parent: CordysObject, dn: IdentityPath, entry: Any = None) -> LdapObject:
    return CONSTRUCTORS[kind](parent, dn, entry)


def is_synthetic(dn: IdentityPath) -> bool:
    """True for ``cn=<container>,o=<org>,cn=cordys,cn=<instance>,o=<root>`` grouping entries."""
    if len(dn) != 5:
        return False
    (a0, v0), (a1, _), c2, (a3, _), (a4, _) = dn.components
    return (
        a0 == "cn"
        and v0 in SYNTHETIC_CONTAINERS
        and a1 == "o"
        and c2 == CORDYS_COMPONENT
        and a3 == "cn"
        and a4 == "o"
    )


def is_package_location(dn: IdentityPath) -> bool:
    """True for ``cn=<package>,cn=cordys,[cn=<instance>,]o=...`` entries."""
    if len(dn) < 3 or dn[0][0] != "cn" or dn[1] != CORDYS_COMPONENT:
        return False
    if dn[2][0] == "o":
        return True
    return len(dn) >= 4 and dn[2][0] == "cn" and dn[3][0] == "o"

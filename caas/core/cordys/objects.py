"""In-memory model of Cordys LDAP entries.

Every LDAP entry that CAAS models is represented by exactly one
``LdapObject`` per system. The ``CordysSystem`` is the root of the graph
and owns the identity cache that enforces this.
"""
from __future__ import annotations
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

from .dn import IdentityPath


class ObjectKind(str, Enum):
    """Closed set of LDAP object kinds known to CAAS."""

    AUTHENTICATED_USER = "authenticated_user"
    WEB_SERVICE = "web_service"
    WEB_SERVICE_INTERFACE = "web_service_interface"
    XSD = "xsd"
    ORGANIZATION = "organization"
    ROLE = "role"
    SERVICE_GROUP = "service_group"
    SERVICE_CONTAINER = "service_container"
    USER = "user"
    CONNECTION_POINT = "connection_point"
    OS_PROCESS = "os_process"
    DSO = "dso"
    DSO_TYPE = "dso_type"
    PACKAGE = "package"


@dataclass(frozen=True)
class DirectoryEntry:
    """Raw LDAP entry as returned by the gateway.

    Attributes:
        dn: Entry DN
        object_classes: objectclass tokens in document order
        payload: Opaque entry content (the XML element for gateway entries)
    """

    dn: IdentityPath
    object_classes: Tuple[str, ...] = ()
    payload: Any = None


class IdentityCache:
    """Per-system map of DN to its canonical object.

    The lock is re-entrant because resolving one entry resolves its
    ancestors while still holding it.
    """

    def __init__(self):
        self.lock = threading.RLock()
        self._objects: Dict[IdentityPath, "CordysObject"] = {}

    def get(self, dn: IdentityPath) -> Optional["CordysObject"]:
        with self.lock:
            return self._objects.get(dn)

    def register(self, dn: IdentityPath, obj: "CordysObject") -> "CordysObject":
        """Register obj under dn unless another object already holds it.

        Returns:
            The canonical object for dn (obj, or the earlier one)
        """
        with self.lock:
            return self._objects.setdefault(dn, obj)

    def __contains__(self, dn: IdentityPath) -> bool:
        with self.lock:
            return dn in self._objects

    def __len__(self) -> int:
        with self.lock:
            return len(self._objects)


class CordysObject:
    """Anything that can be the parent of an LDAP object."""

    parent: Optional["CordysObject"] = None

    @property
    def system(self) -> "CordysSystem":
        raise NotImplementedError

    def get_name(self) -> str:
        raise NotImplementedError


class LdapObject(CordysObject):
    """Typed representation of one LDAP entry.

    Attributes:
        dn: Entry DN (immutable)
        cn: Short name taken from the head component of the DN
        parent: Nearest modeled ancestor (another LdapObject or the system)
        entry: Last raw entry seen for this DN, if any
    """

    kind: ObjectKind

    def __init__(self, parent: CordysObject, dn: IdentityPath, entry: Any = None):
        self.parent = parent
        self._system = parent.system
        self._dn = dn
        self.cn = dn.local_name()
        self.entry = entry

    @property
    def dn(self) -> IdentityPath:
        return self._dn

    @property
    def system(self) -> "CordysSystem":
        return self._system

    def get_name(self) -> str:
        return self.cn

    def __repr__(self) -> str:
        return f"{type(self).__name__}({str(self._dn)!r})"


class Organization(LdapObject):
    kind = ObjectKind.ORGANIZATION


class User(LdapObject):
    kind = ObjectKind.USER


class AuthenticatedUser(LdapObject):
    kind = ObjectKind.AUTHENTICATED_USER


class Role(LdapObject):
    kind = ObjectKind.ROLE


class ServiceGroup(LdapObject):
    kind = ObjectKind.SERVICE_GROUP


class ServiceContainer(LdapObject):
    kind = ObjectKind.SERVICE_CONTAINER


class WebServiceInterface(LdapObject):
    kind = ObjectKind.WEB_SERVICE_INTERFACE


class WebService(LdapObject):
    kind = ObjectKind.WEB_SERVICE


class Xsd(LdapObject):
    kind = ObjectKind.XSD


class ConnectionPoint(LdapObject):
    kind = ObjectKind.CONNECTION_POINT


class OsProcess(LdapObject):
    kind = ObjectKind.OS_PROCESS


class Dso(LdapObject):
    kind = ObjectKind.DSO


class DsoType(LdapObject):
    kind = ObjectKind.DSO_TYPE


class Package(LdapObject):
    """A loaded (runtime) package, looked up by name rather than by DN."""

    kind = ObjectKind.PACKAGE


class CordysSystem(CordysObject):
    """Root of the object graph for one Cordys installation.

    Args:
        name: System name from the configuration (also the SAML target name)
        dn: LDAP root, e.g. ``cn=cordys,cn=defaultInst,o=vanenburg.com``
        client: Transport used for remote calls (may be None in tests)
        system_org: Name of the organization that owns system-level objects
    """

    def __init__(self, name: str, dn: Union[str, IdentityPath], client: Any = None, system_org: str = "system"):
        self.name = name
        self.dn = IdentityPath.coerce(dn)
        self.client = client
        self.system_org = system_org
        self.parent = None
        self.cache = IdentityCache()
        self.cache.register(self.dn, self)

    @property
    def system(self) -> "CordysSystem":
        return self

    @property
    def system_org_dn(self) -> IdentityPath:
        return self.dn.child("o", self.system_org)

    def get_name(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"CordysSystem({self.name!r}, {str(self.dn)!r})"

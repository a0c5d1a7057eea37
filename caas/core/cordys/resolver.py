"""Materialization of LDAP entries into canonical, typed objects.

Resolving an entry means classifying it, finding its nearest modeled
ancestor and registering the new object in the system's identity cache.
Parents are found by walking up the DN one component at a time:

1. an ancestor already in the cache is the parent;
2. grouping containers (``cn=organizational users``, ``cn=soap nodes``, ...)
   are skipped;
3. ``cn=<name>,cn=cordys,...`` entries are loaded packages and are looked
   up by name;
4. anything else is fetched from LDAP and resolved recursively.
"""
from __future__ import annotations
import logging
from typing import Callable, Optional, Union

from .dn import IdentityPath
from .exceptions import OrphanEntryError, UnclassifiableEntryError
from .objects import (
    CordysObject,
    CordysSystem,
    DirectoryEntry,
    LdapObject,
    ObjectKind,
    Organization,
    Package,
)
from .registry import (
    AUTHENTICATED_USERS,
    Classification,
    classify,
    construct,
    is_package_location,
    is_synthetic,
)

logger = logging.getLogger(__name__)

MAX_PARENT_DEPTH = 64

FetchEntry = Callable[[CordysSystem, IdentityPath], Optional[DirectoryEntry]]
FindPackage = Callable[[CordysSystem, str], Optional[Package]]


class DirectoryResolver:
    """Turns DNs and raw entries into the one object per (system, DN).

    Usage:
        resolver = DirectoryResolver(
            fetch_entry=lambda system, dn: system.client.fetch_entry(dn),
            find_package=PackageService(...).find_package_by_name,
        )
        org = resolver.resolve(system, "o=acme,cn=cordys,cn=defaultInst,o=vanenburg.com")
    """

    def __init__(self, fetch_entry: FetchEntry, find_package: Optional[FindPackage] = None):
        """Initialize resolver.

        Args:
            fetch_entry: Returns the raw entry for a DN, or None when absent
            find_package: Returns the loaded package with the given name, or None
        """
        self.fetch_entry = fetch_entry
        self.find_package = find_package

    def resolve(self, system: CordysSystem, identity: Union[str, IdentityPath]) -> Optional[CordysObject]:
        """Return the canonical object for a DN, fetching it if needed.

        Args:
            system: System whose LDAP holds the entry
            identity: Entry DN

        Returns:
            The cached or newly materialized object, or None if the entry does
            not exist or belongs to a sub-tree that is not modeled

        Raises:
            MalformedIdentityError: If identity is not a valid DN
            UnclassifiableEntryError: If the entry has no known objectclass
            OrphanEntryError: If no ancestor of the entry can be resolved
            TransportError: If fetching an entry fails
        """
        dn = IdentityPath.coerce(identity)
        cached = system.cache.get(dn)
        if cached is not None:
            return cached

        with system.cache.lock:
            cached = system.cache.get(dn)
            if cached is not None:
                return cached

            entry = self.fetch_entry(system, dn)
            if entry is None:
                logger.debug("[resolver] No entry at %s", dn)
                return None

            obj = self._materialize(system, entry)
            if obj is not None and entry.dn != dn:
                obj = system.cache.register(dn, obj)
            return obj

    def resolve_entry(self, system: CordysSystem, entry: Optional[DirectoryEntry]) -> Optional[CordysObject]:
        """Return the canonical object for an already-fetched entry."""
        if entry is None:
            return None

        cached = system.cache.get(entry.dn)
        if cached is not None:
            return cached

        with system.cache.lock:
            cached = system.cache.get(entry.dn)
            if cached is not None:
                return cached
            return self._materialize(system, entry)

    def resolve_parent(self, system: CordysSystem, identity: Union[str, IdentityPath]) -> CordysObject:
        """Find the nearest modeled ancestor of a DN.

        Raises:
            OrphanEntryError: If the walk reaches the top of the DN without a parent
        """
        dn = IdentityPath.coerce(identity)

        with system.cache.lock:
            current = dn
            while len(current) > 1:
                current = current.drop_head()

                parent = system.cache.get(current)
                if parent is not None:
                    return parent

                if is_synthetic(current):
                    continue

                if self.find_package is not None and is_package_location(current):
                    name = current.local_name()
                    if name != AUTHENTICATED_USERS:
                        package = self.find_package(system, name)
                        if package is None:
                            logger.warning("[resolver] Could not find package with name %s", name)
                        elif package.dn != current:
                            logger.warning(
                                "[resolver] Package %s is registered at %s, not at %s", name, package.dn, current
                            )
                        else:
                            return system.cache.register(package.dn, package)

                # Entries can be missing when LDAP was restored from a dump
                entry = self.fetch_entry(system, current)
                if entry is None:
                    continue

                if isinstance(classify(entry), ObjectKind):
                    return self._materialize(system, entry)

        raise OrphanEntryError(str(dn))

    def get_organizational_context(self, obj: Optional[CordysObject]) -> Optional[Organization]:
        """Return the organization an object lives in.

        Walks the parent chain to the nearest Organization. Objects that live
        directly under the system belong to the system organization.

        Raises:
            OrphanEntryError: If the parent chain is deeper than MAX_PARENT_DEPTH
        """
        current = obj
        for _ in range(MAX_PARENT_DEPTH):
            if isinstance(current, Organization):
                return current
            if not isinstance(current, LdapObject):
                return self._root_organization(current)
            current = current.parent

        raise OrphanEntryError(str(getattr(obj, "dn", obj)), f"Parent chain exceeds {MAX_PARENT_DEPTH} levels")

    def _root_organization(self, root: Optional[CordysObject]) -> Optional[Organization]:
        if not isinstance(root, CordysSystem):
            return None
        org = self.resolve(root, root.system_org_dn)
        return org if isinstance(org, Organization) else None

    def _materialize(self, system: CordysSystem, entry: DirectoryEntry) -> Optional[CordysObject]:
        """Classify, attach to parent and register. Caller holds the cache lock."""
        kind = classify(entry)
        if kind is Classification.SUPPRESSED:
            logger.debug("[resolver] Skipping unmodeled entry %s", entry.dn)
            return None
        if kind is Classification.NOT_FOUND:
            raise UnclassifiableEntryError(str(entry.dn), entry.object_classes)

        parent = self.resolve_parent(system, entry.dn)
        obj = construct(kind, parent, entry.dn, entry)
        logger.debug("[resolver] Materialized %s as %s", entry.dn, kind.value)
        return system.cache.register(entry.dn, obj)

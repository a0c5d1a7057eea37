"""Loaded package lookup."""
from __future__ import annotations
import logging
import threading
import weakref
from typing import Callable, Dict, List, Optional

from .objects import CordysSystem, DirectoryEntry, Package

logger = logging.getLogger(__name__)


class PackageService:
    """Service for looking up the loaded packages of a system by name."""

    def __init__(self, list_packages: Callable[[CordysSystem], List[DirectoryEntry]]):
        """Initialize package service.

        Args:
            list_packages: Returns the package entries installed on a system
        """
        self.list_packages = list_packages
        self._lock = threading.Lock()
        # Keyed by system instance; same-named systems keep separate objects
        self._index: "weakref.WeakKeyDictionary[CordysSystem, Dict[str, Package]]" = weakref.WeakKeyDictionary()

    def find_package_by_name(self, system: CordysSystem, name: str) -> Optional[Package]:
        """Return the loaded package with the given name, or None if unknown."""
        return self._packages(system).get(name)

    def get_packages(self, system: CordysSystem) -> List[Package]:
        return sorted(self._packages(system).values(), key=lambda package: package.cn)

    def refresh(self, system: CordysSystem) -> None:
        """Drop the package index so the next lookup reloads it."""
        with self._lock:
            self._index.pop(system, None)

    def _packages(self, system: CordysSystem) -> Dict[str, Package]:
        # Same lock order as the resolver: identity cache first
        with system.cache.lock, self._lock:
            index = self._index.get(system)
            if index is not None:
                return index

            index = {}
            for entry in self.list_packages(system):
                package = system.cache.register(entry.dn, Package(system, entry.dn, entry))
                if isinstance(package, Package):
                    index[package.cn] = package
            logger.debug("[packages] %s: %d loaded package(s)", system.name, len(index))
            self._index[system] = index
            return index

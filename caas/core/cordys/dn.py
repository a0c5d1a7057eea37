"""Distinguished names of Cordys LDAP entries.

A DN is an ordered sequence of ``attr=value`` components, most specific
first, e.g. ``cn=jdoe,cn=organizational users,o=acme,cn=cordys,cn=defaultInst,o=vanenburg.com``.
Comparison is exact (case-sensitive) component by component.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Tuple, Union

from .exceptions import EmptyPathError, MalformedIdentityError

SEPARATOR = ","

Component = Tuple[str, str]


@dataclass(frozen=True)
class IdentityPath:
    """Immutable, hashable DN usable as a cache key."""

    components: Tuple[Component, ...] = ()

    @classmethod
    def parse(cls, raw: str) -> "IdentityPath":
        """Parse a comma-joined DN string.

        Args:
            raw: DN string such as ``o=acme,cn=cordys,cn=defaultInst,o=vanenburg.com``

        Returns:
            Parsed IdentityPath

        Raises:
            MalformedIdentityError: If the string is empty or a component has no ``attr=value`` shape
        """
        if raw is None or not str(raw).strip():
            raise MalformedIdentityError("DN can not be empty")

        components = []
        for part in str(raw).split(SEPARATOR):
            attr, sep, value = part.partition("=")
            attr = attr.strip()
            if not sep or not attr:
                raise MalformedIdentityError(f"Invalid DN component '{part}' in '{raw}'")
            components.append((attr, value.strip()))
        return cls(tuple(components))

    @classmethod
    def coerce(cls, value: Union[str, "IdentityPath"]) -> "IdentityPath":
        """Return value as an IdentityPath, parsing strings."""
        if isinstance(value, IdentityPath):
            return value
        return cls.parse(value)

    def head(self) -> Component:
        if not self.components:
            raise EmptyPathError("DN has no components")
        return self.components[0]

    def drop_head(self) -> "IdentityPath":
        if not self.components:
            raise EmptyPathError("DN has no components")
        return IdentityPath(self.components[1:])

    def local_name(self) -> str:
        """Value half of the head component (the entry's cn or o)."""
        return self.head()[1]

    def child(self, attr: str, value: str) -> "IdentityPath":
        return IdentityPath(((attr, value),) + self.components)

    def is_strict_suffix_of(self, other: "IdentityPath") -> bool:
        """True when this DN is a proper ancestor of ``other``."""
        n = len(self.components)
        return n < len(other.components) and other.components[len(other.components) - n:] == self.components

    def is_empty(self) -> bool:
        return not self.components

    def __len__(self) -> int:
        return len(self.components)

    def __iter__(self):
        return iter(self.components)

    def __getitem__(self, index: int) -> Component:
        return self.components[index]

    def __str__(self) -> str:
        return SEPARATOR.join(f"{attr}={value}" for attr, value in self.components)

    def __repr__(self) -> str:
        return f"IdentityPath({str(self)!r})"

"""
Module entity: one buildable unit of the dependency graph.

A module is identified solely by its identity string (name plus optional
version qualifier). Reference edges are stored as identity keys and
resolved through the ModuleRegistry.
"""

from __future__ import annotations

from enum import IntEnum

VERSION_MARKER = ", Version="


class PriorityCode(IntEnum):
    """Sentinel build priorities."""

    NOT_ANALYSED = -1
    ANALYSING = -2  # on the resolution stack
    CIRCULAR_REFERENCE = 2**31 - 1
    CIRCULAR_REFERENCE_COLLATERAL = 2**31 - 2


CIRCULAR_MARKERS = frozenset({PriorityCode.CIRCULAR_REFERENCE, PriorityCode.CIRCULAR_REFERENCE_COLLATERAL})


def make_identity(name: str, version: str | None = None) -> str:
    """Build an identity string from an assembly name and optional version."""
    if not name:
        raise ValueError("Module name must not be empty")
    if version:
        return f"{name}{VERSION_MARKER}{version}"
    return name


def partial_identity(full_name: str) -> str:
    """
    Reduce a full assembly reference to its identity.

    ``MySql.Data`` and ``MySql.Data, Version=6.8.3.0`` are already partial;
    ``MySql.Data, Version=6.8.3.0, Culture=neutral, PublicKeyToken=...``
    is cut after the version.
    """
    if full_name is None:
        raise ValueError("full_name must not be None")
    full_name = full_name.strip()
    first = full_name.find(",")
    if first == -1:
        return full_name
    second = full_name.find(",", first + 1)
    if second == -1:
        return full_name
    return full_name[:second]


def split_identity(identity: str) -> tuple[str, str | None]:
    """Split an identity back into (name, version)."""
    name, marker, version = identity.partition(VERSION_MARKER)
    return name, (version or None) if marker else None


class Module:
    """
    One buildable unit.

    Equality and hashing use ``identity`` only. ``source_path`` is empty for
    external references known only by name; those are never built.
    """

    __slots__ = ("_identity", "source_path", "build_priority", "references", "self_referenced")

    def __init__(
        self,
        identity: str,
        source_path: str = "",
        build_priority: int = PriorityCode.NOT_ANALYSED,
        references: list[str] | None = None,
        self_referenced: bool = False,
    ):
        if not identity:
            raise ValueError("Module identity must not be empty")
        self._identity = identity
        self.source_path = source_path or ""
        self.build_priority = int(build_priority)
        self.references: list[str] = []
        self.self_referenced = self_referenced
        for ref in references or []:
            self.add_reference(ref)

    @property
    def identity(self) -> str:
        return self._identity

    @property
    def name(self) -> str:
        return split_identity(self._identity)[0]

    @property
    def version(self) -> str | None:
        return split_identity(self._identity)[1]

    @property
    def is_buildable(self) -> bool:
        return bool(self.source_path)

    @property
    def is_resolved(self) -> bool:
        """True once the module holds a non-negative (depth-ordered) priority."""
        return 0 <= self.build_priority < PriorityCode.CIRCULAR_REFERENCE_COLLATERAL

    @property
    def is_circular(self) -> bool:
        return self.build_priority in CIRCULAR_MARKERS

    @property
    def is_terminal(self) -> bool:
        return self.build_priority not in (PriorityCode.NOT_ANALYSED, PriorityCode.ANALYSING)

    def add_reference(self, identity: str) -> bool:
        """
        Add an outgoing edge by identity.

        Returns False when the edge already exists. A reference to the module
        itself is not stored as an edge; it sets ``self_referenced``.
        """
        if identity == self._identity:
            self.self_referenced = True
            return False
        if identity in self.references:
            return False
        self.references.append(identity)
        return True

    def priority_label(self) -> str:
        try:
            return PriorityCode(self.build_priority).name
        except ValueError:
            return str(self.build_priority)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Module):
            return NotImplemented
        return self._identity == other._identity

    def __hash__(self) -> int:
        return hash(self._identity)

    def __repr__(self) -> str:
        return f"Module({self._identity!r}, priority={self.priority_label()})"

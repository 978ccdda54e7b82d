"""
Stagebuild exception hierarchy.

All domain-specific exceptions inherit from StagebuildError, making it easy
to catch any tool error with a single base class while still allowing
fine-grained handling when needed.

Hierarchy::

    StagebuildError
    ├── ConfigurationError        - config loading, parsing, validation
    ├── InputNotFoundError        - discovery input is neither file nor directory
    ├── DescriptionLoadError      - project/solution description cannot be loaded
    ├── CircularReferenceError    - dependency cycle found during resolution
    ├── BuildActionError          - build action raised instead of returning
    └── CacheIOError              - cache file missing, unreadable or corrupt
"""

from __future__ import annotations


class StagebuildError(Exception):
    """Base exception for all Stagebuild errors."""

    def __init__(self, message: str, *, details: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


# --- Configuration -----------------------------------------------------------


class ConfigurationError(StagebuildError):
    """Raised when configuration loading, parsing, or validation fails."""


# --- Discovery ---------------------------------------------------------------


class InputNotFoundError(StagebuildError):
    """Raised when a discovery input is neither an existing file nor directory."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Input not found: {path}", details={"path": path})
        self.path = path


class DescriptionLoadError(StagebuildError):
    """Raised when a project or solution description cannot be loaded or parsed."""

    def __init__(self, path: str, message: str, *, cause: Exception | None = None) -> None:
        super().__init__(f"Could not load '{path}': {message}", details={"path": path})
        self.path = path
        if cause is not None:
            self.__cause__ = cause


# --- Resolution --------------------------------------------------------------


class CircularReferenceError(StagebuildError):
    """Raised (reported) when a circular reference is detected.

    The message lists the cycle in traversal order, closing back on the
    module that was found on the traversal stack, e.g. ``A -> B -> A``.
    """

    SEPARATOR = " -> "

    def __init__(self, cycle: list[str]) -> None:
        super().__init__(self.SEPARATOR.join(cycle), details={"cycle": list(cycle)})
        self.cycle = list(cycle)


# --- Build -------------------------------------------------------------------


class BuildActionError(StagebuildError):
    """Raised when a build action errors out instead of reporting failure."""

    def __init__(self, identity: str, message: str, *, cause: Exception | None = None) -> None:
        super().__init__(f"Build of '{identity}' errored: {message}", details={"module": identity})
        self.identity = identity
        if cause is not None:
            self.__cause__ = cause


# --- Cache -------------------------------------------------------------------


class CacheIOError(StagebuildError):
    """Raised when the cache file cannot be read, written, or decoded."""

    def __init__(self, path: str, message: str) -> None:
        super().__init__(f"Cache '{path}': {message}", details={"path": path})
        self.path = path

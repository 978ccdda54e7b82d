"""
Graph builder: discover modules from inputs and wire their references.

An input is a project file, a solution file, or a directory scanned
recursively for project files. Discovery runs in three passes:

1. load every input, registering each project by identity and eagerly
   loading the projects it references by path;
2. link declared references into registry edges (phase ``discovering``);
3. resolve build priorities (phase ``resolving``).

A project that fails to load is reported and skipped; the rest of the
graph is still built.
"""

from __future__ import annotations

import os
from collections.abc import Iterable
from pathlib import Path

from stagebuild.core.context import RunContext
from stagebuild.core.events import Phase
from stagebuild.core.module import Module
from stagebuild.core.resolver import PriorityResolver
from stagebuild.exceptions import DescriptionLoadError, InputNotFoundError
from stagebuild.loaders.project import EXTERNAL, ModuleDescription, ProjectLoader
from stagebuild.loaders.solution import SolutionLoader
from stagebuild.utils.logging import get_logger

logger = get_logger("stagebuild.discovery")


def split_inputs(inputs: Iterable[str]) -> list[str]:
    """Expand ``a;b;c`` style arguments into individual inputs."""
    result: list[str] = []
    for item in inputs:
        result.extend(part.strip() for part in item.split(";") if part.strip())
    return result


class GraphBuilder:
    """Populates the context's registry from discovery inputs."""

    def __init__(
        self,
        context: RunContext,
        project_loader: ProjectLoader | None = None,
        solution_loader: SolutionLoader | None = None,
    ):
        self.context = context
        self.registry = context.registry
        self.channel = context.channel

        config = context.config
        self.project_patterns: list[str] = config.get("discovery.project_patterns", ["*.csproj", "*.vbproj"])
        self.solution_extensions = tuple(
            ext.lower() for ext in config.get("discovery.solution_extensions", [".sln"])
        )
        self.track_external_references: bool = bool(config.get("discovery.track_external_references", False))

        self.project_loader = project_loader or ProjectLoader()
        self.solution_loader = solution_loader or SolutionLoader(
            tuple(pattern.lstrip("*") for pattern in self.project_patterns)
        )

        # identity -> description of the project registered under it
        self._descriptions: dict[str, ModuleDescription] = {}
        # normalised project path -> identity (several paths may map to one module)
        self._paths: dict[str, str] = {}
        # paths that failed to load; not retried
        self._failed: set[str] = set()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def discover(self, inputs: Iterable[str]) -> list[str]:
        """
        Discover, link and resolve.

        Inputs that do not exist are reported on the error channel and
        skipped. Returns the list of missing inputs.
        """
        missing: list[str] = []
        for item in split_inputs(inputs):
            try:
                self.add_input(item)
            except InputNotFoundError as e:
                logger.debug(f"Skipping missing input {item}")
                self.channel.error(e)
                missing.append(item)

        self.link()
        PriorityResolver(self.context).resolve_all()
        return missing

    def add_input(self, path: str) -> None:
        """Load one input; raises InputNotFoundError if it is neither file nor directory."""
        target = Path(path)
        if target.is_file():
            if target.suffix.lower() in self.solution_extensions:
                self.add_solution(target)
            else:
                self.add_project(target)
        elif target.is_dir():
            for project in self._scan_directory(target):
                self.add_project(project)
        else:
            raise InputNotFoundError(path)

    def add_solution(self, path: str | Path) -> None:
        try:
            members = self.solution_loader.member_paths(path)
        except DescriptionLoadError as e:
            self.channel.error(e)
            return
        logger.debug(f"Solution {path}: {len(members)} project(s)")
        for member in members:
            self.add_project(member)

    def add_project(self, path: str | Path) -> Module | None:
        """
        Load a project and, before returning, every project it references by path.

        Returns the registered module (an existing one when the identity was
        already known) or None if the project could not be loaded.
        """
        first = self._load(self._key(path))
        pending = [first] if first is not None else []

        while pending:
            description = pending.pop()
            # Reverse so the first declared reference is loaded first
            for ref_path in reversed(description.internal_paths):
                key = self._key(ref_path)
                if key in self._paths or key in self._failed:
                    continue
                loaded = self._load(key)
                if loaded is not None:
                    pending.append(loaded)

        key = self._key(path)
        identity = self._paths.get(key)
        return self.registry.get(identity) if identity else None

    def link(self) -> None:
        """Turn every loaded description's declared references into registry edges."""
        modules = list(self.registry)
        total = len(modules)
        for index, module in enumerate(modules, start=1):
            self.channel.progress(Phase.DISCOVERING, module.identity, index, total)
            description = self._descriptions.get(module.identity)
            if description is None:
                continue
            for ref in description.references:
                target = self._target_identity(ref.kind, ref.target)
                if target is not None:
                    self.registry.link(module, target)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _key(self, path: str | Path) -> str:
        return os.path.normcase(os.path.abspath(str(path)))

    def _load(self, key: str) -> ModuleDescription | None:
        """Load and register one project. Returns its description if it registered a new module."""
        if key in self._paths or key in self._failed:
            return None
        try:
            description = self.project_loader.load(key)
        except DescriptionLoadError as e:
            self._failed.add(key)
            self.channel.error(e)
            return None

        self._paths[key] = description.identity
        if description.identity in self.registry:
            logger.debug(f"{key} is another path to {description.identity}")
            return None

        self.registry.add(Module(description.identity, source_path=description.path))
        self._descriptions[description.identity] = description
        logger.debug(f"Registered {description.identity} ({len(description.references)} reference(s))")
        return description

    def _target_identity(self, kind: str, target: str) -> str | None:
        if kind == EXTERNAL:
            if target in self.registry:
                return target
            if self.track_external_references:
                return self.registry.get_or_create_external(target).identity
            return None
        return self._paths.get(self._key(target))

    def _scan_directory(self, directory: Path) -> list[Path]:
        found: list[Path] = []
        for pattern in self.project_patterns:
            found.extend(sorted(p for p in directory.rglob(pattern) if p.is_file()))
        return found

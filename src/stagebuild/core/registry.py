"""
Module registry: the arena that owns every discovered module.

Modules are addressed by identity; edges between them are identity keys
looked up here, never object pointers.
"""

from __future__ import annotations

from collections.abc import Iterator

from stagebuild.core.module import Module


class ModuleRegistry:
    """Insertion-ordered set of modules keyed by identity."""

    def __init__(self, modules: list[Module] | None = None):
        self._modules: dict[str, Module] = {}
        for module in modules or []:
            self.add(module)

    def add(self, module: Module) -> Module:
        """
        Register a module.

        If a module with the same identity already exists, the existing one
        is kept and returned (the first discovery path wins).
        """
        existing = self._modules.get(module.identity)
        if existing is not None:
            return existing
        self._modules[module.identity] = module
        return module

    def get(self, identity: str) -> Module | None:
        return self._modules.get(identity)

    def __getitem__(self, identity: str) -> Module:
        return self._modules[identity]

    def get_or_create_external(self, identity: str) -> Module:
        """Return the module for ``identity``, registering an external one if unknown."""
        module = self._modules.get(identity)
        if module is None:
            module = self.add(Module(identity))
        return module

    def link(self, source: Module | str, target: Module | str) -> bool:
        """Add a reference edge ``source -> target``; both must be registered."""
        source_id = source.identity if isinstance(source, Module) else source
        target_id = target.identity if isinstance(target, Module) else target
        if target_id not in self._modules:
            raise KeyError(f"Unknown module: {target_id}")
        return self._modules[source_id].add_reference(target_id)

    def references_of(self, module: Module) -> list[Module]:
        """Resolve a module's reference identities to registered modules, in declaration order."""
        return [self._modules[ref] for ref in module.references if ref in self._modules]

    def buildable(self) -> list[Module]:
        return [m for m in self._modules.values() if m.is_buildable]

    def identities(self) -> list[str]:
        return list(self._modules)

    def __iter__(self) -> Iterator[Module]:
        return iter(list(self._modules.values()))

    def __len__(self) -> int:
        return len(self._modules)

    def __contains__(self, item: object) -> bool:
        if isinstance(item, Module):
            return item.identity in self._modules
        return item in self._modules

    def __repr__(self) -> str:
        return f"ModuleRegistry({len(self._modules)} modules)"

"""
Cache store: persist the analysed registry between analysis and build.

The cache is a single JSON document listing every module with its
identity, source path, priority, self-reference flag and reference
identities, in registry order.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any

from stagebuild.core.module import Module
from stagebuild.core.registry import ModuleRegistry
from stagebuild.exceptions import CacheIOError
from stagebuild.utils.logging import get_logger

logger = get_logger("stagebuild.cache")

CACHE_FORMAT = "stagebuild-cache"
CACHE_VERSION = 1


def registry_to_dict(registry: ModuleRegistry) -> dict[str, Any]:
    return {
        "format": CACHE_FORMAT,
        "version": CACHE_VERSION,
        "modules": [
            {
                "identity": m.identity,
                "source_path": m.source_path,
                "build_priority": m.build_priority,
                "self_referenced": m.self_referenced,
                "references": list(m.references),
            }
            for m in registry
        ],
    }


def registry_from_dict(data: Any, source: str = "<memory>") -> ModuleRegistry:
    if not isinstance(data, dict) or data.get("format") != CACHE_FORMAT:
        raise CacheIOError(source, "not a stagebuild cache")
    if data.get("version") != CACHE_VERSION:
        raise CacheIOError(source, f"unsupported cache version {data.get('version')!r}")

    entries = data.get("modules")
    if not isinstance(entries, list):
        raise CacheIOError(source, "'modules' must be a list")

    registry = ModuleRegistry()
    edges: list[tuple[Module, list[str]]] = []
    try:
        for entry in entries:
            module = Module(
                entry["identity"],
                source_path=entry.get("source_path") or "",
                build_priority=int(entry["build_priority"]),
                self_referenced=bool(entry.get("self_referenced", False)),
            )
            if module.identity in registry:
                raise CacheIOError(source, f"duplicate module identity {module.identity!r}")
            registry.add(module)
            edges.append((module, [str(ref) for ref in entry.get("references") or []]))
    except (KeyError, TypeError, ValueError) as e:
        raise CacheIOError(source, f"malformed module entry: {e}") from e

    # Edges are added once every module is known; add_reference drops duplicates and self-edges
    for module, references in edges:
        for ref in references:
            if ref not in registry:
                raise CacheIOError(source, f"{module.identity!r} references unknown module {ref!r}")
            module.add_reference(ref)
    return registry


class CacheStore:
    """Save and load a ModuleRegistry to a single file."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def save(self, registry: ModuleRegistry) -> None:
        payload = json.dumps(registry_to_dict(registry), indent=2)
        directory = self.path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", dir=directory)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(payload)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise CacheIOError(str(self.path), f"cannot write cache: {e}") from e
        logger.debug(f"Saved {len(registry)} module(s) to {self.path}")

    def load(self) -> ModuleRegistry:
        if not self.path.is_file():
            raise CacheIOError(str(self.path), "file not found")
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise CacheIOError(str(self.path), f"invalid JSON at line {e.lineno}: {e.msg}") from e
        except UnicodeDecodeError as e:
            raise CacheIOError(str(self.path), f"not UTF-8 text: {e}") from e
        except OSError as e:
            raise CacheIOError(str(self.path), f"cannot read cache: {e}") from e

        registry = registry_from_dict(data, str(self.path))
        logger.debug(f"Loaded {len(registry)} module(s) from {self.path}")
        return registry

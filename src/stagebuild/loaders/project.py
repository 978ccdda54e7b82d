"""
MSBuild project description loader.

Reads ``AssemblyName``/``Version`` properties and ``Reference`` /
``ProjectReference`` items from ``.csproj``/``.vbproj`` XML. Both the
legacy namespaced format and SDK-style projects are accepted.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

from defusedxml import ElementTree
from defusedxml.common import DefusedXmlException

from stagebuild.core.module import make_identity, partial_identity
from stagebuild.exceptions import DescriptionLoadError

EXTERNAL = "external"
INTERNAL = "internal"

ReferenceKind = Literal["external", "internal"]


@dataclass(frozen=True)
class DeclaredReference:
    """One outgoing reference: an assembly name (external) or a project path (internal)."""

    kind: ReferenceKind
    target: str


@dataclass
class ModuleDescription:
    """What a loader extracts from one project file."""

    identity: str
    path: str
    references: list[DeclaredReference] = field(default_factory=list)

    @property
    def internal_paths(self) -> list[str]:
        return [r.target for r in self.references if r.kind == INTERNAL]

    @property
    def external_names(self) -> list[str]:
        return [r.target for r in self.references if r.kind == EXTERNAL]


def _local_name(tag: str) -> str:
    # "{http://schemas.microsoft.com/developer/msbuild/2003}Reference" -> "Reference"
    return tag.rsplit("}", 1)[-1]


def normalize_path(base_dir: str | Path, relative: str) -> str:
    """Join a Windows- or POSIX-style relative path onto ``base_dir``."""
    relative = relative.strip().replace("\\", "/")
    return os.path.normpath(os.path.join(str(base_dir), relative))


class ProjectLoader:
    """Load a project file into a ModuleDescription."""

    def load(self, path: str | Path) -> ModuleDescription:
        path = Path(path)
        try:
            tree = ElementTree.parse(str(path))
        except FileNotFoundError as e:
            raise DescriptionLoadError(str(path), "file not found", cause=e) from e
        except OSError as e:
            raise DescriptionLoadError(str(path), f"cannot read file: {e}", cause=e) from e
        except (ElementTree.ParseError, DefusedXmlException) as e:
            raise DescriptionLoadError(str(path), f"malformed project XML: {e}", cause=e) from e

        root = tree.getroot()
        if _local_name(root.tag) != "Project":
            raise DescriptionLoadError(str(path), f"root element is <{_local_name(root.tag)}>, expected <Project>")

        assembly_name = ""
        version = ""
        references: list[DeclaredReference] = []
        base_dir = path.parent

        for element in root.iter():
            name = _local_name(element.tag)
            if name == "PropertyGroup":
                # <Version> also appears as Reference item metadata; only the property counts
                for prop in element:
                    text = (prop.text or "").strip()
                    if not text:
                        continue
                    if _local_name(prop.tag) == "AssemblyName":
                        assembly_name = text
                    elif _local_name(prop.tag) == "Version":
                        version = text
            elif name == "Reference":
                include = element.get("Include")
                if include:
                    ref = DeclaredReference(EXTERNAL, partial_identity(include))
                    if ref not in references:
                        references.append(ref)
            elif name == "ProjectReference":
                include = element.get("Include")
                if include:
                    ref = DeclaredReference(INTERNAL, normalize_path(base_dir, include))
                    if ref not in references:
                        references.append(ref)

        if not assembly_name:
            assembly_name = path.stem

        return ModuleDescription(
            identity=make_identity(assembly_name, version or None),
            path=str(path),
            references=references,
        )

"""
Shared fixtures: in-memory registries and on-disk project trees.
"""

from pathlib import Path

import pytest

from stagebuild.core.context import RunContext
from stagebuild.core.module import Module
from stagebuild.core.registry import ModuleRegistry

PROJECT_TEMPLATE = """<?xml version="1.0" encoding="utf-8"?>
<Project ToolsVersion="4.0" xmlns="http://schemas.microsoft.com/developer/msbuild/2003">
  <PropertyGroup>
    <OutputType>Library</OutputType>
    <AssemblyName>{name}</AssemblyName>{version}
  </PropertyGroup>
  <ItemGroup>
    <Reference Include="System" />{references}
  </ItemGroup>
  <ItemGroup>{project_references}
  </ItemGroup>
</Project>
"""


def build_registry(edges: dict[str, list[str]], buildable: bool = True) -> ModuleRegistry:
    """Registry with one module per key (in key order) and the given edges."""
    registry = ModuleRegistry()
    for name in edges:
        registry.add(Module(name, source_path=f"/src/{name}/{name}.csproj" if buildable else ""))
    for name, refs in edges.items():
        for ref in refs:
            registry.get_or_create_external(ref)
            registry.link(name, ref)
    return registry


@pytest.fixture
def make_registry():
    return build_registry


@pytest.fixture
def make_context():
    def factory(edges: dict[str, list[str]]) -> RunContext:
        return RunContext(registry=build_registry(edges))

    return factory


@pytest.fixture
def write_project(tmp_path):
    """
    Write ``<tmp>/<name>/<name>.csproj``.

    ``project_refs`` are names of sibling projects referenced by relative
    (Windows-style) path; ``assembly_refs`` become <Reference> items.
    """

    def factory(
        name: str,
        project_refs: list[str] | None = None,
        assembly_refs: list[str] | None = None,
        version: str | None = None,
        assembly_name: str | None = None,
        root: Path | None = None,
    ) -> Path:
        base = root or tmp_path
        directory = base / name
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / f"{name}.csproj"
        path.write_text(
            PROJECT_TEMPLATE.format(
                name=assembly_name or name,
                version=f"\n    <Version>{version}</Version>" if version else "",
                references="".join(f'\n    <Reference Include="{r}" />' for r in assembly_refs or []),
                project_references="".join(
                    f'\n    <ProjectReference Include="..\\{r}\\{r}.csproj" />' for r in project_refs or []
                ),
            ),
            encoding="utf-8",
        )
        return path

    return factory

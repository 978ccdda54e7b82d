"""
Solution (``.sln``) loader.

Only the ``Project(...)`` lines matter: each names a member project by a
path relative to the solution directory. Solution folders share the same
line shape, so members are filtered by extension.
"""

from __future__ import annotations

import codecs
import re
from pathlib import Path

from stagebuild.exceptions import DescriptionLoadError
from stagebuild.loaders.project import normalize_path

# Project("{FAE04EC0-...}") = "Core", "src\Core\Core.csproj", "{6B1F...}"
PROJECT_LINE = re.compile(
    r'^\s*Project\("\{[^}]*\}"\)\s*=\s*"(?P<name>[^"]*)"\s*,\s*"(?P<path>[^"]*)"\s*,\s*"\{[^}]*\}"',
    re.MULTILINE,
)

DEFAULT_PROJECT_EXTENSIONS = (".csproj", ".vbproj")


def _encoding_of(raw: bytes) -> str:
    # Visual Studio writes UTF-8 with BOM; older tools may write UTF-16
    if raw.startswith((codecs.BOM_UTF16_LE, codecs.BOM_UTF16_BE)):
        return "utf-16"
    return "utf-8-sig"


class SolutionLoader:
    """Enumerate member project paths of a solution file."""

    def __init__(self, project_extensions: tuple[str, ...] = DEFAULT_PROJECT_EXTENSIONS):
        self.project_extensions = tuple(ext.lower() for ext in project_extensions)

    def member_paths(self, path: str | Path, *, relative: bool = False) -> list[str]:
        """
        Return member project paths in declaration order.

        Paths are joined onto the solution's directory unless ``relative``.
        """
        path = Path(path)
        try:
            raw = path.read_bytes()
        except OSError as e:
            raise DescriptionLoadError(str(path), f"cannot read solution: {e}", cause=e) from e
        try:
            content = raw.decode(_encoding_of(raw))
        except UnicodeDecodeError as e:
            raise DescriptionLoadError(str(path), f"undecodable solution text: {e}", cause=e) from e

        members: list[str] = []
        for match in PROJECT_LINE.finditer(content):
            member = match.group("path").strip()
            if not member.lower().endswith(self.project_extensions):
                continue
            if relative:
                members.append(member.replace("\\", "/"))
            else:
                members.append(normalize_path(path.parent, member))

        if not members and "Microsoft Visual Studio Solution File" not in content:
            raise DescriptionLoadError(str(path), "not a solution file")
        return members

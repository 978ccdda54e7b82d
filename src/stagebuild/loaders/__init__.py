"""
Description loaders: turn project and solution files into identities and
declared references.
"""

from stagebuild.loaders.project import (
    EXTERNAL,
    INTERNAL,
    DeclaredReference,
    ModuleDescription,
    ProjectLoader,
)
from stagebuild.loaders.solution import SolutionLoader

__all__ = [
    "EXTERNAL",
    "INTERNAL",
    "DeclaredReference",
    "ModuleDescription",
    "ProjectLoader",
    "SolutionLoader",
]

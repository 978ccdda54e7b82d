"""
Stagebuild - discover the dependency graph of a multi-project codebase,
order it into build priorities and build it in dependency-correct stages.
"""

__version__ = "0.1.0"

from stagebuild.config.loader import Config, load_config
from stagebuild.core.actions import BuildSettings, CommandBuildAction
from stagebuild.core.api import analyze, build
from stagebuild.core.cache import CacheStore
from stagebuild.core.context import RunContext
from stagebuild.core.discovery import GraphBuilder
from stagebuild.core.events import BuildOutcome, Phase, StatusChannel
from stagebuild.core.flow import BuildSummary
from stagebuild.core.module import Module, PriorityCode
from stagebuild.core.registry import ModuleRegistry
from stagebuild.core.resolver import PriorityResolver
from stagebuild.core.scheduler import BuildScheduler

# Exceptions
from stagebuild.exceptions import (
    BuildActionError,
    CacheIOError,
    CircularReferenceError,
    ConfigurationError,
    DescriptionLoadError,
    InputNotFoundError,
    StagebuildError,
)

# Logging utilities
from stagebuild.utils.logging import get_logger, setup_logging

__all__ = [
    # Programmatic API
    "analyze",
    "build",
    # Core
    "Module",
    "PriorityCode",
    "ModuleRegistry",
    "RunContext",
    "GraphBuilder",
    "PriorityResolver",
    "BuildScheduler",
    "BuildSettings",
    "BuildSummary",
    "CommandBuildAction",
    "CacheStore",
    "StatusChannel",
    "Phase",
    "BuildOutcome",
    # Config
    "Config",
    "load_config",
    # Logging
    "setup_logging",
    "get_logger",
    # Exceptions
    "StagebuildError",
    "ConfigurationError",
    "InputNotFoundError",
    "DescriptionLoadError",
    "CircularReferenceError",
    "BuildActionError",
    "CacheIOError",
]

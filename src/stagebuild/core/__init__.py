"""
Core engine: module registry, graph discovery, priority resolution and
staged build scheduling.
"""

from stagebuild.core.cache import CacheStore
from stagebuild.core.context import RunContext
from stagebuild.core.discovery import GraphBuilder
from stagebuild.core.module import Module, PriorityCode
from stagebuild.core.registry import ModuleRegistry
from stagebuild.core.resolver import PriorityResolver
from stagebuild.core.scheduler import BuildScheduler

__all__ = [
    "Module",
    "PriorityCode",
    "ModuleRegistry",
    "RunContext",
    "GraphBuilder",
    "PriorityResolver",
    "BuildScheduler",
    "CacheStore",
]

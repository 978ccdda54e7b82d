"""
Programmatic API for Stagebuild.

Mirrors the two CLI modes: ``analyze`` discovers and resolves a set of
inputs and saves the cache; ``build`` loads a cache and builds it in
priority stages.
"""

from collections.abc import Iterable
from pathlib import Path

from stagebuild.config.loader import Config
from stagebuild.core.actions import BuildAction, BuildSettings
from stagebuild.core.cache import CacheStore
from stagebuild.core.context import RunContext
from stagebuild.core.discovery import GraphBuilder
from stagebuild.core.events import StatusChannel
from stagebuild.core.flow import BuildSummary
from stagebuild.core.registry import ModuleRegistry
from stagebuild.core.scheduler import BuildScheduler
from stagebuild.utils.logging import get_logger

logger = get_logger("stagebuild.api")


def analyze(
    inputs: Iterable[str],
    cache_file: str | Path | None = None,
    config: Config | None = None,
    channel: StatusChannel | None = None,
) -> tuple[ModuleRegistry, list[str]]:
    """
    Discover modules from ``inputs``, resolve their build priorities and
    optionally save the registry to ``cache_file``.

    Args:
        inputs: Project files, solution files or directories; ``a;b`` lists are split
        cache_file: Where to save the analysed registry (skipped when None)
        config: Configuration (default: built-in defaults)
        channel: Status channel receiving progress and errors

    Returns:
        Tuple of (registry, missing inputs)
    """
    context = RunContext(config=config or Config(), channel=channel or StatusChannel())
    missing = GraphBuilder(context).discover(inputs)
    logger.info(f"Analysed {len(context.registry)} module(s)")

    if cache_file is not None:
        CacheStore(cache_file).save(context.registry)
    return context.registry, missing


def build(
    cache_file: str | Path,
    config: Config | None = None,
    channel: StatusChannel | None = None,
    action: BuildAction | None = None,
    settings: BuildSettings | None = None,
    stop_on_failure: bool | None = None,
    max_workers: int | str | None = None,
) -> BuildSummary:
    """
    Load the registry saved by ``analyze`` and build it.

    Raises:
        CacheIOError: If the cache file is missing or corrupt

    Returns:
        BuildSummary(succeeded, failed, skipped)
    """
    registry = CacheStore(cache_file).load()
    context = RunContext(config=config or Config(), registry=registry, channel=channel or StatusChannel())
    scheduler = BuildScheduler(
        context,
        action=action,
        settings=settings,
        stop_on_failure=stop_on_failure,
        max_workers=max_workers,
    )
    return scheduler.build_all()

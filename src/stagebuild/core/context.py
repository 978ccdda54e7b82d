"""
Run context shared by the graph builder, resolver and scheduler.

Created once per analysis or build run and passed explicitly; nothing in
the core reads global state.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from stagebuild.config.loader import Config
from stagebuild.core.events import StatusChannel
from stagebuild.core.registry import ModuleRegistry


@dataclass
class RunContext:
    """Configuration, module registry and status channel for one run."""

    config: Config = field(default_factory=Config)
    registry: ModuleRegistry = field(default_factory=ModuleRegistry)
    channel: StatusChannel = field(default_factory=StatusChannel)

"""
Build actions: how a single module is actually built.

The scheduler only needs success or failure. Any callable taking
``(module, settings)`` and returning a bool is a valid action; it must be
safe to call concurrently for independent modules.
"""

from __future__ import annotations

import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from stagebuild.config.loader import Config
from stagebuild.core.module import Module
from stagebuild.utils.logging import get_logger

logger = get_logger("stagebuild.actions")


@dataclass(frozen=True)
class BuildSettings:
    """Build flavor and output location shared by every module of a run."""

    configuration: str = "Debug"
    platform: str = "AnyCPU"
    output_dir: str | None = None
    properties: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_config(cls, config: Config, **overrides: str | None) -> "BuildSettings":
        values = {
            "configuration": config.get("build.configuration", "Debug"),
            "platform": config.get("build.platform", "AnyCPU"),
            "output_dir": config.get("build.output_dir"),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    def msbuild_properties(self) -> dict[str, str]:
        props = {"Configuration": self.configuration, "Platform": self.platform}
        if self.output_dir:
            props["OutDir"] = self.output_dir.rstrip("/\\") + "/"
            props["OutputPath"] = self.output_dir
        props.update(self.properties)
        return props

    def prepare(self) -> None:
        """Create the output directory when one is set."""
        if self.output_dir:
            Path(self.output_dir).mkdir(parents=True, exist_ok=True)


class BuildAction(Protocol):
    def __call__(self, module: Module, settings: BuildSettings) -> bool: ...


class CommandBuildAction:
    """
    Build a module by running an external build tool on its project file.

    The command defaults to ``dotnet build``; MSBuild properties are passed
    as ``-p:Name=Value``.
    """

    def __init__(self, command: list[str] | None = None, timeout: float | None = None):
        self.command = list(command or ["dotnet", "build"])
        self.timeout = timeout

    def arguments(self, module: Module, settings: BuildSettings) -> list[str]:
        args = [*self.command, module.source_path]
        args.extend(f"-p:{name}={value}" for name, value in settings.msbuild_properties().items())
        return args

    def __call__(self, module: Module, settings: BuildSettings) -> bool:
        args = self.arguments(module, settings)
        logger.debug(f"Running: {' '.join(args)}")
        result = subprocess.run(
            args,
            cwd=str(Path(module.source_path).parent),
            capture_output=True,
            text=True,
            timeout=self.timeout,
        )
        if result.stdout:
            logger.debug(f"{module.identity} output:\n{result.stdout.rstrip()}")
        if result.returncode != 0:
            logger.error(
                f"{module.identity} failed with exit code {result.returncode}:\n"
                f"{(result.stderr or result.stdout).rstrip()}"
            )
            return False
        return True

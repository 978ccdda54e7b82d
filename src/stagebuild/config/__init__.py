"""
Configuration management.
"""

from stagebuild.config.loader import Config, load_config, resolve_max_workers

__all__ = [
    "load_config",
    "Config",
    "resolve_max_workers",
]

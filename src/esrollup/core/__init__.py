"""Core infrastructure: configuration and logging."""

from esrollup.core.config import BenchmarkSettings, RollupSettings, resolve_settings
from esrollup.core.logging import configure_logging, get_logger

__all__ = [
    "BenchmarkSettings",
    "RollupSettings",
    "configure_logging",
    "get_logger",
    "resolve_settings",
]

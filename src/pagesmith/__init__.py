"""Pagesmith package."""

from pagesmith.async_runner import run_async
from pagesmith.exceptions import (
    AsyncExecutionError,
    DependencyError,
    EngineIOError,
    InputValidationError,
    NoStructureFoundError,
    PackageError,
    SettingsError,
)
from pagesmith.logging import configure_logging, get_logger
from pagesmith.settings import Settings, get_settings

__version__ = "0.1.0"

# Initialize package logger at import time via `get_logger`.
logger = get_logger("pagesmith")

__all__ = [
    "AsyncExecutionError",
    "DependencyError",
    "EngineIOError",
    "InputValidationError",
    "NoStructureFoundError",
    "PackageError",
    "Settings",
    "SettingsError",
    "__version__",
    "configure_logging",
    "get_logger",
    "get_settings",
    "logger",
    "run_async",
]

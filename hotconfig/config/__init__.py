"""Configuration management and hot-reload functionality."""

from .errors import (
    ConfigFileMissingError,
    ConfigIOError,
    ConfigLoadError,
    ConfigManagerError,
    InvalidConfigPathError,
    WatchSetupError,
)
from .manager import ConfigManager
from .model import ConfigModel, SupportsValidate
from .watcher import ConfigChangeHandler, ConfigWatcher, WatcherState

__all__ = [
    'ConfigManager',
    'ConfigModel',
    'SupportsValidate',
    'ConfigWatcher',
    'ConfigChangeHandler',
    'WatcherState',
    'ConfigManagerError',
    'InvalidConfigPathError',
    'ConfigIOError',
    'ConfigFileMissingError',
    'ConfigLoadError',
    'WatchSetupError',
]

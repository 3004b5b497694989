"""
Live-reloadable configuration files.

Binds a configuration model to a properties file, keeps the file and the
model in sync and optionally reloads the model when the file is edited.
"""

__version__ = "0.1.0"

from .config import (
    ConfigFileMissingError,
    ConfigIOError,
    ConfigLoadError,
    ConfigManager,
    ConfigManagerError,
    ConfigModel,
    InvalidConfigPathError,
    SupportsValidate,
    WatchSetupError,
)

__all__ = [
    '__version__',
    'ConfigManager',
    'ConfigModel',
    'SupportsValidate',
    'ConfigManagerError',
    'InvalidConfigPathError',
    'ConfigIOError',
    'ConfigFileMissingError',
    'ConfigLoadError',
    'WatchSetupError',
]

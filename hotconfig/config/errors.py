"""Exceptions raised by the configuration manager."""

from dataclasses import dataclass
from typing import Optional


@dataclass(eq=False)
class ConfigManagerError(Exception):
    """Base class for configuration manager failures."""
    message: str
    config_path: Optional[str] = None

    def __str__(self) -> str:
        return self.message


class InvalidConfigPathError(ConfigManagerError, ValueError):
    """The configured path exists but is not a usable regular file."""


class ConfigIOError(ConfigManagerError):
    """Creating, reading or writing the configuration file failed."""


class ConfigFileMissingError(ConfigManagerError):
    """The configuration file disappeared before it could be saved."""


class ConfigLoadError(ConfigManagerError):
    """The file content could not be parsed or applied to the model."""


class WatchSetupError(ConfigManagerError):
    """The file watcher could not subscribe to change events."""

"""Configuration management with hot-reload functionality."""

import codecs
import logging
import os
import threading
from pathlib import Path
from typing import Callable, Dict, Generic, List, Optional, TypeVar, Union

from . import properties as props
from .errors import (
    ConfigFileMissingError,
    ConfigIOError,
    ConfigLoadError,
    ConfigManagerError,
    InvalidConfigPathError,
)
from .model import ConfigModel, SupportsValidate
from .watcher import ConfigWatcher

logger = logging.getLogger(__name__)

ModelT = TypeVar('ModelT', bound=ConfigModel)
ChangeCallback = Callable[[Dict[str, str]], None]

# Encodings that cannot hold arbitrary text; non-ASCII is written as \uXXXX escapes
_NARROW_ENCODINGS = {'iso8859-1', 'ascii'}


class ConfigManager(Generic[ModelT]):
    """Binds a configuration model to a properties file.

    On construction the file is created if missing (or validated if present)
    and loaded into the model. With ``watch=True`` external modifications
    of the file are reloaded automatically on a background observer thread.

    ``reload()`` and ``save()`` share one lock, so they never interleave with
    each other or with a reload triggered by the watcher.
    """

    def __init__(self, model: ModelT, path: Union[str, os.PathLike],
                 watch: bool = False, encoding: str = 'utf-8'):
        """Initialize ConfigManager and load the configuration file.

        Args:
            model: Configuration model populated from the file
            path: Path to the properties file; created when missing
            watch: Whether to reload the model when the file changes
            encoding: Text encoding of the properties file

        Raises:
            TypeError: If model or path is None
            InvalidConfigPathError: If path exists but is not a usable file
            ConfigIOError: If the file cannot be created or read
            ConfigLoadError: If the file content cannot be applied to the model
        """
        if model is None:
            raise TypeError("model must not be None")
        if path is None:
            raise TypeError("path must not be None")

        self._model = model
        self._path = Path(path)
        self._encoding = encoding
        self._escape_unicode = codecs.lookup(encoding).name in _NARROW_ENCODINGS
        self._lock = threading.RLock()
        self._cache: Optional[Dict[str, str]] = None
        self._change_callbacks: List[ChangeCallback] = []
        self._watcher: Optional[ConfigWatcher] = None

        self.create()
        with self._lock:
            self._reload()

        if watch:
            self._start_watcher()

    @property
    def model(self) -> ModelT:
        return self._model

    @property
    def path(self) -> Path:
        return self._path

    @property
    def encoding(self) -> str:
        return self._encoding

    @property
    def cache(self) -> Dict[str, str]:
        """Copy of the properties most recently applied to the model."""
        with self._lock:
            return dict(self._cache or {})

    @property
    def watcher(self) -> Optional[ConfigWatcher]:
        return self._watcher

    @property
    def watching(self) -> bool:
        """Whether changes to the file are currently being picked up."""
        return self._watcher is not None and self._watcher.is_alive and not self._watcher.cancelled

    def exists(self) -> bool:
        """Check whether the configuration file exists.

        Raises:
            ConfigIOError: If the path cannot be inspected
        """
        return self._inspect(Path.exists)

    def _inspect(self, check: Callable[[Path], bool]) -> bool:
        try:
            return check(self._path)
        except OSError as e:
            raise ConfigIOError(
                f"Failed to inspect configuration path {self._path}: {e}",
                config_path=str(self._path)
            ) from e

    def create(self) -> None:
        """Ensure the configuration file exists and is usable.

        Creates an empty file when nothing exists at the path. An existing
        path must be a regular, readable and writable file that is not a
        symbolic link; it is never modified here.

        Raises:
            InvalidConfigPathError: If the existing path is not usable
            ConfigIOError: If the path cannot be inspected or the file created
        """
        path = self._path
        if not self._inspect(Path.is_symlink) and not self.exists():
            try:
                with open(path, 'x', encoding=self._encoding):
                    pass
            except FileExistsError:
                # Created concurrently; fall through to validation
                pass
            except OSError as e:
                raise ConfigIOError(
                    f"Failed to create configuration file {path}: {e}",
                    config_path=str(path)
                ) from e
            else:
                logger.info(f"Created configuration file {path}")
                return

        if (self._inspect(Path.is_symlink)
                or not self._inspect(Path.is_file)
                or not os.access(path, os.R_OK | os.W_OK)):
            raise InvalidConfigPathError(
                f"Config path must be a readable and writable regular file: {path}",
                config_path=str(path)
            )

    def reload(self) -> bool:
        """Reload the model from the configuration file.

        The model is only updated when the file content differs from what
        was applied last. Failures are logged and leave the model and the
        cached properties untouched.

        Returns:
            True if the file was read successfully, False otherwise
        """
        with self._lock:
            try:
                self._reload()
                return True
            except ConfigManagerError as e:
                logger.error(
                    f"Failed to reload configuration: {e}. The model keeps its previous values.",
                    exc_info=True
                )
                return False

    def _reload(self) -> bool:
        if not self.exists():
            logger.warning(f"Configuration file {self._path} is missing, recreating it")
        self.create()

        try:
            with open(self._path, 'r', encoding=self._encoding, newline='') as f:
                text = f.read()
        except FileNotFoundError as e:
            raise ConfigIOError(
                f"Configuration file disappeared while reading: {self._path}",
                config_path=str(self._path)
            ) from e
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigIOError(
                f"Failed to read configuration file {self._path}: {e}",
                config_path=str(self._path)
            ) from e

        try:
            new_properties = props.loads(text)
        except ValueError as e:
            raise ConfigLoadError(
                f"Invalid properties syntax in {self._path}: {e}",
                config_path=str(self._path)
            ) from e

        if new_properties == self._cache:
            logger.debug(f"Configuration file {self._path} unchanged, skipping reload")
            return False

        try:
            self._model.load(dict(new_properties))
        except Exception as e:
            raise ConfigLoadError(
                f"Failed to apply configuration from {self._path}: {e}",
                config_path=str(self._path)
            ) from e
        self._validate_model()

        self._cache = new_properties
        logger.info(f"Successfully loaded configuration from {self._path}")
        self._notify_change_callbacks(new_properties)
        return True

    def save(self) -> None:
        """Write the model's current state to the configuration file.

        Raises:
            ConfigFileMissingError: If the file no longer exists
            ConfigIOError: If writing the file fails
        """
        with self._lock:
            if not self.exists():
                raise ConfigFileMissingError(
                    f"Configuration file does not exist: {self._path}",
                    config_path=str(self._path)
                )

            self._validate_model()
            text = props.dumps(self._model.to_properties(), escape_unicode=self._escape_unicode)
            try:
                data = text.encode(self._encoding)
            except UnicodeEncodeError as e:
                raise ConfigIOError(
                    f"Configuration cannot be encoded as {self._encoding}: {e}",
                    config_path=str(self._path)
                ) from e

            try:
                # r+ never creates the file, unlike w
                with open(self._path, 'r+b') as f:
                    f.truncate(0)
                    f.write(data)
            except FileNotFoundError as e:
                raise ConfigFileMissingError(
                    f"Configuration file does not exist: {self._path}",
                    config_path=str(self._path)
                ) from e
            except OSError as e:
                raise ConfigIOError(
                    f"Failed to save configuration to {self._path}: {e}",
                    config_path=str(self._path)
                ) from e

            logger.info(f"Saved configuration to {self._path}")

    def _validate_model(self) -> None:
        if not isinstance(self._model, SupportsValidate):
            return
        try:
            self._model.validate()
        except Exception as e:
            logger.warning(f"Configuration model validation failed for {self._path}: {e}", exc_info=True)

    def add_change_callback(self, callback: ChangeCallback) -> None:
        """Add callback to be notified when a reload changes the model.

        Args:
            callback: Function receiving a copy of the newly applied properties
        """
        self._change_callbacks.append(callback)

    def remove_change_callback(self, callback: ChangeCallback) -> None:
        """Remove a change callback."""
        if callback in self._change_callbacks:
            self._change_callbacks.remove(callback)

    def _notify_change_callbacks(self, new_properties: Dict[str, str]) -> None:
        for callback in list(self._change_callbacks):
            try:
                callback(dict(new_properties))
            except Exception as e:
                logger.error(f"Error in config change callback: {e}", exc_info=True)

    def _start_watcher(self) -> None:
        watcher = ConfigWatcher(self._path, self.reload, self._lock)
        if watcher.start():
            self._watcher = watcher

    def close(self, timeout: Optional[float] = None) -> None:
        """Stop watching the configuration file.

        Must not be called while holding the manager's lock from another
        reload or save.

        Raises:
            ConfigIOError: If the watch subscription could not be closed
        """
        if self._watcher is not None:
            self._watcher.stop(timeout)

    def __enter__(self) -> 'ConfigManager[ModelT]':
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"ConfigManager(path={str(self._path)!r}, watching={self.watching})"

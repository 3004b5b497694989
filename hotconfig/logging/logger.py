"""
Structured logging setup for applications using hotconfig.

The library itself only logs through ``logging.getLogger(__name__)``.
Applications call :func:`initialize_logging` (or build a
:class:`LoggerManager`) to route those records to rotating JSON log files.
"""

import json
import logging
import logging.handlers
import os
import sys
import traceback
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional

_RESERVED_ATTRS = frozenset([
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname',
    'filename', 'module', 'lineno', 'funcName', 'created', 'msecs',
    'relativeCreated', 'thread', 'threadName', 'processName',
    'process', 'getMessage', 'exc_info', 'exc_text', 'stack_info',
    'taskName', 'message', 'asctime',
])


class StructuredFormatter(logging.Formatter):
    """Custom formatter for structured logging with JSON output."""

    def __init__(self, include_extra: bool = True):
        super().__init__()
        self.include_extra = include_extra

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as structured JSON."""
        log_data = {
            'timestamp': datetime.fromtimestamp(record.created).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
            'thread': record.threadName,
        }

        if record.exc_info:
            log_data['exception'] = {
                'type': record.exc_info[0].__name__ if record.exc_info[0] else None,
                'message': str(record.exc_info[1]) if record.exc_info[1] else None,
                'traceback': traceback.format_exception(*record.exc_info)
            }

        if self.include_extra:
            extra_fields = {
                k: v for k, v in record.__dict__.items()
                if k not in _RESERVED_ATTRS
            }
            if extra_fields:
                log_data['extra'] = extra_fields

        return json.dumps(log_data, ensure_ascii=False, default=str)


class LoggerManager:
    """
    Centralized logging manager with rotation and retention policies.

    Installs a rotating main log, a separate error log and an optional
    console handler on the root logger. ``shutdown()`` removes exactly the
    handlers this manager installed.
    """

    def __init__(self,
                 log_dir: str = "logs",
                 log_level: Optional[str] = None,
                 max_file_size: int = 10 * 1024 * 1024,  # 10MB
                 backup_count: int = 30,
                 console_output: bool = True,
                 structured_format: bool = True):
        """
        Initialize logging manager.

        Args:
            log_dir: Directory for log files
            log_level: Minimum log level; defaults to $LOG_LEVEL, then INFO
            max_file_size: Maximum size per log file in bytes
            backup_count: Number of rotated files to keep
            console_output: Whether to output logs to console
            structured_format: Whether to use structured JSON format
        """
        log_level = (log_level or os.getenv('LOG_LEVEL') or 'INFO').upper()
        if not isinstance(logging.getLevelName(log_level), int):
            raise ValueError(f"Unknown log level: {log_level}")

        self.log_dir = Path(log_dir)
        self.log_level = logging.getLevelName(log_level)
        self.max_file_size = max_file_size
        self.backup_count = backup_count
        self.console_output = console_output
        self.structured_format = structured_format
        self._handlers: List[logging.Handler] = []

        self.log_dir.mkdir(parents=True, exist_ok=True)
        self._setup_logging()

        self._loggers: Dict[str, logging.Logger] = {}
        self.logger = self.get_logger(__name__)
        self.logger.info("LoggerManager initialized", extra={
            'log_dir': str(self.log_dir),
            'log_level': log_level,
            'max_file_size': max_file_size,
            'backup_count': backup_count
        })

    def _setup_logging(self) -> None:
        """Setup logging configuration with handlers and formatters."""
        root_logger = logging.getLogger()
        root_logger.setLevel(self.log_level)

        if self.structured_format:
            formatter = StructuredFormatter()
        else:
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )

        file_handler = logging.handlers.RotatingFileHandler(
            filename=self.log_dir / "hotconfig.log",
            maxBytes=self.max_file_size,
            backupCount=self.backup_count,
            encoding='utf-8'
        )
        file_handler.setLevel(self.log_level)
        self._handlers.append(file_handler)

        error_handler = logging.handlers.RotatingFileHandler(
            filename=self.log_dir / "errors.log",
            maxBytes=self.max_file_size,
            backupCount=self.backup_count,
            encoding='utf-8'
        )
        error_handler.setLevel(logging.ERROR)
        self._handlers.append(error_handler)

        if self.console_output:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setLevel(self.log_level)
            self._handlers.append(console_handler)

        for handler in self._handlers:
            handler.setFormatter(formatter)
            root_logger.addHandler(handler)

    def get_logger(self, name: str) -> logging.Logger:
        """
        Get or create a logger instance.

        Args:
            name: Logger name (typically __name__)

        Returns:
            Configured logger instance
        """
        if name not in self._loggers:
            self._loggers[name] = logging.getLogger(name)
        return self._loggers[name]

    def log_config_event(self, event_type: str, config_path: str,
                         details: Optional[Dict[str, Any]] = None,
                         level: str = "INFO") -> None:
        """
        Log configuration lifecycle events (reloads, saves, watcher changes).

        Args:
            event_type: Type of event, e.g. ``reload`` or ``save``
            config_path: Path of the configuration file concerned
            details: Event details dictionary
            level: Log level
        """
        self.logger.log(logging.getLevelName(level.upper()), f"Config event: {event_type}", extra={
            'event_type': event_type,
            'config_path': str(config_path),
            'event_details': details or {},
        })

    def cleanup_old_logs(self, retention_days: int = 30) -> int:
        """
        Clean up log files older than retention period.

        Args:
            retention_days: Number of days to retain logs

        Returns:
            Number of files removed
        """
        cutoff_date = datetime.now() - timedelta(days=retention_days)
        removed = 0

        for log_file in self.log_dir.glob("*.log*"):
            try:
                file_mtime = datetime.fromtimestamp(log_file.stat().st_mtime)
                if file_mtime < cutoff_date:
                    log_file.unlink()
                    removed += 1
                    self.logger.info(f"Cleaned up old log file: {log_file}")
            except OSError as e:
                self.logger.error(f"Failed to cleanup log file {log_file}: {e}")

        return removed

    def get_log_stats(self) -> Dict[str, Any]:
        """
        Get logging statistics.

        Returns:
            Dictionary with logging statistics
        """
        stats = {
            'log_directory': str(self.log_dir),
            'log_level': logging.getLevelName(self.log_level),
            'total_loggers': len(self._loggers),
            'log_files': []
        }

        for log_file in sorted(self.log_dir.glob("*.log*")):
            try:
                file_stat = log_file.stat()
            except OSError:
                continue
            stats['log_files'].append({
                'name': log_file.name,
                'size_bytes': file_stat.st_size,
                'modified': datetime.fromtimestamp(file_stat.st_mtime).isoformat()
            })

        return stats

    def shutdown(self) -> None:
        """Detach and close the handlers installed by this manager."""
        root_logger = logging.getLogger()
        for handler in self._handlers:
            root_logger.removeHandler(handler)
            handler.close()
        self._handlers.clear()


# Global logger manager instance
_logger_manager: Optional[LoggerManager] = None


def initialize_logging(log_dir: str = "logs",
                       log_level: Optional[str] = None,
                       **kwargs) -> LoggerManager:
    """
    Initialize global logging system.

    Replaces (and shuts down) a previously initialized manager.

    Args:
        log_dir: Directory for log files
        log_level: Minimum log level; defaults to $LOG_LEVEL, then INFO
        **kwargs: Additional LoggerManager arguments

    Returns:
        LoggerManager instance
    """
    global _logger_manager
    if _logger_manager is not None:
        _logger_manager.shutdown()
    _logger_manager = LoggerManager(log_dir=log_dir, log_level=log_level, **kwargs)
    return _logger_manager


def get_logger(name: str) -> logging.Logger:
    """
    Get logger instance from the global logger manager.

    Falls back to a plain ``logging.getLogger`` when logging has not been
    initialized, so importing code never configures handlers as a side effect.
    """
    if _logger_manager is None:
        return logging.getLogger(name)
    return _logger_manager.get_logger(name)


def shutdown_logging() -> None:
    """Shut down the global logger manager, if any."""
    global _logger_manager
    if _logger_manager is not None:
        _logger_manager.shutdown()
        _logger_manager = None

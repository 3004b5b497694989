"""
Logging setup for hotconfig applications.

Provides structured JSON logging with rotating log files. The library
modules only emit records; nothing is configured until an application
calls ``initialize_logging``.
"""

from .logger import (
    LoggerManager,
    StructuredFormatter,
    get_logger,
    initialize_logging,
    shutdown_logging,
)

__all__ = [
    'LoggerManager',
    'StructuredFormatter',
    'get_logger',
    'initialize_logging',
    'shutdown_logging',
]

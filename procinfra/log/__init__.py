"""
Logging system for procinfra.

Structured logging on top of the standard library: extra fields are
rendered as [key:value] after the message, every line carries the process
id and a path-like logger name.

Example:
    from procinfra.log import LogConfig, LoggerFactory

    lg = LoggerFactory.create_root(LogConfig.from_params("debug"))
    daemon_lg = LoggerFactory.derive(lg, ["process", "daemon"])
    daemon_lg.info("reloading", extra={"iteration": 3})
"""

from .config import LogConfig
from .constants import LogConstants
from .exceptions import InvalidLogLevelError, LogError
from .factory import LoggerFactory
from .formatters import LogFormatter, format_extra
from .logger import Logger

__all__ = [
    "InvalidLogLevelError",
    "LogConfig",
    "LogConstants",
    "LogError",
    "LogFormatter",
    "Logger",
    "LoggerFactory",
    "format_extra",
]

"""
Log formatter for the logging system.

Output layout:

    [12:34:56,789] [I] message               [key:value] [1234] [/logger]

Extra fields are sorted by key, the exception field is rendered by class
name. The process id is always shown since records from a parent and its
forked children often end up in the same stream.
"""

import logging
from typing import Any

from .config import LogConfig
from .constants import LogConstants


def _format_value(value: Any) -> str:
    if isinstance(value, BaseException):
        return value.__class__.__name__
    if isinstance(value, (list, tuple)):
        return ",".join(str(v) for v in value)
    return str(value)


def format_extra(extra: dict[str, Any] | None) -> str:
    """Render extra fields as "[key:value] ..." (empty string when none)."""
    if not extra:
        return ""
    return " ".join(f"[{key}:{_format_value(extra[key])}]" for key in sorted(extra))


class LogFormatter(logging.Formatter):
    """
    Formatter rendering structured extra fields after the message.

    Example:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(LogFormatter(LogConfig.from_params("debug")))
    """

    def __init__(self, config: LogConfig | None = None) -> None:
        self._config = config or LogConfig()
        super().__init__(LogConstants.DEFAULT_FORMAT)

    @property
    def config(self) -> LogConfig:
        return self._config

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        s = super().formatTime(record, datefmt or "%H:%M:%S")
        s += f",{int(record.msecs):03d}"
        if self._config.micros:
            micros = int((record.created % 1) * 1000000) % 1000
            s += f"{micros:03d}"
        return s

    def format(self, record: logging.LogRecord) -> str:
        head = super().format(record)
        body, sep, tail = head.partition("\n")

        extra = format_extra(getattr(record, LogConstants.EXTRA_ATTR, None))
        meta = f"[{record.process}] [{record.name}]"
        fields = f"{extra} {meta}" if extra else meta

        padding = " " * max(1, self._config.rule - len(body))
        return f"{body}{padding}{fields}{sep}{tail}"

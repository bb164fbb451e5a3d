"""
Factory for creating and configuring loggers.

Loggers are named like paths: the root is "/", derived loggers are "/a",
"/a/b" and so on. Derived loggers are lightweight views that write through
the root logger's handlers.
"""

import logging
import sys
from typing import IO, Any, cast

from .config import LogConfig
from .formatters import LogFormatter
from .logger import Logger


class LoggerFactory:
    """Factory for creating and configuring loggers."""

    @staticmethod
    def create_root(config: LogConfig, stream: IO[str] | None = None) -> Logger:
        """
        Create the "/" logger.

        Example:
            >>> lg = LoggerFactory.create_root(LogConfig.from_params("debug"))
            >>> lg.info("daemon started", extra={"pid": 1234})
            [12:34:56,789] [I] daemon started [pid:1234] [1234] [/]
        """
        return LoggerFactory.create("/", config, stream=stream)

    @staticmethod
    def create(
        name: str,
        config: LogConfig,
        stream: IO[str] | None = None,
        extra: dict[str, Any] | None = None,
    ) -> Logger:
        """
        Create a logger with its own stream handler.

        An existing logger with the same name is returned unchanged.

        Args:
            name: Logger name
            config: Logger configuration
            stream: Output stream (defaults to sys.stdout at emit time)
            extra: Fields added to every record

        Returns:
            Configured logger instance
        """
        existing = LoggerFactory._get_existing(name)
        if existing is not None:
            return existing

        lg = Logger(name, config, extra)
        handler = _StdoutHandler() if stream is None else logging.StreamHandler(stream)
        handler.setFormatter(LogFormatter(config))
        lg.addHandler(handler)
        lg.propagate = False
        lg.parent = logging.root

        logging.root.manager.loggerDict[name] = lg
        return lg

    @staticmethod
    def derive(parent: Logger, tags: str | list[str]) -> Logger:
        """
        Derive a "view" logger sharing the root's handlers.

        Examples:
            >>> root = LoggerFactory.create_root(config)
            >>> LoggerFactory.derive(root, "control").name
            '/control'
            >>> LoggerFactory.derive(root, ["process", "daemon"]).name
            '/process/daemon'

        Args:
            parent: Parent logger
            tags: Single tag or list of tags forming the hierarchy

        Returns:
            Derived logger instance
        """
        if isinstance(tags, str):
            tags = [tags]

        prefix = parent.name if parent.name == "/" else parent.name + "/"
        name = prefix + "/".join(tags)

        existing = LoggerFactory._get_existing(name)
        if existing is not None:
            return existing

        root = parent._root_logger or parent
        lg = Logger(name, parent.config, parent.extra)
        lg.setLevel(logging.NOTSET)
        lg._root_logger = root
        lg.parent = parent
        lg.propagate = False

        logging.root.manager.loggerDict[name] = lg
        return lg

    @staticmethod
    def _get_existing(name: str) -> Logger | None:
        existing = logging.root.manager.loggerDict.get(name)
        if isinstance(existing, Logger):
            return cast(Logger, existing)
        return None


class _StdoutHandler(logging.StreamHandler):  # type: ignore[type-arg]
    """
    Stream handler that always writes to the current sys.stdout.

    Daemons rebind sys.stdout when they detach, so the stream is looked up
    on every emit instead of being captured at creation time.
    """

    def __init__(self, level: int = logging.NOTSET) -> None:
        logging.Handler.__init__(self, level)

    @property  # type: ignore[override]
    def stream(self) -> IO[str]:
        return sys.stdout

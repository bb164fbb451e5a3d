"""
PID file based control strategy.

The record is a plain file holding the decimal PID of the owning process.
A missing file means nothing owns the role.
"""

import logging
import os
from pathlib import Path
from typing import Self

from ..exceptions import InvalidConfigurationError, NotRunningError, PosixError
from ..utils import is_alive, is_strict_int
from .strategy import ControlStrategy


def _validate_location(path: Path) -> None:
    """Check that path can hold a PID file, raising InvalidConfigurationError."""
    if path.exists():
        if not path.is_file():
            raise InvalidConfigurationError(
                "not a regular file, which could store a PID", path=str(path)
            )
        if not os.access(path, os.R_OK):
            raise InvalidConfigurationError("can not read PID file", path=str(path))
        if not os.access(path, os.W_OK):
            raise InvalidConfigurationError("can not write PID file", path=str(path))
        return

    parent = path.parent
    if not parent.is_dir():
        raise InvalidConfigurationError(
            "directory for PID file does not exist", path=str(parent)
        )
    if not os.access(parent, os.W_OK | os.X_OK):
        raise InvalidConfigurationError(
            "can not create PID file in directory", path=str(parent)
        )


class PidFileStrategy(ControlStrategy):
    """
    Control strategy storing the owner PID in a file.

    The PID read from the file is cached, so set_pid() followed by get_pid()
    never touches the filesystem again.

    Known limitation: liveness is probed with signal 0, so a recycled PID
    belonging to an unrelated process is reported as running.

    Example:
        control = PidFileStrategy("/var/run/worker.pid")
        if control.is_running():
            print(f"worker already running as {control.get_pid()}")
    """

    def __init__(self, path: str | os.PathLike[str], lg: logging.Logger | None = None):
        """
        Initialize storage on the given file.

        Args:
            path: PID file location
            lg: Logger instance (defaults to the module logger)

        Raises:
            InvalidConfigurationError: If path can not be used as PID storage
        """
        self._path = Path(path)
        _validate_location(self._path)
        self._lg = lg or logging.getLogger(__name__)
        self._pid: int | None = None

    @property
    def path(self) -> Path:
        """Location of the PID file."""
        return self._path

    def _read(self) -> str | None:
        try:
            return self._path.read_text()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise PosixError.from_os_error(e, "read", path=str(self._path)) from e

    def is_running(self) -> bool:
        content = self._read()
        if content is None:
            self._pid = None
            return False

        text = content.strip()
        if text.isascii() and text.isdigit():
            pid = int(text)
            if is_alive(pid):
                self._pid = pid
                return True

        self._lg.debug(
            "removing orphaned pid file",
            extra={"path": str(self._path), "content": text[:32]},
        )
        self.clear()
        return False

    def get_pid(self) -> int:
        if self._pid is None and not self.is_running():
            raise NotRunningError("no running process recorded in pid file")
        assert self._pid is not None
        return self._pid

    def set_pid(self, pid: int) -> Self:
        if not is_strict_int(pid) or pid < 1:
            raise InvalidConfigurationError("pid must be a positive integer", pid=pid)
        try:
            self._path.write_text(str(pid))
        except OSError as e:
            raise PosixError.from_os_error(e, "write", path=str(self._path)) from e
        self._pid = pid
        self._lg.debug("pid file written", extra={"path": str(self._path), "pid": pid})
        return self

    def clear(self) -> Self:
        try:
            self._path.unlink(missing_ok=True)
        except OSError as e:
            raise PosixError.from_os_error(e, "unlink", path=str(self._path)) from e
        self._pid = None
        return self

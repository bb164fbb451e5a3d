"""
Daemon processes.

Extends Process with what a long-lived service needs: a new session,
privilege drop, redetached standard streams and a run loop that reacts to
shutdown (SIGTERM) and reload (SIGHUP) requests.

State machine, all inside the forked child:

    INITIALIZING -> DAEMONIZED -> RUNNING_ITERATION* -> SHUTDOWN_REQUESTED
                                       |      ^              |
                                       v      |              v
                                   RELOAD_REQUESTED      TERMINATED
"""

from __future__ import annotations

import enum
import grp
import logging
import os
import pwd
import signal
from abc import abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, Any, Self

from ..control import PidFileStrategy
from ..exceptions import InvalidConfigurationError, PosixError
from ..utils import is_strict_int
from .base import Process
from .streams import DEV_NULL, DaemonStreams

if TYPE_CHECKING:
    from ..config import DaemonConfig


class DaemonState(enum.Enum):
    """Lifecycle states of a running daemon."""

    INITIALIZING = "initializing"
    DAEMONIZED = "daemonized"
    RUNNING_ITERATION = "running_iteration"
    RELOAD_REQUESTED = "reload_requested"
    SHUTDOWN_REQUESTED = "shutdown_requested"
    TERMINATED = "terminated"


def _validate_log_path(path: str | os.PathLike[str]) -> str:
    path = os.fspath(path)
    if path == DEV_NULL:
        return path
    if not Path(path).parent.is_dir():
        raise InvalidConfigurationError(
            "directory for log file does not exist", path=path
        )
    return path


class Daemon(Process):
    """
    Base class for daemon processes.

    Subclasses implement run(), one iteration of the service work, and may
    override the initialize(), finalize() and reload() hooks. The loop keeps
    calling initialize() -> run() -> finalize(result) until shutdown is
    requested. A reload request finishes the current iteration, calls
    reload() and resumes the loop. A reload requested before the first
    iteration or during reload() is honored the same way.

    Example:
        class Collector(Daemon):
            def initialize(self):
                self.conn = connect()

            def run(self):
                self.conn.collect()
                time.sleep(5)

            def finalize(self, result):
                self.conn.close()

        daemon = Collector(control=PidFileStrategy("/run/collector.pid"))
        daemon.set_output_log("/var/log/collector.log")
        daemon.start()
    """

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._shutdown = False
        self._reload = False
        self._state = DaemonState.INITIALIZING
        self._streams: DaemonStreams | None = None
        self._iterations = 0
        self.output_log: str = DEV_NULL
        self.error_log: str = DEV_NULL
        self.uid: int | None = None
        self.gid: int | None = None

    @classmethod
    def from_config(
        cls, config: DaemonConfig, lg: logging.Logger | None = None, **kwargs: Any
    ) -> Self:
        """
        Create a daemon configured from a DaemonConfig.

        A PidFileStrategy is attached when the config names a pid file.
        """
        if config.pid_file is not None and "control" not in kwargs:
            kwargs["control"] = PidFileStrategy(config.pid_file, lg=lg)
        daemon = cls(lg=lg, **kwargs)
        return daemon.configure(config)

    # -- configuration -----------------------------------------------------

    def configure(self, config: DaemonConfig) -> Self:
        """Apply a DaemonConfig through the validating setters."""
        self.set_output_log(config.output_log)
        self.set_error_log(config.error_log)
        if config.gid is not None:
            self.set_gid(config.gid)
        if config.uid is not None:
            self.set_uid(config.uid)
        self.set_restart_timeout(config.restart_timeout)
        return self

    def set_output_log(self, output_log: str | os.PathLike[str]) -> Self:
        """Set the file that receives stdout once daemonized."""
        self.output_log = _validate_log_path(output_log)
        return self

    def set_error_log(self, error_log: str | os.PathLike[str]) -> Self:
        """Set the file that receives stderr once daemonized."""
        self.error_log = _validate_log_path(error_log)
        return self

    def set_uid(self, uid: int) -> Self:
        """
        Set the user the daemon switches to.

        Raises:
            InvalidConfigurationError: If uid is not an integer or unknown
        """
        if not is_strict_int(uid):
            raise InvalidConfigurationError(
                f"uid must be an integer, {type(uid).__name__} given"
            )
        try:
            pwd.getpwuid(uid)
        except KeyError as e:
            raise InvalidConfigurationError("can not use UID", uid=uid) from e
        self.uid = uid
        return self

    def set_gid(self, gid: int) -> Self:
        """
        Set the group the daemon switches to.

        Raises:
            InvalidConfigurationError: If gid is not an integer or unknown
        """
        if not is_strict_int(gid):
            raise InvalidConfigurationError(
                f"gid must be an integer, {type(gid).__name__} given"
            )
        try:
            grp.getgrgid(gid)
        except KeyError as e:
            raise InvalidConfigurationError("can not use GID", gid=gid) from e
        self.gid = gid
        return self

    # -- state -------------------------------------------------------------

    def get_state(self) -> DaemonState:
        return self._state

    def get_iterations(self) -> int:
        """Number of loop iterations run so far."""
        return self._iterations

    def is_shutting_down(self) -> bool:
        return self._shutdown

    def is_reloading(self) -> bool:
        return self._reload

    def get_streams(self) -> DaemonStreams | None:
        return self._streams

    # -- daemonization -----------------------------------------------------

    def daemonize(self) -> Self:
        """
        Detach from the invoking session.

        Starts a new session, drops privileges (group first, then user) and
        redetaches the standard streams.

        Raises:
            PosixError: If any step fails; the daemon must not keep running
                with privileges it was configured to drop
        """
        try:
            os.setsid()
        except OSError as e:
            raise PosixError.from_os_error(e, "setsid") from e

        self._drop_privileges()

        self._streams = DaemonStreams(self.output_log, self.error_log)
        self._streams.attach()

        self._state = DaemonState.DAEMONIZED
        self._lg.debug(
            "daemonized",
            extra={"pid": self._pid, "uid": os.getuid(), "gid": os.getgid()},
        )
        return self

    def _drop_privileges(self) -> None:
        if self.gid is not None:
            try:
                os.setgid(self.gid)
            except OSError as e:
                raise PosixError.from_os_error(e, "setgid", gid=self.gid) from e
        if self.uid is not None:
            try:
                os.setuid(self.uid)
            except OSError as e:
                raise PosixError.from_os_error(e, "setuid", uid=self.uid) from e

    # -- loop --------------------------------------------------------------

    def main(self) -> int | None:
        self.daemonize()
        return self.loop()

    def loop(self) -> int:
        """
        Run iterations until shutdown.

        Returns:
            Result of the last iteration, or EXIT_NORMAL if there was none
        """
        result: int | None = None

        while True:
            self.checkpoint()
            # also picks up requests made before the first iteration or
            # while reload() was running
            if self._reload and (result is None or result == self.EXIT_NORMAL):
                self._state = DaemonState.RELOAD_REQUESTED
                self._reload = False
                self._shutdown = False
                self._lg.debug("reloading", extra={"iteration": self._iterations})
                self.reload()
                continue
            if self._shutdown:
                break

            self._state = DaemonState.RUNNING_ITERATION
            self._iterations += 1
            self.initialize()
            result = self.run()
            # a result asks the loop to exit
            if result is not None:
                self._shutdown = True
            self.finalize(result)

        self._state = DaemonState.SHUTDOWN_REQUESTED
        code = self.EXIT_NORMAL if result is None else result
        self._lg.debug(
            "daemon loop finished",
            extra={"iterations": self._iterations, "code": code},
        )
        self._state = DaemonState.TERMINATED
        return code

    @abstractmethod
    def run(self) -> int | None:
        """
        One iteration of the daemon work.

        Returns:
            None to keep looping, or an exit code to stop
        """

    def initialize(self) -> None:
        """Acquire per-iteration resources."""

    def finalize(self, result: int | None) -> None:
        """Release per-iteration resources; result is what run() returned."""

    def reload(self) -> None:
        """Reload configuration before the loop resumes."""

    # -- signal handling ---------------------------------------------------

    def handle_shutdown(self) -> None:
        """Request the loop to stop after the current iteration."""
        self._shutdown = True

    def handle_reload(self) -> None:
        """Request a reload: end the current iteration, then come back up."""
        self._reload = True
        self.handle_shutdown()

    def install_signal_handlers(self) -> None:
        self.register(signal.SIGTERM, self.handle_shutdown)
        self.register(signal.SIGHUP, self.handle_reload)

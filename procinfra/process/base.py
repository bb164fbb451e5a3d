"""
Basic process routines.

A Process is a handle on one operating-system process. Calling start()
forks the current interpreter; the child runs main() and exits, the parent
keeps the handle and controls the child through signals, wait() and
restart().
"""

from __future__ import annotations

import logging
import os
import sys
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any, NoReturn, Self, TypeGuard

from ..control import ControlStrategy
from ..exceptions import (
    AlreadyRunningError,
    InvalidConfigurationError,
    NotRunningError,
    PosixError,
    ProcessTimeoutError,
)
from ..utils import is_alive, is_strict_int
from .signals import SignalRegistry, SignalRequest, signal_name, validate_signal

# Sentinel meaning "use the handle's configured restart timeout"
_DEFAULT: Any = object()

# Largest status a child can report through waitpid
MAX_EXIT_CODE = 255


class Process(ABC):
    """
    Handle on a forked operating-system process.

    Subclasses implement main(), which runs inside the child. Its return value
    becomes the exit code; None means EXIT_NORMAL. An escaping exception or a
    result outside 0-255 means EXIT_FAULT.

    Signal callbacks registered with register() are fanned out in priority
    order on each delivery. Subclasses install their default callbacks by
    overriding install_signal_handlers(), which runs in the child right after
    the fork.

    Example:
        class Worker(Process):
            def main(self):
                do_work()
                return Process.EXIT_NORMAL

        worker = Worker(control=PidFileStrategy("/run/worker.pid"))
        pid = worker.start()
        ...
        worker.stop()
        code = worker.wait()
    """

    EXIT_NORMAL = 0
    EXIT_FAULT = 1

    # Seconds between liveness polls during restart()
    POLL_INTERVAL = 1.0

    def __init__(
        self,
        pid: int | None = None,
        control: ControlStrategy | None = None,
        lg: logging.Logger | None = None,
        deferred_signals: bool = False,
    ) -> None:
        """
        Initialize a process handle.

        Args:
            pid: PID of an already running process to control, or None for a
                handle that creates its process with start()
            control: Strategy recording which process owns this role
            lg: Logger instance (defaults to the module logger)
            deferred_signals: Run signal callbacks at checkpoint() instead of
                inside the OS-level handler
        """
        self._pid = pid
        self._control = control
        self._lg = lg or logging.getLogger(__name__)
        self._signals = SignalRegistry(
            self.handle, deferred=deferred_signals, lg=self._lg
        )
        self._exit_status: int | None = None
        self._restart_timeout: float | None = None

    def get_pid(self) -> int | None:
        """
        Return the process PID.

        None means the process was not started by, or attached to, this handle.
        """
        return self._pid

    def get_control(self) -> ControlStrategy | None:
        return self._control

    @property
    def signals(self) -> SignalRegistry:
        """Signal registry of this handle."""
        return self._signals

    # -- lifecycle ---------------------------------------------------------

    def start(self) -> int:
        """
        Fork and run main() in the child.

        Only the parent returns. The child exits with main()'s exit code once
        it finishes.

        Returns:
            PID of the created process

        Raises:
            AlreadyRunningError: If the control strategy reports a live owner
            PosixError: If fork() fails
        """
        if self._control is not None and self._control.is_running():
            raise AlreadyRunningError(self._control.get_pid())

        try:
            pid = os.fork()
        except OSError as e:
            raise PosixError.from_os_error(e, "fork") from e

        if pid == 0:
            self._run_child()

        self._pid = pid
        self._exit_status = None
        self._lg.debug(
            "process started", extra={"pid": pid, "class": type(self).__name__}
        )
        return pid

    def _run_child(self) -> NoReturn:
        code = self.EXIT_FAULT
        try:
            self._pid = os.getpid()
            self._exit_status = None
            if self._control is not None:
                self._control.set_pid(self._pid)
            self.install_signal_handlers()
            code = self._execute()
        finally:
            self._release_control()
            _flush_std_streams()
            os._exit(code)

    def _execute(self) -> int:
        """Run main() and map its outcome to an exit code."""
        try:
            result = self.main()
        except SystemExit as e:
            return _exit_code_of(e)
        except Exception as e:
            self._lg.error(
                "unhandled exception in process body",
                exc_info=True,
                extra={"pid": self._pid, "exception": e},
            )
            return self.EXIT_FAULT
        if result is None:
            return self.EXIT_NORMAL
        if not _is_exit_code(result):
            self._lg.error(
                "process body returned an invalid exit code",
                extra={"pid": self._pid, "result": repr(result)},
            )
            return self.EXIT_FAULT
        return result

    def _release_control(self) -> None:
        if self._control is None:
            return
        try:
            self._control.clear()
        except Exception as e:
            self._lg.error(
                "failed to clear control record",
                extra={"pid": self._pid, "exception": e},
            )

    @abstractmethod
    def main(self) -> int | None:
        """
        Process body, executed in the child.

        Returns:
            Exit code, or None for EXIT_NORMAL
        """

    def install_signal_handlers(self) -> None:
        """
        Install the default signal callbacks of this class.

        Runs in the child right after the fork. The base implementation
        installs nothing.
        """

    def restore_signal_handlers(self) -> None:
        """Reinstall the OS handlers that were active before register()."""
        self._signals.restore()

    # -- signals -----------------------------------------------------------

    def register(
        self, signum: int, callback: Callable[[], Any], priority: int = 0
    ) -> Self:
        """
        Register a signal callback.

        Args:
            signum: Signal number
            callback: Zero-argument callable
            priority: Higher priorities run first, ties run in registration order

        Returns:
            Self, for chaining

        Raises:
            InvalidConfigurationError: On invalid argument types
        """
        self._signals.register(signum, callback, priority)
        return self

    def handle(self, signum: int) -> None:
        """Run every callback registered for signum."""
        self._lg.debug("handling signal", extra={"signal": signal_name(signum)})
        self._signals.dispatch(signum)

    def checkpoint(self) -> int:
        """Run signal deliveries queued since the last checkpoint."""
        return self._signals.checkpoint()

    def signal(self, signum: int) -> Self:
        """
        Send a signal to the process.

        Raises:
            NotRunningError: If the handle has no PID
            InvalidConfigurationError: If signum is not an integer
            PosixError: If the signal can not be delivered
        """
        signum = validate_signal(signum)
        if self._pid is None:
            raise NotRunningError("process has not been started")

        try:
            os.kill(self._pid, signum)
        except OSError as e:
            raise PosixError.from_os_error(
                e, "kill", pid=self._pid, signal=signal_name(signum)
            ) from e

        self._lg.debug(
            "signal sent", extra={"pid": self._pid, "signal": signal_name(signum)}
        )
        return self

    def request(self, req: SignalRequest) -> Self:
        """Send one of the supported external requests."""
        return self.signal(int(SignalRequest(req)))

    def stop(self) -> Self:
        """Ask the process to terminate gracefully (SIGTERM)."""
        return self.request(SignalRequest.TERMINATE)

    def kill(self) -> Self:
        """Terminate the process immediately (SIGKILL)."""
        return self.request(SignalRequest.KILL)

    def hup(self) -> Self:
        """Ask the process to reload (SIGHUP)."""
        return self.request(SignalRequest.RELOAD)

    # -- status ------------------------------------------------------------

    def _reap(self) -> bool:
        """Collect the exit status if the process is our exited child."""
        assert self._pid is not None
        try:
            pid, status = os.waitpid(self._pid, os.WNOHANG)
        except ChildProcessError:
            return False
        if pid == 0:
            return False
        self._exit_status = os.waitstatus_to_exitcode(status)
        return True

    def is_running(self) -> bool:
        """
        Check whether the process is alive.

        An exited child of the calling process is reaped here, so it is not
        reported as running while it lingers as a zombie.
        """
        if self._pid is None:
            return False
        if self._exit_status is not None or self._reap():
            return False
        return is_alive(self._pid)

    def wait(self, block: bool = True) -> int | None:
        """
        Wait for the process to end.

        Args:
            block: Wait until the process ends, or only check once

        Returns:
            Exit code (negative signal number if killed by a signal), or None
            if block is False and the process is still running

        Raises:
            NotRunningError: If the handle has no PID
            PosixError: If waitpid() fails, e.g. for a process that is not a
                child of the caller
        """
        if self._pid is None:
            raise NotRunningError("process has not been started")
        if self._exit_status is not None:
            return self._exit_status

        try:
            pid, status = os.waitpid(self._pid, 0 if block else os.WNOHANG)
        except OSError as e:
            raise PosixError.from_os_error(e, "waitpid", pid=self._pid) from e

        if pid == 0:
            return None
        self._exit_status = os.waitstatus_to_exitcode(status)
        self._lg.debug(
            "process ended", extra={"pid": self._pid, "code": self._exit_status}
        )
        return self._exit_status

    # -- restart -----------------------------------------------------------

    def set_restart_timeout(self, timeout: float | None) -> Self:
        """
        Set the default restart window.

        Args:
            timeout: Seconds to wait for the old process, None to wait forever

        Raises:
            InvalidConfigurationError: If timeout is not a non-negative number
        """
        self._restart_timeout = _validate_timeout(timeout)
        return self

    def get_restart_timeout(self) -> float | None:
        return self._restart_timeout

    def restart(self, timeout: float | None = _DEFAULT) -> int:
        """
        Stop the process, wait for it to exit, then start it again.

        The timeout only bounds the wait for the old process; its own
        shutdown handling is never cut short. If the process is not running
        the stop step is skipped.

        Args:
            timeout: Seconds to wait for the old process (None waits forever,
                default is the handle's restart timeout)

        Returns:
            PID of the new process

        Raises:
            InvalidConfigurationError: If timeout is not a non-negative number
            ProcessTimeoutError: If the old process is still running at the
                deadline; no new process is started
        """
        if timeout is _DEFAULT:
            timeout = self._restart_timeout
        else:
            timeout = _validate_timeout(timeout)
        deadline = None if timeout is None else time.monotonic() + timeout

        if self.is_running():
            self.stop()

        while self.is_running():
            if deadline is None:
                time.sleep(self.POLL_INTERVAL)
                continue

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                self._lg.warning(
                    "process did not stop in time",
                    extra={"pid": self._pid, "timeout": timeout},
                )
                raise ProcessTimeoutError(self._pid, timeout)
            time.sleep(min(self.POLL_INTERVAL, remaining))

        self._lg.debug("restarting process", extra={"pid": self._pid})
        return self.start()


def _validate_timeout(timeout: Any) -> float | None:
    if timeout is None:
        return None
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)):
        raise InvalidConfigurationError(
            f"timeout must be a number, {type(timeout).__name__} given"
        )
    if timeout < 0:
        raise InvalidConfigurationError("timeout must not be negative", timeout=timeout)
    return timeout


def _exit_code_of(exc: SystemExit) -> int:
    if exc.code is None:
        return Process.EXIT_NORMAL
    if _is_exit_code(exc.code):
        return exc.code
    return Process.EXIT_FAULT


def _is_exit_code(value: Any) -> TypeGuard[int]:
    # waitpid only reports the low 8 bits of the status
    return is_strict_int(value) and 0 <= value <= MAX_EXIT_CODE


def _flush_std_streams() -> None:
    for stream in (sys.stdout, sys.stderr):
        # may already be closed by the process body
        try:
            if stream is not None:
                stream.flush()
        except (OSError, ValueError):
            pass


"""
Unified exception hierarchy for the process supervision framework.

Every error raised by procinfra derives from ProcError, so callers can catch
all framework failures with a single except clause while still being able to
tell the specific kinds apart (bad configuration, failed OS call, duplicate
instance, missing process, restart timeout).
"""

import errno as errno_codes
import os
from typing import Any


class ProcError(Exception):
    """
    Base exception for all procinfra errors.

    Example:
        try:
            daemon.start()
        except ProcError as e:
            lg.error("failed to start daemon", extra={"exception": e})
    """

    def __init__(self, message: str, **context: Any) -> None:
        """
        Initialize the exception with a message and optional context.

        Args:
            message: Human-readable error message
            **context: Additional context information (stored in self.context)
        """
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        """String representation with context if available."""
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} ({context_str})"
        return self.message


class InvalidConfigurationError(ProcError, ValueError):
    """
    Raised for unusable inputs.

    Examples:
        - Non-integer signal number or priority
        - Callback that is not callable
        - PID file location that cannot be read or written
        - Unknown user or group id
    """

    pass


class ConfigError(InvalidConfigurationError):
    """Raised when a configuration file cannot be loaded or parsed."""

    pass


class PosixError(ProcError, OSError):
    """
    Raised when an underlying OS primitive fails.

    Covers fork, kill, waitpid, setsid, setuid/setgid and signal subscription.
    The original errno is preserved so callers can still branch on it.
    """

    def __init__(
        self,
        message: str | None = None,
        errno: int | None = None,
        operation: str | None = None,
        **context: Any,
    ) -> None:
        if errno is None:
            errno = errno_codes.EIO
        strerror = os.strerror(errno)
        if operation is not None:
            context = {"operation": operation, **context}
        super().__init__(message or strerror, **context)
        # OSError.__init__ is bypassed by ProcError, set its fields directly
        self.errno = errno
        self.strerror = strerror
        self.operation = operation

    @classmethod
    def from_os_error(
        cls, err: OSError, operation: str, **context: Any
    ) -> "PosixError":
        """Wrap an OSError raised by the os module."""
        code = err.errno if err.errno is not None else errno_codes.EIO
        return cls(
            f"{operation} failed: {os.strerror(code)}",
            errno=code,
            operation=operation,
            **context,
        )


class AlreadyRunningError(ProcError):
    """Raised by start() when the control strategy reports a live owner."""

    def __init__(self, pid: int) -> None:
        self.pid = pid
        super().__init__(f"process is already running with PID {pid}", pid=pid)

    def get_pid(self) -> int:
        return self.pid


class NotRunningError(ProcError):
    """Raised when a process identity is requested but no live process is known."""

    def __init__(self, message: str = "process is not running", pid: int | None = None):
        self.pid = pid
        if pid is None:
            super().__init__(message)
        else:
            super().__init__(message, pid=pid)


class ProcessTimeoutError(ProcError, TimeoutError):
    """Raised by restart() when the old process does not exit before the deadline."""

    def __init__(self, pid: int | None, timeout: float | None = None) -> None:
        self.pid = pid
        self.timeout = timeout
        super().__init__(
            f"timeout while waiting for process with PID {pid} to react",
            pid=pid,
            timeout=timeout,
        )

    def get_pid(self) -> int | None:
        return self.pid

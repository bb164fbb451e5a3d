"""
Control strategy interface.

A control strategy is the durable, external record of which process
currently owns a role. Process handles consult it before forking to avoid
duplicate instances, and the forked child announces itself through it.
"""

from abc import ABC, abstractmethod
from typing import Self


class ControlStrategy(ABC):
    """
    Interface for process ownership bookkeeping.

    Implementations must keep one invariant: when is_running() returns True,
    get_pid() returns the owner's PID without raising.

    Storage is assumed to have a single writer at a time (the process that
    owns the role). Readers tolerate staleness because liveness is
    re-checked on every is_running() call.
    """

    @abstractmethod
    def is_running(self) -> bool:
        """Check whether the recorded owner is alive, cleaning up orphans."""

    @abstractmethod
    def get_pid(self) -> int:
        """
        Return the PID of the running owner.

        Raises:
            NotRunningError: If no live owner is recorded
        """

    @abstractmethod
    def set_pid(self, pid: int) -> Self:
        """Record pid as the current owner."""

    @abstractmethod
    def clear(self) -> Self:
        """Forget the current owner."""

"""
Signal registry for process handles.

Signal subscription is process-wide: the OS keeps exactly one handler per
signal number. The registry funnels every subscription of a process handle
through a single dispatch point and fans each delivery out to any number of
callbacks, ordered by priority.

Delivery modes:
    immediate  Python runs the OS-level handler between bytecodes of the main
               thread, and the registry invokes the callbacks right there.
    deferred   The OS-level handler only queues the signal number. Callbacks
               run when the owner calls checkpoint(), for example once per
               loop iteration.
"""

from __future__ import annotations

import bisect
import collections
import enum
import itertools
import logging
import signal
from collections.abc import Callable
from dataclasses import dataclass, field
from types import FrameType
from typing import Any

from ..exceptions import InvalidConfigurationError, PosixError
from ..utils import is_strict_int


class SignalRequest(enum.IntEnum):
    """External requests a supervised process understands."""

    TERMINATE = signal.SIGTERM
    KILL = signal.SIGKILL
    RELOAD = signal.SIGHUP


@dataclass(frozen=True)
class SignalHandlerEntry:
    """
    A callback registered for one signal.

    Entries sort by descending priority, then by registration sequence, so
    among equal priorities the callback registered first runs first.
    """

    priority: int
    sequence: int
    callback: Callable[[], Any] = field(compare=False)

    @property
    def sort_key(self) -> tuple[int, int]:
        return (-self.priority, self.sequence)


def validate_signal(signum: Any) -> int:
    """Validate a signal number, returning it as a plain int."""
    if not is_strict_int(signum):
        raise InvalidConfigurationError(
            f"signal must be an integer, {type(signum).__name__} given"
        )
    return int(signum)


def signal_name(signum: int) -> str:
    """Readable name for a signal number (falls back to the number)."""
    try:
        return signal.Signals(signum).name
    except ValueError:
        return str(signum)


class SignalRegistry:
    """
    Per-handle table of signal callbacks.

    Keeps explicit bookkeeping of which signals are subscribed at the OS
    level, so registering a second callback for the same signal never
    installs a second OS handler. The handler that was active before the
    first subscription is remembered and can be put back with restore().

    Example:
        registry = SignalRegistry()
        registry.register(signal.SIGUSR1, flush_buffers, priority=10)
        registry.register(signal.SIGUSR1, rotate_logs)
        # on SIGUSR1: flush_buffers(), then rotate_logs()
    """

    def __init__(
        self,
        on_signal: Callable[[int], None] | None = None,
        deferred: bool = False,
        lg: logging.Logger | None = None,
    ) -> None:
        """
        Initialize the registry.

        Args:
            on_signal: Called with the signal number on each delivery
                (defaults to dispatch). Process handles pass their handle()
                method so subclasses can intercept deliveries.
            deferred: Queue deliveries until checkpoint() instead of running
                callbacks inside the OS-level handler.
            lg: Logger instance (defaults to the module logger)
        """
        self._on_signal = on_signal or self.dispatch
        self._deferred = deferred
        self._lg = lg or logging.getLogger(__name__)
        self._entries: dict[int, list[SignalHandlerEntry]] = {}
        self._original_handlers: dict[int, Any] = {}
        self._pending: collections.deque[int] = collections.deque()
        self._sequence = itertools.count()

    @property
    def deferred(self) -> bool:
        return self._deferred

    def is_subscribed(self, signum: int) -> bool:
        """Check whether an OS-level handler is installed for signum."""
        return signum in self._original_handlers

    def subscribed(self) -> list[int]:
        """Signal numbers currently subscribed at the OS level."""
        return list(self._original_handlers)

    def callbacks(self, signum: int) -> list[Callable[[], Any]]:
        """Callbacks for signum in the order they will run."""
        return [entry.callback for entry in self._entries.get(signum, [])]

    def register(
        self, signum: int, callback: Callable[[], Any], priority: int = 0
    ) -> SignalRegistry:
        """
        Register a zero-argument callback for a signal.

        The first registration for a signal subscribes to it at the OS level.

        Args:
            signum: Signal number
            callback: Zero-argument callable run on each delivery
            priority: Higher priorities run first

        Returns:
            Self, for chaining

        Raises:
            InvalidConfigurationError: On invalid argument types, or when the
                signal can not be subscribed from this thread
            PosixError: When the OS refuses the subscription
        """
        signum = validate_signal(signum)
        if not callable(callback):
            raise InvalidConfigurationError("callback is not callable")
        if not is_strict_int(priority):
            raise InvalidConfigurationError(
                f"priority must be an integer, {type(priority).__name__} given"
            )

        if not self.is_subscribed(signum):
            self._subscribe(signum)

        entry = SignalHandlerEntry(priority, next(self._sequence), callback)
        bisect.insort(
            self._entries.setdefault(signum, []),
            entry,
            key=lambda e: e.sort_key,
        )
        return self

    def _subscribe(self, signum: int) -> None:
        try:
            original = signal.signal(signum, self._handle_os_signal)
        except ValueError as e:
            raise InvalidConfigurationError(
                f"can not subscribe to signal: {e}", signal=signum
            ) from e
        except OSError as e:
            raise PosixError.from_os_error(e, "signal", signal=signum) from e

        self._original_handlers[signum] = original
        self._lg.debug("subscribed to signal", extra={"signal": signal_name(signum)})

    def _handle_os_signal(self, signum: int, frame: FrameType | None) -> None:
        if self._deferred:
            self._pending.append(signum)
        else:
            self._on_signal(signum)

    def dispatch(self, signum: int) -> None:
        """Run every callback registered for signum, in priority order."""
        # copy so callbacks may register further handlers
        for entry in list(self._entries.get(signum, ())):
            entry.callback()

    def pending(self) -> int:
        """Number of deliveries waiting for the next checkpoint."""
        return len(self._pending)

    def checkpoint(self) -> int:
        """
        Run queued deliveries in arrival order.

        Returns:
            Number of deliveries processed
        """
        count = 0
        while self._pending:
            self._on_signal(self._pending.popleft())
            count += 1
        return count

    def restore(self) -> None:
        """Reinstall the handlers that were active before subscribing."""
        for signum, original in list(self._original_handlers.items()):
            try:
                signal.signal(signum, original)
            except (ValueError, OSError, TypeError) as e:
                self._lg.warning(
                    "failed to restore signal handler",
                    extra={"signal": signal_name(signum), "error": str(e)},
                )
                continue
            del self._original_handlers[signum]
        self._entries.clear()
        self._pending.clear()

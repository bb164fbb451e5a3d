"""
Process variants driven by a callback or a tick loop.

CallbackProcess runs a single callable in the child. ContinuousProcess and
ContinuousCallbackProcess call a tick function over and over until SIGTERM
arrives or a tick returns an exit code.
"""

from __future__ import annotations

import logging
import signal
from abc import abstractmethod
from collections.abc import Callable
from typing import Any, Self

from ..control import ControlStrategy
from ..exceptions import InvalidConfigurationError
from .base import Process


class CallbackProcess(Process):
    """
    Process running a callable as its body.

    Exceptions raised by the callback are reported through the exit code
    EXIT_CALLBACK_EXCEPTION.

    Example:
        proc = CallbackProcess(lambda: sync_files("/srv/data"))
        proc.start()
        code = proc.wait()
    """

    EXIT_CALLBACK_EXCEPTION = Process.EXIT_FAULT

    def __init__(
        self,
        callback: Callable[[], int | None] | None = None,
        pid: int | None = None,
        control: ControlStrategy | None = None,
        lg: logging.Logger | None = None,
        deferred_signals: bool = False,
    ) -> None:
        super().__init__(
            pid=pid, control=control, lg=lg, deferred_signals=deferred_signals
        )
        self._callback: Callable[[], int | None] | None = None
        if callback is not None:
            self.set_callback(callback)

    def set_callback(self, callback: Callable[[], int | None]) -> Self:
        """
        Set the process body.

        Raises:
            InvalidConfigurationError: If callback is not callable
        """
        if not callable(callback):
            raise InvalidConfigurationError("callback is not callable")
        self._callback = callback
        return self

    def get_callback(self) -> Callable[[], int | None] | None:
        return self._callback

    def _call(self) -> int | None:
        if self._callback is None:
            raise InvalidConfigurationError("no callback set")
        return self._callback()

    def main(self) -> int | None:
        try:
            return self._call()
        except Exception as e:
            self._lg.error("callback failed", exc_info=True, extra={"exception": e})
            return self.EXIT_CALLBACK_EXCEPTION


class _TickLoop:
    """Shutdown flag and tick loop shared by the continuous variants."""

    # mixed into Process subclasses, which provide checkpoint() and tick()
    _shutdown: bool
    _lg: logging.Logger

    def handle_shutdown(self) -> None:
        """Stop looping after the current tick."""
        self._shutdown = True

    def is_shutting_down(self) -> bool:
        return self._shutdown

    def _loop(self) -> int:
        while True:
            self.checkpoint()  # type: ignore[attr-defined]
            if self._shutdown:
                break
            result = self.tick()  # type: ignore[attr-defined]
            # a return value means the tick wants the process to exit
            if result is not None:
                return int(result)

        self._lg.debug("tick loop stopped on shutdown request")
        return Process.EXIT_NORMAL


class ContinuousProcess(_TickLoop, Process):
    """
    Process calling tick() until asked to stop.

    SIGTERM sets the shutdown flag; the loop checks it before each tick.

    Example:
        class Poller(ContinuousProcess):
            def tick(self):
                poll_queue()
                time.sleep(1)
    """

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._shutdown = False

    @abstractmethod
    def tick(self) -> int | None:
        """One unit of work; a non-None result ends the process with that code."""

    def main(self) -> int | None:
        return self._loop()

    def install_signal_handlers(self) -> None:
        self.register(signal.SIGTERM, self.handle_shutdown)


class ContinuousCallbackProcess(_TickLoop, CallbackProcess):
    """
    Process calling a callback in a loop until asked to stop.

    Any exception escaping the callback ends the process with
    EXIT_CALLBACK_EXCEPTION.
    """

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._shutdown = False

    def tick(self) -> int | None:
        return self._call()

    def main(self) -> int | None:
        try:
            return self._loop()
        except Exception as e:
            self._lg.error("callback failed", exc_info=True, extra={"exception": e})
            return self.EXIT_CALLBACK_EXCEPTION

    def install_signal_handlers(self) -> None:
        self.register(signal.SIGTERM, self.handle_shutdown)

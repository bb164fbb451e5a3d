"""
Shared-memory control strategy.

Keeps the owner PID in a multiprocessing.Value. The value lives in an
anonymous shared mapping, so a parent and every child it forks afterwards
see the same record without touching the filesystem. It does not outlive
the process tree, which makes it a fit for supervisors and tests rather
than for system-wide single-instance guarantees.
"""

import logging
import multiprocessing as mp
from typing import Self

from ..exceptions import InvalidConfigurationError, NotRunningError
from ..utils import is_alive, is_strict_int
from .strategy import ControlStrategy

# Stored value meaning "no record"
_EMPTY = 0


class MemoryStrategy(ControlStrategy):
    """
    Control strategy backed by shared memory.

    Must be created before the processes that share it are forked.

    Example:
        control = MemoryStrategy()
        worker = MyProcess(control=control)
        worker.start()
    """

    def __init__(self, lg: logging.Logger | None = None) -> None:
        self._lg = lg or logging.getLogger(__name__)
        self._value = mp.get_context("fork").Value("q", _EMPTY)
        self._pid: int | None = None

    def _load(self) -> int:
        with self._value.get_lock():
            return int(self._value.value)

    def _store(self, pid: int) -> None:
        with self._value.get_lock():
            self._value.value = pid

    def is_running(self) -> bool:
        pid = self._load()
        if pid == _EMPTY:
            self._pid = None
            return False
        if is_alive(pid):
            self._pid = pid
            return True

        self._lg.debug("dropping orphaned pid record", extra={"pid": pid})
        self.clear()
        return False

    def get_pid(self) -> int:
        if self._pid is None and not self.is_running():
            raise NotRunningError("no running process recorded")
        assert self._pid is not None
        return self._pid

    def set_pid(self, pid: int) -> Self:
        if not is_strict_int(pid) or pid < 1:
            raise InvalidConfigurationError("pid must be a positive integer", pid=pid)
        self._store(pid)
        self._pid = pid
        return self

    def clear(self) -> Self:
        self._store(_EMPTY)
        self._pid = None
        return self

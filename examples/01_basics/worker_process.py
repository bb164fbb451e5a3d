#!/usr/bin/env python3
"""
Worker Process Example

Forks a worker that counts in a loop, sends it a custom signal handled by
two prioritized callbacks, then restarts and finally stops it.

What This Example Demonstrates:
- ContinuousProcess with a tick() body
- Registering extra signal callbacks with priorities
- restart() with a timeout
- Reading the exit code with wait()

Running the Example:
    python examples/01_basics/worker_process.py
"""

import os
import pathlib
import signal
import sys
import time

# Add the project root to the path (examples/01_basics/file.py -> project root is 2 levels up)
project_root = str(pathlib.Path(__file__).resolve().parents[2])
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from procinfra import ContinuousProcess, ProcessTimeoutError
from procinfra.log import LogConfig, LoggerFactory


class Counter(ContinuousProcess):
    """Counts once per tick and reports on SIGUSR1."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.count = 0

    def install_signal_handlers(self):
        super().install_signal_handlers()
        self.register(signal.SIGUSR1, self.report, priority=10)
        self.register(signal.SIGUSR1, self.reset)

    def report(self):
        self._lg.info("count requested", extra={"count": self.count})

    def reset(self):
        self.count = 0

    def tick(self):
        self.count += 1
        time.sleep(0.1)


def main():
    lg = LoggerFactory.create_root(LogConfig.from_params("debug"))
    worker = Counter(lg=LoggerFactory.derive(lg, "counter"))
    worker.set_restart_timeout(5)

    pid = worker.start()
    lg.info("worker started", extra={"pid": pid, "parent": os.getpid()})
    time.sleep(1)

    worker.signal(signal.SIGUSR1)
    time.sleep(0.5)

    try:
        pid = worker.restart()
    except ProcessTimeoutError as e:
        lg.error("worker did not stop", extra={"exception": e})
        worker.kill()
        return 1
    lg.info("worker restarted", extra={"pid": pid})

    time.sleep(0.5)
    worker.stop()
    code = worker.wait()
    lg.info("worker finished", extra={"code": code})
    return code


if __name__ == "__main__":
    sys.exit(main())

"""
Standard stream redetachment for daemons.

A daemon must not keep the streams it inherited from the invoking terminal.
DaemonStreams opens the replacement files, points file descriptors 0, 1 and
2 at them and rebinds sys.stdin, sys.stdout and sys.stderr. The instance
owns the open files; whoever detaches must keep it alive for as long as the
process runs, or the descriptors go away with it.
"""

from __future__ import annotations

import os
import sys
from typing import IO

from ..exceptions import PosixError

DEV_NULL = os.devnull


class DaemonStreams:
    """
    Owned replacement streams for stdin, stdout and stderr.

    Example:
        streams = DaemonStreams("/var/log/app.out", "/var/log/app.err")
        streams.attach()
        print("goes to /var/log/app.out")
    """

    def __init__(self, output_log: str = DEV_NULL, error_log: str = DEV_NULL):
        self.output_log = output_log
        self.error_log = error_log
        self._stdin: IO[str] | None = None
        self._stdout: IO[str] | None = None
        self._stderr: IO[str] | None = None

    @property
    def attached(self) -> bool:
        return self._stdout is not None

    def attach(self) -> None:
        """
        Replace the process standard streams.

        stdin reads from /dev/null; stdout and stderr append to the
        configured logs, line buffered.

        Raises:
            PosixError: If a log can not be opened or a descriptor not replaced
        """
        _flush(sys.stdout)
        _flush(sys.stderr)

        try:
            self._stdin = open(DEV_NULL)
            self._stdout = open(self.output_log, "a", buffering=1)
            self._stderr = open(self.error_log, "a", buffering=1)
        except OSError as e:
            self.close()
            raise PosixError.from_os_error(
                e, "open", output_log=self.output_log, error_log=self.error_log
            ) from e

        try:
            os.dup2(self._stdin.fileno(), 0)
            os.dup2(self._stdout.fileno(), 1)
            os.dup2(self._stderr.fileno(), 2)
        except OSError as e:
            self.close()
            raise PosixError.from_os_error(e, "dup2") from e

        sys.stdin = self._stdin
        sys.stdout = self._stdout
        sys.stderr = self._stderr

    def close(self) -> None:
        """Close the owned files."""
        for stream in (self._stdin, self._stdout, self._stderr):
            if stream is not None and not stream.closed:
                stream.close()
        self._stdin = self._stdout = self._stderr = None


def _flush(stream: IO[str] | None) -> None:
    if stream is None or stream.closed:
        return
    stream.flush()

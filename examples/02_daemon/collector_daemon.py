#!/usr/bin/env python3
"""
Collector Daemon Example

A daemon configured from collector.yaml that appends a sample to its output
log every second. Controlled from the command line through its PID file.

Running the Example:
    python examples/02_daemon/collector_daemon.py start
    python examples/02_daemon/collector_daemon.py reload
    python examples/02_daemon/collector_daemon.py stop

    # override a setting without editing the YAML file
    PROCINFRA_DAEMON_RESTART_TIMEOUT=3 python examples/02_daemon/collector_daemon.py restart

Output goes to the files named in collector.yaml.
"""

import argparse
import os
import pathlib
import sys
import time

# Add the project root to the path (examples/02_daemon/file.py -> project root is 2 levels up)
project_root = str(pathlib.Path(__file__).resolve().parents[2])
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from procinfra import (
    AlreadyRunningError,
    Daemon,
    NotRunningError,
    ProcError,
    load_config,
)
from procinfra.log import LoggerFactory

CONFIG_FILE = pathlib.Path(__file__).with_name("collector.yaml")


class Collector(Daemon):
    """Writes one sample per iteration; reload re-reads the config file."""

    def initialize(self):
        self.started = time.monotonic()

    def run(self):
        load = os.getloadavg()[0]
        print(f"sample iteration={self.get_iterations()} load={load:.2f}")
        time.sleep(1)

    def finalize(self, result):
        self._lg.trace(
            "iteration done", extra={"secs": round(time.monotonic() - self.started, 3)}
        )

    def reload(self):
        self.configure(load_config(CONFIG_FILE))
        print("configuration reloaded")


def main():
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument(
        "command", choices=["start", "stop", "reload", "restart", "status"]
    )
    args = parser.parse_args()

    config = load_config(CONFIG_FILE)
    lg = LoggerFactory.create_root(config.logging)
    daemon = Collector.from_config(config, lg=LoggerFactory.derive(lg, "collector"))
    control = daemon.get_control()

    try:
        if args.command == "start":
            lg.info("collector started", extra={"pid": daemon.start()})
            return 0

        # attach the handle to the running instance
        daemon = Collector.from_config(config, lg=lg, pid=control.get_pid())
        if args.command == "status":
            lg.info("collector running", extra={"pid": daemon.get_pid()})
        elif args.command == "stop":
            daemon.stop()
        elif args.command == "reload":
            daemon.hup()
        elif args.command == "restart":
            lg.info("collector restarted", extra={"pid": daemon.restart()})
    except AlreadyRunningError as e:
        lg.error("collector already running", extra={"pid": e.get_pid()})
        return 1
    except NotRunningError:
        lg.error("collector is not running")
        return 1
    except ProcError as e:
        lg.error("command failed", extra={"exception": e, "command": args.command})
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())

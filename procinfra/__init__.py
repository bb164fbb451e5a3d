"""
procinfra - process supervision for POSIX systems.

Fork and control child processes, fan signals out to prioritized callbacks,
keep single-instance bookkeeping in a PID file and turn a unit of work into
a daemon that reacts to shutdown and reload requests.

Example:
    from procinfra import Daemon, PidFileStrategy

    class Collector(Daemon):
        def run(self):
            collect()
            time.sleep(5)

    Collector(control=PidFileStrategy("/run/collector.pid")).start()
"""

import logging
from importlib.metadata import PackageNotFoundError, version

from .config import DaemonConfig, load_config
from .control import ControlStrategy, MemoryStrategy, PidFileStrategy
from .exceptions import (
    AlreadyRunningError,
    ConfigError,
    InvalidConfigurationError,
    NotRunningError,
    PosixError,
    ProcError,
    ProcessTimeoutError,
)
from .process import (
    CallbackProcess,
    ContinuousCallbackProcess,
    ContinuousProcess,
    Daemon,
    DaemonState,
    DaemonStreams,
    Process,
    SignalHandlerEntry,
    SignalRegistry,
    SignalRequest,
)
from .utils import is_alive, is_int

# Version is read from package metadata (pyproject.toml)
try:
    __version__ = version("procinfra")
except PackageNotFoundError:
    # Package not installed, use fallback (development mode)
    __version__ = "0.1.0-dev"

# Library logging stays silent unless the application configures it
logging.getLogger(__name__).addHandler(logging.NullHandler())

# Explicit public API
__all__ = [
    # Version
    "__version__",
    # Processes
    "CallbackProcess",
    "ContinuousCallbackProcess",
    "ContinuousProcess",
    "Daemon",
    "DaemonState",
    "DaemonStreams",
    "Process",
    # Signals
    "SignalHandlerEntry",
    "SignalRegistry",
    "SignalRequest",
    # Control
    "ControlStrategy",
    "MemoryStrategy",
    "PidFileStrategy",
    # Configuration
    "DaemonConfig",
    "load_config",
    # Exceptions
    "AlreadyRunningError",
    "ConfigError",
    "InvalidConfigurationError",
    "NotRunningError",
    "PosixError",
    "ProcError",
    "ProcessTimeoutError",
    # Utilities
    "is_alive",
    "is_int",
]

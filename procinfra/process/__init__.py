"""
Process handles, signal dispatch and the daemon lifecycle.
"""

from .base import Process
from .callback import CallbackProcess, ContinuousCallbackProcess, ContinuousProcess
from .daemon import Daemon, DaemonState
from .signals import SignalHandlerEntry, SignalRegistry, SignalRequest
from .streams import DaemonStreams

__all__ = [
    "CallbackProcess",
    "ContinuousCallbackProcess",
    "ContinuousProcess",
    "Daemon",
    "DaemonState",
    "DaemonStreams",
    "Process",
    "SignalHandlerEntry",
    "SignalRegistry",
    "SignalRequest",
]

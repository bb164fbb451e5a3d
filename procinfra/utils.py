"""
Utility functions for common operations.

This module provides small helpers for type checking and process probing.
"""

import os
from typing import Any


def is_int(n: Any) -> bool:
    """
    Check if a value can be converted to an integer.

    Args:
        n: Value to check

    Returns:
        bool: True if the value can be converted to an integer
    """
    try:
        int(n)
        return True
    except (ValueError, TypeError, OverflowError):
        pass
    return False


def is_strict_int(n: Any) -> bool:
    """Check that a value is an actual int (bool excluded)."""
    return isinstance(n, int) and not isinstance(n, bool)


def is_alive(pid: int) -> bool:
    """
    Probe whether a PID names a live process.

    Sends signal 0, which performs the existence and permission checks
    without delivering anything. A process owned by another user still
    counts as alive. PIDs below 1 are rejected because kill() would address
    a whole process group.

    Note: a PID can be reused by the system, so this is a best-effort check.

    Args:
        pid: Process ID to probe

    Returns:
        bool: True if a process with that PID exists
    """
    if not is_strict_int(pid) or pid < 1:
        return False
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    return True

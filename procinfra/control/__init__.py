"""
Process control strategies.

Durable bookkeeping of which process currently owns a supervised role.
"""

from .memory import MemoryStrategy
from .pidfile import PidFileStrategy
from .strategy import ControlStrategy

__all__ = ["ControlStrategy", "MemoryStrategy", "PidFileStrategy"]

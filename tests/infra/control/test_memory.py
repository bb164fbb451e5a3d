"""
Tests for the shared-memory control strategy.
"""

import os
from unittest.mock import patch

import pytest

from procinfra.control import MemoryStrategy
from procinfra.exceptions import InvalidConfigurationError, NotRunningError


@pytest.mark.unit
class TestMemoryStrategy:
    """Test MemoryStrategy."""

    def test_initially_empty(self):
        control = MemoryStrategy()
        assert control.is_running() is False
        with pytest.raises(NotRunningError):
            control.get_pid()

    def test_set_and_get(self):
        """Test set_pid() followed by get_pid() returns the PID."""
        control = MemoryStrategy().set_pid(os.getpid())
        assert control.get_pid() == os.getpid()
        assert control.is_running() is True

    def test_get_pid_cached_after_set(self):
        """Test get_pid() after set_pid() does not load the shared value."""
        control = MemoryStrategy().set_pid(4321)
        with patch.object(control, "_load") as mock_load:
            assert control.get_pid() == 4321
            mock_load.assert_not_called()

    def test_orphaned_record_dropped(self):
        """Test a record naming a dead process is cleared."""
        control = MemoryStrategy().set_pid(99999)

        with patch("procinfra.control.memory.is_alive", return_value=False):
            assert control.is_running() is False

        assert control._load() == 0
        with pytest.raises(NotRunningError):
            control.get_pid()

    def test_clear(self):
        control = MemoryStrategy().set_pid(os.getpid())
        assert control.clear() is control
        assert control.is_running() is False

    @pytest.mark.parametrize("pid", [0, -7, "1", True])
    def test_set_pid_rejects_invalid(self, pid):
        with pytest.raises(InvalidConfigurationError):
            MemoryStrategy().set_pid(pid)

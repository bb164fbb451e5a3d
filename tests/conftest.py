"""
Pytest configuration and shared fixtures.

This module provides central pytest configuration, custom markers,
and shared fixtures for the procinfra test suite.
"""

import shutil
import signal
import tempfile
from collections.abc import Generator
from pathlib import Path

import pytest

# =============================================================================
# Plugin Registration
# =============================================================================

pytest_plugins = [
    "tests.fixtures.logging",
]

# Signals the tests subscribe to; their handlers are restored after each test
_TEST_SIGNALS = (signal.SIGTERM, signal.SIGHUP, signal.SIGUSR1, signal.SIGUSR2)


# =============================================================================
# Pytest Configuration
# =============================================================================


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests (fast, isolated, no external dependencies)"
    )
    config.addinivalue_line("markers", "property: Property-based tests (hypothesis)")
    config.addinivalue_line(
        "markers", "e2e: End-to-end tests (real fork, signals and files)"
    )
    config.addinivalue_line("markers", "slow: Tests that take >1 second to run")


# =============================================================================
# Shared Fixtures
# =============================================================================


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """
    Provide a temporary directory that is cleaned up after the test.

    Yields:
        Path: Temporary directory path
    """
    temp_path = Path(tempfile.mkdtemp(prefix="procinfra-test-", dir="/tmp"))
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def pid_path(temp_dir: Path) -> Path:
    """Location for a PID file that does not exist yet."""
    return temp_dir / "test.pid"


@pytest.fixture(autouse=True)
def restore_signal_handlers() -> Generator[None, None, None]:
    """Put back the signal handlers a test may have replaced."""
    original = {signum: signal.getsignal(signum) for signum in _TEST_SIGNALS}
    yield
    for signum, handler in original.items():
        if handler is not None:
            signal.signal(signum, handler)


@pytest.fixture
def sample_config_dict() -> dict:
    """
    Provide a sample configuration dictionary for testing.

    Returns:
        dict: Sample configuration
    """
    return {
        "daemon": {
            "pid_file": "/tmp/collector.pid",
            "output_log": "/tmp/collector.out",
            "error_log": "/tmp/collector.err",
            "uid": 1000,
            "gid": 1000,
            "restart_timeout": 5,
        },
        "logging": {
            "level": "debug",
        },
    }


# =============================================================================
# Test Collection Hooks
# =============================================================================


def pytest_collection_modifyitems(config, items):
    """
    Add the 'unit' marker to tests without other markers.

    Args:
        config: Pytest config object
        items: List of collected test items
    """
    for item in items:
        if not any(mark.name in ["e2e"] for mark in item.iter_markers()):
            item.add_marker(pytest.mark.unit)

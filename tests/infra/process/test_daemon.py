"""
Tests for the Daemon lifecycle.

Tests key features including:
- Loop exit on a run() result or a shutdown request
- Reload re-entering the loop exactly once
- Daemonization order: session, group, user, streams
- Validation of daemon settings
"""

import grp
import os
import pwd
import signal
from unittest.mock import Mock, call, patch

import pytest

from procinfra.config import DaemonConfig
from procinfra.control import PidFileStrategy
from procinfra.exceptions import InvalidConfigurationError, PosixError
from procinfra.process import Daemon, DaemonState, DaemonStreams, Process


class ScriptedDaemon(Daemon):
    """
    Daemon running a list of steps, one per iteration.

    Each step is a callable receiving the daemon and returning run()'s result.
    Hook calls are recorded in self.calls.
    """

    def __init__(self, steps=(), **kwargs):
        super().__init__(**kwargs)
        self.steps = list(steps)
        self.calls = []
        self.states = []

    def initialize(self):
        self.calls.append("initialize")

    def run(self):
        self.calls.append("run")
        self.states.append(self.get_state())
        step = self.steps.pop(0) if self.steps else (lambda d: Process.EXIT_NORMAL)
        return step(self)

    def finalize(self, result):
        self.calls.append(("finalize", result))

    def reload(self):
        self.calls.append("reload")


def _keep_going(daemon):
    return None


def _request_reload(daemon):
    daemon.handle_reload()
    return None


def _request_shutdown(daemon):
    daemon.handle_shutdown()
    return None


def _reload_then_exit_normally(daemon):
    daemon.handle_reload()
    return Process.EXIT_NORMAL


def _reload_then_fail(daemon):
    daemon.handle_reload()
    return 4


# =============================================================================
# Test Loop
# =============================================================================


@pytest.mark.unit
class TestLoop:
    """Test the run/reload/shutdown loop."""

    def test_result_ends_loop(self):
        """Test a non-None run() result stops the loop with that code."""
        daemon = ScriptedDaemon([_keep_going, _keep_going, lambda d: 3])

        assert daemon.loop() == 3
        assert daemon.get_iterations() == 3
        assert daemon.calls[-3:] == ["initialize", "run", ("finalize", 3)]
        assert daemon.get_state() == DaemonState.TERMINATED

    def test_shutdown_request(self):
        """Test a shutdown request ends the loop after the current iteration."""
        daemon = ScriptedDaemon([_keep_going, _request_shutdown, _keep_going])

        assert daemon.loop() == Process.EXIT_NORMAL
        assert daemon.get_iterations() == 2
        assert daemon.is_shutting_down() is True

    def test_shutdown_before_first_iteration(self):
        """Test a pending shutdown means run() is never called."""
        daemon = ScriptedDaemon()
        daemon.handle_shutdown()

        assert daemon.loop() == Process.EXIT_NORMAL
        assert daemon.calls == []

    def test_reload_reenters_once(self):
        """Test a reload after a normal result runs exactly one more iteration."""
        daemon = ScriptedDaemon([_reload_then_exit_normally, lambda d: 0])

        assert daemon.loop() == Process.EXIT_NORMAL
        assert daemon.calls == [
            "initialize",
            "run",
            ("finalize", 0),
            "reload",
            "initialize",
            "run",
            ("finalize", 0),
        ]
        assert daemon.is_reloading() is False

    def test_reload_before_first_iteration(self):
        """Test a reload pending at loop entry reloads instead of exiting."""
        daemon = ScriptedDaemon([lambda d: 0])
        daemon.handle_reload()

        assert daemon.loop() == Process.EXIT_NORMAL
        assert daemon.calls == ["reload", "initialize", "run", ("finalize", 0)]
        assert daemon.get_iterations() == 1

    def test_reload_requested_during_reload_hook(self):
        """Test a reload arriving while reload() runs is honored."""

        class ReloadingTwice(ScriptedDaemon):
            def reload(self):
                super().reload()
                if self.calls.count("reload") == 1:
                    self.handle_reload()

        daemon = ReloadingTwice([_request_reload, lambda d: 0])

        assert daemon.loop() == Process.EXIT_NORMAL
        assert daemon.calls.count("reload") == 2
        assert daemon.get_iterations() == 2
        assert daemon.is_shutting_down() is True

    def test_reload_after_none_result(self):
        """Test a reload during a None iteration resumes the loop."""
        daemon = ScriptedDaemon([_request_reload, _request_shutdown])

        assert daemon.loop() == Process.EXIT_NORMAL
        assert daemon.calls.count("reload") == 1
        assert daemon.get_iterations() == 2

    def test_reload_ignored_after_error_result(self):
        """Test a reload request does not resume after an error result."""
        daemon = ScriptedDaemon([_reload_then_fail])

        assert daemon.loop() == 4
        assert "reload" not in daemon.calls
        assert daemon.get_iterations() == 1

    def test_flags_cleared_by_reload(self):
        """Test the reload transition clears both flags."""
        seen = []

        def check_flags(d):
            seen.append((d.is_shutting_down(), d.is_reloading()))
            return Process.EXIT_NORMAL

        daemon = ScriptedDaemon([_request_reload, check_flags])
        daemon.loop()

        assert seen == [(False, False)]

    def test_iteration_state(self):
        """Test run() observes RUNNING_ITERATION."""
        daemon = ScriptedDaemon([_keep_going, lambda d: 0])
        daemon.loop()

        assert daemon.states == [DaemonState.RUNNING_ITERATION] * 2

    def test_signal_delivery_stops_loop(self):
        """Test a real SIGTERM ends the loop through the default wiring."""
        daemon = ScriptedDaemon(
            [lambda d: signal.raise_signal(signal.SIGTERM), _keep_going]
        )
        daemon.install_signal_handlers()

        assert daemon.loop() == Process.EXIT_NORMAL
        assert daemon.get_iterations() == 1

    def test_deferred_signal_observed_at_checkpoint(self):
        """Test deferred deliveries are handled before the next iteration."""
        daemon = ScriptedDaemon(
            [lambda d: signal.raise_signal(signal.SIGHUP), _request_shutdown],
            deferred_signals=True,
        )
        daemon.install_signal_handlers()

        assert daemon.loop() == Process.EXIT_NORMAL
        assert daemon.calls.count("reload") == 1

    def test_main_daemonizes_then_loops(self):
        daemon = ScriptedDaemon()
        with (
            patch.object(daemon, "daemonize") as mock_daemonize,
            patch.object(daemon, "loop", return_value=0) as mock_loop,
        ):
            assert daemon.main() == 0
        mock_daemonize.assert_called_once_with()
        mock_loop.assert_called_once_with()


# =============================================================================
# Test Signal Wiring
# =============================================================================


@pytest.mark.unit
class TestSignalWiring:
    """Test the default signal callbacks."""

    def test_default_handlers(self):
        daemon = ScriptedDaemon()
        with patch("signal.signal"):
            daemon.install_signal_handlers()

        assert daemon.signals.callbacks(signal.SIGTERM) == [daemon.handle_shutdown]
        assert daemon.signals.callbacks(signal.SIGHUP) == [daemon.handle_reload]

    def test_handle_reload_sets_both_flags(self):
        daemon = ScriptedDaemon()
        daemon.handle_reload()
        assert daemon.is_reloading() is True
        assert daemon.is_shutting_down() is True

    def test_handle_shutdown_leaves_reload(self):
        daemon = ScriptedDaemon()
        daemon.handle_shutdown()
        assert daemon.is_shutting_down() is True
        assert daemon.is_reloading() is False


# =============================================================================
# Test Daemonization
# =============================================================================


@pytest.mark.unit
class TestDaemonize:
    """Test daemonize()."""

    def _patched(self):
        manager = Mock()
        patches = (
            patch("os.setsid", manager.setsid),
            patch("os.setgid", manager.setgid),
            patch("os.setuid", manager.setuid),
            patch.object(DaemonStreams, "attach", manager.attach),
        )
        return manager, patches

    def test_order(self):
        """Test session, then group, then user, then streams."""
        daemon = ScriptedDaemon()
        daemon.uid, daemon.gid = 1000, 2000
        manager, patches = self._patched()

        with patches[0], patches[1], patches[2], patches[3]:
            assert daemon.daemonize() is daemon

        assert manager.mock_calls == [
            call.setsid(),
            call.setgid(2000),
            call.setuid(1000),
            call.attach(),
        ]
        assert daemon.get_state() == DaemonState.DAEMONIZED
        assert daemon.get_streams() is not None

    def test_no_privilege_drop_by_default(self):
        daemon = ScriptedDaemon()
        manager, patches = self._patched()

        with patches[0], patches[1], patches[2], patches[3]:
            daemon.daemonize()

        assert manager.mock_calls == [call.setsid(), call.attach()]

    def test_streams_use_configured_logs(self, temp_dir):
        daemon = ScriptedDaemon()
        daemon.set_output_log(temp_dir / "out.log")
        daemon.set_error_log(temp_dir / "err.log")
        manager, patches = self._patched()

        with patches[0], patches[1], patches[2], patches[3]:
            daemon.daemonize()

        streams = daemon.get_streams()
        assert streams.output_log == str(temp_dir / "out.log")
        assert streams.error_log == str(temp_dir / "err.log")

    def test_setuid_failure_is_fatal(self):
        """Test a failed privilege drop stops daemonization."""
        daemon = ScriptedDaemon()
        daemon.uid = 0
        manager, patches = self._patched()
        manager.setuid.side_effect = PermissionError(1, "Operation not permitted")

        with patches[0], patches[1], patches[2], patches[3]:
            with pytest.raises(PosixError) as exc_info:
                daemon.daemonize()

        assert exc_info.value.operation == "setuid"
        manager.attach.assert_not_called()
        assert daemon.get_state() == DaemonState.INITIALIZING

    def test_setgid_failure_is_fatal(self):
        daemon = ScriptedDaemon()
        daemon.uid, daemon.gid = 0, 0
        manager, patches = self._patched()
        manager.setgid.side_effect = PermissionError(1, "Operation not permitted")

        with patches[0], patches[1], patches[2], patches[3]:
            with pytest.raises(PosixError) as exc_info:
                daemon.daemonize()

        assert exc_info.value.operation == "setgid"
        manager.setuid.assert_not_called()

    def test_setsid_failure(self):
        daemon = ScriptedDaemon()
        manager, patches = self._patched()
        manager.setsid.side_effect = PermissionError(1, "Operation not permitted")

        with patches[0], patches[1], patches[2], patches[3]:
            with pytest.raises(PosixError, match="setsid"):
                daemon.daemonize()


# =============================================================================
# Test Settings
# =============================================================================


@pytest.mark.unit
class TestSettings:
    """Test daemon setters and configuration."""

    def test_defaults(self):
        daemon = ScriptedDaemon()
        assert daemon.output_log == os.devnull
        assert daemon.error_log == os.devnull
        assert daemon.uid is None
        assert daemon.gid is None
        assert daemon.get_state() == DaemonState.INITIALIZING
        assert daemon.get_iterations() == 0

    def test_log_setters_chain(self, temp_dir):
        daemon = ScriptedDaemon()
        result = daemon.set_output_log(temp_dir / "o.log").set_error_log(
            temp_dir / "e.log"
        )
        assert result is daemon
        assert daemon.output_log == str(temp_dir / "o.log")

    def test_log_in_missing_directory(self, temp_dir):
        with pytest.raises(InvalidConfigurationError, match="does not exist"):
            ScriptedDaemon().set_output_log(temp_dir / "missing" / "o.log")

    def test_dev_null_accepted(self):
        assert ScriptedDaemon().set_error_log(os.devnull).error_log == os.devnull

    def test_set_uid_current_user(self):
        assert ScriptedDaemon().set_uid(os.getuid()).uid == os.getuid()

    def test_set_gid_current_group(self):
        assert ScriptedDaemon().set_gid(os.getgid()).gid == os.getgid()

    @pytest.mark.parametrize("value", ["0", 1.0, None, True])
    def test_set_uid_type(self, value):
        with pytest.raises(InvalidConfigurationError, match="must be an integer"):
            ScriptedDaemon().set_uid(value)

    @pytest.mark.parametrize("value", ["0", 1.0, None, False])
    def test_set_gid_type(self, value):
        with pytest.raises(InvalidConfigurationError, match="must be an integer"):
            ScriptedDaemon().set_gid(value)

    def test_unknown_uid(self):
        with patch.object(pwd, "getpwuid", side_effect=KeyError(424242)):
            with pytest.raises(InvalidConfigurationError, match="UID"):
                ScriptedDaemon().set_uid(424242)

    def test_unknown_gid(self):
        with patch.object(grp, "getgrgid", side_effect=KeyError(424242)):
            with pytest.raises(InvalidConfigurationError, match="GID"):
                ScriptedDaemon().set_gid(424242)

    def test_from_config(self, temp_dir):
        """Test building a daemon from a DaemonConfig."""
        config = DaemonConfig(
            pid_file=str(temp_dir / "d.pid"),
            output_log=str(temp_dir / "d.out"),
            error_log=str(temp_dir / "d.err"),
            uid=os.getuid(),
            gid=os.getgid(),
            restart_timeout=7,
        )
        daemon = ScriptedDaemon.from_config(config)

        assert isinstance(daemon.get_control(), PidFileStrategy)
        assert daemon.get_control().path == temp_dir / "d.pid"
        assert daemon.output_log == str(temp_dir / "d.out")
        assert daemon.error_log == str(temp_dir / "d.err")
        assert daemon.uid == os.getuid()
        assert daemon.gid == os.getgid()
        assert daemon.get_restart_timeout() == 7

    def test_from_config_without_pid_file(self):
        daemon = ScriptedDaemon.from_config(DaemonConfig())
        assert daemon.get_control() is None

    def test_from_config_keeps_explicit_control(self, temp_dir):
        control = PidFileStrategy(temp_dir / "other.pid")
        config = DaemonConfig(pid_file=str(temp_dir / "d.pid"))

        daemon = ScriptedDaemon.from_config(config, control=control)

        assert daemon.get_control() is control

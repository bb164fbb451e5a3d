"""
Configuration for daemons.

Loads the daemon settings (PID file, log destinations, user/group, restart
timeout) and the logging settings from a YAML file, with environment
variable overrides.

Example config.yaml:

    daemon:
      pid_file: /run/collector.pid
      output_log: /var/log/collector.out
      error_log: /var/log/collector.err
      user: collector
      group: collector
      restart_timeout: 30

    logging:
      level: info

Environment overrides use PREFIX_SECTION_KEY, e.g.
PROCINFRA_DAEMON_RESTART_TIMEOUT=10 or PROCINFRA_LOGGING_LEVEL=debug.
"""

from __future__ import annotations

import grp
import os
import pwd
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]

from .exceptions import ConfigError
from .log.config import LogConfig
from .log.exceptions import InvalidLogLevelError
from .utils import is_strict_int

# Maximum config file size (10MB)
MAX_CONFIG_SIZE_BYTES = 10 * 1024 * 1024

DEFAULT_ENV_PREFIX = "PROCINFRA_"


def _resolve_id(value: Any, kind: str) -> int | None:
    """Resolve a user or group given by number or name."""
    if value is None:
        return None
    if is_strict_int(value):
        return int(value)
    if not isinstance(value, str):
        raise ConfigError(f"invalid {kind}", value=value)
    if value.isascii() and value.isdigit():
        return int(value)

    try:
        if kind == "user":
            return pwd.getpwnam(value).pw_uid
        return grp.getgrnam(value).gr_gid
    except KeyError as e:
        raise ConfigError(f"unknown {kind}", value=value) from e


def _resolve_timeout(value: Any) -> float | None:
    if value is None:
        return None
    try:
        timeout = float(value)
    except (TypeError, ValueError) as e:
        raise ConfigError("restart_timeout must be a number", value=value) from e
    if timeout < 0:
        raise ConfigError("restart_timeout must not be negative", value=value)
    return timeout


@dataclass(frozen=True)
class DaemonConfig:
    """
    Immutable daemon configuration.

    Values are only parsed here. Paths and ids are validated again when a
    Daemon applies the config through its setters.
    """

    pid_file: str | None = None
    output_log: str = os.devnull
    error_log: str = os.devnull
    uid: int | None = None
    gid: int | None = None
    restart_timeout: float | None = None
    logging: LogConfig = field(default_factory=LogConfig)

    @classmethod
    def from_dict(
        cls,
        data: Mapping[str, Any] | None,
        section: str = "daemon",
        log_section: str = "logging",
    ) -> DaemonConfig:
        """
        Build a DaemonConfig from parsed configuration data.

        Args:
            data: Parsed configuration (e.g. loaded YAML)
            section: Key of the daemon section
            log_section: Key of the logging section

        Raises:
            ConfigError: If a value has the wrong type or can not be resolved
        """
        data = dict(data or {})
        current = data.get(section) or {}
        if not isinstance(current, Mapping):
            raise ConfigError("daemon section must be a mapping", section=section)

        try:
            log_config = LogConfig.from_config(data, log_section)
        except InvalidLogLevelError as e:
            raise ConfigError(str(e), section=log_section) from e

        return cls(
            pid_file=_optional_str(current.get("pid_file")),
            output_log=_optional_str(current.get("output_log")) or os.devnull,
            error_log=_optional_str(current.get("error_log")) or os.devnull,
            uid=_resolve_id(current.get("uid", current.get("user")), "user"),
            gid=_resolve_id(current.get("gid", current.get("group")), "group"),
            restart_timeout=_resolve_timeout(current.get("restart_timeout")),
            logging=log_config,
        )


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    return os.fspath(value) if isinstance(value, os.PathLike) else str(value)


def _check_file_size(path: Path) -> None:
    size = path.stat().st_size
    if size > MAX_CONFIG_SIZE_BYTES:
        raise ConfigError(
            "configuration file too large",
            path=str(path),
            size=size,
            limit=MAX_CONFIG_SIZE_BYTES,
        )


def apply_env_overrides(
    data: dict[str, Any],
    env_prefix: str = DEFAULT_ENV_PREFIX,
    environ: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """
    Apply PREFIX_SECTION_KEY environment variables to configuration data.

    The part after the prefix is split once: the first word names the
    section, the rest (lowercased, underscores kept) names the key. Values
    are parsed as YAML scalars, so "10" becomes an int and "null" None.

    Args:
        data: Configuration data, modified in place
        env_prefix: Prefix of the variables to consider
        environ: Environment to read (defaults to os.environ)

    Returns:
        The updated data
    """
    environ = os.environ if environ is None else environ
    for key, raw in environ.items():
        if not key.startswith(env_prefix):
            continue
        section, _, name = key[len(env_prefix) :].lower().partition("_")
        if not section or not name:
            continue

        target = data.get(section)
        if not isinstance(target, dict):
            target = data[section] = {}
        try:
            target[name] = yaml.safe_load(raw)
        except yaml.YAMLError:
            target[name] = raw
    return data


def load_config(
    path: str | os.PathLike[str],
    section: str = "daemon",
    env_prefix: str | None = DEFAULT_ENV_PREFIX,
) -> DaemonConfig:
    """
    Load a DaemonConfig from a YAML file.

    Args:
        path: YAML file location
        section: Key of the daemon section
        env_prefix: Prefix of environment overrides, None to disable them

    Raises:
        ConfigError: If the file can not be read, parsed or resolved
    """
    fname = Path(path)
    try:
        _check_file_size(fname)
        with open(fname) as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError("can not read configuration file", path=str(fname)) from e
    except yaml.YAMLError as e:
        raise ConfigError("invalid YAML in configuration file", path=str(fname)) from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError("configuration root must be a mapping", path=str(fname))

    if env_prefix is not None:
        data = apply_env_overrides(data, env_prefix)

    return DaemonConfig.from_dict(data, section=section)

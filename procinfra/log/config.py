"""
Configuration for the logging system.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from .constants import LogConstants
from .exceptions import InvalidLogLevelError


@dataclass(frozen=True)
class LogConfig:
    """
    Immutable logger configuration.

    Attributes:
        level: Numeric log level, or False to disable logging
        micros: Whether timestamps carry microseconds
        rule: Column at which extra fields are aligned (0 disables padding)
    """

    level: int | bool = logging.INFO
    micros: bool = False
    rule: int = LogConstants.DEFAULT_RULE_WIDTH

    @staticmethod
    def _resolve_level(level: str | int | bool) -> int | bool:
        """Resolve level parameter to int or False."""
        if isinstance(level, bool):
            return False if not level else logging.INFO
        if isinstance(level, str):
            name = level.strip().lower()
            if name.isnumeric():
                return int(name)
            if name in LogConstants.LEVEL_NAMES:
                return LogConstants.LEVEL_NAMES[name]
            raise InvalidLogLevelError(level)
        if isinstance(level, int):
            return level
        raise InvalidLogLevelError(level)

    @classmethod
    def from_params(
        cls,
        level: str | int | bool = "info",
        micros: bool = False,
        rule: int | None = None,
    ) -> LogConfig:
        """
        Create LogConfig from individual parameters.

        Args:
            level: Log level (name, numeric value, or False to disable)
            micros: Whether to show microsecond precision
            rule: Extra-field alignment column (defaults by micros)

        Returns:
            LogConfig instance
        """
        if rule is None:
            rule = (
                LogConstants.MICRO_RULE_WIDTH
                if micros
                else LogConstants.DEFAULT_RULE_WIDTH
            )
        return cls(level=cls._resolve_level(level), micros=bool(micros), rule=rule)

    @classmethod
    def from_config(
        cls, config_dict: dict[str, Any], section: str = "logging"
    ) -> LogConfig:
        """
        Create LogConfig from a configuration dictionary.

        Args:
            config_dict: Parsed configuration (e.g. loaded YAML)
            section: Dotted path of the logging section

        Returns:
            LogConfig instance (defaults when the section is missing)

        Example:
            LogConfig.from_config({"logging": {"level": "debug"}})
        """
        current: Any = config_dict
        for part in section.split("."):
            if isinstance(current, dict) and part in current:
                current = current[part]
            else:
                current = {}
                break
        if not isinstance(current, dict):
            current = {}

        return cls.from_params(
            level=current.get("level", "info"),
            micros=current.get("microseconds", current.get("micros", False)),
            rule=current.get("rule"),
        )

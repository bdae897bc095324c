"""
daobasic TOML Configuration Loader

Loads the [governance] section of dao.toml with environment variable overrides.

Environment variable mapping:
    [governance] voting_policy         → DAO_VOTING_POLICY
    [governance] execute_resolved      → DAO_EXECUTE_RESOLVED
    [governance] default_voting_period → DAO_VOTING_PERIOD
    [governance] log_level             → DAO_LOG_LEVEL
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

try:
    import tomllib as tomli  # Python 3.11+
except ImportError:
    import tomli  # type: ignore[no-redef]

from ..constants import (
    DAO_EXECUTE_RESOLVED,
    DAO_VOTING_POLICY,
    DEFAULT_VOTING_PERIOD,
    VOTING_POLICIES,
    parse_bool,
)
from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def _as_bool(value: Any, name: str) -> bool:
    parsed = parse_bool(value)
    if isinstance(parsed, bool):
        return parsed
    raise ConfigurationError(f"{name} must be a boolean, got {value!r}")


def _as_level(value: Any) -> Optional[str]:
    return None if value is None else str(value).upper()


@dataclass
class GovernanceConfig:
    """[governance] section."""
    voting_policy: str = str(DAO_VOTING_POLICY)
    execute_resolved: bool = bool(DAO_EXECUTE_RESOLVED)
    default_voting_period: int = DEFAULT_VOTING_PERIOD
    # None leaves the package logger at the level set by LOG_LEVEL
    log_level: Optional[str] = None

    def __post_init__(self):
        self.log_level = _as_level(self.log_level)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GovernanceConfig":
        defaults = cls()
        return cls(
            voting_policy=str(data.get("voting_policy", defaults.voting_policy)),
            execute_resolved=_as_bool(
                data.get("execute_resolved", defaults.execute_resolved),
                "execute_resolved",
            ),
            default_voting_period=data.get(
                "default_voting_period", defaults.default_voting_period
            ),
            log_level=_as_level(data.get("log_level", defaults.log_level)),
        )

    @classmethod
    def from_file(cls, path: str | Path) -> "GovernanceConfig":
        """
        Load from a TOML file, then apply environment overrides.

        A missing file yields the defaults (still env-overridden).
        """
        path = Path(path)
        data: Dict[str, Any] = {}
        if path.exists():
            try:
                with open(path, "rb") as f:
                    data = tomli.load(f)
            except tomli.TOMLDecodeError as e:
                raise ConfigurationError(f"Invalid TOML in {path}: {e}") from e
            logger.debug(f"Loaded governance config from {path}")
        else:
            logger.debug(f"Config file {path} not found, using defaults")

        config = cls.from_dict(data.get("governance", {}))
        config.apply_env()
        config.validate()
        return config

    def apply_env(self) -> None:
        """Override from environment variables."""
        if v := os.environ.get("DAO_VOTING_POLICY"):
            self.voting_policy = v
        if v := os.environ.get("DAO_EXECUTE_RESOLVED"):
            self.execute_resolved = _as_bool(v, "DAO_EXECUTE_RESOLVED")
        if v := os.environ.get("DAO_VOTING_PERIOD"):
            try:
                self.default_voting_period = int(v)
            except ValueError as e:
                raise ConfigurationError(
                    f"DAO_VOTING_PERIOD must be an integer, got {v!r}"
                ) from e
        if v := os.environ.get("DAO_LOG_LEVEL"):
            self.log_level = _as_level(v)

    # --- validation -------------------------------------------------------

    def validate(self) -> bool:
        """
        Validate the configuration.

        Returns:
            True if valid

        Raises:
            ConfigurationError: on invalid config
        """
        if self.voting_policy not in VOTING_POLICIES:
            raise ConfigurationError(
                f"Invalid voting_policy: {self.voting_policy!r} "
                f"(expected one of {', '.join(VOTING_POLICIES)})"
            )
        if (
            isinstance(self.default_voting_period, bool)
            or not isinstance(self.default_voting_period, int)
            or self.default_voting_period < 0
        ):
            raise ConfigurationError("default_voting_period must be an integer >= 0")
        if self.log_level is not None and self.log_level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ConfigurationError(f"Invalid log_level: {self.log_level}")
        return True

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dict (for diagnostics, NOT for re-creating TOML)."""
        return {
            "governance": {
                "voting_policy": self.voting_policy,
                "execute_resolved": self.execute_resolved,
                "default_voting_period": self.default_voting_period,
                "log_level": self.log_level,
            },
        }


# -----------------------------------------------------------------------
# Convenience function
# -----------------------------------------------------------------------

def load_config(path: Optional[str] = None) -> GovernanceConfig:
    """
    Load governance configuration.

    Resolution order:
        1. Explicit *path* argument
        2. DAO_CONFIG env var
        3. ./dao.toml in current directory
        4. Defaults (with env overrides)
    """
    if path is None:
        path = os.environ.get("DAO_CONFIG", "dao.toml")

    return GovernanceConfig.from_file(path)

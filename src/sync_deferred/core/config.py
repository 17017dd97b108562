"""Configuration management.

Loads from TOML config files + environment variables.
Uses pydantic-settings for validation and env var overriding.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from pydantic import field_validator
from pydantic_settings import BaseSettings

from .enums import SchedulerKind, UnhandledRejectionMode

_LOG_FORMATS = ("json", "console")


class EngineSettings(BaseSettings):
    """Engine-wide settings.

    Loaded from TOML config files and environment variables
    (``SYNC_DEFERRED_UNHANDLED_REJECTION=raise`` and so on).
    """

    unhandled_rejection: UnhandledRejectionMode = UnhandledRejectionMode.WARN
    forbid_sync_observation: bool = True
    all_requires_deferred: bool = False
    scheduler: SchedulerKind = SchedulerKind.ASYNCIO

    # Logging
    log_level: str = "INFO"
    log_format: str = "console"  # "json" or "console"

    model_config = {"env_prefix": "SYNC_DEFERRED_"}

    @field_validator("log_level")
    @classmethod
    def normalise_level(cls, v: str) -> str:
        return v.upper()

    def validate_logging(self) -> None:
        """Reject log settings ``setup_logging`` cannot honour."""
        from .errors import ConfigError

        if not isinstance(logging.getLevelName(self.log_level), int):
            raise ConfigError(f"Unknown log level: {self.log_level!r}")
        if self.log_format not in _LOG_FORMATS:
            raise ConfigError(
                f"Unknown log format: {self.log_format!r} "
                f"(expected one of {', '.join(_LOG_FORMATS)})"
            )


def load_settings(
    config_path: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> EngineSettings:
    """Load settings from TOML file + env vars.

    The ``[sync_deferred]`` table is used when present, otherwise the whole
    file.

    Args:
        config_path: Path to TOML config file (optional).
        overrides: Dict of overrides to apply on top.
    """
    data: dict[str, Any] = {}

    if config_path:
        path = Path(config_path)
        if path.exists():
            import tomli

            with open(path, "rb") as f:
                raw = tomli.load(f)
            data = dict(raw.get("sync_deferred", raw))

    if overrides:
        data.update(overrides)

    return EngineSettings(**data)

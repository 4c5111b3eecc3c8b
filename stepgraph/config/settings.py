# Copyright 2025 Vijaykumar Singh <singhvjd@gmail.com>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.


"""Engine settings.

Settings are read from (highest precedence first):
    1. Environment variables prefixed with ``STEPGRAPH_``
    2. A YAML file passed to ``EngineSettings.from_yaml``
    3. A ``.env`` file in the working directory
    4. Field defaults

Example:
    export STEPGRAPH_MAX_STEPS=20
    settings = load_settings()
    settings.max_steps  # 20
"""

import logging
import os
from pathlib import Path
from typing import Any, Optional, Union

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from stepgraph.config.log_config import configure_logging_levels

logger = logging.getLogger(__name__)

ENV_PREFIX = "STEPGRAPH_"

_VALID_LOG_LEVELS = {"TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class EngineSettings(BaseSettings):
    """Tunables for the super-step executor."""

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_file=".env" if not os.getenv("STEPGRAPH_SKIP_ENV_FILE") else None,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    max_steps: int = Field(100, ge=0, description="Super-step bound when a run gives none")
    bool_skip_heuristic: bool = Field(
        True, description="Skip Bool predicate outputs when feeding result-sink nodes"
    )
    run_sync_in_thread: bool = Field(
        False, description="Offload synchronous node bodies with asyncio.to_thread"
    )
    raise_on_bound_exceeded: bool = Field(
        False, description="Raise BoundExceeded instead of warning when max_steps is hit"
    )
    log_level: str = Field(
        "INFO", description="Level applied to stepgraph loggers by load_settings()"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in _VALID_LOG_LEVELS:
            raise ValueError(f"log_level must be one of {sorted(_VALID_LOG_LEVELS)}, got '{v}'")
        return level

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "EngineSettings":
        """Load settings from a YAML mapping.

        Environment variables still win over values in the file.

        Args:
            path: YAML file path

        Returns:
            EngineSettings instance

        Raises:
            ValueError: If the file does not hold a mapping
        """
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ValueError(f"Settings file {path} must contain a mapping, got {type(data).__name__}")

        env_keys = {k.upper() for k in os.environ}
        overrides: dict[str, Any] = {
            key: value
            for key, value in data.items()
            if f"{ENV_PREFIX}{str(key).upper()}" not in env_keys
        }
        logger.debug(f"Loaded settings from {path}: {sorted(overrides)}")
        return cls(**overrides)


_settings: Optional[EngineSettings] = None


def load_settings() -> EngineSettings:
    """Return the process-wide settings, creating them on first use.

    Creating them also applies ``log_level`` to the ``stepgraph`` loggers.
    """
    global _settings
    if _settings is None:
        _settings = EngineSettings()
        configure_logging_levels(_settings.log_level)
    return _settings


def reset_settings() -> None:
    """Forget cached settings (tests, or after changing the environment)."""
    global _settings
    _settings = None


__all__ = [
    "ENV_PREFIX",
    "EngineSettings",
    "load_settings",
    "reset_settings",
]

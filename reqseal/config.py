# Copyright 2025 ReqSeal Project Contributors
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

"""
ReqSeal Configuration

Configuration management for token issuing and verification.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any

import yaml

from .exceptions import ConfigurationError
from .matrix import LookupTable, load_table


@dataclass
class ReqSealConfig:
    """Configuration shared by the issuing and verifying sides."""

    # Lookup table, inline or from a file
    matrix: dict[str, list[str]] | None = None
    matrix_file: str | None = None

    # Token format
    separator: str = ":"

    # Verification
    allowed_skew_ms: int = 30_000

    # HTTP integration
    header_name: str = "x-reqseal-key"
    key_missing_message: str = "Missing ReqSeal key"
    key_invalid_message: str = "Invalid ReqSeal key"
    key_expired_message: str | None = None
    bypass_paths: list[str] = field(default_factory=list)

    # Replay cache
    replay_cache_enabled: bool = True
    replay_cache_ttl_ms: int | None = None  # defaults to allowed_skew_ms
    replay_sweep_interval_ms: int | None = None
    redis_url: str | None = None

    # Logging
    debug: bool = False
    log_level: str = "INFO"

    def __post_init__(self):
        """Post-initialization validation and environment variable loading."""
        self._load_from_environment()
        self._validate_config()

    def _load_from_environment(self):
        """Load configuration from environment variables."""
        if not self.matrix and not self.matrix_file:
            raw = os.getenv("REQSEAL_MATRIX")
            if raw:
                try:
                    self.matrix = json.loads(raw)
                except json.JSONDecodeError as e:
                    raise ConfigurationError(f"REQSEAL_MATRIX is not valid JSON: {e}")
            else:
                self.matrix_file = os.getenv("REQSEAL_MATRIX_FILE")

        if os.getenv("REQSEAL_SEPARATOR"):
            self.separator = os.getenv("REQSEAL_SEPARATOR")

        if os.getenv("REQSEAL_ALLOWED_SKEW_MS"):
            try:
                self.allowed_skew_ms = int(os.getenv("REQSEAL_ALLOWED_SKEW_MS"))
            except ValueError:
                pass

        if os.getenv("REQSEAL_HEADER_NAME"):
            self.header_name = os.getenv("REQSEAL_HEADER_NAME")

        if os.getenv("REQSEAL_REPLAY_CACHE_ENABLED"):
            self.replay_cache_enabled = os.getenv("REQSEAL_REPLAY_CACHE_ENABLED").lower() in ("true", "1", "yes")

        if os.getenv("REQSEAL_REPLAY_CACHE_TTL_MS"):
            try:
                self.replay_cache_ttl_ms = int(os.getenv("REQSEAL_REPLAY_CACHE_TTL_MS"))
            except ValueError:
                pass

        if not self.redis_url:
            self.redis_url = os.getenv("REQSEAL_REDIS_URL")

        if os.getenv("REQSEAL_DEBUG"):
            self.debug = os.getenv("REQSEAL_DEBUG").lower() in ("true", "1", "yes")

        if os.getenv("REQSEAL_LOG_LEVEL"):
            self.log_level = os.getenv("REQSEAL_LOG_LEVEL")

    def _validate_config(self):
        """Validate configuration values."""
        if not self.matrix and not self.matrix_file:
            raise ConfigurationError(
                "A lookup table is required. Set REQSEAL_MATRIX / REQSEAL_MATRIX_FILE or pass matrix."
            )

        if not self.separator:
            raise ConfigurationError("Separator must be a non-empty string.")

        if any("0" <= ch <= "9" for ch in self.separator):
            raise ConfigurationError("Separator must not contain ASCII digits.")

        if self.allowed_skew_ms < 0:
            raise ConfigurationError("Allowed skew must be non-negative.")

        if self.replay_cache_ttl_ms is not None and self.replay_cache_ttl_ms <= 0:
            raise ConfigurationError("Replay cache TTL must be positive.")

        if self.replay_sweep_interval_ms is not None and self.replay_sweep_interval_ms <= 0:
            raise ConfigurationError("Replay sweep interval must be positive.")

        if not self.header_name:
            raise ConfigurationError("Header name is required.")

        if not isinstance(logging.getLevelName(str(self.log_level).upper()), int):
            raise ConfigurationError(f"Unknown log level: {self.log_level}")

    @property
    def cache_ttl_ms(self) -> int:
        return self.replay_cache_ttl_ms or self.allowed_skew_ms

    def load_table(self) -> LookupTable:
        """Build the validated lookup table this config points at."""
        if self.matrix:
            return LookupTable.from_mapping(self.matrix)
        return load_table(self.matrix_file)

    @classmethod
    def from_environment(cls) -> "ReqSealConfig":
        """Load configuration from environment variables only."""
        return cls()

    @classmethod
    def from_file(cls, config_file: str) -> "ReqSealConfig":
        """Load configuration from a file."""
        try:
            with open(config_file, encoding="utf-8") as f:
                if config_file.endswith(".json"):
                    config_data = json.load(f)
                elif config_file.endswith((".yml", ".yaml")):
                    config_data = yaml.safe_load(f)
                else:
                    raise ConfigurationError(f"Unsupported config file format: {config_file}")

        except FileNotFoundError:
            raise ConfigurationError(f"Configuration file not found: {config_file}")
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Invalid configuration file format: {e}")

        if not isinstance(config_data, dict):
            raise ConfigurationError(f"Configuration file must contain a mapping: {config_file}")

        try:
            return cls(**config_data)
        except TypeError as e:
            raise ConfigurationError(f"Unknown configuration parameter: {e}")

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to dictionary."""
        return {
            "matrix": "***" if self.matrix else None,  # shared secret
            "matrix_file": self.matrix_file,
            "separator": self.separator,
            "allowed_skew_ms": self.allowed_skew_ms,
            "header_name": self.header_name,
            "key_missing_message": self.key_missing_message,
            "key_invalid_message": self.key_invalid_message,
            "key_expired_message": self.key_expired_message,
            "bypass_paths": self.bypass_paths,
            "replay_cache_enabled": self.replay_cache_enabled,
            "replay_cache_ttl_ms": self.replay_cache_ttl_ms,
            "replay_sweep_interval_ms": self.replay_sweep_interval_ms,
            "redis_url": self.redis_url,
            "debug": self.debug,
            "log_level": self.log_level,
        }

    def update(self, **kwargs):
        """Update configuration with new values."""
        for key, value in kwargs.items():
            if hasattr(self, key):
                setattr(self, key, value)
            else:
                raise ConfigurationError(f"Unknown configuration parameter: {key}")

        self._validate_config()

"""Configuration for the event sender."""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any

from .exceptions import ConfigError


@dataclass(frozen=True)
class SenderConfig:
    """
    Event sender configuration.

    The defaults are the values the sender is tuned for; application code
    can load overrides from YAML or JSON, but a running sender never
    changes them.
    """
    # Dispatcher
    send_interval_seconds: float = 3.5
    batch_size: int = 500

    # HTTP client
    request_timeout_seconds: float = 10.0
    connect_timeout_seconds: float = 10.0
    connect_attempts: int = 5
    max_connections: int = 1000
    keepalive_expiry_seconds: float = 10.0

    def __post_init__(self):
        if self.send_interval_seconds <= 0:
            raise ConfigError("send_interval_seconds must be positive")
        if self.batch_size < 1:
            raise ConfigError("batch_size must be at least 1")
        if self.request_timeout_seconds <= 0 or self.connect_timeout_seconds <= 0:
            raise ConfigError("timeouts must be positive")
        if self.connect_attempts < 1:
            raise ConfigError("connect_attempts must be at least 1")
        if self.max_connections < 1:
            raise ConfigError("max_connections must be at least 1")
        if self.keepalive_expiry_seconds < 0:
            raise ConfigError("keepalive_expiry_seconds must not be negative")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SenderConfig:
        """Create config from dictionary."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"Unknown sender config keys: {', '.join(unknown)}")
        return cls(**data)

    @classmethod
    def from_yaml(cls, path: str) -> SenderConfig:
        """Load config from YAML file."""
        import yaml
        with open(path, "r") as f:
            data = yaml.safe_load(f)
        return cls.from_dict(data or {})

    @classmethod
    def from_json(cls, path: str) -> SenderConfig:
        """Load config from JSON file."""
        import json
        with open(path, "r") as f:
            data = json.load(f)
        return cls.from_dict(data)

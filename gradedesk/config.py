"""
Client configuration.

Values come from an optional JSON file, then from ``GRADEDESK_*`` environment
variables, then from explicit command-line overrides.
"""

import json
import os
from dataclasses import dataclass, replace
from typing import Any, Dict, Optional

from .core.exceptions import ConfigurationError


DEFAULT_BASE_URL = "http://127.0.0.1:8080"

ENV_BASE_URL = "GRADEDESK_BASE_URL"
ENV_TIMEOUT = "GRADEDESK_TIMEOUT"


@dataclass(frozen=True)
class ClientConfig:
    """Connection settings for the backend."""
    base_url: str = DEFAULT_BASE_URL
    timeout: float = 5.0
    max_workers: int = 4

    def __post_init__(self):
        if not self.base_url or not self.base_url.startswith(("http://", "https://")):
            raise ConfigurationError(f"base_url must be an http(s) URL, got {self.base_url!r}")
        if self.timeout <= 0:
            raise ConfigurationError(f"timeout must be positive, got {self.timeout}")
        if self.max_workers < 1:
            raise ConfigurationError(f"max_workers must be at least 1, got {self.max_workers}")
        object.__setattr__(self, "base_url", self.base_url.rstrip("/"))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ClientConfig":
        unknown = set(data) - {"base_url", "timeout", "max_workers"}
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")
        try:
            return cls(
                base_url=str(data.get("base_url", DEFAULT_BASE_URL)),
                timeout=float(data.get("timeout", 5.0)),
                max_workers=int(data.get("max_workers", 4)),
            )
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid configuration value: {e}")


def load_config(path: Optional[str] = None, environ: Optional[Dict[str, str]] = None) -> ClientConfig:
    """Load configuration from ``path`` (JSON) and the environment."""
    environ = os.environ if environ is None else environ
    data: Dict[str, Any] = {}

    if path:
        try:
            with open(path, "r") as f:
                data = json.load(f)
        except OSError as e:
            raise ConfigurationError(f"Cannot read configuration file {path}: {e}")
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Configuration file {path} is not valid JSON: {e}")
        if not isinstance(data, dict):
            raise ConfigurationError(f"Configuration file {path} must contain a JSON object")

    config = ClientConfig.from_dict(data)

    if environ.get(ENV_BASE_URL):
        config = replace(config, base_url=environ[ENV_BASE_URL])
    if environ.get(ENV_TIMEOUT):
        try:
            config = replace(config, timeout=float(environ[ENV_TIMEOUT]))
        except ValueError:
            raise ConfigurationError(f"{ENV_TIMEOUT} must be a number, got {environ[ENV_TIMEOUT]!r}")

    return config

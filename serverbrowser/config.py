"""
Tracker Configuration

Startup input for the ingestion core: upstream endpoint, credentials,
refresh interval, retention window and request timeout.

Values come from (lowest to highest precedence) the dataclass defaults,
an optional JSON file, and environment variables. Only presence checks
are done here; the upstream is the judge of whether credentials work.
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from datetime import timedelta
from pathlib import Path
from typing import Mapping, Optional
import json
import logging
import os

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://multiplayer.factorio.com"

ENV_VARS = {
    'base_url': 'UPSTREAM_URL',
    'username': 'UPSTREAM_USERNAME',
    'token': 'UPSTREAM_TOKEN',
    'refresh_interval_seconds': 'REFRESH_INTERVAL_SECONDS',
    'retention_hours': 'RETENTION_HOURS',
    'request_timeout_seconds': 'UPSTREAM_TIMEOUT_SECONDS',
}

_FLOAT_FIELDS = ('refresh_interval_seconds', 'retention_hours', 'request_timeout_seconds')


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class TrackerConfig:
    """Unified configuration for the ingestion core."""
    base_url: str = DEFAULT_BASE_URL
    username: str = ""
    token: str = ""
    refresh_interval_seconds: float = 60.0
    retention_hours: float = 24.0
    request_timeout_seconds: float = 5.0
    user_agent: str = "serverbrowser/0.1"

    @property
    def retention(self) -> timedelta:
        return timedelta(hours=self.retention_hours)

    @property
    def has_credentials(self) -> bool:
        return bool(self.username and self.token)

    def validate(self) -> 'TrackerConfig':
        """Basic presence checks. Returns self so calls can be chained."""
        if not self.base_url:
            raise ConfigError("upstream base_url is empty")
        for name in _FLOAT_FIELDS:
            if getattr(self, name) <= 0:
                raise ConfigError(f"{name} must be positive, got {getattr(self, name)!r}")
        if not self.has_credentials:
            logger.warning(
                "upstream username/token not set, directory fetches will be rejected"
            )
        return self

    def with_overrides(self, values: Mapping[str, object]) -> 'TrackerConfig':
        """Return a copy with the given fields replaced, coercing numeric strings."""
        changes = {}
        for name, value in values.items():
            if name not in self.__dataclass_fields__:
                logger.warning("ignoring unknown config key %r", name)
                continue
            if name in _FLOAT_FIELDS:
                try:
                    value = float(value)
                except (TypeError, ValueError):
                    raise ConfigError(f"{name} must be a number, got {value!r}")
            changes[name] = value
        return replace(self, **changes)

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        base: Optional['TrackerConfig'] = None
    ) -> 'TrackerConfig':
        """Load from environment variables on top of `base` (or defaults)."""
        environ = os.environ if environ is None else environ
        config = base or cls()
        values = {
            name: environ[var]
            for name, var in ENV_VARS.items()
            if environ.get(var)
        }
        return config.with_overrides(values)

    @classmethod
    def load(
        cls,
        config_path: Optional[Path] = None,
        environ: Optional[Mapping[str, str]] = None
    ) -> 'TrackerConfig':
        """
        Load from a JSON file (if given), then apply environment overrides.

        The JSON file holds a flat object whose keys are field names.
        """
        config = cls()
        if config_path is not None:
            try:
                with open(config_path, 'r', encoding='utf-8') as f:
                    data = json.load(f)
            except OSError as e:
                raise ConfigError(f"cannot read {config_path}: {e}")
            except json.JSONDecodeError as e:
                raise ConfigError(f"{config_path} is not valid JSON: {e}")
            if not isinstance(data, dict):
                raise ConfigError(f"{config_path} must contain a JSON object")
            config = config.with_overrides(data)
        return cls.from_env(environ, base=config).validate()

"""XDG config loading for the sender."""

from __future__ import annotations

import logging as py_logging
import os
import sys
from pathlib import Path
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

if sys.version_info >= (3, 11):
    import tomllib
else:  # pragma: no cover
    import tomli as tomllib

from gcmsender.retry import (
    BACKOFF_INITIAL_DELAY_MS,
    JITTER_PERCENTAGE,
    MAX_BACKOFF_DELAY_MS,
    BackoffPolicy,
)
from gcmsender.transport import (
    DEFAULT_MAX_REGISTRATION_IDS,
    DEFAULT_MAX_TIME_TO_LIVE,
    DEFAULT_TIMEOUT_SECONDS,
    GCM_SEND_ENDPOINT,
    TransportLimits,
)

logger = py_logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("~/.config/gcmsender/config.toml").expanduser()
DEFAULT_RETRIES = 3
API_KEY_ENV = "GCM_API_KEY"


class SenderConfig(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    api_key: str = ""
    endpoint: str = GCM_SEND_ENDPOINT
    timeout_seconds: float = Field(default=DEFAULT_TIMEOUT_SECONDS, gt=0)
    max_registration_ids: int = Field(default=DEFAULT_MAX_REGISTRATION_IDS, ge=1, le=1000)
    max_time_to_live: int = Field(default=DEFAULT_MAX_TIME_TO_LIVE, ge=0)
    retries: int = Field(default=DEFAULT_RETRIES, ge=0)
    initial_backoff_ms: int = Field(default=BACKOFF_INITIAL_DELAY_MS, gt=0)
    max_backoff_ms: int = Field(default=MAX_BACKOFF_DELAY_MS, gt=0)
    jitter_percentage: int = Field(default=JITTER_PERCENTAGE, ge=0, le=100)

    @field_validator("endpoint")
    @classmethod
    def _validate_endpoint(cls, value: str) -> str:
        parsed = urlparse(value)
        if parsed.scheme not in {"http", "https"} or not parsed.netloc:
            raise ValueError(f"Invalid endpoint: {value}")
        return value

    def backoff_policy(self) -> BackoffPolicy:
        return BackoffPolicy(
            initial_delay_ms=self.initial_backoff_ms,
            # The cap never sits below the first delay.
            max_delay_ms=max(self.max_backoff_ms, self.initial_backoff_ms),
            jitter_percentage=self.jitter_percentage,
        )

    def limits(self) -> TransportLimits:
        return TransportLimits(
            max_registration_ids=self.max_registration_ids,
            max_time_to_live=self.max_time_to_live,
        )


def get_config_path(path: str | Path | None = None) -> Path:
    if path is None:
        return DEFAULT_CONFIG_PATH
    return Path(path).expanduser()


def _sanitize(raw: dict[str, object]) -> SenderConfig:
    cfg = SenderConfig()
    for name in SenderConfig.model_fields:
        if name not in raw:
            continue
        value = raw[name]
        if isinstance(value, bool):
            logger.warning("Ignoring invalid config value %s=%r", name, value)
            continue
        try:
            setattr(cfg, name, value)
        except ValidationError:
            logger.warning("Ignoring invalid config value %s=%r", name, value)

    env_key = os.getenv(API_KEY_ENV, "").strip()
    if env_key:
        cfg.api_key = env_key
    return cfg


def load_config(path: str | Path | None = None) -> SenderConfig:
    resolved = get_config_path(path)
    raw: dict[str, object] = {}
    if resolved.exists():
        try:
            with resolved.open("rb") as handle:
                raw = tomllib.load(handle)
        except (tomllib.TOMLDecodeError, OSError):
            logger.warning("Could not read config file %s; using defaults", resolved)
            raw = {}
    return _sanitize(raw)

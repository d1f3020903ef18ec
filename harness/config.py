# harness/config.py
"""
Harness configuration.

Settings come from the environment (or a .env file) via pydantic-settings and
are read by the rest of the harness through the small ConfigSource interface,
so tests can hand in a plain dict instead.

Keys:
    base_uri              Base URL of the order API (required)
    test_email            Login used by authenticated scenarios
    test_password
    application_type      Sent as application_type on login (default: web)
    max_response_time_ms  Response time budget for timing checks (default: 5000)
    timeout_seconds       Per-request transport timeout (default: 30)
    web_origin            Origin/referer advertised in browser headers
    max_workers           Scenario worker threads (default: 1)
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional, Protocol, runtime_checkable

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from harness.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_WEB_ORIGIN = "https://staging-mlx.labsquire.com"


# ==================== ConfigSource ====================

@runtime_checkable
class ConfigSource(Protocol):
    """Anything that can answer key -> string lookups."""

    def get(self, key: str) -> Optional[str]:
        ...


class DictConfigSource:
    """ConfigSource over an in-memory mapping"""

    def __init__(self, values: Optional[Mapping[str, Any]] = None):
        self._values = {k: v for k, v in (values or {}).items()}

    def get(self, key: str) -> Optional[str]:
        value = self._values.get(key)
        return None if value is None else str(value)


class HarnessSettings(BaseSettings):
    """
    Env-driven settings. Override via HARNESS_* environment variables or a
    .env file at the repo root.
    """
    base_uri: Optional[str] = Field(default=None)
    test_email: Optional[str] = Field(default=None)
    test_password: Optional[str] = Field(default=None)
    application_type: str = Field(default="web")
    max_response_time_ms: int = Field(default=5000, gt=0)
    timeout_seconds: float = Field(default=30.0, gt=0, allow_inf_nan=False)
    web_origin: str = Field(default=DEFAULT_WEB_ORIGIN)
    max_workers: int = Field(default=1, ge=1, le=64)

    model_config = SettingsConfigDict(
        env_prefix="HARNESS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


class SettingsConfigSource:
    """ConfigSource backed by HarnessSettings"""

    def __init__(self, settings: Optional[HarnessSettings] = None):
        self.settings = settings or HarnessSettings()

    def get(self, key: str) -> Optional[str]:
        value = getattr(self.settings, key, None)
        return None if value is None else str(value)


# ==================== HarnessConfig ====================

def _convert(source: ConfigSource, key: str, default: Any, converter: Callable[[str], Any]) -> Any:
    raw = source.get(key)
    if raw is None or str(raw).strip() == "":
        return default
    try:
        return converter(str(raw).strip())
    except (TypeError, ValueError) as e:
        raise ConfigurationError(key, f"invalid value {raw!r} ({e})") from e


@dataclass(frozen=True)
class HarnessConfig:
    """Resolved, typed configuration passed explicitly to each component."""
    base_uri: str
    test_email: Optional[str] = None
    test_password: Optional[str] = None
    application_type: str = "web"
    max_response_time_ms: int = 5000
    timeout_seconds: float = 30.0
    web_origin: str = DEFAULT_WEB_ORIGIN
    max_workers: int = 1

    @classmethod
    def from_source(cls, source: ConfigSource) -> "HarnessConfig":
        base_uri = source.get("base_uri")
        if not base_uri or not base_uri.strip():
            raise ConfigurationError("base_uri")

        timeout = _convert(source, "timeout_seconds", 30.0, float)
        if not math.isfinite(timeout) or timeout <= 0:
            raise ConfigurationError("timeout_seconds", f"must be a positive finite number, got {timeout}")
        max_rt = _convert(source, "max_response_time_ms", 5000, int)
        if max_rt <= 0:
            raise ConfigurationError("max_response_time_ms", f"must be positive, got {max_rt}")
        workers = _convert(source, "max_workers", 1, int)

        cfg = cls(
            base_uri=base_uri.strip().rstrip("/"),
            test_email=source.get("test_email"),
            test_password=source.get("test_password"),
            application_type=source.get("application_type") or "web",
            max_response_time_ms=max_rt,
            timeout_seconds=timeout,
            web_origin=(source.get("web_origin") or DEFAULT_WEB_ORIGIN).rstrip("/"),
            max_workers=max(1, workers),
        )
        logger.debug(f"Config resolved: base_uri={cfg.base_uri} app_type={cfg.application_type}")
        return cfg

    @classmethod
    def from_env(cls) -> "HarnessConfig":
        return cls.from_source(SettingsConfigSource())

    def require_credentials(self) -> None:
        """Fail fast when a scenario needs login details that are not configured."""
        if not self.test_email:
            raise ConfigurationError("test_email")
        if not self.test_password:
            raise ConfigurationError("test_password")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "base_uri": self.base_uri,
            "test_email": self.test_email,
            "application_type": self.application_type,
            "max_response_time_ms": self.max_response_time_ms,
            "timeout_seconds": self.timeout_seconds,
            "web_origin": self.web_origin,
            "max_workers": self.max_workers,
        }

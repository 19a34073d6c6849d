"""Configuration contract for policycore.

Pydantic-validated settings for logging, policy loading and enforcement.
Services embedding policycore extend ``PolicyCoreConfig`` with their own
settings. Environment variables are read in ``load_config_from_env`` and
in ``EnforcementMode.from_env`` only; all other code takes a config object.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

_TRUTHY = ("true", "1", "yes", "on")


class LogLevel(str, Enum):
    """Standard log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LoaderBackend(str, Enum):
    """Which policy document loader a service uses.

    - BASIC: built-in role kinds only (admin / developer / viewer).
    - STORED: built-in kinds plus custom roles and API-token policies
      read from a policy store.
    """

    BASIC = "basic"
    STORED = "stored"


class EnforcementMode(str, Enum):
    """Three-state policy enforcement toggle.

    - ``off``: no policy checks, only caller-identity logging.
    - ``warn``: evaluate policies, log denials as WARNING, but allow through.
    - ``enforce``: evaluate policies, deny on failure (production).

    Set via env ``POLICY_ENFORCEMENT=off|warn|enforce``.
    """

    OFF = "off"
    WARN = "warn"
    ENFORCE = "enforce"

    @classmethod
    def from_env(cls) -> EnforcementMode:
        """Read from ``POLICY_ENFORCEMENT`` env var (default: enforce)."""
        import os

        raw = os.environ.get("POLICY_ENFORCEMENT", "enforce").strip().lower()
        try:
            return cls(raw)
        except ValueError:
            logger.warning(
                "Unknown POLICY_ENFORCEMENT=%r, defaulting to 'enforce'",
                raw,
            )
            return cls.ENFORCE


class EnforcementSettings(BaseModel):
    """Settings for the transport-level policy interceptor."""

    model_config = {"extra": "ignore"}

    mode: EnforcementMode = Field(
        default=EnforcementMode.ENFORCE,
        description="off | warn | enforce",
    )
    skip_methods: list[str] = Field(
        default_factory=lambda: ["grpc.health.v1", "grpc.reflection.v1"],
        description="Method prefixes that bypass policy checks",
    )


class PolicyCoreConfig(BaseModel):
    """Configuration for services that authorize requests with policycore."""

    # Logging
    log_level: LogLevel = Field(
        default=LogLevel.INFO,
        description="Logging level for the service",
    )
    log_json: bool = Field(
        default=False,
        description="Use JSON log format (default: plain text)",
    )

    # Service identification
    service_name: Optional[str] = Field(
        default=None,
        description="Service name used in log messages",
    )

    # Policy loading
    loader_backend: LoaderBackend = Field(
        default=LoaderBackend.BASIC,
        description="Policy document loader: basic | stored",
    )
    redis_url: Optional[str] = Field(
        default=None,
        description="Redis connection URL for stored roles and policies (e.g., redis://localhost:6379/0)",
    )

    enforcement: EnforcementSettings = Field(
        default_factory=EnforcementSettings,
        description="Interceptor enforcement settings",
    )

    @field_validator("redis_url")
    @classmethod
    def validate_redis_url(cls, v: Optional[str]) -> Optional[str]:
        """Validate Redis URL format."""
        if v is None:
            return v
        if not v.startswith(("redis://", "rediss://", "unix://")):
            raise ValueError("Redis URL must start with redis://, rediss://, or unix://")
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v: str | LogLevel) -> LogLevel:
        """Convert string to LogLevel enum."""
        if isinstance(v, LogLevel):
            return v
        if isinstance(v, str):
            try:
                return LogLevel[v.upper()]
            except KeyError:
                raise ValueError(f"Invalid log level: {v}. Must be one of {[e.value for e in LogLevel]}")
        raise ValueError(f"Log level must be string or LogLevel enum, got {type(v)}")

    @field_validator("loader_backend", mode="before")
    @classmethod
    def validate_loader_backend(cls, v: str | LoaderBackend) -> LoaderBackend:
        """Accept loader names case-insensitively."""
        if isinstance(v, str) and not isinstance(v, LoaderBackend):
            try:
                return LoaderBackend(v.strip().lower())
            except ValueError:
                raise ValueError(
                    f"Invalid policy loader: {v}. Must be one of {[e.value for e in LoaderBackend]}"
                )
        return v

    model_config = {
        "extra": "forbid",
    }


def load_config_from_env() -> PolicyCoreConfig:
    """Load configuration from environment variables.

    Environment variables:
    - LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    - LOG_JSON: Use JSON log format (true/false, default: false)
    - SERVICE_NAME: Service name for log messages
    - POLICY_LOADER: basic | stored (default: basic)
    - REDIS_URL: Redis URL for stored roles and policies
    - POLICY_ENFORCEMENT: off | warn | enforce (default: enforce)

    Returns:
        PolicyCoreConfig instance with values from environment or defaults.
    """
    import os

    return PolicyCoreConfig(
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        log_json=os.getenv("LOG_JSON", "false").lower() in _TRUTHY,
        service_name=os.getenv("SERVICE_NAME"),
        loader_backend=os.getenv("POLICY_LOADER", "basic"),
        redis_url=os.getenv("REDIS_URL"),
        enforcement=EnforcementSettings(mode=EnforcementMode.from_env()),
    )


__all__ = [
    "EnforcementMode",
    "EnforcementSettings",
    "LoaderBackend",
    "LogLevel",
    "PolicyCoreConfig",
    "load_config_from_env",
]

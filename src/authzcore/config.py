"""Configuration for authzcore.

Pydantic-validated settings for logging and for the API-boundary
authorization helpers. ``load_config_from_env()`` is the only place where
environment variables are read; everything else receives an ``AuthzConfig``.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)


class LogLevel(str, Enum):
    """Standard log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class EnforcementMode(str, Enum):
    """Three-state toggle for request authorization.

    - ``off``: skip checks entirely.
    - ``warn``: check, log denials as WARNING, but let the call through.
    - ``enforce``: check and abort denied calls (default).
    """

    OFF = "off"
    WARN = "warn"
    ENFORCE = "enforce"


class AuthzConfig(BaseModel):
    """Settings shared by services embedding authzcore."""

    log_level: LogLevel = Field(
        default=LogLevel.INFO,
        description="Logging level",
    )
    log_json: bool = Field(
        default=False,
        description="Use JSON log format (default: plain text)",
    )
    service_name: Optional[str] = Field(
        default=None,
        description="Service name used as logger name for the service logger",
    )
    enforcement: EnforcementMode = Field(
        default=EnforcementMode.ENFORCE,
        description="How authorize_call() treats denied requests",
    )
    user_id_metadata_key: str = Field(
        default="x-user-id",
        description="gRPC metadata key carrying the authenticated user id",
    )

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

    @field_validator("user_id_metadata_key")
    @classmethod
    def validate_metadata_key(cls, v: str) -> str:
        """gRPC metadata keys are lowercase and non-empty."""
        v = v.strip()
        if not v:
            raise ValueError("user_id_metadata_key must not be empty")
        return v.lower()

    model_config = {
        "extra": "forbid",
    }


def _parse_enforcement(raw: str) -> EnforcementMode:
    try:
        return EnforcementMode(raw.strip().lower())
    except ValueError:
        logger.warning("Unknown AUTHZ_ENFORCEMENT=%r, defaulting to 'enforce'", raw)
        return EnforcementMode.ENFORCE


def load_config_from_env() -> AuthzConfig:
    """Load configuration from environment variables.

    Environment variables:
    - LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    - LOG_JSON: Use JSON log format (true/false, default: false)
    - SERVICE_NAME: Service name
    - AUTHZ_ENFORCEMENT: off | warn | enforce (default: enforce)
    - AUTHZ_USER_ID_METADATA_KEY: metadata key with the user id

    Returns:
        AuthzConfig instance with values from environment or defaults.
    """
    import os

    return AuthzConfig(
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        log_json=os.getenv("LOG_JSON", "false").lower() in ("true", "1", "yes"),
        service_name=os.getenv("SERVICE_NAME"),
        enforcement=_parse_enforcement(os.getenv("AUTHZ_ENFORCEMENT", "enforce")),
        user_id_metadata_key=os.getenv("AUTHZ_USER_ID_METADATA_KEY", "x-user-id"),
    )


__all__ = [
    "AuthzConfig",
    "EnforcementMode",
    "LogLevel",
    "load_config_from_env",
]

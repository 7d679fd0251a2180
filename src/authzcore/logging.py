"""Logging utilities for authzcore.

This module provides:
- Logging configuration from AuthzConfig
- Safe previews of values for log messages
- A formatter emitting plain text or JSON, with user and element context
- A logger adapter binding a user id and element id to every record
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

from .config import AuthzConfig, LogLevel

# Record attributes that are part of every LogRecord and never copied as extras
_STANDARD_RECORD_KEYS = frozenset(
    {
        "name", "msg", "args", "created", "filename", "funcName",
        "levelname", "levelno", "lineno", "module", "msecs",
        "message", "pathname", "process", "processName", "relativeCreated",
        "thread", "threadName", "exc_info", "exc_text", "stack_info",
        "taskName", "user_id", "element_id",
    }
)


def safe_preview(value: Any, limit: int = 240) -> str:
    """Create a single-line, length-bounded preview of a value for logging.

    Args:
        value: The value to preview (any type)
        limit: Maximum length of the preview (default: 240)

    Returns:
        A truncated string representation
    """
    if value is None:
        return ""

    if isinstance(value, str):
        s = value
    elif isinstance(value, (dict, list)):
        try:
            s = json.dumps(value, default=str, ensure_ascii=False)
        except (TypeError, ValueError):
            s = str(value)
    else:
        s = str(value)

    s = " ".join(s.split())

    if len(s) > limit:
        return s[: limit - 1] + "…"

    return s


class AuthzFormatter(logging.Formatter):
    """Formatter adding ``user_id`` and ``element_id`` context.

    Outputs one JSON object per record, or plain text when ``json_format``
    is False.
    """

    def __init__(self, json_format: bool = True, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.json_format = json_format

    def format(self, record: logging.LogRecord) -> str:
        user_id = getattr(record, "user_id", None)
        element_id = getattr(record, "element_id", None)

        log_data: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if user_id is not None:
            log_data["user_id"] = str(user_id)
        if element_id is not None:
            log_data["element_id"] = str(element_id)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _STANDARD_RECORD_KEYS:
                log_data[key] = safe_preview(value)

        if self.json_format:
            return json.dumps(log_data, default=str, ensure_ascii=False)

        parts = [
            f"[{log_data['timestamp']}]",
            log_data["level"],
            log_data["logger"],
        ]
        if user_id is not None:
            parts.append(f"user={log_data['user_id']}")
        if element_id is not None:
            parts.append(f"element={log_data['element_id']}")
        parts.append(f": {log_data['message']}")
        if "exception" in log_data:
            parts.append("\n" + log_data["exception"])
        return " ".join(parts)


class AuthzLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that adds ``user_id`` and ``element_id`` to records.

    Both can be overridden per call::

        log = get_authz_logger(__name__, user_id="alice")
        log.info("Assigning role", element_id=element)
    """

    def __init__(
        self,
        logger: logging.Logger,
        user_id: Optional[str] = None,
        element_id: Any = None,
    ):
        super().__init__(logger, {})
        self.user_id = user_id
        self.element_id = element_id

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        user_id = kwargs.pop("user_id", self.user_id)
        element_id = kwargs.pop("element_id", self.element_id)

        extra = dict(kwargs.get("extra") or {})
        if user_id is not None:
            extra["user_id"] = user_id
        if element_id is not None:
            extra["element_id"] = str(element_id)
        kwargs["extra"] = extra

        return msg, kwargs


def setup_logging(config: Optional[AuthzConfig] = None) -> None:
    """Configure the root logger from ``config``.

    Replaces existing root handlers with a single stream handler using
    :class:`AuthzFormatter`.

    Args:
        config: AuthzConfig instance (if None, loads from environment)
    """
    if config is None:
        from .config import load_config_from_env

        config = load_config_from_env()

    level_map = {
        LogLevel.DEBUG: logging.DEBUG,
        LogLevel.INFO: logging.INFO,
        LogLevel.WARNING: logging.WARNING,
        LogLevel.ERROR: logging.ERROR,
        LogLevel.CRITICAL: logging.CRITICAL,
    }
    log_level = level_map.get(config.log_level, logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(AuthzFormatter(json_format=config.log_json))
    root_logger.addHandler(console_handler)

    if config.service_name:
        logging.getLogger(config.service_name).setLevel(log_level)


def get_authz_logger(
    name: str,
    user_id: Optional[str] = None,
    element_id: Any = None,
) -> AuthzLoggerAdapter:
    """Get a logger adapter bound to a user and/or element.

    Args:
        name: Logger name (typically __name__)
        user_id: Optional user id to include in all records
        element_id: Optional hierarchy element to include in all records
    """
    return AuthzLoggerAdapter(logging.getLogger(name), user_id=user_id, element_id=element_id)


__all__ = [
    "AuthzFormatter",
    "AuthzLoggerAdapter",
    "get_authz_logger",
    "safe_preview",
    "setup_logging",
]

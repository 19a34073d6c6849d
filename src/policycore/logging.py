"""Centralized logging utilities for policycore.

This module provides:
- Logging configuration from PolicyCoreConfig
- Safe preview utilities for sensitive data
- Secret redaction
- Structured logging with principal/project context
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Optional

from .config import LogLevel, PolicyCoreConfig


# Patterns for detecting secrets (common patterns to redact)
SECRET_PATTERNS = [
    r'(?i)(?:password|passwd|pwd|secret|token|key|api[_-]?key|auth[_-]?token)\s*[:=]\s*["\']?([^"\'\s]+)',
    r'(?i)(?:bearer|basic)\s+([a-zA-Z0-9+/=]+)',
    r'(?i)(?:x-api-key|x-auth-token|x-access-token)\s*[:=]\s*["\']?([^"\'\s]+)',
    r'[a-f0-9]{32,}',  # Long hex strings (could be hashes or keys)
]

# Record attributes context fields are attached under
_CONTEXT_FIELDS = ("user_id", "project_id")

_STANDARD_ATTRS = frozenset(
    {
        "name", "msg", "args", "created", "filename", "funcName",
        "levelname", "levelno", "lineno", "module", "msecs",
        "message", "pathname", "process", "processName", "relativeCreated",
        "thread", "threadName", "exc_info", "exc_text", "stack_info",
        "taskName",
    }
)


def safe_preview(value: Any, limit: int = 240) -> str:
    """Create a safe, length-bounded preview of a value for logging.

    Converts any value to a single-line string, normalizes whitespace and
    truncates to ``limit`` characters.

    Args:
        value: The value to preview (any type)
        limit: Maximum length of the preview (default: 240)

    Returns:
        A safe, truncated string representation
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


def redact_secrets(text: str, replacement: str = "[REDACTED]") -> str:
    """Redact secret patterns (API keys, tokens, passwords) from text."""
    if not isinstance(text, str):
        return text

    result = text
    for pattern in SECRET_PATTERNS:
        result = re.sub(pattern, replacement, result, flags=re.IGNORECASE | re.DOTALL)

    return result


def safe_log_value(value: Any, limit: int = 240, redact: bool = True) -> str:
    """Combine safe_preview() and redact_secrets() for a single log value."""
    preview = safe_preview(value, limit=limit)
    if redact:
        preview = redact_secrets(preview)
    return preview


class PolicyLogFormatter(logging.Formatter):
    """Formatter that includes principal/project context.

    Outputs JSON for structured logging, or a plain text line with the
    context appended as ``key=value`` pairs.
    """

    def __init__(
        self,
        json_format: bool = True,
        redact_secrets: bool = True,
        *args: Any,
        **kwargs: Any,
    ):
        super().__init__(*args, **kwargs)
        self.json_format = json_format
        self.redact_secrets = redact_secrets

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        context = {}
        for key in _CONTEXT_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                context[key] = str(value)
        log_data.update(context)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key in _STANDARD_ATTRS or key in _CONTEXT_FIELDS or key.startswith("_"):
                continue
            log_data[key] = safe_log_value(value, redact=self.redact_secrets)

        if self.redact_secrets:
            log_data["message"] = redact_secrets(log_data["message"])

        if self.json_format:
            return json.dumps(log_data, default=str, ensure_ascii=False)

        parts = [
            f"[{log_data['timestamp']}]",
            f"{log_data['level']}",
            f"{log_data['logger']}",
        ]
        parts.extend(f"{k}={v}" for k, v in context.items())
        parts.append(f": {log_data['message']}")
        return " ".join(parts)


class PolicyLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that adds user_id and project_id to log records.

    Usage:
        logger = get_policy_logger(__name__, user_id=7, project_id=1)
        logger.warning("request denied")
    """

    def __init__(
        self,
        logger: logging.Logger,
        user_id: Optional[int | str] = None,
        project_id: Optional[int | str] = None,
    ):
        super().__init__(logger, {})
        self.user_id = user_id
        self.project_id = project_id

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        user_id = kwargs.pop("user_id", self.user_id)
        project_id = kwargs.pop("project_id", self.project_id)

        extra = kwargs.get("extra", {})
        if user_id is not None:
            extra["user_id"] = user_id
        if project_id is not None:
            extra["project_id"] = project_id
        kwargs["extra"] = extra

        return msg, kwargs


def setup_logging(
    config: Optional[PolicyCoreConfig] = None,
    json_format: Optional[bool] = None,
    redact_secrets: bool = True,
) -> None:
    """Configure root logging for a service that embeds policycore.

    Args:
        config: PolicyCoreConfig instance (if None, loads from environment)
        json_format: Override for ``config.log_json``
        redact_secrets: Whether to redact secrets (default: True)
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
    console_handler.setFormatter(
        PolicyLogFormatter(
            json_format=config.log_json if json_format is None else json_format,
            redact_secrets=redact_secrets,
        )
    )
    root_logger.addHandler(console_handler)

    if config.service_name:
        logging.getLogger(config.service_name).setLevel(log_level)


def get_policy_logger(
    name: str,
    user_id: Optional[int | str] = None,
    project_id: Optional[int | str] = None,
) -> PolicyLoggerAdapter:
    """Get a logger adapter bound to a principal and project.

    Args:
        name: Logger name (typically __name__)
        user_id: Optional principal identifier to include in all logs
        project_id: Optional project identifier to include in all logs
    """
    logger = logging.getLogger(name)
    return PolicyLoggerAdapter(logger, user_id=user_id, project_id=project_id)


__all__ = [
    "safe_preview",
    "redact_secrets",
    "safe_log_value",
    "PolicyLogFormatter",
    "PolicyLoggerAdapter",
    "setup_logging",
    "get_policy_logger",
]

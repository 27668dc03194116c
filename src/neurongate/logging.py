"""Centralized logging utilities for neurongate.

This module provides:
- Logging configuration from GatewayConfig
- Safe preview utilities for sensitive data
- Secret redaction (bearer tokens, keys, credentials)
- A logger adapter carrying request_id and principal into every record
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Optional

from .config import GatewayConfig, LogLevel


# Patterns for detecting secrets (common patterns to redact)
SECRET_PATTERNS = [
    r'(?i)(?:password|passwd|pwd|secret|token|key|api[_-]?key|auth[_-]?token)\s*[:=]\s*["\']?([^"\'\s,}]+)',
    r'(?i)(?:bearer|basic)\s+([a-zA-Z0-9+/=._-]+)',
    r'(?i)(?:sk-|pk-)[a-zA-Z0-9]{32,}',
    r'(?i)(?:x-api-key|x-auth-token|x-access-token)\s*[:=]\s*["\']?([^"\'\s]+)',
    r'[a-f0-9]{32,}',  # Long hex strings (could be hashes or keys)
]

_RESERVED_RECORD_KEYS = frozenset(
    {
        "name", "msg", "args", "created", "filename", "funcName",
        "levelname", "levelno", "lineno", "module", "msecs",
        "message", "pathname", "process", "processName", "relativeCreated",
        "thread", "threadName", "exc_info", "exc_text", "stack_info",
        "taskName", "request_id", "principal",
    }
)


def safe_preview(value: Any, limit: int = 240) -> str:
    """Create a safe, length-bounded, single-line preview of a value for logging.

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


def redact_secrets(text: str, replacement: str = "[REDACTED]") -> str:
    """Replace secret-looking substrings in text.

    Bearer tokens forwarded to the store must never reach a log line,
    so every formatted message passes through here.
    """
    if not isinstance(text, str):
        return text

    result = text
    for pattern in SECRET_PATTERNS:
        result = re.sub(pattern, replacement, result, flags=re.IGNORECASE | re.DOTALL)
    return result


def safe_log_value(value: Any, limit: int = 240, redact: bool = True) -> str:
    """Combine safe_preview() and redact_secrets()."""
    preview = safe_preview(value, limit=limit)
    if redact:
        preview = redact_secrets(preview)
    return preview


class GatewayFormatter(logging.Formatter):
    """Formatter emitting JSON or plain text with request context.

    Extracts request_id and principal from log records (set through
    RequestLoggerAdapter or ``extra=``), renders remaining extras through
    safe_log_value and redacts secrets from the message.
    """

    def __init__(
        self,
        include_context: bool = True,
        json_format: bool = True,
        redact_secrets: bool = True,
        *args: Any,
        **kwargs: Any,
    ):
        super().__init__(*args, **kwargs)
        self.include_context = include_context
        self.json_format = json_format
        self.redact_secrets = redact_secrets

    def format(self, record: logging.LogRecord) -> str:
        request_id = getattr(record, "request_id", None)
        principal = getattr(record, "principal", None)

        log_data: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if self.include_context:
            if request_id:
                log_data["request_id"] = str(request_id)
            if principal:
                log_data["principal"] = str(principal)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_RECORD_KEYS:
                log_data[key] = safe_log_value(value, redact=self.redact_secrets)

        if self.redact_secrets:
            log_data["message"] = redact_secrets(log_data["message"])
            if "exception" in log_data:
                log_data["exception"] = redact_secrets(log_data["exception"])

        if self.json_format:
            return json.dumps(log_data, default=str, ensure_ascii=False)

        parts = [
            f"[{log_data['timestamp']}]",
            f"{log_data['level']}",
            f"{log_data['logger']}",
        ]
        if "request_id" in log_data:
            parts.append(f"request_id={log_data['request_id']}")
        if "principal" in log_data:
            parts.append(f"principal={log_data['principal']}")
        parts.append(f": {log_data['message']}")
        return " ".join(parts)


class RequestLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that adds request_id and principal to log records.

    Usage:
        log = get_request_logger(__name__, request_id=rid, principal=principal.email)
        log.info("Command created", extra={"command_id": command.id})
    """

    def __init__(
        self,
        logger: logging.Logger,
        request_id: Optional[str] = None,
        principal: Optional[str] = None,
    ):
        super().__init__(logger, {})
        self.request_id = request_id
        self.principal = principal

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        request_id = kwargs.pop("request_id", self.request_id)
        principal = kwargs.pop("principal", self.principal)

        extra = dict(kwargs.get("extra") or {})
        if request_id:
            extra["request_id"] = request_id
        if principal:
            extra["principal"] = principal
        kwargs["extra"] = extra

        return msg, kwargs


def setup_logging(
    config: Optional[GatewayConfig] = None,
    json_format: Optional[bool] = None,
    redact_secrets: bool = True,
) -> None:
    """Configure the root logger for a neurongate deployment.

    Args:
        config: GatewayConfig instance (if None, loads from environment)
        json_format: Override config.log_json
        redact_secrets: Whether to redact secrets (default: True)
    """
    if config is None:
        from .config import load_config_from_env

        config = load_config_from_env()

    level_name = config.log_level.value if isinstance(config.log_level, LogLevel) else str(config.log_level)
    log_level = logging.getLevelName(level_name.upper())
    if not isinstance(log_level, int):
        log_level = logging.INFO

    if json_format is None:
        json_format = config.log_json

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(
        GatewayFormatter(
            include_context=True,
            json_format=json_format,
            redact_secrets=redact_secrets,
        )
    )
    root_logger.addHandler(console_handler)


def get_request_logger(
    name: str,
    request_id: Optional[str] = None,
    principal: Optional[str] = None,
) -> RequestLoggerAdapter:
    """Get a logger adapter bound to one request."""
    return RequestLoggerAdapter(logging.getLogger(name), request_id=request_id, principal=principal)


__all__ = [
    "safe_preview",
    "redact_secrets",
    "safe_log_value",
    "GatewayFormatter",
    "RequestLoggerAdapter",
    "setup_logging",
    "get_request_logger",
]

"""JSON auth-event logging with request correlation and credential redaction."""

from __future__ import annotations

import json
import logging
import re
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any

CORRELATION_ID_CTX: ContextVar[str] = ContextVar("correlation_id", default="")

AUTH_EVENT_FIELDS = (
    "user_id",
    "session_id",
    "invite_id",
    "action",
    "reason",
    "count",
)
HTTP_FIELDS = ("path", "method", "status_code")

# Attributes that carry credentials and must never reach a log line.
SECRET_FIELDS = frozenset(
    {
        "token",
        "access_token",
        "refresh_token",
        "refresh_token_hash",
        "identity_token",
        "password",
        "password_hash",
        "authorization",
        "cookie",
    }
)

REDACTED = "[redacted]"
_COMPACT_TOKEN_RE = re.compile(r"\beyJ[\w-]+\.[\w-]+\.[\w-]+")
_BEARER_RE = re.compile(r"(Bearer\s+)\S+")


def redact_text(text: str) -> str:
    """Mask compact signed tokens and bearer credentials inside free text."""
    text = _BEARER_RE.sub(rf"\1{REDACTED}", text)
    return _COMPACT_TOKEN_RE.sub(REDACTED, text)


class CredentialRedactionFilter(logging.Filter):
    """Strip credential attributes and mask tokens in rendered messages."""

    def filter(self, record: logging.LogRecord) -> bool:
        for name in SECRET_FIELDS:
            if name in record.__dict__:
                setattr(record, name, REDACTED)
        record.msg = redact_text(record.getMessage())
        record.args = None
        return True


class JsonLogFormatter(logging.Formatter):
    """Serialize log records into compact JSON lines."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "event": record.getMessage(),
            "correlation_id": CORRELATION_ID_CTX.get(),
        }

        for key in AUTH_EVENT_FIELDS + HTTP_FIELDS:
            value = getattr(record, key, None)
            if value not in (None, ""):
                payload[key] = str(value) if key == "reason" else value

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False)


def setup_logging(level: str = "INFO") -> None:
    """Configure root logger to emit redacted JSON auth events on stdout."""
    normalized_level = getattr(logging, level.upper(), logging.INFO)
    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(JsonLogFormatter())
    handler.addFilter(CredentialRedactionFilter())

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(normalized_level)
    root_logger.addHandler(handler)


def set_correlation_id(correlation_id: str) -> None:
    CORRELATION_ID_CTX.set(correlation_id)

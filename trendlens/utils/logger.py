"""Logging configuration"""

import json
import logging
import re
import sys
from typing import Any, Dict, Optional

REDACTED = "***REDACTED***"

_SENSITIVE_KEYS = ("authorization", "token", "secret", "api_key", "apikey", "password", "cookie", "session")
_INLINE_SECRET = re.compile(
    r"(?i)(bearer\s+|token\s+|(?:access_token|client_secret|api_key|token)=)([^\s&\"',]+)"
)


class JSONFormatter(logging.Formatter):
    """Formatter that emits one JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        log_record: Dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
            "module": record.module,
            "line": record.lineno,
        }

        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_record)


def setup_logging(level: str = "INFO", log_format: str = "text") -> None:
    """
    Configure the root logger once for the whole process

    Args:
        level: Level name (e.g. "INFO")
        log_format: "json" for structured output, anything else for plain text
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    if root_logger.handlers:
        return

    handler = logging.StreamHandler(sys.stdout)
    if log_format.lower() == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
    root_logger.addHandler(handler)

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def sanitize_for_log(value: Any, key: Optional[str] = None) -> Any:
    """
    Mask credentials before they reach a log line

    Dict values under sensitive keys are replaced outright; strings have inline
    bearer tokens and token query parameters masked.
    """
    if key is not None and any(marker in key.lower() for marker in _SENSITIVE_KEYS):
        return REDACTED
    if isinstance(value, dict):
        return {k: sanitize_for_log(v, key=str(k)) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [sanitize_for_log(item) for item in value]
    if isinstance(value, str):
        return _INLINE_SECRET.sub(lambda m: f"{m.group(1)}{REDACTED}", value)
    return value

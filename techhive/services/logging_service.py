"""Structured logging configuration with redaction support."""

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

import structlog

SENSITIVE_KEYS = {
    "api_key",
    "authorization",
    "secret",
    "password",
    "token",
}


def redact_sensitive(
    logger: Any, method_name: str, event_dict: Dict[str, Any]
) -> Dict[str, Any]:
    """Redact sensitive information from log entries.

    Redacts any field whose name contains one of ``SENSITIVE_KEYS``
    (case-insensitive), e.g. ``x_api_key``, ``jwt_secret``, ``access_token``.
    """
    for key in list(event_dict.keys()):
        key_lower = key.lower()
        if any(sensitive in key_lower for sensitive in SENSITIVE_KEYS):
            event_dict[key] = "REDACTED"

    return event_dict


def configure_logging(log_level: str = "INFO") -> None:
    """Configure structlog for JSON output with request ID support.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=level,
    )

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        redact_sensitive,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer(),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a configured logger instance.

    Args:
        name: Optional logger name for context

    Returns:
        Configured structlog logger
    """
    logger = structlog.get_logger()
    if name:
        logger = logger.bind(logger_name=name)
    return logger


class RequestLogFile:
    """Appends one plain-text line per request to a daily log file.

    Files are named ``api-YYYY-MM-DD.log`` inside ``log_dir``, which is
    created on first use.
    """

    def __init__(self, log_dir: str | Path):
        self.log_dir = Path(log_dir)
        self._logger = get_logger("request_log")

    def path_for(self, when: datetime) -> Path:
        return self.log_dir / f"api-{when.date().isoformat()}.log"

    def write(
        self,
        method: str,
        url: str,
        client_ip: Optional[str],
        user_agent: Optional[str],
        when: Optional[datetime] = None,
    ) -> None:
        """Append a request line; I/O failures are logged, never raised."""
        when = when or datetime.now(timezone.utc)
        line = (
            f"[{when.isoformat()}] {method} {url} - "
            f"{client_ip or 'Unknown'} - {user_agent or 'Unknown'}\n"
        )
        try:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            with self.path_for(when).open("a", encoding="utf-8") as handle:
                handle.write(line)
        except OSError as e:
            self._logger.warning(
                "request_log_write_failed",
                path=str(self.path_for(when)),
                error=str(e),
            )

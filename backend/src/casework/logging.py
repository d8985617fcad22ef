"""Structured logging configuration for Casework.

Provides JSON-formatted logs for production and human-readable
logs for development.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from .config import get_settings

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RESERVED_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__.keys()
) | {"message", "asctime"}


class JSONFormatter(logging.Formatter):
    """JSON log formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format a log record as JSON."""
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Fields passed via extra=...
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                log_data[key] = value

        if record.funcName:
            log_data["function"] = record.funcName
        if record.lineno:
            log_data["line"] = record.lineno

        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable log formatter for development."""

    def __init__(self):
        super().__init__(
            fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )


def setup_logging() -> None:
    """Configure logging based on settings."""
    settings = get_settings()

    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)

    if settings.log_format == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(TextFormatter())

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = [handler]

    logger = get_logger(__name__)
    logger.info(
        "Logging initialized",
        extra={
            "environment": settings.environment,
            "log_level": settings.log_level,
            "log_format": settings.log_format,
        },
    )


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the given name.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)


class LoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that adds context to all log messages."""

    def process(
        self, msg: str, kwargs: dict[str, Any]
    ) -> tuple[str, dict[str, Any]]:
        """Process the logging message and add extra context."""
        extra = kwargs.get("extra", {})
        extra.update(self.extra)
        kwargs["extra"] = extra
        return msg, kwargs


def get_context_logger(name: str, **context: Any) -> LoggerAdapter:
    """Get a logger with additional context.

    Args:
        name: Logger name
        **context: Context fields to add to all log messages

    Returns:
        Logger adapter with context

    Usage:
        logger = get_context_logger(__name__, case_id="c-1", user_id="p-7")
        logger.info("Intervention saved")  # Includes case_id and user_id
    """
    return LoggerAdapter(get_logger(name), context)


# =========================
# Convenience functions
# =========================


def log_intervention_saved(
    intervention_id: str | None,
    case_id: str | None,
    created: bool,
    user_id: str | None = None,
) -> None:
    """Log a successful intervention save."""
    logger = get_logger("casework.interventions")
    action = "Created" if created else "Updated"
    logger.info(
        f"{action} intervention {intervention_id}",
        extra={
            "intervention_id": intervention_id,
            "case_id": case_id,
            "created": created,
            "user_id": user_id,
            "event": "intervention_saved",
        },
    )


def log_intervention_deleted(intervention_id: str, case_id: str | None) -> None:
    """Log a confirmed intervention delete."""
    logger = get_logger("casework.interventions")
    logger.info(
        f"Deleted intervention {intervention_id}",
        extra={
            "intervention_id": intervention_id,
            "case_id": case_id,
            "event": "intervention_deleted",
        },
    )


def log_persistence_error(operation: str, entity_id: str | None, error: str) -> None:
    """Log a failed call to the persistence collaborator.

    Args:
        operation: Collaborator operation (save_case, delete_intervention, ...)
        entity_id: Identifier of the entity involved, if known
        error: Error description
    """
    logger = get_logger("casework.persistence")
    logger.error(
        f"Persistence error in {operation} for {entity_id}: {error}",
        extra={
            "operation": operation,
            "entity_id": entity_id,
            "error": error,
            "event": "persistence_error",
        },
    )


def log_confirmation(token: str, title: str, outcome: str) -> None:
    """Log the resolution of a confirmation proposal.

    Args:
        token: Proposal token
        title: Prompt title shown to the caseworker
        outcome: proposed, confirmed or cancelled
    """
    logger = get_logger("casework.confirmation")
    logger.debug(
        f"Confirmation '{title}' {outcome}",
        extra={
            "token": token,
            "title": title,
            "outcome": outcome,
            "event": "confirmation",
        },
    )


def log_alert_scan(
    scan: str,
    scanned: int,
    flagged: int,
    user_id: str | None = None,
) -> None:
    """Log the result of an alert computation.

    Args:
        scan: Alert name (agenda, expired_actions, missing_professionals)
        scanned: Number of items examined
        flagged: Number of items returned
        user_id: User the scan was computed for, if personal
    """
    logger = get_logger("casework.alerts")
    logger.debug(
        f"Alert scan {scan}: {flagged}/{scanned}",
        extra={
            "scan": scan,
            "scanned": scanned,
            "flagged": flagged,
            "user_id": user_id,
            "event": "alert_scan",
        },
    )

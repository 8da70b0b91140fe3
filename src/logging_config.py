"""Structured logging configuration for Feed Enclosure Transformer."""

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any

LOGGER_NAMESPACE = "feed_transformer"

# Extra attributes copied from a record into the JSON document
CONTEXT_FIELDS = (
    "execution_id",
    "component",
    "feed_url",
    "item_title",
    "reason",
    "status_code",
    "dialect",
    "metrics",
)


class StructuredFormatter(logging.Formatter):
    """Renders each record as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as structured JSON."""
        document = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        document.update(
            (field, getattr(record, field))
            for field in CONTEXT_FIELDS
            if hasattr(record, field)
        )

        if record.exc_info:
            document["exception"] = self.formatException(record.exc_info)

        return json.dumps(document, ensure_ascii=False, default=str)


class RequestLogger:
    """Component logger that stamps every record with the request context."""

    def __init__(self, execution_id: str, component: str = "main"):
        """Initialize request logger.

        Args:
            execution_id: Identifier shared by all records of one request
            component: Component name (e.g., 'feed_fetcher', 'feed_parser')
        """
        self.execution_id = execution_id
        self.component = component
        self.logger = logging.getLogger(f"{LOGGER_NAMESPACE}.{component}")
        self.started_at: datetime | None = None

    def _log(self, level: int, message: str, **context) -> None:
        self.logger.log(
            level,
            message,
            extra={
                "execution_id": self.execution_id,
                "component": self.component,
                **context,
            },
        )

    def debug(self, message: str, **context) -> None:
        self._log(logging.DEBUG, message, **context)

    def info(self, message: str, **context) -> None:
        self._log(logging.INFO, message, **context)

    def warning(self, message: str, **context) -> None:
        self._log(logging.WARNING, message, **context)

    def error(self, message: str, **context) -> None:
        self._log(logging.ERROR, message, **context)

    def log_request_start(self, method: str, **context) -> None:
        """Log the start of a request and remember when it began."""
        self.started_at = datetime.now(UTC)
        self.info(
            f"Starting {method} request",
            request_start=self.started_at.isoformat(),
            http_method=method,
            **context,
        )

    def log_request_end(self, status_code: int, **context) -> None:
        """Log the response status and how long the request took."""
        duration_seconds = None
        if self.started_at:
            duration_seconds = (datetime.now(UTC) - self.started_at).total_seconds()

        self.info(
            f"Completed request with status {status_code}",
            status_code=status_code,
            request_duration_seconds=duration_seconds,
            request_success=status_code < 400,
            **context,
        )

    def log_feed_parsed(self, feed_url: str, dialect: str, entries_count: int) -> None:
        self.info(
            f"Parsed {dialect} feed: {entries_count} entries found",
            feed_url=feed_url,
            dialect=dialect,
            entries_count=entries_count,
        )

    def log_entry_skipped(self, item_title: str, reason: str) -> None:
        self.info(
            f"Entry skipped ({reason}): {item_title}",
            item_title=item_title,
            reason=reason,
        )

    def log_metrics(self, metrics: dict[str, Any]) -> None:
        self.info("Request metrics", metrics=metrics)


def setup_structured_logging(log_level: str = "INFO") -> None:
    """Send JSON records to stdout, where Lambda forwards them to CloudWatch Logs.

    Args:
        log_level: Logging level name (DEBUG, INFO, WARNING, ERROR)
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(StructuredFormatter())
    root_logger.addHandler(console_handler)

    logging.getLogger(LOGGER_NAMESPACE).setLevel(level)


def create_request_logger(
    component: str, execution_id: str | None = None
) -> RequestLogger:
    """Create a logger for a component.

    Args:
        component: Component name
        execution_id: Request identifier; a timestamped one is generated if
            not provided

    Returns:
        RequestLogger instance
    """
    if not execution_id:
        execution_id = f"exec_{datetime.now(UTC).strftime('%Y%m%d_%H%M%S_%f')}"

    return RequestLogger(execution_id, component)

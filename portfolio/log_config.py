"""Logging configuration for the portfolio screen."""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Optional

_CONFIGURED = False


def setup_logging(
    level: str = "INFO",
    format_type: str = "standard",
) -> None:
    """Configure logging for the portfolio app.

    Streamlit re-executes the page script on every interaction, so this is a
    no-op after the first call in a process.

    Parameters
    ----------
    level : str
        Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    format_type : str
        Format type: "standard" or "json".
    """
    global _CONFIGURED
    if _CONFIGURED:
        return

    log_level = getattr(logging, level.upper(), logging.INFO)

    if format_type == "json":
        formatter: logging.Formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(
            fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)

    # Own the package logger rather than the root logger; Streamlit configures root
    package_logger = logging.getLogger("portfolio")
    package_logger.setLevel(log_level)
    for handler in package_logger.handlers[:]:
        package_logger.removeHandler(handler)
    package_logger.addHandler(console_handler)
    package_logger.propagate = False

    # Reduce noise from external libraries
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("requests").setLevel(logging.WARNING)

    _CONFIGURED = True


class JsonFormatter(logging.Formatter):
    """JSON log formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Context passed as extra={"context": {...}}
        context = getattr(record, "context", None)
        if isinstance(context, dict):
            log_data.update(context)

        return json.dumps(log_data, default=str)


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the given name.

    Parameters
    ----------
    name : str
        Logger name (usually __name__).

    Returns
    -------
    logging.Logger
        Configured logger.
    """
    return logging.getLogger(name)


def debug_log(label: str, data: Any, logger: Optional[logging.Logger] = None) -> Any:
    """Log ``data`` as a labelled, pretty-printed JSON block at DEBUG level.

    Returns ``data`` unchanged so calls can be chained.
    """
    log = logger or logging.getLogger("portfolio.debug")
    if log.isEnabledFor(logging.DEBUG):
        body = json.dumps(data, indent=2, default=str)
        log.debug("----- DEBUG %s -----\n%s\n----- END %s -----", label, body, label)
    return data

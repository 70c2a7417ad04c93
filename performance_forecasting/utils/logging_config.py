"""Logging configuration for the forecasting core."""

import logging
import sys
import json
from pathlib import Path
from typing import Optional
from datetime import datetime

NULL_LOGGER_NAME = "performance_forecasting.null"


class JSONFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format the log record as a JSON string."""
        log_obj = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "funcName": record.funcName,
            "lineNo": record.lineno,
        }

        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        # Extra fields passed as extra={"props": {...}}
        if hasattr(record, "props"):
            log_obj.update(record.props)

        return json.dumps(log_obj)


def setup_logging(
    log_level: str = "INFO",
    log_dir: Optional[str] = "logs",
) -> None:
    """
    Setup logging for a host application embedding the forecasting core.

    Args:
        log_level: Logging level (INFO, DEBUG, etc.)
        log_dir: Directory for JSON line files; console only when None
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = []

    # Console Handler (Human readable)
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    ))
    root_logger.addHandler(console_handler)

    if log_dir is not None:
        Path(log_dir).mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(f"{log_dir}/forecasting.jsonl")
        file_handler.setLevel(log_level)
        file_handler.setFormatter(JSONFormatter())
        root_logger.addHandler(file_handler)

        error_handler = logging.FileHandler(f"{log_dir}/errors.jsonl")
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(JSONFormatter())
        root_logger.addHandler(error_handler)

    logging.info(f"Logging configured with level {log_level}")


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance."""
    return logging.getLogger(name)


def null_logger() -> logging.Logger:
    """
    Build a logger that discards every record.

    The instance is created directly rather than through logging.getLogger,
    so it is not registered with (or affected by) the global logging tree.
    """
    logger = logging.Logger(NULL_LOGGER_NAME)
    logger.addHandler(logging.NullHandler())
    logger.propagate = False
    logger.disabled = True
    return logger


def resolve_logger(logger: Optional[logging.Logger]) -> logging.Logger:
    """Return the injected logger, or a no-op logger when none is given."""
    return logger if logger is not None else null_logger()

import logging
import logging.config
import os
import structlog
from datetime import datetime
import uuid
from typing import Any, Dict, Optional
import sys

# Loggers that get the console (and file) handlers; the engine logs through
# stdlib logging under lineplan.planning.scheduling
APP_LOGGERS = ("lineplan", "lineplan.planning.scheduling")

# Rotating file handler limits
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5

STRUCTLOG_PROCESSORS = [
    structlog.stdlib.filter_by_level,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.stdlib.PositionalArgumentsFormatter(),
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.format_exc_info,
    structlog.processors.UnicodeDecoder(),
    structlog.processors.JSONRenderer(),
]


def build_logging_config(log_level: str = "INFO", log_file: Optional[str] = None) -> Dict[str, Any]:
    """
    Build the dictConfig mapping for the planning service.

    Console output uses a plain line format. When log_file is given, a rotating
    JSON file handler is attached to the root and every application logger.

    Args:
        log_level: Level name applied to handlers and loggers
        log_file: Optional log file path

    Returns:
        dict: Mapping accepted by logging.config.dictConfig
    """
    level = log_level.upper()
    handlers = ["console"]

    config: Dict[str, Any] = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "detailed": {"format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"},
            "json": {
                "()": "structlog.stdlib.ProcessorFormatter",
                "processor": structlog.processors.JSONRenderer(),
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": "detailed",
                "stream": sys.stdout,
            },
        },
    }

    if log_file:
        config["handlers"]["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": level,
            "formatter": "json",
            "filename": log_file,
            "maxBytes": LOG_FILE_MAX_BYTES,
            "backupCount": LOG_FILE_BACKUPS,
        }
        handlers.append("file")

    config["loggers"] = {"": {"level": level, "handlers": list(handlers), "propagate": False}}
    for name in APP_LOGGERS:
        config["loggers"][name] = {"level": level, "handlers": list(handlers), "propagate": False}
    return config


def configure_logging(log_level: str = "INFO", log_file: Optional[str] = None):
    """
    Configure structured logging for the planning service.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional log file path. Its directory is created if missing.
    """
    structlog.configure(
        processors=STRUCTLOG_PROCESSORS,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)

    logging.config.dictConfig(build_logging_config(log_level, log_file))

    logger = structlog.get_logger("lineplan")
    logger.info("Logging configured", level=log_level, file=log_file)
    return logger


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


class PlanOperation:
    """Context manager for planning session operations with correlation ID."""

    def __init__(self, operation_type: str, operation_id: Optional[str] = None, **context):
        self.operation_type = operation_type
        self.operation_id = operation_id or str(uuid.uuid4())[:8]
        self.context = context
        self.logger = get_logger("lineplan.planning")
        self.start_time = None

    def __enter__(self):
        self.start_time = datetime.utcnow()
        self.logger.debug(
            "Plan operation started",
            operation_type=self.operation_type,
            operation_id=self.operation_id,
            **self.context
        )
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        duration = (datetime.utcnow() - self.start_time).total_seconds()

        if exc_type is None:
            self.logger.info(
                "Plan operation completed",
                operation_type=self.operation_type,
                operation_id=self.operation_id,
                duration_seconds=duration,
                status="success",
                **self.context
            )
        else:
            self.logger.warning(
                "Plan operation failed",
                operation_type=self.operation_type,
                operation_id=self.operation_id,
                duration_seconds=duration,
                status="error",
                error_type=exc_type.__name__,
                error_message=str(exc_val),
                **self.context
            )

        return False  # Don't suppress exceptions

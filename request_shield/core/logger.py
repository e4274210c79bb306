"""
Structured logging configuration
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone

SECURITY_FIELDS = (
    "event",
    "source",
    "endpoint",
    "category",
    "count",
    "pattern",
    "reason",
    "severity",
    "retry_after",
    "suspicious_ips",
    "rate_limit_entries",
    "blocked_ips",
)


class JSONFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging"""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        # Security event fields passed through `extra`
        for field_name in SECURITY_FIELDS:
            if hasattr(record, field_name):
                log_entry[field_name] = getattr(record, field_name)

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


def setup_logger(name: str, level: str = "INFO") -> logging.Logger:
    """Setup structured logger"""
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Remove existing handlers
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    # Console handler
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(JSONFormatter())
    logger.addHandler(console_handler)

    # Prevent messages from being passed to the root logger
    logger.propagate = False

    return logger


# Security event sink shared by the protection layer
security_logger = setup_logger("request_shield", os.getenv("LOG_LEVEL", "INFO"))

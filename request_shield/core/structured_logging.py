"""
Structured Logging - Standardized security events for operational monitoring
Provides consistent, parsable log entries for every protection decision
"""

import logging
from typing import Any

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def log_security_event(logger: logging.Logger, event: str, level: str = "info", **fields: Any) -> None:
    """
    Log a protection event with structured fields (fire-and-forget)

    Args:
        logger: Sink receiving the event
        event: Event name (e.g., "source_blocked", "suspicious_activity")
        level: debug, info, warning or error
        **fields: source, endpoint, category, count, pattern, ...

    Usage:
        log_security_event(logger, "source_blocked", "error", source="203.0.113.5", reason="brute_force")
    """
    extra = {k: v for k, v in fields.items() if v is not None}
    parts = [f"event={event}"] + [f"{k}={v}" for k, v in extra.items()]
    extra["event"] = event

    logger.log(_LEVELS.get(level, logging.INFO), f"PROTECTION|{'|'.join(parts)}", extra=extra)

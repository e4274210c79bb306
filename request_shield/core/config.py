"""
Protection layer configuration.

Values come from the environment (optionally a .env file) and are validated
by a pydantic model; durations are in seconds.
"""
import logging
import os
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

# Load environment variables
load_dotenv()

ENV_PREFIX = "PROTECTION_"


class ProtectionSettings(BaseModel):
    """Per-instance protection settings"""

    # Brute force (per source:endpoint)
    max_attempts: int = Field(default=5, gt=0)
    window_seconds: float = Field(default=15 * 60, gt=0)
    block_duration_seconds: float = Field(default=60 * 60, gt=0)
    protected_endpoint_prefixes: List[str] = Field(
        default_factory=lambda: ["/login", "/admin", "/auth"]
    )

    # Suspicion escalation
    block_threshold: int = Field(default=3, gt=0)

    # Enumeration throttling (per source)
    enumeration_max_attempts: int = Field(default=20, gt=0)
    enumeration_window_seconds: float = Field(default=60 * 60, gt=0)

    # Cleanup
    max_age_seconds: float = Field(default=24 * 60 * 60, gt=0)
    cleanup_interval_seconds: float = Field(default=60 * 60, gt=0)

    # Request integrity
    max_content_length: int = Field(default=10 * 1024 * 1024, gt=0)

    # Classification failure policy: True lets the request through
    fail_open: bool = True

    # Stats
    top_n: int = Field(default=10, gt=0)

    # Timing-attack jitter, milliseconds
    timing_jitter_enabled: bool = False
    timing_jitter_min_ms: int = Field(default=10, ge=0)
    timing_jitter_max_ms: int = Field(default=60, ge=0)

    # Only enable behind a proxy that overwrites X-Forwarded-For
    trust_proxy_headers: bool = False


def _get_str(name: str) -> Optional[str]:
    value = os.getenv(ENV_PREFIX + name)
    return value.strip() if value is not None and value.strip() else None


def _get_bool(name: str, default: bool) -> bool:
    """Get boolean setting from environment"""
    value = _get_str(name)
    if value is None:
        return default
    lowered = value.lower()
    if lowered in ("true", "1", "yes", "on"):
        return True
    if lowered in ("false", "0", "no", "off"):
        return False
    logger.warning(f"Invalid {ENV_PREFIX}{name} value, using default {default}")
    return default


def _get_number(name: str, default, cast=int, allow_zero: bool = False):
    """Get numeric setting from environment"""
    value = _get_str(name)
    if value is None:
        return default
    try:
        parsed = cast(value)
    except ValueError:
        logger.warning(f"Invalid {ENV_PREFIX}{name} value, using default {default}")
        return default
    if parsed < 0 or (parsed == 0 and not allow_zero):
        logger.warning(f"Out-of-range {ENV_PREFIX}{name} value, using default {default}")
        return default
    return parsed


def _get_list(name: str, default: List[str]) -> List[str]:
    value = _get_str(name)
    if value is None:
        return list(default)
    return [item.strip() for item in value.split(",") if item.strip()]


def load_settings() -> ProtectionSettings:
    """Build settings from PROTECTION_* environment variables"""
    defaults = ProtectionSettings()

    settings = ProtectionSettings(
        max_attempts=_get_number("MAX_ATTEMPTS", defaults.max_attempts),
        window_seconds=_get_number("WINDOW_SECONDS", defaults.window_seconds, float),
        block_duration_seconds=_get_number(
            "BLOCK_DURATION_SECONDS", defaults.block_duration_seconds, float
        ),
        protected_endpoint_prefixes=_get_list(
            "PROTECTED_PREFIXES", defaults.protected_endpoint_prefixes
        ),
        block_threshold=_get_number("BLOCK_THRESHOLD", defaults.block_threshold),
        enumeration_max_attempts=_get_number(
            "ENUM_MAX_ATTEMPTS", defaults.enumeration_max_attempts
        ),
        enumeration_window_seconds=_get_number(
            "ENUM_WINDOW_SECONDS", defaults.enumeration_window_seconds, float
        ),
        max_age_seconds=_get_number("MAX_AGE_SECONDS", defaults.max_age_seconds, float),
        cleanup_interval_seconds=_get_number(
            "CLEANUP_INTERVAL_SECONDS", defaults.cleanup_interval_seconds, float
        ),
        max_content_length=_get_number("MAX_CONTENT_LENGTH", defaults.max_content_length),
        fail_open=_get_bool("FAIL_OPEN", defaults.fail_open),
        top_n=_get_number("TOP_N", defaults.top_n),
        timing_jitter_enabled=_get_bool("TIMING_JITTER", defaults.timing_jitter_enabled),
        timing_jitter_min_ms=_get_number(
            "TIMING_JITTER_MIN_MS", defaults.timing_jitter_min_ms, allow_zero=True
        ),
        timing_jitter_max_ms=_get_number(
            "TIMING_JITTER_MAX_MS", defaults.timing_jitter_max_ms, allow_zero=True
        ),
        trust_proxy_headers=_get_bool("TRUST_PROXY_HEADERS", defaults.trust_proxy_headers),
    )

    logger.info(
        f"Protection settings loaded - max_attempts: {settings.max_attempts}, "
        f"block_threshold: {settings.block_threshold}, fail_open: {settings.fail_open}"
    )
    return settings

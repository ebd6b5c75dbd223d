"""
Centralized configuration with environment variable overrides.

Grid defaults, booking validation windows, hold lifetime and display
thresholds are configurable here. Nothing is hardcoded in the scheduling
engine or tool logic.
"""

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from src.logging_context import install_session_records

load_dotenv()

logger = logging.getLogger(__name__)


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid integer for {env_var}: {raw!r}"
        ) from None


@dataclass(frozen=True)
class GridDefaults:
    """Slot grid settings used when a business has not configured its own."""

    slot_size_minutes: int = _safe_int("DEFAULT_SLOT_SIZE_MINUTES", "15")
    buffer_minutes: int = _safe_int("DEFAULT_BUFFER_MINUTES", "0")
    min_slot_size_minutes: int = _safe_int("MIN_SLOT_SIZE_MINUTES", "5")
    max_slot_size_minutes: int = _safe_int("MAX_SLOT_SIZE_MINUTES", "60")
    max_buffer_minutes: int = _safe_int("MAX_BUFFER_MINUTES", "60")


@dataclass(frozen=True)
class BookingRules:
    """Validation limits applied to appointment creation and rescheduling."""

    min_duration_minutes: int = _safe_int("MIN_DURATION_MINUTES", "5")
    max_duration_minutes: int = _safe_int("MAX_DURATION_MINUTES", "1440")
    fallback_duration_minutes: int = _safe_int("FALLBACK_DURATION_MINUTES", "60")
    max_past_days: int = _safe_int("MAX_PAST_DAYS", "365")
    max_future_days: int = _safe_int("MAX_FUTURE_DAYS", "730")
    hold_ttl_minutes: int = _safe_int("HOLD_TTL_MINUTES", "60")


@dataclass(frozen=True)
class DisplayConfig:
    """How many alternatives to offer and when to compact time lists."""

    max_suggestions: int = _safe_int("MAX_SUGGESTIONS", "3")
    max_alternatives: int = _safe_int("MAX_ALTERNATIVES", "5")
    compact_threshold: int = _safe_int("COMPACT_THRESHOLD", "5")
    lookahead_days: int = _safe_int("AVAILABLE_DATES_LOOKAHEAD_DAYS", "14")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    grid: GridDefaults = field(default_factory=GridDefaults)
    booking: BookingRules = field(default_factory=BookingRules)
    display: DisplayConfig = field(default_factory=DisplayConfig)
    business_name: str = os.getenv("BUSINESS_NAME", "Studio Agenda")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    grid = config.grid
    if grid.slot_size_minutes < 1:
        raise ValueError(
            f"DEFAULT_SLOT_SIZE_MINUTES must be >= 1, got {grid.slot_size_minutes}"
        )
    if grid.buffer_minutes < 0:
        raise ValueError(
            f"DEFAULT_BUFFER_MINUTES must be >= 0, got {grid.buffer_minutes}"
        )
    if not 1 <= grid.min_slot_size_minutes <= grid.max_slot_size_minutes:
        raise ValueError(
            "MIN_SLOT_SIZE_MINUTES must be >= 1 and <= MAX_SLOT_SIZE_MINUTES, "
            f"got {grid.min_slot_size_minutes}..{grid.max_slot_size_minutes}"
        )

    booking = config.booking
    if not 1 <= booking.min_duration_minutes <= booking.max_duration_minutes:
        raise ValueError(
            "MIN_DURATION_MINUTES must be >= 1 and <= MAX_DURATION_MINUTES, "
            f"got {booking.min_duration_minutes}..{booking.max_duration_minutes}"
        )
    if booking.fallback_duration_minutes < 1:
        raise ValueError(
            "FALLBACK_DURATION_MINUTES must be >= 1, "
            f"got {booking.fallback_duration_minutes}"
        )
    if booking.hold_ttl_minutes < 1:
        raise ValueError(
            f"HOLD_TTL_MINUTES must be >= 1, got {booking.hold_ttl_minutes}"
        )

    for name, value in [
        ("MAX_PAST_DAYS", booking.max_past_days),
        ("MAX_FUTURE_DAYS", booking.max_future_days),
        ("MAX_SUGGESTIONS", config.display.max_suggestions),
        ("MAX_ALTERNATIVES", config.display.max_alternatives),
        ("COMPACT_THRESHOLD", config.display.compact_threshold),
        ("AVAILABLE_DATES_LOOKAHEAD_DAYS", config.display.lookahead_days),
    ]:
        if value < 0:
            raise ValueError(f"{name} must be >= 0, got {value}")


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    install_session_records()
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s [%(session_id)s]: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logger.info("Configuration loaded for '%s'", config.business_name)
    return config


# Singleton instance
settings = load_config()

"""
Centralized configuration with environment variable overrides.

Backend location, timeouts, polling and countdown cadence are all
configurable here. Nothing is hardcoded in tracker or client logic.
"""

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from home_helper.logging_context import LOG_FORMAT, install_session_filter

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


def _safe_float(env_var: str, default: str) -> float:
    """Parse a float from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return float(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid float for {env_var}: {raw!r}"
        ) from None


@dataclass(frozen=True)
class BackendConfig:
    """Where the REST backend lives and how long we wait for it."""

    base_url: str = os.getenv("HOME_HELPER_API_BASE_URL", "http://localhost:3000/api/v1")
    timeout_sec: float = _safe_float("API_TIMEOUT_SECONDS", "30")


@dataclass(frozen=True)
class PollingConfig:
    """Background refresh cadence for booking lists."""

    interval_sec: float = _safe_float("POLL_INTERVAL_SECONDS", "5")


@dataclass(frozen=True)
class TimerConfig:
    """Countdown and notification timings."""

    tick_sec: float = _safe_float("TIMER_TICK_SECONDS", "1.0")
    toast_duration_ms: int = _safe_int("TOAST_DURATION_MS", "3500")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    backend: BackendConfig = field(default_factory=BackendConfig)
    polling: PollingConfig = field(default_factory=PollingConfig)
    timers: TimerConfig = field(default_factory=TimerConfig)
    session_file: str = os.getenv("SESSION_FILE", "~/.home_helper/session.json")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    app_name: str = os.getenv("APP_NAME", "home-helper")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    if not config.backend.base_url.startswith(("http://", "https://")):
        raise ValueError(
            f"HOME_HELPER_API_BASE_URL must be an http(s) URL, got {config.backend.base_url!r}"
        )
    if config.backend.timeout_sec <= 0:
        raise ValueError(
            f"API_TIMEOUT_SECONDS must be > 0, got {config.backend.timeout_sec}"
        )
    if config.polling.interval_sec <= 0:
        raise ValueError(
            f"POLL_INTERVAL_SECONDS must be > 0, got {config.polling.interval_sec}"
        )
    if not 0.0 < config.timers.tick_sec <= 1.0:
        raise ValueError(
            f"TIMER_TICK_SECONDS must be in (0, 1], got {config.timers.tick_sec}"
        )
    if config.timers.toast_duration_ms < 1:
        raise ValueError(
            f"TOAST_DURATION_MS must be >= 1, got {config.timers.toast_duration_ms}"
        )


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    install_session_filter()
    logger.info("Configuration loaded for '%s' (backend %s)", config.app_name, config.backend.base_url)
    return config


# Singleton instance
settings = load_config()

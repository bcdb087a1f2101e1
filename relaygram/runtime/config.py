"""Configuration model and loader for relaygram.

Defines the `AppConfig` dataclass that reads environment variables and
provides typed access across the application.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from ..translate.language_detector import parse_script_ranges
from .errors import ConfigurationError


def _get_bool(name: str, default: bool = False) -> bool:
    v = os.getenv(name)
    if v is None:
        return default
    return v.strip().lower() in {"1", "true", "yes", "on"}


def _get_int(name: str, default: int) -> int:
    v = os.getenv(name)
    try:
        return int(v) if v is not None else default
    except ValueError:
        return default


def _get_float(name: str, default: float) -> float:
    v = os.getenv(name)
    try:
        return float(v) if v is not None else default
    except ValueError:
        return default


def _get_list(name: str) -> List[str]:
    raw = os.getenv(name, "")
    return [s.strip().lower() for s in raw.split(",") if s.strip()]


@dataclass
class AppConfig:
    """Application configuration resolved from environment variables."""

    # Telegram
    api_id: int | None
    api_hash: str | None
    session: str
    session_b64: str
    session_file: str
    connection_retries: int

    # Routing
    source_channels: List[str]
    dest_channel: str
    translate_bot: str
    target_language: str
    source_script_ranges: str

    # Timing
    translation_timeout_seconds: float
    album_debounce_seconds: float

    # Output
    attribution_label: str
    album_text_only_fallback: bool

    # Logging & Health
    log_level: str
    logs_dir: Optional[str]
    log_rotate_max_bytes: int
    log_rotate_backup_count: int
    health_port: int
    bind_health_localhost_only: bool

    # Startup
    unattended: bool = False
    script_ranges: List[Tuple[int, int]] = field(default_factory=list)

    @staticmethod
    def from_env() -> "AppConfig":
        ranges_raw = os.getenv("SOURCE_SCRIPT_RANGES", "0590-05FF")
        return AppConfig(
            api_id=_get_int("API_ID", 0) or None,
            api_hash=os.getenv("API_HASH") or None,
            session=os.getenv("SESSION", "").strip(),
            session_b64=os.getenv("SESSION_B64", "").strip(),
            session_file=os.getenv("SESSION_FILE", "./session.txt"),
            connection_retries=_get_int("CONNECTION_RETRIES", 5),
            source_channels=_get_list("SOURCE_CHANNELS"),
            dest_channel=os.getenv("DEST_CHANNEL", "").strip(),
            translate_bot=os.getenv("TRANSLATE_BOT", "YTranslateBot").strip().lstrip("@"),
            target_language=os.getenv("TARGET_LANGUAGE", "ar"),
            source_script_ranges=ranges_raw,
            translation_timeout_seconds=_get_float("TRANSLATION_TIMEOUT_SECONDS", 15.0),
            album_debounce_seconds=_get_float("ALBUM_DEBOUNCE_SECONDS", 2.0),
            attribution_label=os.getenv("ATTRIBUTION_LABEL", "المصدر"),
            album_text_only_fallback=_get_bool("ALBUM_TEXT_ONLY_FALLBACK", False),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            logs_dir=os.getenv("LOGS_DIR") or None,
            log_rotate_max_bytes=_get_int("LOG_ROTATE_MAX_BYTES", 5 * 1024 * 1024),
            log_rotate_backup_count=_get_int("LOG_ROTATE_BACKUP_COUNT", 10),
            health_port=_get_int("PORT", 3000),
            bind_health_localhost_only=_get_bool("BIND_HEALTH_LOCALHOST_ONLY", False),
            unattended=os.getenv("APP_ENV", "").lower() == "production"
            or bool(os.getenv("CI")),
            script_ranges=parse_script_ranges(ranges_raw),
        )

    def validate(self) -> None:
        """Fail fast on missing credentials or identities."""
        missing = []
        if not self.api_id:
            missing.append("API_ID")
        if not self.api_hash:
            missing.append("API_HASH")
        if not self.dest_channel:
            missing.append("DEST_CHANNEL")
        if not self.source_channels:
            missing.append("SOURCE_CHANNELS")
        if missing:
            raise ConfigurationError(f"missing required settings: {', '.join(missing)}")
        if self.translation_timeout_seconds <= 0 or self.album_debounce_seconds <= 0:
            raise ConfigurationError("timeouts must be positive")

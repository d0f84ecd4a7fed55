from __future__ import annotations

import os
from dataclasses import dataclass

from .constants import (
    CACHE_TTL_SECONDS,
    CAPTURE_MAX_MESSAGES,
    DEFAULT_CALL_TIMEOUT_SECONDS,
    RELAY_WEBHOOK_NAME,
    RESTORE_MAX_MESSAGES,
)


def _get_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _get_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _get_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name, "").strip().lower()
    if not raw:
        return default
    return raw in {"1", "true", "yes", "y", "on"}


def _get_str(name: str, default: str) -> str:
    return os.getenv(name, default).strip() or default


@dataclass(frozen=True)
class Settings:
    token: str
    sync_guild_id: int
    owner_id: int
    sqlite_path: str
    log_level: str
    cache_ttl_seconds: int
    # Capture
    capture_max_messages: int = CAPTURE_MAX_MESSAGES
    capture_image_mode: str = "url"  # "url" | "inline"
    # Restore
    restore_max_messages: int = RESTORE_MAX_MESSAGES
    restore_clear_guild: bool = True
    call_timeout_seconds: float = DEFAULT_CALL_TIMEOUT_SECONDS
    relay_webhook_name: str = RELAY_WEBHOOK_NAME


def load_settings() -> Settings:
    token = os.getenv("DISCORD_TOKEN", "").strip()
    if not token:
        raise RuntimeError("DISCORD_TOKEN is required")

    image_mode = _get_str("BACKUP_IMAGE_MODE", "url").lower()
    if image_mode not in {"url", "inline"}:
        image_mode = "url"

    return Settings(
        token=token,
        sync_guild_id=_get_int("SYNC_GUILD_ID", 0),
        # Default to 0 to avoid accidentally granting owner powers to a random ID
        owner_id=_get_int("OWNER_ID", 0),
        sqlite_path=_get_str("SQLITE_PATH", "guildvault.sqlite3"),
        log_level=_get_str("LOG_LEVEL", "INFO"),
        cache_ttl_seconds=_get_int("CACHE_TTL_SECONDS", CACHE_TTL_SECONDS),
        capture_max_messages=_get_int("BACKUP_MAX_MESSAGES", CAPTURE_MAX_MESSAGES),
        capture_image_mode=image_mode,
        restore_max_messages=_get_int("RESTORE_MAX_MESSAGES", RESTORE_MAX_MESSAGES),
        restore_clear_guild=_get_bool("RESTORE_CLEAR_GUILD", True),
        call_timeout_seconds=_get_float("API_CALL_TIMEOUT", DEFAULT_CALL_TIMEOUT_SECONDS),
        relay_webhook_name=_get_str("RELAY_WEBHOOK_NAME", RELAY_WEBHOOK_NAME),
    )

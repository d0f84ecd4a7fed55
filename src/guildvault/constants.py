from __future__ import annotations

from typing import Final

DOCUMENT_VERSION: Final[str] = "1.0.0"

# Voice bitrate ceilings per premium tier (bits/sec)
MAX_BITRATE_PER_TIER: Final[dict[int, int]] = {
    0: 64000,
    1: 128000,
    2: 256000,
    3: 384000,
}
DEFAULT_BITRATE: Final[int] = 64000

# Message replay
CAPTURE_MAX_MESSAGES: Final[int] = 10
RESTORE_MAX_MESSAGES: Final[int] = 100
RELAY_WEBHOOK_NAME: Final[str] = "MessagesBackup"
HISTORY_PAGE_SIZE: Final[int] = 100

# Guild reset baseline
DEFAULT_AFK_TIMEOUT: Final[int] = 300
COMMUNITY_FEATURE: Final[str] = "COMMUNITY"

# Remote calls
DEFAULT_CALL_TIMEOUT_SECONDS: Final[float] = 30.0
MAX_RATE_LIMIT_RETRIES: Final[int] = 5
CACHE_TTL_SECONDS: Final[int] = 120

# Embed colours
COLORS = {
    "default": 0x5865F2,
    "info": 0x3498DB,
    "success": 0x57F287,
    "warning": 0xF1C40F,
    "error": 0xED4245,
}

# Guild permissions a restore needs when the bot is not an administrator
REQUIRED_GUILD_PERMISSIONS: Final[tuple[str, ...]] = (
    "manage_guild",
    "manage_roles",
    "manage_channels",
    "manage_webhooks",
    "manage_emojis_and_stickers",
    "ban_members",
)

# Discord embed limits
MAX_EMBED_TITLE: Final[int] = 256
MAX_EMBED_DESCRIPTION: Final[int] = 4096
MAX_EMBED_FIELD_VALUE: Final[int] = 1024

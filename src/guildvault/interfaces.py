"""
Interface contracts for guildvault.

Restore code talks to the target guild only through ``GuildGateway``. The
discord.py binding lives in ``guildvault.gateway``; tests bind the same protocol
to an in-memory fake.
"""

from __future__ import annotations

from abc import abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional, Protocol, Sequence, Tuple, runtime_checkable

from .constants import REQUIRED_GUILD_PERMISSIONS
from .models import ChannelKind


@dataclass(frozen=True)
class RoleRef:
    id: int
    name: str
    is_default: bool = False
    deletable: bool = True


@dataclass(frozen=True)
class ChannelRef:
    id: int
    name: str
    kind: Optional[ChannelKind] = None  # None for categories
    parent_id: Optional[int] = None


@dataclass(frozen=True)
class EntityRef:
    """Anything addressed only by id and name (emoji, webhook, thread, message)."""
    id: int
    name: str = ""


@dataclass(frozen=True)
class BanRef:
    user_id: int
    reason: Optional[str] = None


@dataclass(frozen=True)
class ResolvedOverwrite:
    role_id: int
    allow: int
    deny: int


@dataclass
class ChannelCreateRequest:
    kind: ChannelKind
    name: str
    parent_id: Optional[int] = None
    topic: Optional[str] = None
    nsfw: bool = False
    rate_limit_per_user: Optional[int] = None
    bitrate: Optional[int] = None
    user_limit: Optional[int] = None


@dataclass
class RelayFile:
    name: str
    data: bytes


@dataclass
class RelayPayload:
    username: str
    avatar_url: Optional[str]
    content: Optional[str]
    embeds: List[Dict[str, Any]] = field(default_factory=list)
    file: Optional[RelayFile] = None
    thread_id: Optional[int] = None
    allowed_mentions: Optional[Any] = None


@runtime_checkable
class GuildGateway(Protocol):
    """The capability set restore needs from a target guild."""

    @property
    def premium_tier(self) -> int: ...

    @property
    def features(self) -> FrozenSet[str]: ...

    def missing_permissions(self) -> List[str]:
        """Guild permissions the acting identity lacks for a full restore."""
        ...

    def roles(self) -> Sequence[RoleRef]:
        """Current role view, highest position first."""
        ...

    def channels(self) -> Sequence[ChannelRef]: ...

    def emojis(self) -> Sequence[EntityRef]: ...

    @abstractmethod
    async def refresh(self) -> None:
        """Re-read roles, channels and emoji from the remote."""
        ...

    # Reads that always hit the remote
    async def fetch_webhooks(self) -> List[EntityRef]: ...

    async def fetch_bans(self) -> List[BanRef]: ...

    async def download(self, url: str) -> bytes: ...

    # Roles
    async def create_role(self, *, name: str, color: int, hoist: bool, permissions: int, mentionable: bool) -> RoleRef: ...

    async def edit_default_role(self, *, color: int, permissions: int, mentionable: bool) -> None: ...

    async def delete_role(self, role_id: int) -> None: ...

    # Channels
    async def create_category(self, name: str) -> ChannelRef: ...

    async def create_channel(self, request: ChannelCreateRequest) -> ChannelRef: ...

    async def set_overwrites(self, channel_id: int, overwrites: Sequence[ResolvedOverwrite]) -> None: ...

    async def delete_channel(self, channel_id: int) -> None: ...

    async def find_thread(self, channel_id: int, name: str) -> Optional[EntityRef]: ...

    async def create_thread(self, channel_id: int, name: str, auto_archive_duration: int) -> EntityRef: ...

    # Relay
    async def acquire_relay(self, channel_id: int, name: str) -> Optional[EntityRef]: ...

    async def relay_send(self, relay_id: int, payload: RelayPayload) -> EntityRef: ...

    async def pin_message(self, channel_id: int, message_id: int) -> None: ...

    async def delete_webhook(self, webhook_id: int) -> None: ...

    # Emoji / bans
    async def create_emoji(self, name: str, image: bytes) -> EntityRef: ...

    async def delete_emoji(self, emoji_id: int) -> None: ...

    async def ban(self, user_id: int, reason: Optional[str]) -> None: ...

    async def unban(self, user_id: int) -> None: ...

    # Settings
    async def edit_guild(self, **changes: Any) -> None:
        """Apply guild-level setting changes.

        Accepted keys: name, icon, splash, banner (bytes or None),
        verification_level, explicit_content_filter, default_notifications,
        afk_channel_id, afk_timeout, system_channel_id,
        suppress_system_notifications, widget_enabled, widget_channel_id.
        """
        ...


def has_required_guild_perms(permissions: Any) -> Tuple[bool, List[str]]:
    """Check a guild permission set against what a restore needs."""
    # Administrator bypasses individual checks
    if getattr(permissions, "administrator", False):
        return True, []

    missing = [p for p in REQUIRED_GUILD_PERMISSIONS if not getattr(permissions, p, False)]
    return len(missing) == 0, missing

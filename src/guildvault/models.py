"""
Backup Document model

The Document is the portable snapshot of a guild. It is produced once by capture,
never mutated afterwards, and consumed by restore. Cross references between parts
(permission rule -> role, AFK -> channel) are by name because ids are not portable
across guilds.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .constants import DOCUMENT_VERSION


class ChannelKind(Enum):
    """Channel type enumeration."""
    TEXT = "text"
    VOICE = "voice"
    STAGE = "stage"
    ANNOUNCEMENT = "announcement"
    FORUM = "forum"
    MEDIA = "media"

    @property
    def is_voice(self) -> bool:
        return self in (ChannelKind.VOICE, ChannelKind.STAGE)

    @property
    def has_history(self) -> bool:
        """Whether webhook messages can be replayed into this kind of channel."""
        return self in (ChannelKind.TEXT, ChannelKind.ANNOUNCEMENT)

    @property
    def has_topic(self) -> bool:
        return self in (
            ChannelKind.TEXT,
            ChannelKind.ANNOUNCEMENT,
            ChannelKind.FORUM,
            ChannelKind.MEDIA,
        )


@dataclass
class PermissionRule:
    role_name: str
    allow: str
    deny: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PermissionRule":
        return cls(
            role_name=str(data["role_name"]),
            allow=str(data.get("allow", "0")),
            deny=str(data.get("deny", "0")),
        )


@dataclass
class AttachmentData:
    name: str
    url: Optional[str] = None
    base64: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AttachmentData":
        return cls(name=str(data.get("name") or "file"), url=data.get("url"), base64=data.get("base64"))


@dataclass
class MessageData:
    username: str
    avatar: Optional[str]
    content: str = ""
    embeds: List[Dict[str, Any]] = field(default_factory=list)
    files: List[AttachmentData] = field(default_factory=list)
    pinned: bool = False
    sent_at: Optional[str] = None

    def is_empty(self) -> bool:
        return not self.content and not self.embeds and not self.files

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MessageData":
        return cls(
            username=str(data.get("username") or "Unknown"),
            avatar=data.get("avatar"),
            content=data.get("content") or "",
            embeds=list(data.get("embeds") or []),
            files=[AttachmentData.from_dict(f) for f in data.get("files") or []],
            pinned=bool(data.get("pinned", False)),
            sent_at=data.get("sent_at"),
        )


@dataclass
class ThreadData:
    name: str
    archived: bool = False
    auto_archive_duration: int = 1440
    locked: bool = False
    rate_limit_per_user: int = 0
    messages: List[MessageData] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ThreadData":
        return cls(
            name=str(data["name"]),
            archived=bool(data.get("archived", False)),
            auto_archive_duration=int(data.get("auto_archive_duration") or 1440),
            locked=bool(data.get("locked", False)),
            rate_limit_per_user=int(data.get("rate_limit_per_user") or 0),
            messages=[MessageData.from_dict(m) for m in data.get("messages") or []],
        )


@dataclass
class ChannelData:
    type: ChannelKind
    name: str
    nsfw: bool = False
    rate_limit_per_user: int = 0
    topic: Optional[str] = None
    permissions: List[PermissionRule] = field(default_factory=list)
    messages: List[MessageData] = field(default_factory=list)
    threads: List[ThreadData] = field(default_factory=list)
    bitrate: Optional[int] = None
    user_limit: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["type"] = self.type.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChannelData":
        return cls(
            type=ChannelKind(data.get("type", ChannelKind.TEXT.value)),
            name=str(data["name"]),
            nsfw=bool(data.get("nsfw", False)),
            rate_limit_per_user=int(data.get("rate_limit_per_user") or 0),
            topic=data.get("topic"),
            permissions=[PermissionRule.from_dict(p) for p in data.get("permissions") or []],
            messages=[MessageData.from_dict(m) for m in data.get("messages") or []],
            threads=[ThreadData.from_dict(t) for t in data.get("threads") or []],
            bitrate=data.get("bitrate"),
            user_limit=data.get("user_limit"),
        )


@dataclass
class CategoryData:
    name: str
    permissions: List[PermissionRule] = field(default_factory=list)
    children: List[ChannelData] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "permissions": [asdict(p) for p in self.permissions],
            "children": [c.to_dict() for c in self.children],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CategoryData":
        return cls(
            name=str(data["name"]),
            permissions=[PermissionRule.from_dict(p) for p in data.get("permissions") or []],
            children=[ChannelData.from_dict(c) for c in data.get("children") or []],
        )


@dataclass
class ChannelsData:
    categories: List[CategoryData] = field(default_factory=list)
    others: List[ChannelData] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "categories": [c.to_dict() for c in self.categories],
            "others": [c.to_dict() for c in self.others],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChannelsData":
        return cls(
            categories=[CategoryData.from_dict(c) for c in data.get("categories") or []],
            others=[ChannelData.from_dict(c) for c in data.get("others") or []],
        )

    def count(self) -> int:
        return len(self.categories) + len(self.others) + sum(len(c.children) for c in self.categories)


@dataclass
class RoleData:
    name: str
    color: int = 0
    hoist: bool = False
    permissions: str = "0"  # decimal string, may exceed 64 bits
    mentionable: bool = False
    position: int = 0
    is_everyone: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RoleData":
        color = data.get("color", 0)
        if isinstance(color, str):
            color = int(color.lstrip("#") or "0", 16)
        return cls(
            name=str(data["name"]),
            color=int(color),
            hoist=bool(data.get("hoist", False)),
            permissions=str(data.get("permissions", "0")),
            mentionable=bool(data.get("mentionable", False)),
            position=int(data.get("position", 0)),
            is_everyone=bool(data.get("is_everyone", False)),
        )


@dataclass
class BanData:
    id: str
    reason: Optional[str] = None


@dataclass
class EmojiData:
    name: str
    url: Optional[str] = None
    base64: Optional[str] = None


@dataclass
class MemberData:
    user_id: str
    username: str
    discriminator: str
    avatar_url: Optional[str]
    joined_timestamp: Optional[int]
    roles: List[str] = field(default_factory=list)
    bot: bool = False


@dataclass
class AfkData:
    name: str
    timeout: int


@dataclass
class WidgetData:
    enabled: bool = False
    channel: Optional[str] = None


@dataclass
class Document:
    """A complete, portable description of a guild."""

    id: str
    name: str
    guild_id: str = ""
    version: str = DOCUMENT_VERSION
    created_timestamp: int = 0
    verification_level: int = 0
    explicit_content_filter: int = 0
    default_message_notifications: int = 0
    afk: Optional[AfkData] = None
    widget: WidgetData = field(default_factory=WidgetData)
    icon_url: Optional[str] = None
    icon_base64: Optional[str] = None
    splash_url: Optional[str] = None
    splash_base64: Optional[str] = None
    banner_url: Optional[str] = None
    banner_base64: Optional[str] = None
    roles: List[RoleData] = field(default_factory=list)
    channels: ChannelsData = field(default_factory=ChannelsData)
    bans: List[BanData] = field(default_factory=list)
    emojis: List[EmojiData] = field(default_factory=list)
    members: List[MemberData] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["channels"] = self.channels.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Document":
        afk = data.get("afk")
        widget = data.get("widget") or {}
        everyone = [r for r in data.get("roles") or [] if r.get("is_everyone")]
        if len(everyone) > 1:
            raise ValueError("A document may flag at most one role as the default role")
        return cls(
            id=str(data["id"]),
            name=str(data.get("name") or "Unknown Server"),
            guild_id=str(data.get("guild_id") or ""),
            version=str(data.get("version") or DOCUMENT_VERSION),
            created_timestamp=int(data.get("created_timestamp") or 0),
            verification_level=int(data.get("verification_level") or 0),
            explicit_content_filter=int(data.get("explicit_content_filter") or 0),
            default_message_notifications=int(data.get("default_message_notifications") or 0),
            afk=AfkData(name=afk["name"], timeout=int(afk["timeout"])) if afk else None,
            widget=WidgetData(enabled=bool(widget.get("enabled", False)), channel=widget.get("channel")),
            icon_url=data.get("icon_url"),
            icon_base64=data.get("icon_base64"),
            splash_url=data.get("splash_url"),
            splash_base64=data.get("splash_base64"),
            banner_url=data.get("banner_url"),
            banner_base64=data.get("banner_base64"),
            roles=[RoleData.from_dict(r) for r in data.get("roles") or []],
            channels=ChannelsData.from_dict(data.get("channels") or {}),
            bans=[BanData(id=str(b["id"]), reason=b.get("reason")) for b in data.get("bans") or []],
            emojis=[EmojiData(name=e["name"], url=e.get("url"), base64=e.get("base64")) for e in data.get("emojis") or []],
            members=[MemberData(**m) for m in data.get("members") or []],
        )

    def summary(self) -> str:
        return (
            f"'{self.name}': "
            f"{len(self.roles)} roles, "
            f"{self.channels.count()} channels, "
            f"{len(self.emojis)} emojis, "
            f"{len(self.bans)} bans"
        )

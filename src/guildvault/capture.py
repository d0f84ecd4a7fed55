"""
Guild capture

Reads a live discord.py guild into a Document. Capture only reads; every
cross reference is turned into a name so the Document can be replayed onto a
different guild.
"""

from __future__ import annotations

import base64
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional, Set

import discord

from .constants import CAPTURE_MAX_MESSAGES
from .models import (
    AfkData,
    AttachmentData,
    BanData,
    CategoryData,
    ChannelData,
    ChannelKind,
    ChannelsData,
    Document,
    EmojiData,
    MemberData,
    MessageData,
    PermissionRule,
    RoleData,
    ThreadData,
    WidgetData,
)
from .services.backup_store import new_backup_id

log = logging.getLogger("guildvault.capture")

EXCLUDABLE = frozenset({"bans", "roles", "emojis", "channels"})

_KINDS: Dict[Any, ChannelKind] = {
    discord.ChannelType.text: ChannelKind.TEXT,
    discord.ChannelType.news: ChannelKind.ANNOUNCEMENT,
    discord.ChannelType.voice: ChannelKind.VOICE,
    discord.ChannelType.stage_voice: ChannelKind.STAGE,
    discord.ChannelType.forum: ChannelKind.FORUM,
    discord.ChannelType.media: ChannelKind.MEDIA,
}


@dataclass
class CaptureConfig:
    max_messages_per_channel: int = CAPTURE_MAX_MESSAGES
    include_members: bool = False
    image_mode: str = "url"  # "url" | "inline"
    exclude: FrozenSet[str] = field(default_factory=frozenset)

    @property
    def inline_images(self) -> bool:
        return self.image_mode == "inline"


async def _inline(asset: Any) -> Optional[str]:
    try:
        return base64.b64encode(await asset.read()).decode("ascii")
    except discord.DiscordException as e:
        log.warning(f"Could not inline {getattr(asset, 'url', asset)}: {e}")
        return None


def capture_permissions(guild: Any, channel: Any) -> List[PermissionRule]:
    """Role overwrites of a channel, by role name. Member overwrites are dropped."""
    rules: List[PermissionRule] = []
    for target, overwrite in channel.overwrites.items():
        role = guild.get_role(target.id)
        if role is None:
            continue
        allow, deny = overwrite.pair()
        rules.append(PermissionRule(role_name=role.name, allow=str(allow.value), deny=str(deny.value)))
    return rules


async def capture_messages(channel: Any, config: CaptureConfig) -> List[MessageData]:
    """Most recent messages of a channel or thread, newest first."""
    if config.max_messages_per_channel <= 0:
        return []
    messages: List[MessageData] = []
    try:
        async for msg in channel.history(limit=config.max_messages_per_channel):
            if msg.author is None:
                continue
            files: List[AttachmentData] = []
            for attachment in msg.attachments:
                data = AttachmentData(name=attachment.filename, url=attachment.url)
                is_image = (attachment.content_type or "").startswith("image/")
                if config.inline_images and is_image:
                    data.base64 = await _inline(attachment)
                files.append(data)
            messages.append(
                MessageData(
                    username=msg.author.display_name,
                    avatar=msg.author.display_avatar.url,
                    content=msg.clean_content,
                    embeds=[e.to_dict() for e in msg.embeds],
                    files=files,
                    pinned=msg.pinned,
                    sent_at=msg.created_at.isoformat(),
                )
            )
    except discord.HTTPException as e:
        log.warning(f"Could not read history of #{channel.name}: {e}")
    return messages


async def capture_channel(guild: Any, channel: Any, config: CaptureConfig) -> Optional[ChannelData]:
    kind = _KINDS.get(channel.type)
    if kind is None:
        log.debug(f"Skipping #{channel.name}: unsupported channel type {channel.type}")
        return None

    data = ChannelData(type=kind, name=channel.name, permissions=capture_permissions(guild, channel))
    if kind.is_voice:
        data.bitrate = channel.bitrate
        data.user_limit = 0 if kind is ChannelKind.STAGE else channel.user_limit
        return data

    data.nsfw = channel.is_nsfw()
    data.topic = channel.topic
    if kind is ChannelKind.TEXT:
        data.rate_limit_per_user = channel.slowmode_delay or 0
    if kind.has_history:
        data.messages = await capture_messages(channel, config)
        for thread in getattr(channel, "threads", []):
            data.threads.append(
                ThreadData(
                    name=thread.name,
                    archived=thread.archived,
                    auto_archive_duration=thread.auto_archive_duration,
                    locked=thread.locked,
                    rate_limit_per_user=thread.slowmode_delay or 0,
                    messages=await capture_messages(thread, config),
                )
            )
    return data


def _skipped_channel_ids(guild: Any) -> Set[int]:
    """Channels Discord manages itself: rules, safety alerts, widget, public updates."""
    ids = {
        getattr(getattr(guild, attr, None), "id", None)
        for attr in ("rules_channel", "safety_alerts_channel", "public_updates_channel")
    }
    ids.add(getattr(guild, "widget_channel_id", None))
    ids.discard(None)
    return ids


async def capture_channels(guild: Any, config: CaptureConfig) -> ChannelsData:
    skipped = _skipped_channel_ids(guild)
    result = ChannelsData()

    async def add(channel: Any, into: List[ChannelData]) -> None:
        if channel.id in skipped:
            log.debug(f"Skipping #{channel.name}: managed by Discord")
            return
        data = await capture_channel(guild, channel, config)
        if data is not None:
            into.append(data)

    for category in guild.categories:
        category_data = CategoryData(name=category.name, permissions=capture_permissions(guild, category))
        for child in sorted(category.channels, key=lambda c: c.position):
            await add(child, category_data.children)
        result.categories.append(category_data)

    others = [
        c for c in guild.channels
        if c.category is None and c.type != discord.ChannelType.category
    ]
    for channel in sorted(others, key=lambda c: c.position):
        await add(channel, result.others)
    return result


def capture_roles(guild: Any) -> List[RoleData]:
    """Every role the guild owns, highest first. Integration-managed roles are skipped."""
    roles = sorted((r for r in guild.roles if not r.managed), key=lambda r: r.position, reverse=True)
    return [
        RoleData(
            name=r.name,
            color=r.colour.value,
            hoist=r.hoist,
            permissions=str(r.permissions.value),
            mentionable=r.mentionable,
            position=r.position,
            is_everyone=r.id == guild.id,
        )
        for r in roles
    ]


async def capture_emojis(guild: Any, config: CaptureConfig) -> List[EmojiData]:
    emojis: List[EmojiData] = []
    for emoji in guild.emojis:
        data = EmojiData(name=emoji.name, url=str(emoji.url))
        if config.inline_images:
            data.base64 = await _inline(emoji)
        emojis.append(data)
    return emojis


async def capture_bans(guild: Any) -> List[BanData]:
    return [BanData(id=str(entry.user.id), reason=entry.reason) async for entry in guild.bans(limit=None)]


def capture_members(guild: Any) -> List[MemberData]:
    return [
        MemberData(
            user_id=str(m.id),
            username=m.name,
            discriminator=m.discriminator,
            avatar_url=m.avatar.url if m.avatar else None,
            joined_timestamp=int(m.joined_at.timestamp() * 1000) if m.joined_at else None,
            roles=[str(r.id) for r in m.roles],
            bot=m.bot,
        )
        for m in guild.members
    ]


async def capture_guild(guild: Any, config: Optional[CaptureConfig] = None, *, backup_id: Optional[str] = None) -> Document:
    """Snapshot ``guild`` into a new Document."""
    config = config or CaptureConfig()
    unknown = set(config.exclude) - EXCLUDABLE
    if unknown:
        raise ValueError(f"Unknown capture exclusions: {', '.join(sorted(unknown))}")

    doc = Document(
        id=backup_id or new_backup_id(),
        name=guild.name,
        guild_id=str(guild.id),
        created_timestamp=int(time.time() * 1000),
        verification_level=guild.verification_level.value,
        explicit_content_filter=guild.explicit_content_filter.value,
        default_message_notifications=guild.default_notifications.value,
    )
    log.info(f"Capturing guild {guild.name} ({guild.id}) as backup {doc.id}")

    if guild.afk_channel is not None:
        doc.afk = AfkData(name=guild.afk_channel.name, timeout=guild.afk_timeout)

    widget_channel = guild.get_channel(getattr(guild, "widget_channel_id", None) or 0)
    doc.widget = WidgetData(
        enabled=bool(getattr(guild, "widget_enabled", False)),
        channel=widget_channel.name if widget_channel is not None else None,
    )

    for key in ("icon", "splash", "banner"):
        asset = getattr(guild, key)
        if asset is None:
            continue
        setattr(doc, f"{key}_url", str(asset.url))
        if config.inline_images:
            setattr(doc, f"{key}_base64", await _inline(asset))

    if config.include_members:
        doc.members = capture_members(guild)
    if "bans" not in config.exclude:
        try:
            doc.bans = await capture_bans(guild)
        except discord.Forbidden as e:
            log.warning(f"Cannot read bans of {guild.name}: {e}")
    if "roles" not in config.exclude:
        doc.roles = capture_roles(guild)
    if "emojis" not in config.exclude:
        doc.emojis = await capture_emojis(guild, config)
    if "channels" not in config.exclude:
        doc.channels = await capture_channels(guild, config)

    log.info(f"Captured {doc.summary()}")
    return doc

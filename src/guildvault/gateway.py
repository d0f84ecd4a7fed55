"""
discord.py binding of GuildGateway.

All discord.py specifics used by restore live here. The gateway keeps its own
id -> object index of roles, channels, threads, emoji and webhooks, filled by
``refresh()`` and kept current as restore creates and deletes things.
"""

from __future__ import annotations

import io
import logging
from typing import Any, Dict, FrozenSet, List, Optional, Sequence

import aiohttp
import discord

from .interfaces import (
    BanRef,
    ChannelCreateRequest,
    ChannelRef,
    EntityRef,
    ResolvedOverwrite,
    RelayPayload,
    RoleRef,
    has_required_guild_perms,
)
from .models import ChannelKind

log = logging.getLogger("guildvault.gateway")

REASON = "guildvault restore"
MAX_EMBEDS_PER_MESSAGE = 10


def channel_kind(channel: Any) -> Optional[ChannelKind]:
    """Backup kind of a live channel; None for categories and unsupported types."""
    if isinstance(channel, discord.TextChannel):
        return ChannelKind.ANNOUNCEMENT if channel.is_news() else ChannelKind.TEXT
    if isinstance(channel, discord.StageChannel):
        return ChannelKind.STAGE
    if isinstance(channel, discord.VoiceChannel):
        return ChannelKind.VOICE
    if isinstance(channel, discord.ForumChannel):
        return ChannelKind.MEDIA if channel.type == discord.ChannelType.media else ChannelKind.FORUM
    return None


class DiscordGateway:
    """GuildGateway over a live discord.Guild."""

    def __init__(self, guild: discord.Guild) -> None:
        self.guild = guild
        self._roles: Dict[int, discord.Role] = {r.id: r for r in guild.roles}
        self._channels: Dict[int, discord.abc.GuildChannel] = {c.id: c for c in guild.channels}
        self._threads: Dict[int, discord.Thread] = {t.id: t for t in guild.threads}
        self._emojis: Dict[int, discord.Emoji] = {e.id: e for e in guild.emojis}
        self._webhooks: Dict[int, discord.Webhook] = {}

    # ── reads ──────────────────────────────────────────────────────────────

    @property
    def premium_tier(self) -> int:
        return int(self.guild.premium_tier)

    @property
    def features(self) -> FrozenSet[str]:
        return frozenset(self.guild.features)

    def missing_permissions(self) -> List[str]:
        me = self.guild.me
        if me is None:
            return ["member"]
        _, missing = has_required_guild_perms(me.guild_permissions)
        return missing

    def roles(self) -> Sequence[RoleRef]:
        ordered = sorted(self._roles.values(), key=lambda r: r.position, reverse=True)
        return [
            RoleRef(id=r.id, name=r.name, is_default=r.is_default(), deletable=r.is_assignable())
            for r in ordered
        ]

    def channels(self) -> Sequence[ChannelRef]:
        return [
            ChannelRef(id=c.id, name=c.name, kind=channel_kind(c), parent_id=getattr(c, "category_id", None))
            for c in self._channels.values()
        ]

    def emojis(self) -> Sequence[EntityRef]:
        return [EntityRef(id=e.id, name=e.name) for e in self._emojis.values()]

    async def refresh(self) -> None:
        self._roles = {r.id: r for r in await self.guild.fetch_roles()}
        self._channels = {c.id: c for c in await self.guild.fetch_channels()}
        self._emojis = {e.id: e for e in await self.guild.fetch_emojis()}
        self._threads = {t.id: t for t in self.guild.threads if t.parent_id in self._channels}

    async def fetch_webhooks(self) -> List[EntityRef]:
        hooks = await self.guild.webhooks()
        self._webhooks.update({w.id: w for w in hooks})
        return [EntityRef(id=w.id, name=w.name or "") for w in hooks]

    async def fetch_bans(self) -> List[BanRef]:
        return [BanRef(user_id=entry.user.id, reason=entry.reason) async for entry in self.guild.bans(limit=None)]

    async def download(self, url: str) -> bytes:
        async with aiohttp.ClientSession() as session:
            async with session.get(url) as resp:
                resp.raise_for_status()
                return await resp.read()

    # ── roles ──────────────────────────────────────────────────────────────

    def _role(self, role_id: int) -> discord.Role:
        role = self._roles.get(role_id) or self.guild.get_role(role_id)
        if role is None:
            raise KeyError(f"Unknown role {role_id}")
        return role

    async def create_role(self, *, name: str, color: int, hoist: bool, permissions: int, mentionable: bool) -> RoleRef:
        role = await self.guild.create_role(
            name=name,
            colour=discord.Colour(color),
            hoist=hoist,
            permissions=discord.Permissions(permissions),
            mentionable=mentionable,
            reason=REASON,
        )
        self._roles[role.id] = role
        return RoleRef(id=role.id, name=role.name)

    async def edit_default_role(self, *, color: int, permissions: int, mentionable: bool) -> None:
        await self.guild.default_role.edit(
            colour=discord.Colour(color),
            permissions=discord.Permissions(permissions),
            mentionable=mentionable,
            reason=REASON,
        )

    async def delete_role(self, role_id: int) -> None:
        await self._role(role_id).delete(reason=REASON)
        self._roles.pop(role_id, None)

    # ── channels ───────────────────────────────────────────────────────────

    def _channel(self, channel_id: int) -> Any:
        channel = (
            self._channels.get(channel_id)
            or self._threads.get(channel_id)
            or self.guild.get_channel_or_thread(channel_id)
        )
        if channel is None:
            raise KeyError(f"Unknown channel {channel_id}")
        return channel

    def _remember(self, channel: discord.abc.GuildChannel) -> ChannelRef:
        self._channels[channel.id] = channel
        return ChannelRef(id=channel.id, name=channel.name, kind=channel_kind(channel), parent_id=getattr(channel, "category_id", None))

    async def create_category(self, name: str) -> ChannelRef:
        return self._remember(await self.guild.create_category(name, reason=REASON))

    async def create_channel(self, request: ChannelCreateRequest) -> ChannelRef:
        kwargs: Dict[str, Any] = {"reason": REASON}
        if request.parent_id is not None:
            kwargs["category"] = self._channel(request.parent_id)
        kind = request.kind

        if kind in (ChannelKind.TEXT, ChannelKind.ANNOUNCEMENT, ChannelKind.FORUM, ChannelKind.MEDIA):
            if request.topic is not None:
                kwargs["topic"] = request.topic
            kwargs["nsfw"] = request.nsfw
            if request.rate_limit_per_user:
                kwargs["slowmode_delay"] = request.rate_limit_per_user
        if kind.is_voice and request.bitrate:
            kwargs["bitrate"] = request.bitrate
        if kind is ChannelKind.VOICE and request.user_limit:
            kwargs["user_limit"] = request.user_limit

        if kind is ChannelKind.TEXT:
            channel = await self.guild.create_text_channel(request.name, **kwargs)
        elif kind is ChannelKind.ANNOUNCEMENT:
            channel = await self.guild.create_text_channel(request.name, news=True, **kwargs)
        elif kind is ChannelKind.VOICE:
            channel = await self.guild.create_voice_channel(request.name, **kwargs)
        elif kind is ChannelKind.STAGE:
            channel = await self.guild.create_stage_channel(request.name, **kwargs)
        else:
            # Media channels are forum-shaped; discord.py creates both through create_forum
            channel = await self.guild.create_forum(request.name, media=kind is ChannelKind.MEDIA, **kwargs)
        return self._remember(channel)

    async def set_overwrites(self, channel_id: int, overwrites: Sequence[ResolvedOverwrite]) -> None:
        mapping = {
            self._role(o.role_id): discord.PermissionOverwrite.from_pair(
                discord.Permissions(o.allow), discord.Permissions(o.deny)
            )
            for o in overwrites
        }
        await self._channel(channel_id).edit(overwrites=mapping, reason=REASON)

    async def delete_channel(self, channel_id: int) -> None:
        await self._channel(channel_id).delete(reason=REASON)
        self._channels.pop(channel_id, None)

    async def find_thread(self, channel_id: int, name: str) -> Optional[EntityRef]:
        channel = self._channel(channel_id)
        for thread in getattr(channel, "threads", []):
            if thread.name == name:
                self._threads[thread.id] = thread
                return EntityRef(id=thread.id, name=thread.name)
        return None

    async def create_thread(self, channel_id: int, name: str, auto_archive_duration: int) -> EntityRef:
        channel = self._channel(channel_id)
        thread_type = discord.ChannelType.news_thread if channel.is_news() else discord.ChannelType.public_thread
        thread = await channel.create_thread(
            name=name,
            auto_archive_duration=auto_archive_duration,
            type=thread_type,
            reason=REASON,
        )
        self._threads[thread.id] = thread
        return EntityRef(id=thread.id, name=thread.name)

    # ── relay ──────────────────────────────────────────────────────────────

    async def acquire_relay(self, channel_id: int, name: str) -> Optional[EntityRef]:
        channel = self._channel(channel_id)
        if not hasattr(channel, "create_webhook"):
            return None
        webhook = discord.utils.get(await channel.webhooks(), name=name)
        if webhook is None:
            webhook = await channel.create_webhook(name=name, reason=REASON)
        self._webhooks[webhook.id] = webhook
        return EntityRef(id=webhook.id, name=webhook.name or name)

    async def relay_send(self, relay_id: int, payload: RelayPayload) -> EntityRef:
        webhook = self._webhooks[relay_id]
        kwargs: Dict[str, Any] = {
            "username": payload.username,
            "wait": True,
        }
        if payload.avatar_url:
            kwargs["avatar_url"] = payload.avatar_url
        if payload.content:
            kwargs["content"] = payload.content
        if payload.embeds:
            kwargs["embeds"] = [discord.Embed.from_dict(e) for e in payload.embeds[:MAX_EMBEDS_PER_MESSAGE]]
        if payload.file is not None:
            kwargs["file"] = discord.File(io.BytesIO(payload.file.data), filename=payload.file.name)
        if payload.thread_id is not None:
            kwargs["thread"] = discord.Object(id=payload.thread_id)
        if payload.allowed_mentions is not None:
            kwargs["allowed_mentions"] = payload.allowed_mentions.to_discord()
        message = await webhook.send(**kwargs)
        return EntityRef(id=message.id)

    async def pin_message(self, channel_id: int, message_id: int) -> None:
        await self._channel(channel_id).get_partial_message(message_id).pin(reason=REASON)

    async def delete_webhook(self, webhook_id: int) -> None:
        await self._webhooks[webhook_id].delete(reason=REASON)
        self._webhooks.pop(webhook_id, None)

    # ── emoji / bans ───────────────────────────────────────────────────────

    async def create_emoji(self, name: str, image: bytes) -> EntityRef:
        emoji = await self.guild.create_custom_emoji(name=name, image=image, reason=REASON)
        self._emojis[emoji.id] = emoji
        return EntityRef(id=emoji.id, name=emoji.name)

    async def delete_emoji(self, emoji_id: int) -> None:
        await self._emojis[emoji_id].delete(reason=REASON)
        self._emojis.pop(emoji_id, None)

    async def ban(self, user_id: int, reason: Optional[str]) -> None:
        await self.guild.ban(discord.Object(id=user_id), reason=reason, delete_message_seconds=0)

    async def unban(self, user_id: int) -> None:
        await self.guild.unban(discord.Object(id=user_id), reason=REASON)

    # ── settings ───────────────────────────────────────────────────────────

    async def edit_guild(self, **changes: Any) -> None:
        kwargs: Dict[str, Any] = {}
        for key in ("name", "icon", "splash", "banner", "afk_timeout"):
            if key in changes:
                kwargs[key] = changes[key]
        if "verification_level" in changes:
            kwargs["verification_level"] = discord.VerificationLevel(changes["verification_level"])
        if "explicit_content_filter" in changes:
            kwargs["explicit_content_filter"] = discord.ContentFilter(changes["explicit_content_filter"])
        if "default_notifications" in changes:
            kwargs["default_notifications"] = discord.NotificationLevel(changes["default_notifications"])
        if "afk_channel_id" in changes:
            channel_id = changes["afk_channel_id"]
            kwargs["afk_channel"] = self._channel(channel_id) if channel_id is not None else None
        if "system_channel_id" in changes:
            channel_id = changes["system_channel_id"]
            kwargs["system_channel"] = self._channel(channel_id) if channel_id is not None else None
        if changes.get("suppress_system_notifications"):
            kwargs["system_channel_flags"] = discord.SystemChannelFlags(
                join_notifications=False,
                premium_subscriptions=False,
                guild_reminder_notifications=False,
            )
        if kwargs:
            await self.guild.edit(reason=REASON, **kwargs)

        if "widget_enabled" in changes or "widget_channel_id" in changes:
            channel_id = changes.get("widget_channel_id")
            await self.guild.edit_widget(
                enabled=bool(changes.get("widget_enabled", False)),
                channel=self._channel(channel_id) if channel_id is not None else None,
                reason=REASON,
            )

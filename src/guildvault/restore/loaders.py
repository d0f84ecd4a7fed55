"""
Restore sub-tasks for everything outside the channel tree: guild settings,
roles, AFK, widget, emoji and bans. Each catches and reports its own failures.
"""

from __future__ import annotations

import base64
import logging
from typing import Any, Dict, List, Optional, Tuple

from ..constants import COMMUNITY_FEATURE
from ..models import ChannelKind, Document
from .context import RestoreContext

log = logging.getLogger("guildvault.loaders")


async def _image(ctx: RestoreContext, inline: Optional[str], url: Optional[str]) -> Optional[bytes]:
    """Inline copy when present, otherwise download the URL."""
    if inline:
        return base64.b64decode(inline)
    if url:
        return await ctx.call(ctx.gateway.download, url)
    return None


async def _apply(ctx: RestoreContext, label: str, **change: Any) -> None:
    try:
        await ctx.call(ctx.gateway.edit_guild, **change)
        ctx.report.ok("setting", label)
    except Exception as e:
        log.warning(f"Could not restore {label}: {e}")
        ctx.report.failed("setting", label, e)


async def load_settings(ctx: RestoreContext, doc: Document) -> None:
    """Name, images, verification and notification levels."""
    if doc.name:
        await _apply(ctx, "name", name=doc.name)

    images: List[Tuple[str, Optional[str], Optional[str]]] = [
        ("icon", doc.icon_base64, doc.icon_url),
        ("splash", doc.splash_base64, doc.splash_url),
        ("banner", doc.banner_base64, doc.banner_url),
    ]
    for key, inline, url in images:
        if not inline and not url:
            continue
        try:
            data = await _image(ctx, inline, url)
        except Exception as e:
            log.warning(f"Could not load {key} image: {e}")
            ctx.report.failed("setting", key, e)
            continue
        await _apply(ctx, key, **{key: data})

    await _apply(ctx, "verification level", verification_level=doc.verification_level)
    await _apply(ctx, "notifications", default_notifications=doc.default_message_notifications)
    if COMMUNITY_FEATURE in ctx.gateway.features:
        await _apply(ctx, "content filter", explicit_content_filter=doc.explicit_content_filter)


async def load_roles(ctx: RestoreContext, doc: Document) -> None:
    """Recreate roles one by one in captured order (highest first)."""
    for data in doc.roles:
        try:
            if data.is_everyone:
                await ctx.call(
                    ctx.gateway.edit_default_role,
                    color=data.color,
                    permissions=int(data.permissions),
                    mentionable=data.mentionable,
                )
            else:
                await ctx.call(
                    ctx.gateway.create_role,
                    name=data.name,
                    color=data.color,
                    hoist=data.hoist,
                    permissions=int(data.permissions),
                    mentionable=data.mentionable,
                )
            ctx.report.ok("role", data.name)
        except Exception as e:
            log.warning(f"Failed to restore role @{data.name}: {e}")
            ctx.report.failed("role", data.name, e)


async def load_afk(ctx: RestoreContext, doc: Document) -> None:
    if doc.afk is None:
        return
    channel = next(
        (c for c in ctx.gateway.channels() if c.name == doc.afk.name and c.kind is ChannelKind.VOICE),
        None,
    )
    if channel is None:
        ctx.report.skipped("setting", "afk channel", f"voice channel {doc.afk.name} not found")
    else:
        await _apply(ctx, "afk channel", afk_channel_id=channel.id)
    await _apply(ctx, "afk timeout", afk_timeout=doc.afk.timeout)


async def load_widget(ctx: RestoreContext, doc: Document) -> None:
    if not doc.widget.channel:
        return
    channel = next((c for c in ctx.gateway.channels() if c.name == doc.widget.channel and c.kind), None)
    if channel is None:
        ctx.report.skipped("setting", "widget", f"channel {doc.widget.channel} not found")
        return
    await _apply(ctx, "widget", widget_enabled=doc.widget.enabled, widget_channel_id=channel.id)


async def load_emojis(ctx: RestoreContext, doc: Document) -> None:
    for emoji in doc.emojis:
        try:
            image = await _image(ctx, emoji.base64, emoji.url)
            if image is None:
                ctx.report.skipped("emoji", emoji.name, "no image captured")
                continue
            await ctx.call(ctx.gateway.create_emoji, emoji.name, image)
            ctx.report.ok("emoji", emoji.name)
        except Exception as e:
            log.warning(f"Failed to restore emoji :{emoji.name}: {e}")
            ctx.report.failed("emoji", emoji.name, e)


async def load_bans(ctx: RestoreContext, doc: Document) -> None:
    for ban in doc.bans:
        try:
            await ctx.call(ctx.gateway.ban, int(ban.id), ban.reason)
            ctx.report.ok("ban", ban.id)
        except Exception as e:
            log.warning(f"Failed to restore ban {ban.id}: {e}")
            ctx.report.failed("ban", ban.id, e)


def role_names(doc: Document) -> Dict[str, int]:
    """How many times each role name appears; names seen twice resolve to the first."""
    counts: Dict[str, int] = {}
    for role in doc.roles:
        counts[role.name] = counts.get(role.name, 0) + 1
    return counts

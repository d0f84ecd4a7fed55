"""
Structural restore

Categories are created one after another; each category's children start as
soon as the category exists and run concurrently with everything else.
Freestanding channels run concurrently with the category chain. No failure of
one channel stops its siblings.
"""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional

from ..interfaces import ChannelCreateRequest, ChannelRef
from ..models import CategoryData, ChannelData, ChannelKind, ChannelsData, PermissionRule, ThreadData
from .bitrate import clamp_bitrate
from .context import RestoreContext
from .permissions import remap_overwrites
from .relay import RelaySession, relay_messages

log = logging.getLogger("guildvault.channels")


def build_channel_request(data: ChannelData, parent_id: Optional[int], premium_tier: int) -> ChannelCreateRequest:
    """Type-specific creation request for a captured channel."""
    request = ChannelCreateRequest(kind=data.type, name=data.name, parent_id=parent_id)
    if data.type.has_topic:
        request.topic = data.topic
        request.nsfw = data.nsfw
    if data.type in (ChannelKind.TEXT, ChannelKind.FORUM, ChannelKind.MEDIA):
        request.rate_limit_per_user = data.rate_limit_per_user or None
    if data.type.is_voice:
        request.bitrate = clamp_bitrate(data.bitrate, premium_tier)
    if data.type is ChannelKind.VOICE:
        request.user_limit = data.user_limit or None
    return request


async def apply_permissions(ctx: RestoreContext, channel: ChannelRef, rules: List[PermissionRule]) -> None:
    overwrites = remap_overwrites(rules, ctx.gateway.roles())
    if len(overwrites) < len(rules):
        log.info(f"#{channel.name}: {len(rules) - len(overwrites)} overwrite(s) reference missing roles")
    try:
        await ctx.call(ctx.gateway.set_overwrites, channel.id, overwrites)
    except Exception as e:
        log.warning(f"Could not apply overwrites on {channel.name}: {e}")
        ctx.report.failed("overwrites", channel.name, e)


async def restore_category(ctx: RestoreContext, data: CategoryData) -> Optional[ChannelRef]:
    try:
        category = await ctx.call(ctx.gateway.create_category, data.name)
    except Exception as e:
        log.warning(f"Failed to create category {data.name}: {e}")
        ctx.report.failed("category", data.name, e)
        return None
    await apply_permissions(ctx, category, data.permissions)
    ctx.report.ok("category", data.name)
    return category


async def restore_thread(ctx: RestoreContext, session: RelaySession, channel: ChannelRef, data: ThreadData) -> None:
    # TODO: retry with auto_archive_duration=1440 when Discord rejects a longer window with a 400
    try:
        thread = await ctx.call(ctx.gateway.find_thread, channel.id, data.name)
        if thread is None:
            thread = await ctx.call(ctx.gateway.create_thread, channel.id, data.name, data.auto_archive_duration)
    except Exception as e:
        log.warning(f"Failed to create thread {data.name} in #{channel.name}: {e}")
        ctx.report.failed("thread", data.name, e)
        return
    ctx.report.ok("thread", data.name)
    await relay_messages(ctx, session, thread, data.messages, thread=True)


async def restore_channel(ctx: RestoreContext, data: ChannelData, parent: Optional[ChannelRef] = None) -> Optional[ChannelRef]:
    """Create one channel, apply its overwrites and replay its history."""
    request = build_channel_request(data, parent.id if parent else None, ctx.gateway.premium_tier)
    try:
        channel = await ctx.call(ctx.gateway.create_channel, request)
    except Exception as e:
        log.warning(f"Failed to create channel #{data.name}: {e}")
        ctx.report.failed("channel", data.name, e)
        return None

    await apply_permissions(ctx, channel, data.permissions)
    ctx.report.ok("channel", data.name, data.type.value)

    if data.type.has_history:
        session = RelaySession(ctx, channel)
        await relay_messages(ctx, session, channel, data.messages)
        # Threads one at a time so they share the parent's webhook
        for thread in data.threads:
            await restore_thread(ctx, session, channel, thread)
    return channel


async def _restore_category_chain(ctx: RestoreContext, categories: List[CategoryData]) -> None:
    children: List[asyncio.Task] = []
    try:
        for data in categories:
            category = await restore_category(ctx, data)
            if category is None:
                for child in data.children:
                    ctx.report.skipped("channel", child.name, f"parent category {data.name} was not created")
                continue
            for child in data.children:
                children.append(asyncio.ensure_future(restore_channel(ctx, child, category)))
    except BaseException:
        for task in children:
            task.cancel()
        raise
    if children:
        await asyncio.gather(*children)


async def restore_channels(ctx: RestoreContext, channels: ChannelsData) -> None:
    """Restore every category, category child and freestanding channel."""
    log.info(
        f"Restoring {len(channels.categories)} categories and {len(channels.others)} freestanding channels"
    )
    await asyncio.gather(
        _restore_category_chain(ctx, channels.categories),
        *(restore_channel(ctx, data) for data in channels.others),
    )

"""
Message relay

Replays a bounded slice of captured history into a channel or thread through a
webhook, so each message shows its original author's name and avatar instead of
the restoring bot.
"""

from __future__ import annotations

import base64
import binascii
import logging
from typing import List, Optional, Sequence

from ..interfaces import ChannelRef, EntityRef, RelayFile, RelayPayload
from ..models import AttachmentData, MessageData
from .context import RestoreContext

log = logging.getLogger("guildvault.relay")

MAX_WEBHOOK_USERNAME = 80


def select_messages(messages: Sequence[MessageData], limit: int) -> List[MessageData]:
    """Non-empty messages in chronological order, keeping the ``limit`` most recent.

    Captured lists are newest first.
    """
    if limit <= 0:
        return []
    kept = [m for m in messages if not m.is_empty()]
    kept.reverse()
    return kept[-limit:]


class RelaySession:
    """One webhook per channel, shared with that channel's threads.

    Acquisition is attempted at most once; a failed attempt means the channel and
    its threads get no replay at all.
    """

    def __init__(self, ctx: RestoreContext, channel: ChannelRef) -> None:
        self.ctx = ctx
        self.channel = channel
        self.relay: Optional[EntityRef] = None
        self._attempted = False

    async def acquire(self) -> Optional[EntityRef]:
        if self._attempted:
            return self.relay
        self._attempted = True
        try:
            self.relay = await self.ctx.call(
                self.ctx.gateway.acquire_relay, self.channel.id, self.ctx.options.relay_name
            )
        except Exception as e:
            log.warning(f"Could not acquire relay webhook in #{self.channel.name}: {e}")
            self.relay = None
        if self.relay is None:
            log.info(f"No relay webhook for #{self.channel.name}, skipping message replay")
        return self.relay


async def load_attachment(ctx: RestoreContext, attachment: AttachmentData) -> Optional[RelayFile]:
    """Materialize a captured attachment, preferring the inline copy."""
    try:
        if attachment.base64:
            return RelayFile(name=attachment.name, data=base64.b64decode(attachment.base64))
        if attachment.url:
            data = await ctx.call(ctx.gateway.download, attachment.url)
            return RelayFile(name=attachment.name, data=data)
    except (binascii.Error, ValueError) as e:
        log.warning(f"Corrupt inline attachment {attachment.name}: {e}")
    except Exception as e:
        log.warning(f"Could not fetch attachment {attachment.name}: {e}")
    return None


async def relay_messages(
    ctx: RestoreContext,
    session: RelaySession,
    target: EntityRef | ChannelRef,
    messages: Sequence[MessageData],
    *,
    thread: bool = False,
) -> int:
    """Send the selected messages to ``target`` in order. Returns how many were sent."""
    label = f"#{target.name}"
    selected = select_messages(messages, ctx.options.max_messages_per_channel)
    if not selected:
        return 0

    relay = await session.acquire()
    if relay is None:
        ctx.report.skipped("messages", label, "no relay webhook available")
        return 0

    sent = 0
    for msg in selected:
        file = await load_attachment(ctx, msg.files[0]) if msg.files else None
        if file is None and not msg.content and not msg.embeds:
            log.debug(f"Skipping message from {msg.username} in {label}: attachment unavailable")
            continue

        payload = RelayPayload(
            username=msg.username[:MAX_WEBHOOK_USERNAME],
            avatar_url=msg.avatar,
            content=msg.content or None,
            embeds=list(msg.embeds),
            file=file,
            thread_id=target.id if thread else None,
            allowed_mentions=ctx.options.allowed_mentions,
        )
        try:
            sent_message = await ctx.call(ctx.gateway.relay_send, relay.id, payload)
        except Exception as e:
            log.warning(f"Relay send failed in {label} after {sent} message(s), aborting: {e}")
            ctx.report.failed("messages", label, f"aborted after {sent}/{len(selected)}: {e}")
            return sent
        sent += 1

        if msg.pinned:
            try:
                await ctx.call(ctx.gateway.pin_message, target.id, sent_message.id)
            except Exception as e:
                log.warning(f"Could not pin relayed message in {label}: {e}")

    ctx.report.ok("messages", label, f"{sent}/{len(selected)} relayed")
    return sent

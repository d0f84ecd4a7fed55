from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List, Sequence, Tuple

from ..constants import COMMUNITY_FEATURE, DEFAULT_AFK_TIMEOUT
from ..errors import PreconditionError
from .context import RestoreContext

log = logging.getLogger("guildvault.reset")

# discord.NotificationLevel.only_mentions, ContentFilter.disabled, VerificationLevel.none
ONLY_MENTIONS = 1
CONTENT_FILTER_DISABLED = 0
VERIFICATION_NONE = 0


@dataclass
class ResetResult:
    roles_deleted: int = 0
    channels_deleted: int = 0
    emojis_deleted: int = 0
    webhooks_deleted: int = 0
    bans_revoked: int = 0
    skipped: List[str] = field(default_factory=list)


async def _delete_each(
    ctx: RestoreContext,
    kind: str,
    items: Sequence[Tuple[int, str]],
    delete: Callable[[int], Awaitable[Any]],
    result: ResetResult,
) -> int:
    """Delete every item; a failure on one never blocks the rest."""
    deleted = 0
    for item_id, name in items:
        try:
            await ctx.call(delete, item_id)
            deleted += 1
        except Exception as e:
            log.warning(f"Could not delete {kind} {name}: {e}")
            result.skipped.append(f"{kind} {name}")
            ctx.report.failed("reset", f"{kind} {name}", e)
    return deleted


async def _reset_settings(ctx: RestoreContext) -> None:
    gateway = ctx.gateway
    changes: List[Tuple[str, dict]] = [
        ("afk channel", {"afk_channel_id": None}),
        ("afk timeout", {"afk_timeout": DEFAULT_AFK_TIMEOUT}),
        ("icon", {"icon": None}),
        ("banner", {"banner": None}),
        ("splash", {"splash": None}),
        ("notifications", {"default_notifications": ONLY_MENTIONS}),
        ("widget", {"widget_enabled": False, "widget_channel_id": None}),
    ]
    # Community guilds lock these at a minimum level
    if COMMUNITY_FEATURE not in gateway.features:
        changes.append(("content filter", {"explicit_content_filter": CONTENT_FILTER_DISABLED}))
        changes.append(("verification level", {"verification_level": VERIFICATION_NONE}))
    changes.append(("system channel", {"system_channel_id": None, "suppress_system_notifications": True}))

    for label, change in changes:
        try:
            await ctx.call(gateway.edit_guild, **change)
        except Exception as e:
            log.warning(f"Could not reset {label}: {e}")
            ctx.report.failed("reset", label, e)


async def reset_guild(ctx: RestoreContext) -> ResetResult:
    """Remove everything restore would recreate and return settings to a baseline."""
    gateway = ctx.gateway
    result = ResetResult()

    # Work lists up front; the remote collections change under us as we delete
    roles = [(r.id, r.name) for r in gateway.roles() if not r.is_default and r.deletable]
    channels = [(c.id, c.name) for c in gateway.channels()]
    emojis = [(e.id, e.name) for e in gateway.emojis()]
    try:
        webhooks = [(w.id, w.name) for w in await ctx.call(gateway.fetch_webhooks)]
        bans = [(b.user_id, str(b.user_id)) for b in await ctx.call(gateway.fetch_bans)]
    except Exception as e:
        raise PreconditionError(f"Cannot enumerate webhooks or bans: {e}") from e

    log.info(
        f"Resetting guild: {len(roles)} roles, {len(channels)} channels, {len(emojis)} emojis, "
        f"{len(webhooks)} webhooks, {len(bans)} bans"
    )
    result.roles_deleted = await _delete_each(ctx, "role", roles, gateway.delete_role, result)
    # Deleting a channel takes its webhooks with it
    result.webhooks_deleted = await _delete_each(ctx, "webhook", webhooks, gateway.delete_webhook, result)
    result.channels_deleted = await _delete_each(ctx, "channel", channels, gateway.delete_channel, result)
    result.emojis_deleted = await _delete_each(ctx, "emoji", emojis, gateway.delete_emoji, result)
    result.bans_revoked = await _delete_each(ctx, "ban", bans, gateway.unban, result)

    await _reset_settings(ctx)

    ctx.report.ok(
        "reset",
        "guild",
        f"roles={result.roles_deleted} channels={result.channels_deleted} emojis={result.emojis_deleted} "
        f"webhooks={result.webhooks_deleted} bans={result.bans_revoked} skipped={len(result.skipped)}",
    )
    return result

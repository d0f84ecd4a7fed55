from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Optional

from ..errors import PreconditionError
from ..interfaces import GuildGateway
from ..models import Document
from .channels import restore_channels
from .context import CancellationToken, RestoreContext, RestoreOptions
from .loaders import load_afk, load_bans, load_emojis, load_roles, load_settings, load_widget, role_names
from .reporting import RestoreReport
from .reset import reset_guild

log = logging.getLogger("guildvault.restore_engine")


async def _after(gate: asyncio.Event, work: Awaitable[None]) -> None:
    await gate.wait()
    await work


async def _then_set(work: Awaitable[None], gate: asyncio.Event) -> None:
    try:
        await work
    finally:
        gate.set()


async def restore(
    document: Document,
    gateway: Optional[GuildGateway],
    options: Optional[RestoreOptions] = None,
    *,
    token: Optional[CancellationToken] = None,
) -> RestoreReport:
    """Replay ``document`` onto the guild behind ``gateway``.

    Raises PreconditionError when the target cannot be restored at all; every
    per-entity failure is absorbed and shows up in the returned report instead.
    """
    if gateway is None:
        raise PreconditionError("No target guild given")
    options = options or RestoreOptions()

    missing = gateway.missing_permissions()
    if missing:
        raise PreconditionError(f"Missing permissions: {', '.join(missing)}", missing)

    duplicates = [name for name, n in role_names(document).items() if n > 1]
    if duplicates:
        log.warning(f"Duplicate role names resolve to the first match: {', '.join(duplicates)}")

    report = RestoreReport(document=document)
    ctx = RestoreContext(gateway, options, report, token)
    log.info(f"Restoring backup {document.id} ({document.summary()})")

    if options.clear_before_restore:
        await reset_guild(ctx)
    await ctx.call(gateway.refresh)

    # Overwrites resolve against restored roles; AFK and widget resolve restored channels
    roles_done = asyncio.Event()
    channels_done = asyncio.Event()
    await asyncio.gather(
        load_settings(ctx, document),
        _then_set(load_roles(ctx, document), roles_done),
        _then_set(_after(roles_done, restore_channels(ctx, document.channels)), channels_done),
        _after(channels_done, load_afk(ctx, document)),
        _after(channels_done, load_widget(ctx, document)),
        load_emojis(ctx, document),
        load_bans(ctx, document),
    )

    failures = len(report.failures)
    if failures:
        log.warning(f"Restore of {document.id} finished with {failures} failure(s)")
    else:
        log.info(f"Restore of {document.id} finished cleanly")
    return report

from __future__ import annotations

import datetime as dt
import logging
from typing import Any

import discord

from .constants import COLORS, MAX_EMBED_DESCRIPTION, MAX_EMBED_FIELD_VALUE, MAX_EMBED_TITLE
from .restore.reporting import OutcomeStatus, RestoreReport
from .services.backup_store import BackupInfo

log = logging.getLogger("guildvault.utils")


def truncate_text(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return text[:max_length - 1] + "…"


def safe_embed(title: str, description: str, color: int = COLORS["default"]) -> discord.Embed:
    """Create an embed with safe length limits."""
    return discord.Embed(
        title=truncate_text(title, MAX_EMBED_TITLE),
        description=truncate_text(description, MAX_EMBED_DESCRIPTION),
        color=color,
    )


def error_embed(message: str) -> discord.Embed:
    return safe_embed("Error", message, COLORS["error"])


def success_embed(message: str) -> discord.Embed:
    return safe_embed("Success", message, COLORS["success"])


def info_embed(message: str, title: str = "Information") -> discord.Embed:
    return safe_embed(title, message, COLORS["info"])


def warning_embed(message: str) -> discord.Embed:
    return safe_embed("Warning", message, COLORS["warning"])


def format_timestamp(ms: int) -> str:
    """Discord timestamp markup for a millisecond epoch value."""
    if ms <= 0:
        return "unknown"
    return discord.utils.format_dt(dt.datetime.fromtimestamp(ms / 1000, tz=dt.timezone.utc), "f")


def backup_info_embed(info: BackupInfo) -> discord.Embed:
    embed = info_embed(f"Backup of **{info.name}**", title=f"Backup {info.id}")
    embed.add_field(name="Source guild", value=info.guild_id or "unknown", inline=True)
    embed.add_field(name="Created", value=format_timestamp(info.created_at), inline=True)
    embed.add_field(name="Size", value=f"{info.size_kb} kB", inline=True)
    return embed


def report_embed(report: RestoreReport) -> discord.Embed:
    """Summary of a finished restore: counts per kind plus the first failures."""
    failures = report.failures
    color = COLORS["warning"] if failures else COLORS["success"]
    embed = safe_embed(f"Restored backup {report.document.id}", report.document.summary(), color)

    for kind, counts in sorted(report.counts().items()):
        parts = [f"{counts[s.value]} {s.value}" for s in OutcomeStatus if counts.get(s.value)]
        embed.add_field(name=kind, value=", ".join(parts) or "nothing", inline=True)

    if failures:
        lines = [f"• {o.kind} **{o.name}**: {o.detail}" for o in failures[:10]]
        if len(failures) > 10:
            lines.append(f"… and {len(failures) - 10} more")
        embed.add_field(name="Failures", value=truncate_text("\n".join(lines), MAX_EMBED_FIELD_VALUE), inline=False)
    return embed


async def safe_response(
    interaction: discord.Interaction,
    content: str | None = None,
    embed: discord.Embed | None = None,
    ephemeral: bool = True,
    **kwargs: Any,
) -> bool:
    """Respond to an interaction whether or not it was already answered or deferred."""
    try:
        if interaction.response.is_done():
            await interaction.followup.send(content=content, embed=embed, ephemeral=ephemeral, **kwargs)
        else:
            await interaction.response.send_message(content=content, embed=embed, ephemeral=ephemeral, **kwargs)
        return True
    except discord.HTTPException as e:
        log.error(f"Failed to send response: {e}")
        return False

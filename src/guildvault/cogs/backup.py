"""
Backup Command Cog

Slash commands for operators: capture the current guild, list and inspect
stored backups, restore one onto the current guild, and cancel a running
restore.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Dict, Optional

import discord
from discord import app_commands
from discord.ext import commands

from ..errors import RestoreCancelled
from ..capture import CaptureConfig, capture_guild
from ..gateway import DiscordGateway
from ..restore import AllowedMentionPolicy, CancellationToken, RestoreOptions, restore
from ..utils import backup_info_embed, error_embed, info_embed, report_embed, safe_response, success_embed, warning_embed

if TYPE_CHECKING:
    from ..bot import VaultBot

log = logging.getLogger("guildvault.backup_cog")


class BackupCog(commands.GroupCog, group_name="backup", group_description="Back up and restore this server."):
    def __init__(self, bot: "VaultBot") -> None:
        self.bot = bot
        self._running: Dict[int, CancellationToken] = {}

    async def interaction_check(self, interaction: discord.Interaction) -> bool:
        """Administrators of the guild, or the configured bot owner."""
        if interaction.guild is None:
            return False
        if interaction.user.id == self.bot.settings.owner_id:
            return True
        perms = getattr(interaction.user, "guild_permissions", None)
        return bool(perms and perms.administrator)

    @app_commands.command(name="create", description="Capture this server into a new backup.")
    @app_commands.describe(
        max_messages="Messages to keep per channel (default from config)",
        include_members="Also record the member list",
    )
    async def create(
        self,
        interaction: discord.Interaction,
        max_messages: Optional[app_commands.Range[int, 0, 500]] = None,
        include_members: bool = False,
    ) -> None:
        await interaction.response.defer(ephemeral=True, thinking=True)
        settings = self.bot.settings
        config = CaptureConfig(
            max_messages_per_channel=settings.capture_max_messages if max_messages is None else max_messages,
            include_members=include_members,
            image_mode=settings.capture_image_mode,
        )
        document = await capture_guild(interaction.guild, config)
        info = await self.bot.backup_store.save(document.id, document)
        log.info(f"{interaction.user} created backup {info.id} of {interaction.guild.name}")
        await safe_response(
            interaction,
            embed=success_embed(f"Backup `{info.id}` created ({info.size_kb} kB).\n{document.summary()}"),
        )

    @app_commands.command(name="list", description="List backups captured from this server.")
    async def list_backups(self, interaction: discord.Interaction) -> None:
        ids = await self.bot.backup_store.list_ids(str(interaction.guild.id))
        if not ids:
            await safe_response(interaction, embed=info_embed("No backups yet. Use `/backup create`."))
            return
        lines = []
        for backup_id in ids[:25]:
            info = await self.bot.backup_store.info(backup_id)
            lines.append(f"`{info.id}` • {info.size_kb} kB")
        if len(ids) > 25:
            lines.append(f"… and {len(ids) - 25} more")
        await safe_response(interaction, embed=info_embed("\n".join(lines), title=f"Backups of {interaction.guild.name}"))

    @app_commands.command(name="info", description="Show details of a backup.")
    @app_commands.describe(backup_id="Backup id")
    async def info(self, interaction: discord.Interaction, backup_id: str) -> None:
        info = await self.bot.backup_store.info(backup_id)
        await safe_response(interaction, embed=backup_info_embed(info))

    @app_commands.command(name="delete", description="Delete a stored backup.")
    @app_commands.describe(backup_id="Backup id")
    async def delete(self, interaction: discord.Interaction, backup_id: str) -> None:
        await self.bot.backup_store.delete(backup_id)
        log.info(f"{interaction.user} deleted backup {backup_id}")
        await safe_response(interaction, embed=success_embed(f"Backup `{backup_id}` deleted."))

    @app_commands.command(name="load", description="Restore a backup onto this server. Destructive.")
    @app_commands.describe(
        backup_id="Backup id",
        confirm="Must be true: the server may be wiped before restoring",
        clear="Remove existing roles, channels, emoji and bans first (default from config)",
        max_messages="Messages to replay per channel (default from config)",
    )
    async def load(
        self,
        interaction: discord.Interaction,
        backup_id: str,
        confirm: bool = False,
        clear: Optional[bool] = None,
        max_messages: Optional[app_commands.Range[int, 0, 500]] = None,
    ) -> None:
        if not confirm:
            await safe_response(interaction, embed=error_embed("Restoring can wipe this server. Re-run with `confirm: True`."))
            return
        guild = interaction.guild
        if guild.id in self._running:
            await safe_response(interaction, embed=error_embed("A restore is already running here."))
            return

        document = await self.bot.backup_store.load(backup_id)
        await interaction.response.defer(ephemeral=True, thinking=True)

        settings = self.bot.settings
        options = RestoreOptions(
            clear_before_restore=settings.restore_clear_guild if clear is None else clear,
            max_messages_per_channel=settings.restore_max_messages if max_messages is None else max_messages,
            allowed_mentions=AllowedMentionPolicy(),
            call_timeout=settings.call_timeout_seconds,
            relay_name=settings.relay_webhook_name,
        )
        token = CancellationToken()
        self._running[guild.id] = token
        log.info(f"{interaction.user} started restore of {backup_id} onto {guild.name} ({guild.id})")
        try:
            report = await restore(document, DiscordGateway(guild), options, token=token)
        except RestoreCancelled as e:
            log.warning(f"Restore of {backup_id} onto {guild.id} stopped: {e}")
            await safe_response(interaction, embed=warning_embed(f"Restore stopped: {e}. The server is partially restored."))
            return
        finally:
            self._running.pop(guild.id, None)

        embed = report_embed(report)
        # The invoking channel may not survive the reset
        if not await safe_response(interaction, embed=embed):
            try:
                await interaction.user.send(embed=embed)
            except discord.HTTPException as e:
                log.warning(f"Could not deliver restore report to {interaction.user}: {e}")

    @app_commands.command(name="cancel", description="Stop a running restore on this server.")
    async def cancel(self, interaction: discord.Interaction) -> None:
        token = self._running.get(interaction.guild.id)
        if token is None:
            await safe_response(interaction, embed=info_embed("No restore is running here."))
            return
        token.cancel(f"cancelled by {interaction.user}")
        await safe_response(interaction, embed=success_embed("Restore cancellation requested."))

from __future__ import annotations

import logging

import discord
from discord import app_commands
from discord.ext import commands

from .errors import BackupNotFound, GuildVaultError, PreconditionError, StorageError
from .utils import error_embed, safe_response

log = logging.getLogger("guildvault.error_handlers")


def describe_error(error: BaseException) -> str:
    """Operator-facing text for an error raised by a command."""
    if isinstance(error, PreconditionError):
        if error.missing:
            return f"I can't restore here, I'm missing: {', '.join(error.missing)}."
        return str(error)
    if isinstance(error, BackupNotFound):
        return f"No backup with id `{error.backup_id}`."
    if isinstance(error, StorageError):
        return "The backup store is unavailable. Check the bot logs."
    if isinstance(error, GuildVaultError):
        return str(error)
    return "Something went wrong. Check the bot logs."


class ErrorHandler(commands.Cog):
    """Centralized error handling for slash commands."""

    def __init__(self, bot: commands.Bot) -> None:
        self.bot = bot
        self._previous_handler = None

    async def cog_load(self) -> None:
        self._previous_handler = self.bot.tree.on_error
        self.bot.tree.on_error = self.on_app_command_error

    async def cog_unload(self) -> None:
        if self._previous_handler is not None:
            self.bot.tree.on_error = self._previous_handler

    async def on_app_command_error(
        self,
        interaction: discord.Interaction,
        error: app_commands.AppCommandError,
    ) -> None:
        if isinstance(error, app_commands.CommandInvokeError):
            original = error.original
            if isinstance(original, GuildVaultError):
                if isinstance(original, StorageError):
                    log.error(f"Storage failure in /{interaction.command.qualified_name if interaction.command else '?'}: {original}")
                else:
                    log.info(f"Command failed: {original}")
                await safe_response(interaction, embed=error_embed(describe_error(original)))
                return
            log.error(f"Unexpected error in app command {interaction.command}", exc_info=original)
            await safe_response(interaction, embed=error_embed(describe_error(original)))
            return

        if isinstance(error, app_commands.MissingPermissions):
            await safe_response(interaction, embed=error_embed("You need the Administrator permission for this."))
            return

        if isinstance(error, app_commands.CommandOnCooldown):
            await safe_response(
                interaction,
                embed=error_embed(f"This command is on cooldown. Try again in {error.retry_after:.1f}s"),
            )
            return

        if isinstance(error, app_commands.BotMissingPermissions):
            await safe_response(interaction, embed=error_embed("The bot lacks required permissions to run this command."))
            return

        if isinstance(error, app_commands.CheckFailure):
            await safe_response(interaction, embed=error_embed("You are not allowed to manage backups here."))
            return

        log.error(f"Unexpected error in app command {interaction.command}: {error}", exc_info=error)
        await safe_response(interaction, embed=error_embed(describe_error(error)))


async def setup_error_handlers(bot: commands.Bot) -> None:
    await bot.add_cog(ErrorHandler(bot))

from __future__ import annotations

import asyncio
import logging

import discord
from discord.ext import commands

from .cogs.backup import BackupCog
from .config import Settings
from .error_handlers import setup_error_handlers
from .services.backup_store import BackupStore

log = logging.getLogger("guildvault.bot")


class _CommandSyncManager:
    def __init__(self, bot: "VaultBot") -> None:
        self.bot = bot
        self._lock = asyncio.Lock()

    async def sync_startup(self) -> None:
        if self.bot.settings.sync_guild_id:
            await self.sync_guild(self.bot.settings.sync_guild_id)
        else:
            await self.sync_global()

    async def sync_global(self) -> None:
        async with self._lock:
            synced = await self.bot.tree.sync()
            log.info("Commands synced globally: %d", len(synced))

    async def sync_guild(self, guild_id: int) -> None:
        async with self._lock:
            guild = discord.Object(id=guild_id)
            # Guild sync makes new commands visible at once instead of after the global rollout
            self.bot.tree.copy_global_to(guild=guild)
            synced = await self.bot.tree.sync(guild=guild)
            log.info("Commands synced to guild %d: %d", guild_id, len(synced))


class VaultBot(commands.Bot):
    def __init__(self, settings: Settings) -> None:
        intents = discord.Intents.default()
        # Member capture needs the member list
        intents.members = True
        log.info("INTENTS: guilds=%s members=%s", intents.guilds, intents.members)

        super().__init__(
            command_prefix=commands.when_mentioned,
            intents=intents,
            allowed_mentions=discord.AllowedMentions.none(),
            help_command=None,
        )
        self.settings = settings
        if settings.owner_id:
            self.owner_id = settings.owner_id
        self.backup_store = BackupStore(settings.sqlite_path, settings.cache_ttl_seconds)
        self._sync_mgr = _CommandSyncManager(self)

    async def setup_hook(self) -> None:
        await self.backup_store.init()
        await setup_error_handlers(self)
        await self.add_cog(BackupCog(self))
        await self._sync_mgr.sync_startup()
        log.info("Command sync complete")

    async def on_ready(self) -> None:
        log.info(f"Logged in as {self.user} ({self.user.id if self.user else '?'}) in {len(self.guilds)} guild(s)")

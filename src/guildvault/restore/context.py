from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional

import discord

from ..constants import DEFAULT_CALL_TIMEOUT_SECONDS, RELAY_WEBHOOK_NAME, RESTORE_MAX_MESSAGES
from ..errors import RestoreCancelled
from ..interfaces import GuildGateway
from .rate_limiter import RateLimiter
from .reporting import RestoreReport


@dataclass(frozen=True)
class AllowedMentionPolicy:
    """Which mentions in relayed messages may ping. Nothing pings by default."""
    everyone: bool = False
    roles: bool = False
    users: bool = False

    def to_discord(self) -> discord.AllowedMentions:
        return discord.AllowedMentions(everyone=self.everyone, roles=self.roles, users=self.users, replied_user=False)


@dataclass(frozen=True)
class RestoreOptions:
    clear_before_restore: bool = True
    max_messages_per_channel: int = RESTORE_MAX_MESSAGES
    allowed_mentions: AllowedMentionPolicy = field(default_factory=AllowedMentionPolicy)
    call_timeout: float = DEFAULT_CALL_TIMEOUT_SECONDS
    relay_name: str = RELAY_WEBHOOK_NAME


class CancellationToken:
    """Cooperative cancellation shared by every call of one restore."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: Optional[str] = None

    def cancel(self, reason: str = "cancelled") -> None:
        self.reason = reason
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise RestoreCancelled(self.reason or "cancelled")

    async def wait(self) -> None:
        await self._event.wait()


class RestoreContext:
    """Everything one restore run threads through its sub-tasks."""

    def __init__(
        self,
        gateway: GuildGateway,
        options: RestoreOptions,
        report: RestoreReport,
        token: Optional[CancellationToken] = None,
    ) -> None:
        self.gateway = gateway
        self.options = options
        self.report = report
        self.token = token or CancellationToken()
        self.rate_limiter = RateLimiter(timeout=options.call_timeout, token=self.token)

    async def call(self, func: Callable[..., Awaitable[Any]], *args: Any, **kwargs: Any) -> Any:
        """Issue one remote call through the rate limiter."""
        return await self.rate_limiter.execute(func, *args, **kwargs)

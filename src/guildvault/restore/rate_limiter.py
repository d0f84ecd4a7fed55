from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, TYPE_CHECKING

import discord

from ..constants import DEFAULT_CALL_TIMEOUT_SECONDS, MAX_RATE_LIMIT_RETRIES

if TYPE_CHECKING:
    from .context import CancellationToken

log = logging.getLogger("guildvault.rate_limiter")


def _retry_after(error: discord.HTTPException) -> float:
    retry_after = getattr(error, "retry_after", None)
    if retry_after is None and error.response is not None:
        retry_after = error.response.headers.get("Retry-After")
    try:
        return float(retry_after) if retry_after is not None else 1.0
    except (TypeError, ValueError):
        return 1.0


class RateLimiter:
    """Runs remote calls with a timeout, 429 handling and a cancellation check."""

    def __init__(
        self,
        timeout: float = DEFAULT_CALL_TIMEOUT_SECONDS,
        max_retries: int = MAX_RATE_LIMIT_RETRIES,
        token: Optional["CancellationToken"] = None,
    ):
        self.timeout = timeout
        self.max_retries = max_retries
        self.token = token

    async def execute(self, coro: Callable[..., Awaitable[Any]], *args: Any, **kwargs: Any) -> Any:
        """Execute a coroutine function with rate limit handling."""
        attempt = 0
        while True:
            if self.token is not None:
                self.token.raise_if_cancelled()
            try:
                return await asyncio.wait_for(coro(*args, **kwargs), timeout=self.timeout)
            except discord.HTTPException as e:
                if e.status != 429 or attempt >= self.max_retries:
                    raise
                attempt += 1
                delay = _retry_after(e)
                log.warning(f"Rate limited, waiting {delay:.2f}s (attempt {attempt}/{self.max_retries})")
                await asyncio.sleep(delay)

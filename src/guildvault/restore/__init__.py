"""
Restore Package

Replays a backup Document onto a target guild: optional reset, then roles,
channels (with overwrites and message history), settings, emoji and bans.
"""

from .context import AllowedMentionPolicy, CancellationToken, RestoreContext, RestoreOptions
from .engine import restore
from .reporting import EntityOutcome, OutcomeStatus, RestoreReport
from .reset import ResetResult, reset_guild

__all__ = [
    "AllowedMentionPolicy",
    "CancellationToken",
    "RestoreContext",
    "RestoreOptions",
    "restore",
    "EntityOutcome",
    "OutcomeStatus",
    "RestoreReport",
    "ResetResult",
    "reset_guild",
]

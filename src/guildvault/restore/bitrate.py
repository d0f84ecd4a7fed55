from __future__ import annotations

from typing import Optional

from ..constants import DEFAULT_BITRATE, MAX_BITRATE_PER_TIER


def tier_ceiling(premium_tier: int) -> int:
    tier = min(max(int(premium_tier), min(MAX_BITRATE_PER_TIER)), max(MAX_BITRATE_PER_TIER))
    return MAX_BITRATE_PER_TIER[tier]


def clamp_bitrate(requested: Optional[int], premium_tier: int) -> int:
    """Largest bitrate the tier allows that does not exceed the requested one."""
    ceiling = tier_ceiling(premium_tier)
    if requested is None or requested <= 0:
        return min(DEFAULT_BITRATE, ceiling)
    return min(int(requested), ceiling)

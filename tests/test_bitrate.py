from __future__ import annotations

import pytest

from guildvault.constants import DEFAULT_BITRATE
from guildvault.restore.bitrate import clamp_bitrate, tier_ceiling


@pytest.mark.parametrize(
    "requested, tier, expected",
    [
        (96000, 0, 64000),
        (96000, 1, 96000),
        (384000, 2, 256000),
        (384000, 3, 384000),
        (8000, 3, 8000),
    ],
)
def test_clamp_never_exceeds_ceiling_or_request(requested, tier, expected):
    result = clamp_bitrate(requested, tier)
    assert result == expected
    assert result <= tier_ceiling(tier)
    assert result <= requested


@pytest.mark.parametrize("requested", [None, 0, -5])
def test_absent_bitrate_uses_default(requested):
    assert clamp_bitrate(requested, 2) == DEFAULT_BITRATE


def test_out_of_range_tiers_are_clamped():
    assert tier_ceiling(-1) == 64000
    assert tier_ceiling(7) == 384000

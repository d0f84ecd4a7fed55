from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from guildvault.gateway import REASON, DiscordGateway
from guildvault.interfaces import ChannelCreateRequest
from guildvault.models import ChannelKind


def _live_channel(id: int, name: str) -> MagicMock:
    channel = MagicMock()
    channel.id = id
    channel.name = name
    channel.category_id = None
    return channel


@pytest.fixture
def guild() -> MagicMock:
    guild = MagicMock(spec=discord.Guild)
    guild.roles = []
    guild.channels = [_live_channel(10, "General")]
    guild.threads = []
    guild.emojis = []
    for method in ("create_text_channel", "create_voice_channel", "create_stage_channel", "create_forum"):
        setattr(guild, method, AsyncMock(return_value=_live_channel(99, "created")))
    return guild


@pytest.mark.parametrize(
    "kind, method, extra",
    [
        (ChannelKind.TEXT, "create_text_channel", {}),
        (ChannelKind.ANNOUNCEMENT, "create_text_channel", {"news": True}),
        (ChannelKind.VOICE, "create_voice_channel", {}),
        (ChannelKind.STAGE, "create_stage_channel", {}),
        (ChannelKind.FORUM, "create_forum", {"media": False}),
        (ChannelKind.MEDIA, "create_forum", {"media": True}),
    ],
)
async def test_each_kind_uses_its_create_call(guild, kind, method, extra):
    gateway = DiscordGateway(guild)
    ref = await gateway.create_channel(ChannelCreateRequest(kind=kind, name="room"))

    create = getattr(guild, method)
    create.assert_awaited_once()
    args, kwargs = create.call_args
    assert args == ("room",)
    assert kwargs["reason"] == REASON
    for key, value in extra.items():
        assert kwargs[key] is value
    assert ref.id == 99


async def test_media_channel_keeps_forum_fields(guild):
    gateway = DiscordGateway(guild)
    request = ChannelCreateRequest(
        kind=ChannelKind.MEDIA, name="gallery", parent_id=10, topic="post art", nsfw=True, rate_limit_per_user=30
    )
    await gateway.create_channel(request)

    kwargs = guild.create_forum.call_args.kwargs
    assert kwargs["media"] is True
    assert kwargs["category"].name == "General"
    assert (kwargs["topic"], kwargs["nsfw"], kwargs["slowmode_delay"]) == ("post art", True, 30)


async def test_voice_channel_gets_bitrate_and_user_limit(guild):
    gateway = DiscordGateway(guild)
    await gateway.create_channel(ChannelCreateRequest(kind=ChannelKind.VOICE, name="lounge", bitrate=96000, user_limit=4))

    kwargs = guild.create_voice_channel.call_args.kwargs
    assert (kwargs["bitrate"], kwargs["user_limit"]) == (96000, 4)
    assert "topic" not in kwargs and "nsfw" not in kwargs


async def test_stage_channel_never_gets_a_topic_or_user_limit(guild):
    gateway = DiscordGateway(guild)
    await gateway.create_channel(
        ChannelCreateRequest(kind=ChannelKind.STAGE, name="stage", topic="ignored", bitrate=64000, user_limit=50)
    )

    kwargs = guild.create_stage_channel.call_args.kwargs
    assert kwargs["bitrate"] == 64000
    assert "topic" not in kwargs and "user_limit" not in kwargs


async def test_created_channel_is_resolvable_afterwards(guild):
    gateway = DiscordGateway(guild)
    await gateway.create_channel(ChannelCreateRequest(kind=ChannelKind.TEXT, name="chat"))
    assert 99 in {c.id for c in gateway.channels()}

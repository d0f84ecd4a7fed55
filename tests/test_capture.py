from __future__ import annotations

import base64

import discord
import pytest

from guildvault.capture import CaptureConfig, capture_guild
from guildvault.models import ChannelKind
from guildvault.testing.fakes import (
    FakeAttachment,
    FakeBanEntry,
    FakeEmoji,
    FakeGuild,
    FakeMember,
    FakeMessage,
    FakeUser,
    http_error,
)


@pytest.fixture
def guild() -> FakeGuild:
    guild = FakeGuild(id=500, name="Source")
    admin = guild.add_role("Admin", position=3, color=0xFF0000, permissions=8)
    guild.add_role("Member", position=1)
    guild.add_role("Bot Role", position=2, managed=True)

    general = guild.add_channel("General", discord.ChannelType.category, position=0)
    chat = guild.add_channel(
        "chat",
        category=general,
        position=1,
        topic="talk here",
        slowmode_delay=5,
        # history() yields newest first
        messages=[
            FakeMessage("newest", author=FakeUser(2, "bob", global_name="Bobby")),
            FakeMessage("oldest", author=FakeUser(1, "alice"), pinned=True),
        ],
    )
    chat.overwrites = {
        admin: discord.PermissionOverwrite(send_messages=True),
        FakeMember(77, "someone"): discord.PermissionOverwrite(view_channel=False),
    }
    guild.add_channel("lounge", discord.ChannelType.voice, category=general, position=2, bitrate=96000, user_limit=4)

    guild.rules_channel = guild.add_channel("rules", position=0)
    guild.add_channel("stage", discord.ChannelType.stage_voice, position=3, user_limit=50)
    guild.add_channel("news", discord.ChannelType.news, position=2)

    guild.afk_channel = guild.get_channel(next(c.id for c in guild.channels if c.name == "lounge"))
    guild.afk_timeout = 900
    guild.emojis = [FakeEmoji(900, "blob", b"png")]
    guild.ban_entries = [FakeBanEntry(FakeUser(66, "spammer"), "spam")]
    guild.members = [FakeMember(1, "alice", roles=[admin])]
    return guild


async def test_capture_roles_skip_managed_and_sort_by_position(guild):
    doc = await capture_guild(guild)
    assert [r.name for r in doc.roles] == ["Admin", "Member", "@everyone"]
    assert doc.roles[0].color == 0xFF0000
    assert doc.roles[0].permissions == "8"
    assert [r.is_everyone for r in doc.roles] == [False, False, True]


async def test_capture_channel_tree(guild):
    doc = await capture_guild(guild)
    [category] = doc.channels.categories
    assert category.name == "General"
    chat, lounge = category.children
    assert (chat.type, chat.topic, chat.rate_limit_per_user) == (ChannelKind.TEXT, "talk here", 5)
    assert (lounge.type, lounge.bitrate, lounge.user_limit) == (ChannelKind.VOICE, 96000, 4)
    # rules is managed by Discord and never captured
    assert [c.name for c in doc.channels.others] == ["news", "stage"]
    assert doc.channels.others[1].user_limit == 0


async def test_capture_overwrites_by_role_name_only(guild):
    doc = await capture_guild(guild)
    chat = doc.channels.categories[0].children[0]
    [rule] = chat.permissions
    assert rule.role_name == "Admin"
    assert rule.allow == str(discord.Permissions(send_messages=True).value)
    assert rule.deny == "0"


async def test_capture_messages_newest_first_with_limit(guild):
    doc = await capture_guild(guild)
    chat = doc.channels.categories[0].children[0]
    assert [m.content for m in chat.messages] == ["newest", "oldest"]
    assert chat.messages[1].pinned
    assert chat.messages[0].username == "Bobby"
    assert chat.messages[1].username == "alice"

    limited = await capture_guild(guild, CaptureConfig(max_messages_per_channel=1))
    assert [m.content for m in limited.channels.categories[0].children[0].messages] == ["newest"]


async def test_unreadable_history_captures_channel_without_messages(guild):
    chat = next(c for c in guild.channels if c.name == "chat")
    chat.history_error = http_error(403)
    doc = await capture_guild(guild)
    assert doc.channels.categories[0].children[0].messages == []


async def test_inline_mode_embeds_images_only(guild):
    chat = next(c for c in guild.channels if c.name == "chat")
    chat._messages = [
        FakeMessage(
            "files",
            attachments=[
                FakeAttachment("a.png", "https://cdn.example/a.png", "image/png", b"img"),
                FakeAttachment("b.txt", "https://cdn.example/b.txt", "text/plain"),
            ],
        )
    ]
    doc = await capture_guild(guild, CaptureConfig(image_mode="inline"))
    image, text = doc.channels.categories[0].children[0].messages[0].files
    assert image.base64 == base64.b64encode(b"img").decode()
    assert text.base64 is None and text.url == "https://cdn.example/b.txt"
    assert doc.emojis[0].base64 == base64.b64encode(b"png").decode()


async def test_capture_guild_level_data(guild):
    doc = await capture_guild(guild, backup_id="fixed")
    assert doc.id == "fixed"
    assert doc.guild_id == "500"
    assert doc.afk.name == "lounge" and doc.afk.timeout == 900
    assert doc.verification_level == discord.VerificationLevel.low.value
    assert [b.id for b in doc.bans] == ["66"]
    assert doc.emojis[0].url.endswith("/900.png")
    assert doc.members == []


async def test_capture_members_and_exclusions(guild):
    config = CaptureConfig(include_members=True, exclude=frozenset({"bans", "channels"}))
    doc = await capture_guild(guild, config)
    assert [m.username for m in doc.members] == ["alice"]
    assert doc.members[0].roles == [str(guild.roles[1].id)]
    assert doc.bans == []
    assert doc.channels.count() == 0
    assert doc.roles


async def test_unknown_exclusion_is_rejected(guild):
    with pytest.raises(ValueError):
        await capture_guild(guild, CaptureConfig(exclude=frozenset({"webhooks"})))


async def test_capture_keeps_media_channels_distinct_from_forums():
    guild = FakeGuild(id=501, name="Art")
    guild.add_channel("gallery", discord.ChannelType.media, position=0, topic="post art")
    guild.add_channel("help", discord.ChannelType.forum, position=1)
    doc = await capture_guild(guild)
    gallery, help_forum = doc.channels.others
    assert (gallery.type, gallery.topic) == (ChannelKind.MEDIA, "post art")
    assert help_forum.type is ChannelKind.FORUM

from __future__ import annotations

from guildvault.interfaces import ResolvedOverwrite
from guildvault.models import CategoryData, ChannelData, ChannelKind, ChannelsData, PermissionRule, ThreadData
from guildvault.restore.channels import build_channel_request, restore_channels
from guildvault.restore.reporting import OutcomeStatus

from conftest import message, text_channel


def test_voice_request_clamps_bitrate_and_keeps_user_limit():
    data = ChannelData(type=ChannelKind.VOICE, name="lounge", bitrate=384000, user_limit=5, topic="ignored")
    request = build_channel_request(data, parent_id=7, premium_tier=1)
    assert request.bitrate == 128000
    assert request.user_limit == 5
    assert request.parent_id == 7
    assert request.topic is None


def test_stage_request_has_no_user_limit():
    data = ChannelData(type=ChannelKind.STAGE, name="stage", bitrate=None, user_limit=40, topic="town hall")
    request = build_channel_request(data, parent_id=None, premium_tier=0)
    assert request.bitrate == 64000
    assert request.user_limit is None
    assert request.topic is None


def test_text_request_carries_topic_nsfw_and_slowmode():
    data = text_channel("rules", topic="be nice", nsfw=True, rate_limit_per_user=10)
    request = build_channel_request(data, parent_id=None, premium_tier=0)
    assert (request.topic, request.nsfw, request.rate_limit_per_user) == ("be nice", True, 10)
    assert request.bitrate is None


async def test_category_children_are_parented_and_overwritten(gateway, make_ctx):
    admin = gateway.add_role("Admin")
    ctx = make_ctx()
    channels = ChannelsData(
        categories=[
            CategoryData(
                name="General",
                permissions=[PermissionRule("Admin", "1024", "0")],
                children=[
                    text_channel("chat", permissions=[PermissionRule("Admin", "8", "0"), PermissionRule("Ghost", "1", "0")]),
                    ChannelData(type=ChannelKind.VOICE, name="voice"),
                ],
            )
        ],
        others=[text_channel("lobby")],
    )

    await restore_channels(ctx, channels)

    category = gateway.channel_named("General")
    chat = gateway.channel_named("chat")
    assert category.kind is None
    assert chat.parent_id == category.id
    assert gateway.channel_named("voice").parent_id == category.id
    assert gateway.channel_named("lobby").parent_id is None
    assert category.overwrites == [ResolvedOverwrite(admin.id, 1024, 0)]
    assert chat.overwrites == [ResolvedOverwrite(admin.id, 8, 0)]
    assert sorted(ctx.report.names("channel")) == ["chat", "lobby", "voice"]


async def test_categories_are_created_in_order(gateway, make_ctx):
    ctx = make_ctx()
    channels = ChannelsData(categories=[CategoryData(name=n) for n in ("A", "B", "C")])
    await restore_channels(ctx, channels)
    assert [keys[0] for keys in gateway.ops("create_category")] == ["A", "B", "C"]


async def test_failed_category_skips_children_but_not_siblings(gateway, make_ctx):
    ctx = make_ctx()
    gateway.fail("create_category", "Broken")
    channels = ChannelsData(
        categories=[
            CategoryData(name="Broken", children=[text_channel("orphan")]),
            CategoryData(name="Fine", children=[text_channel("kept")]),
        ],
        others=[text_channel("free")],
    )

    await restore_channels(ctx, channels)

    assert gateway.channel_named("orphan") is None
    assert ctx.report.names("category", OutcomeStatus.FAILED) == ["Broken"]
    assert ctx.report.names("channel", OutcomeStatus.SKIPPED) == ["orphan"]
    assert sorted(ctx.report.names("channel")) == ["free", "kept"]


async def test_channel_failure_does_not_stop_siblings(gateway, make_ctx):
    ctx = make_ctx()
    gateway.fail("create_channel", "bad")
    await restore_channels(ctx, ChannelsData(others=[text_channel("bad"), text_channel("good")]))
    assert ctx.report.names("channel", OutcomeStatus.FAILED) == ["bad"]
    assert ctx.report.names("channel") == ["good"]


async def test_overwrite_failure_is_reported_and_channel_kept(gateway, make_ctx):
    ctx = make_ctx()
    gateway.fail("set_overwrites", "chat")
    await restore_channels(ctx, ChannelsData(others=[text_channel("chat", messages=[message("hi")])]))
    assert ctx.report.names("overwrites", OutcomeStatus.FAILED) == ["chat"]
    assert len(gateway.messages_in("chat")) == 1


async def test_threads_are_created_and_share_the_channel_relay(gateway, make_ctx):
    ctx = make_ctx()
    channel = text_channel(
        "dev",
        messages=[message("in channel")],
        threads=[
            ThreadData(name="bugs", auto_archive_duration=4320, messages=[message("thread b"), message("thread a")]),
            ThreadData(name="ideas"),
        ],
    )

    await restore_channels(ctx, ChannelsData(others=[channel]))

    threads = {t.name: t for t in gateway.thread_map.values()}
    assert set(threads) == {"bugs", "ideas"}
    assert threads["bugs"].auto_archive_duration == 4320
    assert [m.payload.content for m in gateway.messages_in("bugs")] == ["thread a", "thread b"]
    assert all(m.payload.thread_id == threads["bugs"].id for m in gateway.messages_in("bugs"))
    assert len(gateway.ops("acquire_relay")) == 1
    assert ctx.report.names("thread") == ["bugs", "ideas"]


async def test_existing_thread_is_reused(gateway, make_ctx):
    ctx = make_ctx()

    original_create = gateway.create_channel

    async def create_with_thread(request):
        ref = await original_create(request)
        await gateway.create_thread(ref.id, "bugs", 1440)
        return ref

    gateway.create_channel = create_with_thread
    await restore_channels(ctx, ChannelsData(others=[text_channel("dev", threads=[ThreadData(name="bugs")])]))
    assert len(gateway.ops("create_thread")) == 1


async def test_forum_and_voice_channels_get_no_replay(gateway, make_ctx):
    ctx = make_ctx()
    forum = ChannelData(type=ChannelKind.FORUM, name="help", messages=[message("x")])
    voice = ChannelData(type=ChannelKind.VOICE, name="talk", messages=[message("y")])
    await restore_channels(ctx, ChannelsData(others=[forum, voice]))
    assert gateway.sent == []
    assert gateway.ops("acquire_relay") == []

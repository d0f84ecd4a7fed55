from __future__ import annotations

from typing import List, Optional

import pytest

from guildvault.models import (
    CategoryData,
    ChannelData,
    ChannelKind,
    ChannelsData,
    Document,
    MessageData,
    PermissionRule,
    RoleData,
)
from guildvault.restore import CancellationToken, RestoreContext, RestoreOptions, RestoreReport
from guildvault.testing.fakes import FakeGateway


def message(content: str = "", username: str = "alice", **kwargs) -> MessageData:
    return MessageData(username=username, avatar=f"https://cdn.example/{username}.png", content=content, **kwargs)


def text_channel(name: str, messages: Optional[List[MessageData]] = None, **kwargs) -> ChannelData:
    return ChannelData(type=ChannelKind.TEXT, name=name, messages=messages or [], **kwargs)


def make_document(**kwargs) -> Document:
    kwargs.setdefault("id", "b1")
    kwargs.setdefault("name", "Source Guild")
    return Document(**kwargs)


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def make_ctx(gateway):
    def _make(gw: Optional[FakeGateway] = None, token: Optional[CancellationToken] = None, **options) -> RestoreContext:
        return RestoreContext(gw or gateway, RestoreOptions(**options), RestoreReport(), token)

    return _make


@pytest.fixture
def general_chat_document() -> Document:
    """Admin role, a General category holding #chat with an Admin overwrite and two messages."""
    return make_document(
        roles=[
            RoleData(name="Admin", color=0xFF0000, hoist=True, permissions="8", position=1),
            RoleData(name="@everyone", permissions="104324673", is_everyone=True),
        ],
        channels=ChannelsData(
            categories=[
                CategoryData(
                    name="General",
                    children=[
                        text_channel(
                            "chat",
                            # Captured newest first
                            messages=[message("second", username="bob"), message("first")],
                            permissions=[PermissionRule(role_name="Admin", allow="8", deny="0")],
                        )
                    ],
                )
            ]
        ),
    )

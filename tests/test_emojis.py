from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from types import SimpleNamespace

PROJECT_BASE = Path(__file__).resolve().parents[1]
if str(PROJECT_BASE) not in sys.path:
    sys.path.insert(0, str(PROJECT_BASE))

import discord
import pytest

from castbot.emojis import create_avatar_emoji, delete_player_emojis, player_emoji_fields
from castbot.errors import ResourceLimitExceeded
from castbot.utils import emoji_id, emoji_token


def _response(status: int, reason: str) -> SimpleNamespace:
    return SimpleNamespace(status=status, reason=reason)


class FakeAsset:
    def __init__(self) -> None:
        self.sizes: list[int] = []

    def with_size(self, size: int) -> "FakeAsset":
        self.sizes.append(size)
        return self

    async def read(self) -> bytes:
        return b"png-bytes"


class FakeGuild:
    def __init__(self, *, create_error: Exception | None = None, delete_errors=None) -> None:
        self.created: list[dict] = []
        self.deleted: list[int] = []
        self._create_error = create_error
        self._delete_errors = delete_errors or {}

    async def create_custom_emoji(self, *, name: str, image: bytes, reason: str | None = None):
        if self._create_error is not None:
            raise self._create_error
        self.created.append({"name": name, "image": image})
        return SimpleNamespace(name=name, id=4242)

    async def delete_emoji(self, emoji, *, reason: str | None = None) -> None:
        error = self._delete_errors.get(emoji.id)
        if error is not None:
            raise error
        self.deleted.append(emoji.id)


def test_avatar_emoji_is_named_after_the_user() -> None:
    guild = FakeGuild()
    avatar = FakeAsset()
    member = SimpleNamespace(id=77, display_name="alice", display_avatar=avatar)

    handle = asyncio.run(create_avatar_emoji(guild, member))

    assert handle == {"name": "77", "id": "4242"}
    assert guild.created == [{"name": "77", "image": b"png-bytes"}]
    assert avatar.sizes == [128]
    assert player_emoji_fields(handle) == {
        "emoji": {"name": "77", "id": "4242"},
        "emojiCode": "<:77:4242>",
    }


def test_emoji_limit_becomes_resource_limit_error() -> None:
    error = discord.HTTPException(
        _response(400, "Bad Request"),
        {"code": 30008, "message": "Maximum number of emojis reached (50)"},
    )
    member = SimpleNamespace(id=77, display_name="alice", display_avatar=FakeAsset())

    with pytest.raises(ResourceLimitExceeded) as excinfo:
        asyncio.run(create_avatar_emoji(FakeGuild(create_error=error), member))

    assert excinfo.value.limit == 50


def test_delete_player_emojis_continues_past_failures() -> None:
    guild = FakeGuild(
        delete_errors={
            1100000000000000002: discord.NotFound(_response(404, "Not Found"), "Unknown Emoji"),
            1100000000000000003: discord.Forbidden(_response(403, "Forbidden"), "Missing Permissions"),
        }
    )
    records = [
        {"emoji": {"name": "a", "id": "1100000000000000001"}},
        {"emojiCode": "<:b:1100000000000000002>"},
        {"emoji": {"name": "c", "id": "1100000000000000003"}},
        {"age": 30},
        {"emojiCode": "<a:d:1100000000000000004>"},
    ]

    deleted, failures = asyncio.run(delete_player_emojis(guild, records))

    assert deleted == 2
    assert guild.deleted == [1100000000000000001, 1100000000000000004]
    assert len(failures) == 1
    assert "missing permissions" in failures[0]


def test_emoji_helpers_prefer_structured_handle() -> None:
    old_code = "<:old:1100000000000000001>"
    record = {"emoji": {"name": "new", "id": "1100000000000000009"}, "emojiCode": old_code}

    assert emoji_token(record) == "<:new:1100000000000000009>"
    assert emoji_id(record) == 1100000000000000009
    assert emoji_token({"emojiCode": old_code}) == old_code
    assert emoji_id({"emojiCode": old_code}) == 1100000000000000001
    assert emoji_token({}) is None
    assert emoji_id({}) is None

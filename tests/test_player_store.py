from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path

import pytest

PROJECT_BASE = Path(__file__).resolve().parents[1]
if str(PROJECT_BASE) not in sys.path:
    sys.path.insert(0, str(PROJECT_BASE))

from castbot.errors import InvalidInputError, StorageError
from castbot.storage import PLAYER_FILE, DataStore

EMPTY_TRIBES = {
    "tribe1": None,
    "tribe2": None,
    "tribe3": None,
    "tribe4": None,
    "tribe1emoji": None,
    "tribe2emoji": None,
    "tribe3emoji": None,
    "tribe4emoji": None,
}


@pytest.fixture
def store(tmp_path: Path) -> DataStore:
    return DataStore(tmp_path)


def _write_players(root: Path, players: dict) -> None:
    payload = {"players": players, "config": {"tribes": dict(EMPTY_TRIBES)}}
    (root / PLAYER_FILE).write_text(json.dumps(payload), encoding="utf8")


def test_first_load_seeds_document(store: DataStore, tmp_path: Path) -> None:
    document = asyncio.run(store.players.load())

    assert document["players"] == {}
    assert document["config"]["tribes"] == EMPTY_TRIBES
    on_disk = json.loads((tmp_path / PLAYER_FILE).read_text(encoding="utf8"))
    assert on_disk == document
    assert (tmp_path / "tribes.json").exists()


def test_missing_tribe_mirror_is_repaired(store: DataStore, tmp_path: Path) -> None:
    (tmp_path / PLAYER_FILE).write_text(json.dumps({"players": {"u1": {"age": 20}}}), encoding="utf8")

    document = asyncio.run(store.players.load())

    assert document["players"] == {"u1": {"age": 20}}
    assert document["config"]["tribes"] == EMPTY_TRIBES


def test_update_player_merges_instead_of_replacing(store: DataStore, tmp_path: Path) -> None:
    _write_players(tmp_path, {"u1": {"emojiCode": "<:x:1>"}})

    merged = asyncio.run(store.players.update_player("u1", {"age": 30}))

    assert merged == {"age": 30, "emojiCode": "<:x:1>"}
    assert asyncio.run(store.players.get_player("u1")) == {"age": 30, "emojiCode": "<:x:1>"}


def test_update_player_creates_missing_record(store: DataStore) -> None:
    merged = asyncio.run(store.players.update_player(42, {"age": "unknown"}))

    assert merged == {"age": "unknown"}
    assert asyncio.run(store.players.get_player("42")) == {"age": "unknown"}


def test_get_player_returns_none_when_absent(store: DataStore) -> None:
    assert asyncio.run(store.players.get_player("nobody")) is None


def test_malformed_document_raises_storage_error(store: DataStore, tmp_path: Path) -> None:
    (tmp_path / PLAYER_FILE).write_text("{not json", encoding="utf8")

    with pytest.raises(StorageError):
        asyncio.run(store.players.load())


def test_legacy_timezone_role_key_is_renamed(store: DataStore, tmp_path: Path) -> None:
    _write_players(tmp_path, {"u1": {"roleId": "555", "timezone": "EST"}})

    record = asyncio.run(store.players.get_player("u1"))

    assert record == {"timezoneRoleId": "555", "timezone": "EST"}


def test_update_player_field_rejects_unknown_fields(store: DataStore) -> None:
    with pytest.raises(InvalidInputError):
        asyncio.run(store.players.update_player_field("u1", "member", "Mallory"))

    record = asyncio.run(store.players.update_player_field("u1", "age", 25))
    assert record == {"age": 25}


def test_delete_player_reports_whether_a_record_existed(store: DataStore) -> None:
    asyncio.run(store.players.update_player("u1", {"age": 30}))

    assert asyncio.run(store.players.delete_player("u1")) is True
    assert asyncio.run(store.players.delete_player("u1")) is False
    assert asyncio.run(store.players.get_player("u1")) is None


def test_clear_emoji_returns_removed_handles(store: DataStore, tmp_path: Path) -> None:
    _write_players(
        tmp_path,
        {
            "u1": {"age": 30, "emoji": {"name": "u1", "id": "99"}, "emojiCode": "<:u1:99>"},
            "u2": {"age": 22},
        },
    )

    removed = asyncio.run(store.players.clear_emoji(["u1", "u2", "u3"]))

    assert removed == {"u1": {"emoji": {"name": "u1", "id": "99"}, "emojiCode": "<:u1:99>"}}
    assert asyncio.run(store.players.get_player("u1")) == {"age": 30}


def test_failed_edit_is_not_persisted(store: DataStore) -> None:
    async def scenario() -> dict | None:
        await store.players.update_player("u1", {"age": 1})
        with pytest.raises(RuntimeError):
            async with store.players.edit() as document:
                document["players"]["u1"]["age"] = 99
                raise RuntimeError("abort")
        return await store.players.get_player("u1")

    assert asyncio.run(scenario()) == {"age": 1}


def test_concurrent_updates_are_not_lost(store: DataStore) -> None:
    async def scenario() -> dict:
        await asyncio.gather(
            *(store.players.update_player(f"u{index}", {"age": index}) for index in range(20))
        )
        return await store.players.load()

    document = asyncio.run(scenario())

    assert {key: value["age"] for key, value in document["players"].items()} == {
        f"u{index}": index for index in range(20)
    }


@pytest.mark.parametrize(
    "document",
    [
        {"players": [{"id": "u1", "age": 30}], "config": {"tribes": EMPTY_TRIBES}},
        {"players": {"u1": ["age", 30]}, "config": {"tribes": EMPTY_TRIBES}},
        {"players": {"u1": {"age": 30}}, "config": ["tribes"]},
    ],
)
def test_malformed_sections_are_rejected_without_rewriting(
    store: DataStore, tmp_path: Path, document: dict
) -> None:
    path = tmp_path / PLAYER_FILE
    path.write_text(json.dumps(document), encoding="utf8")
    original = path.read_text(encoding="utf8")

    with pytest.raises(StorageError):
        asyncio.run(store.players.update_player("u2", {"age": 5}))

    assert path.read_text(encoding="utf8") == original


def test_undecodable_player_file_raises_storage_error(store: DataStore, tmp_path: Path) -> None:
    (tmp_path / PLAYER_FILE).write_bytes(b'{"players": {"\xff": {}}}')

    with pytest.raises(StorageError):
        asyncio.run(store.players.load())


def test_emoji_code_edit_replaces_structured_handle(store: DataStore, tmp_path: Path) -> None:
    _write_players(
        tmp_path,
        {
            "u1": {
                "age": 30,
                "emoji": {"name": "u1", "id": "1100000000000000123"},
                "emojiCode": "<:u1:1100000000000000123>",
            }
        },
    )

    record = asyncio.run(
        store.players.update_player_field("u1", "emojiCode", "<:new:1100000000000000456>")
    )

    assert record == {
        "age": 30,
        "emoji": {"name": "new", "id": "1100000000000000456"},
        "emojiCode": "<:new:1100000000000000456>",
    }
    assert asyncio.run(store.players.get_player("u1")) == record


def test_emoji_code_edit_with_plain_text_drops_handle(store: DataStore, tmp_path: Path) -> None:
    _write_players(
        tmp_path,
        {"u1": {"emoji": {"name": "u1", "id": "1100000000000000123"}, "emojiCode": "<:u1:1100000000000000123>"}},
    )

    record = asyncio.run(store.players.update_player_field("u1", "emojiCode", "🔥"))

    assert record == {"emojiCode": "🔥"}

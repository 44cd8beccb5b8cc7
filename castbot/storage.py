"""JSON persistence for player records, tribe slots and pronoun roles.

Each document lives in its own file under the storage root and is always
rewritten whole: a temporary file is written next to the target, flushed and
moved into place with :func:`os.replace`, so readers never observe a partial
document.  Every read-modify-write cycle of a store runs under that store's
:class:`asyncio.Lock`.  The lock only serialises callers inside one process;
two bot processes sharing a data directory can still lose each other's
updates.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
from contextlib import asynccontextmanager
from copy import deepcopy
from pathlib import Path
from typing import Any, AsyncIterator, Iterable, Mapping, MutableMapping, NamedTuple

import discord

from .errors import ConfigError, InvalidInputError, StorageError
from .roles import TribeConfig, validate_slot

log = logging.getLogger(__name__)

PLAYER_FILE = "playerData.json"
TRIBES_FILE = "tribes.json"
PRONOUNS_FILE = "pronouns.json"

# Fields an administrator may set directly on a player record.
EDITABLE_PLAYER_FIELDS = frozenset({"age", "emojiCode"})


def _is_site_packages(path: Path) -> bool:
    normalized = {part.lower() for part in path.parts}
    return "site-packages" in normalized or "dist-packages" in normalized


def resolve_storage_root(package_root: Path) -> Path:
    """Determine where the JSON documents should be stored.

    ``CASTBOT_DATA_ROOT`` wins when set.  Otherwise data is kept in a ``data``
    directory of the checkout, unless the package is installed into a
    site-packages directory or the checkout is read-only, in which case the
    current working directory is used.
    """

    override = os.getenv("CASTBOT_DATA_ROOT")
    if override:
        return Path(override).expanduser().resolve()

    if _is_site_packages(package_root) or not os.access(package_root, os.W_OK):
        return Path.cwd().resolve()

    return (package_root / "data").resolve()


def _read_json(path: Path) -> Any:
    """Return the decoded document, or ``None`` when the file does not exist."""

    try:
        with path.open("r", encoding="utf8") as handle:
            return json.load(handle)
    except FileNotFoundError:
        return None
    except OSError as exc:
        raise StorageError(f"Unable to read {path.name}: {exc}") from exc


def _write_json(path: Path, payload: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    temp_path: Path | None = None
    data = json.dumps(payload, indent=2, ensure_ascii=False)
    try:
        with tempfile.NamedTemporaryFile(
            "w", encoding="utf8", dir=path.parent, delete=False, suffix=".tmp"
        ) as handle:
            temp_path = Path(handle.name)
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(temp_path, path)
        temp_path = None
    finally:
        if temp_path is not None:
            try:
                temp_path.unlink()
            except FileNotFoundError:
                pass


def _save(path: Path, payload: Any) -> None:
    try:
        _write_json(path, payload)
    except OSError as exc:
        raise StorageError(f"Unable to write {path.name}: {exc}") from exc
    log.debug("Wrote %s", path)


# ---------------------------------------------------------------------------
# Tribe slots
# ---------------------------------------------------------------------------


class TribeConfigStore:
    """The ``tribes.json`` document: four role slots with optional emoji."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self._lock = asyncio.Lock()

    async def load_tribes(self) -> TribeConfig:
        async with self._lock:
            return self._load()

    async def set_tribe_slot(self, slot: int, role_id: str | int, emoji: str | None) -> TribeConfig:
        validate_slot(slot)
        async with self._lock:
            tribes = self._load()
            entry = tribes.get(slot)
            entry.role_id = str(role_id)
            entry.emoji = emoji or None
            _save(self.path, tribes.to_document())
            return tribes

    async def clear_tribe_slot(self, slot: int) -> TribeConfig:
        validate_slot(slot)
        async with self._lock:
            tribes = self._load()
            entry = tribes.get(slot)
            entry.role_id = None
            entry.emoji = None
            _save(self.path, tribes.to_document())
            return tribes

    async def clear_all_tribes(self) -> TribeConfig:
        async with self._lock:
            tribes = TribeConfig.empty()
            _save(self.path, tribes.to_document())
            return tribes

    def _load(self) -> TribeConfig:
        try:
            document = _read_json(self.path)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise ConfigError(f"{self.path.name} is not valid JSON: {exc}") from exc
        if document is None:
            tribes = TribeConfig.empty()
            _save(self.path, tribes.to_document())
            log.info("Created empty tribe configuration at %s", self.path)
            return tribes
        return TribeConfig.from_document(document)


# ---------------------------------------------------------------------------
# Pronoun roles
# ---------------------------------------------------------------------------


class PronounChange(NamedTuple):
    changed: list[str]
    unchanged: list[str]


class PronounStore:
    """The ``pronouns.json`` document: an ordered list of pronoun role IDs."""

    def __init__(self, path: Path, defaults: Iterable[str] = ()) -> None:
        self.path = path
        self._defaults = [str(role_id) for role_id in defaults]
        self._lock = asyncio.Lock()

    async def load(self) -> list[str]:
        async with self._lock:
            return self._load()

    async def add_pronoun_roles(self, role_ids: Iterable[str | int]) -> PronounChange:
        """Append new IDs; returns ``(added, already_present)``."""

        async with self._lock:
            current = self._load()
            added: list[str] = []
            present: list[str] = []
            for role_id in dict.fromkeys(str(value) for value in role_ids):
                if role_id in current:
                    present.append(role_id)
                else:
                    current.append(role_id)
                    added.append(role_id)
            if added:
                _save(self.path, {"pronounRoleIDs": current})
            return PronounChange(added, present)

    async def remove_pronoun_roles(self, role_ids: Iterable[str | int]) -> PronounChange:
        """Drop IDs from the list; returns ``(removed, not_found)``."""

        async with self._lock:
            current = self._load()
            removed: list[str] = []
            missing: list[str] = []
            for role_id in dict.fromkeys(str(value) for value in role_ids):
                if role_id in current:
                    current.remove(role_id)
                    removed.append(role_id)
                else:
                    missing.append(role_id)
            if removed:
                _save(self.path, {"pronounRoleIDs": current})
            return PronounChange(removed, missing)

    def _load(self) -> list[str]:
        try:
            document = _read_json(self.path)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise ConfigError(f"{self.path.name} is not valid JSON: {exc}") from exc
        if document is None:
            seeded = list(self._defaults)
            _save(self.path, {"pronounRoleIDs": seeded})
            return seeded
        if not isinstance(document, Mapping) or not isinstance(
            document.get("pronounRoleIDs"), list
        ):
            raise ConfigError(f"{self.path.name} must contain a pronounRoleIDs list")
        return [str(role_id) for role_id in document["pronounRoleIDs"]]


# ---------------------------------------------------------------------------
# Player records
# ---------------------------------------------------------------------------


def _normalise_record(user_id: str, record: Any) -> dict[str, Any]:
    if not isinstance(record, Mapping):
        raise StorageError(f"Player record {user_id} must be a JSON object")
    normalised = dict(record)
    # Older documents stored the timezone role under ``roleId``.
    if "roleId" in normalised and "timezoneRoleId" not in normalised:
        normalised["timezoneRoleId"] = normalised.pop("roleId")
    return normalised


class PlayerStore:
    """The ``playerData.json`` document of per-player records.

    The document also carries ``config.tribes``, a mirror of the tribe
    configuration refreshed whenever the tribes change or a castlist is built.
    """

    def __init__(self, path: Path, tribes: TribeConfigStore) -> None:
        self.path = path
        self._tribes = tribes
        self._lock = asyncio.Lock()

    async def load(self) -> dict[str, Any]:
        async with self._lock:
            return await self._load()

    async def save(self, document: Mapping[str, Any]) -> None:
        async with self._lock:
            _save(self.path, deepcopy(dict(document)))

    @asynccontextmanager
    async def edit(self) -> AsyncIterator[dict[str, Any]]:
        """Hold the store lock across load, caller mutation and save."""

        async with self._lock:
            document = await self._load()
            yield document
            _save(self.path, document)

    async def get_player(self, user_id: str | int) -> dict[str, Any] | None:
        document = await self.load()
        record = document["players"].get(str(user_id))
        return dict(record) if record is not None else None

    async def update_player(self, user_id: str | int, partial: Mapping[str, Any]) -> dict[str, Any]:
        async with self.edit() as document:
            players = document["players"]
            merged = {**players.get(str(user_id), {}), **partial}
            players[str(user_id)] = merged
        return dict(merged)

    async def update_player_field(self, user_id: str | int, field: str, value: Any) -> dict[str, Any]:
        if field not in EDITABLE_PLAYER_FIELDS:
            allowed = ", ".join(sorted(EDITABLE_PLAYER_FIELDS))
            raise InvalidInputError(f"{field!r} cannot be edited; choose one of: {allowed}.")
        if field != "emojiCode":
            return await self.update_player(user_id, {field: value})

        # The structured handle must always describe the same emoji as the token.
        parsed = discord.PartialEmoji.from_str(str(value)) if value else None
        async with self.edit() as document:
            record = document["players"].setdefault(str(user_id), {})
            record.pop("emoji", None)
            record["emojiCode"] = value
            if parsed is not None and parsed.id is not None and parsed.name:
                record["emoji"] = {"name": parsed.name, "id": str(parsed.id)}
        return dict(record)

    async def delete_player(self, user_id: str | int) -> bool:
        async with self.edit() as document:
            removed = document["players"].pop(str(user_id), None)
        return removed is not None

    async def clear_emoji(self, user_ids: Iterable[str | int]) -> dict[str, dict[str, Any]]:
        """Strip decorative emoji fields from the given players.

        Returns the removed values keyed by user ID so the caller can delete the
        matching platform emoji.
        """

        removed: dict[str, dict[str, Any]] = {}
        async with self.edit() as document:
            players = document["players"]
            for user_id in user_ids:
                record = players.get(str(user_id))
                if not record:
                    continue
                popped = {
                    key: record.pop(key)
                    for key in ("emoji", "emojiCode")
                    if key in record
                }
                if popped:
                    removed[str(user_id)] = popped
        return removed

    async def sync_tribes(self, tribes: TribeConfig) -> None:
        async with self.edit() as document:
            document["config"]["tribes"] = tribes.to_document()

    async def _load(self) -> dict[str, Any]:
        try:
            document = _read_json(self.path)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise StorageError(f"{self.path.name} is not valid JSON: {exc}") from exc

        if document is None:
            tribes = await self._tribes.load_tribes()
            document = {"players": {}, "config": {"tribes": tribes.to_document()}}
            _save(self.path, document)
            log.info("Created player store at %s", self.path)
            return document

        if not isinstance(document, MutableMapping):
            raise StorageError(f"{self.path.name} must contain a JSON object")

        players = document.setdefault("players", {})
        if not isinstance(players, Mapping):
            raise StorageError(f"{self.path.name}: players must be a JSON object")
        document["players"] = {
            str(user_id): _normalise_record(str(user_id), record)
            for user_id, record in players.items()
        }

        config = document.setdefault("config", {})
        if not isinstance(config, MutableMapping):
            raise StorageError(f"{self.path.name}: config must be a JSON object")
        if not isinstance(config.get("tribes"), Mapping):
            tribes = await self._tribes.load_tribes()
            config["tribes"] = tribes.to_document()
            _save(self.path, document)
            log.info("Repaired missing tribe mirror in %s", self.path)
        return dict(document)


class DataStore:
    """All persisted documents of the bot, rooted in one directory."""

    def __init__(self, root: Path, *, pronoun_defaults: Iterable[str] = ()) -> None:
        self.root = root
        self.tribes = TribeConfigStore(root / TRIBES_FILE)
        self.pronouns = PronounStore(root / PRONOUNS_FILE, pronoun_defaults)
        self.players = PlayerStore(root / PLAYER_FILE, self.tribes)

    async def set_tribe_slot(self, slot: int, role_id: str | int, emoji: str | None) -> TribeConfig:
        tribes = await self.tribes.set_tribe_slot(slot, role_id, emoji)
        await self.players.sync_tribes(tribes)
        return tribes

    async def clear_tribe_slot(self, slot: int) -> TribeConfig:
        tribes = await self.tribes.clear_tribe_slot(slot)
        await self.players.sync_tribes(tribes)
        return tribes

    async def clear_all_tribes(self) -> TribeConfig:
        tribes = await self.tribes.clear_all_tribes()
        await self.players.sync_tribes(tribes)
        return tribes


__all__ = [
    "DataStore",
    "EDITABLE_PLAYER_FIELDS",
    "PlayerStore",
    "PronounChange",
    "PronounStore",
    "TribeConfigStore",
    "resolve_storage_root",
]

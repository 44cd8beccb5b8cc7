"""Role configuration: pronoun roles, timezone roles and the four tribe slots."""

from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Mapping, Sequence

from .errors import ConfigError, InvalidInputError

log = logging.getLogger(__name__)

TRIBE_SLOTS: tuple[int, ...] = (1, 2, 3, 4)


@dataclass(slots=True)
class RoleConfig:
    """Pronoun and timezone roles used when rendering a castlist."""

    pronoun_role_ids: list[str] = field(default_factory=list)
    timezone_role_ids: list[str] = field(default_factory=list)
    timezone_offsets: dict[str, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        usable: list[str] = []
        for role_id in self.timezone_role_ids:
            if role_id not in self.timezone_offsets:
                log.warning(
                    "Timezone role %s has no configured offset; it will be ignored",
                    role_id,
                )
                continue
            usable.append(role_id)
        self.timezone_role_ids = usable

    def with_pronouns(self, pronoun_role_ids: Iterable[str]) -> "RoleConfig":
        return RoleConfig(
            pronoun_role_ids=[str(role_id) for role_id in pronoun_role_ids],
            timezone_role_ids=list(self.timezone_role_ids),
            timezone_offsets=dict(self.timezone_offsets),
        )

    def first_timezone_role(self, role_ids: Iterable[str]) -> str | None:
        """Return the first configured timezone role held, in configured order."""

        held = set(role_ids)
        for role_id in self.timezone_role_ids:
            if role_id in held:
                return role_id
        return None

    def offset_for(self, role_ids: Iterable[str]) -> int:
        role_id = self.first_timezone_role(role_ids)
        if role_id is None:
            return 0
        return self.timezone_offsets[role_id]


def load_role_config(path: Path) -> RoleConfig:
    """Read the fixed pronoun and timezone defaults from a TOML file."""

    try:
        with path.open("rb") as handle:
            payload = tomllib.load(handle)
    except FileNotFoundError as exc:
        raise ConfigError(f"Missing role configuration at {path}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Role configuration at {path} is not valid TOML: {exc}") from exc

    pronouns = payload.get("pronouns", {})
    timezones = payload.get("timezones", [])
    if not isinstance(pronouns, Mapping) or not isinstance(timezones, list):
        raise ConfigError("roles.toml must define a [pronouns] table and [[timezones]] entries")

    pronoun_ids = pronouns.get("default_role_ids", [])
    if not isinstance(pronoun_ids, list):
        raise ConfigError("pronouns.default_role_ids must be a list of role IDs")

    timezone_ids: list[str] = []
    offsets: dict[str, int] = {}
    for entry in timezones:
        if not isinstance(entry, Mapping) or "role_id" not in entry:
            raise ConfigError("Every [[timezones]] entry needs a role_id")
        role_id = str(entry["role_id"])
        timezone_ids.append(role_id)
        offset = entry.get("offset")
        if offset is None:
            continue
        try:
            offsets[role_id] = int(offset)
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"Timezone offset for {role_id} must be an integer") from exc

    return RoleConfig(
        pronoun_role_ids=[str(role_id) for role_id in pronoun_ids],
        timezone_role_ids=timezone_ids,
        timezone_offsets=offsets,
    )


@dataclass(slots=True)
class TribeSlot:
    slot: int
    role_id: str | None = None
    emoji: str | None = None

    @property
    def active(self) -> bool:
        return self.role_id is not None


@dataclass(slots=True)
class TribeConfig:
    """The four tribe slots, in display order."""

    slots: list[TribeSlot]

    @classmethod
    def empty(cls) -> "TribeConfig":
        return cls([TribeSlot(slot) for slot in TRIBE_SLOTS])

    @classmethod
    def from_document(cls, document: Any) -> "TribeConfig":
        if not isinstance(document, Mapping):
            raise ConfigError("Tribe configuration must be a JSON object")
        slots: list[TribeSlot] = []
        for slot in TRIBE_SLOTS:
            role_id = document.get(f"tribe{slot}")
            emoji = document.get(f"tribe{slot}emoji")
            for key, value in ((f"tribe{slot}", role_id), (f"tribe{slot}emoji", emoji)):
                if value is not None and (isinstance(value, bool) or not isinstance(value, (str, int))):
                    raise ConfigError(f"Tribe configuration value {key!r} must be a string or null")
            slots.append(
                TribeSlot(
                    slot=slot,
                    role_id=str(role_id) if role_id is not None else None,
                    emoji=str(emoji) if emoji is not None else None,
                )
            )
        return cls(slots)

    def to_document(self) -> dict[str, str | None]:
        document: dict[str, str | None] = {}
        for entry in self.slots:
            document[f"tribe{entry.slot}"] = entry.role_id
        for entry in self.slots:
            document[f"tribe{entry.slot}emoji"] = entry.emoji
        return document

    def get(self, slot: int) -> TribeSlot:
        validate_slot(slot)
        return self.slots[slot - 1]

    def active_slots(self) -> list[TribeSlot]:
        return [entry for entry in self.slots if entry.active]

    def active_role_ids(self) -> set[str]:
        return {entry.role_id for entry in self.slots if entry.role_id is not None}


def validate_slot(slot: int) -> int:
    if slot not in TRIBE_SLOTS:
        raise InvalidInputError(f"Tribe slot must be between 1 and {len(TRIBE_SLOTS)}, got {slot}.")
    return slot


def ordered_role_names(
    role_ids: Sequence[str], held: Iterable[str], role_names: Mapping[str, str]
) -> list[str]:
    """Names of the roles in ``role_ids`` that are held, keeping ``role_ids`` order."""

    held_set = set(held)
    names: list[str] = []
    for role_id in role_ids:
        if role_id not in held_set:
            continue
        name = role_names.get(role_id)
        if name:
            names.append(name)
    return names


__all__ = [
    "RoleConfig",
    "TRIBE_SLOTS",
    "TribeConfig",
    "TribeSlot",
    "load_role_config",
    "ordered_role_names",
    "validate_slot",
]

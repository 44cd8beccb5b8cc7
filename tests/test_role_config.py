from __future__ import annotations

import sys
from pathlib import Path

import pytest

PROJECT_BASE = Path(__file__).resolve().parents[1]
if str(PROJECT_BASE) not in sys.path:
    sys.path.insert(0, str(PROJECT_BASE))

from castbot.config import DEFAULT_ROLES_FILE
from castbot.errors import ConfigError
from castbot.roles import RoleConfig, TribeConfig, load_role_config, ordered_role_names


def test_bundled_role_config_loads() -> None:
    config = load_role_config(DEFAULT_ROLES_FILE)

    assert len(config.pronoun_role_ids) == 6
    assert config.timezone_role_ids[0] == "1320094346288300124"
    assert config.timezone_offsets["1320094346288300124"] == -5
    assert set(config.timezone_role_ids) == set(config.timezone_offsets)


def test_timezone_without_offset_is_ignored(tmp_path: Path) -> None:
    path = tmp_path / "roles.toml"
    path.write_text(
        '[pronouns]\ndefault_role_ids = ["p1"]\n\n'
        '[[timezones]]\nrole_id = "tz1"\noffset = 2\n\n'
        '[[timezones]]\nrole_id = "tz2"\n',
        encoding="utf8",
    )

    config = load_role_config(path)

    assert config.pronoun_role_ids == ["p1"]
    assert config.timezone_role_ids == ["tz1"]
    assert config.offset_for({"tz2"}) == 0


def test_missing_role_config_raises(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        load_role_config(tmp_path / "absent.toml")


def test_invalid_toml_raises(tmp_path: Path) -> None:
    path = tmp_path / "roles.toml"
    path.write_text("[pronouns\n", encoding="utf8")

    with pytest.raises(ConfigError):
        load_role_config(path)


def test_first_listed_timezone_wins() -> None:
    config = RoleConfig(timezone_role_ids=["R2", "R1"], timezone_offsets={"R1": 2, "R2": -5})

    assert config.offset_for({"R1", "R2"}) == -5
    assert config.first_timezone_role({"R1"}) == "R1"
    assert config.offset_for(set()) == 0


def test_with_pronouns_keeps_timezones() -> None:
    config = RoleConfig(timezone_role_ids=["tz"], timezone_offsets={"tz": 1})

    updated = config.with_pronouns([1, "2"])

    assert updated.pronoun_role_ids == ["1", "2"]
    assert updated.timezone_role_ids == ["tz"]
    assert config.pronoun_role_ids == []


def test_ordered_role_names_follow_configured_order() -> None:
    names = {"a": "She/Her", "b": "He/Him", "c": "They/Them"}

    assert ordered_role_names(["c", "a", "b"], {"a", "c", "zz"}, names) == ["They/Them", "She/Her"]


def test_tribe_document_round_trip() -> None:
    document = {"tribe1": 123, "tribe1emoji": "🔥", "tribe3": "456"}

    tribes = TribeConfig.from_document(document)

    assert [entry.role_id for entry in tribes.slots] == ["123", None, "456", None]
    assert tribes.to_document() == {
        "tribe1": "123",
        "tribe2": None,
        "tribe3": "456",
        "tribe4": None,
        "tribe1emoji": "🔥",
        "tribe2emoji": None,
        "tribe3emoji": None,
        "tribe4emoji": None,
    }

from __future__ import annotations

import sys
from pathlib import Path

PROJECT_BASE = Path(__file__).resolve().parents[1]
if str(PROJECT_BASE) not in sys.path:
    sys.path.insert(0, str(PROJECT_BASE))

import pytest

from castbot.config import DEFAULT_ROLES_FILE, BotConfig


def test_from_env_reads_overrides(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("DISCORD_TOKEN", "token-value")
    monkeypatch.setenv("CASTBOT_GUILD_ID", " 1234 ")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("CASTBOT_ROLES_FILE", str(tmp_path / "roles.toml"))
    monkeypatch.setenv("CASTBOT_CHALLENGE_TTL", "60")

    config = BotConfig.from_env()

    assert config.token == "token-value"
    assert config.dev_guild_id == 1234
    assert config.log_level == "DEBUG"
    assert config.roles_file == tmp_path / "roles.toml"
    assert config.challenge_ttl == 60


def test_from_env_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DISCORD_TOKEN", "token-value")
    for name in ("CASTBOT_GUILD_ID", "LOG_LEVEL", "CASTBOT_ROLES_FILE", "CASTBOT_CHALLENGE_TTL"):
        monkeypatch.delenv(name, raising=False)

    config = BotConfig.from_env()

    assert config.dev_guild_id is None
    assert config.log_level == "INFO"
    assert config.roles_file == DEFAULT_ROLES_FILE
    assert config.challenge_ttl == 900


def test_missing_token_raises(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("DISCORD_TOKEN", raising=False)

    with pytest.raises(RuntimeError):
        BotConfig.from_env()

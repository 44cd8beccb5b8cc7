"""Bot configuration utilities."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

PROJECT_BASE = Path(__file__).resolve().parent.parent
DEFAULT_ROLES_FILE = PROJECT_BASE / "config" / "roles.toml"


def env(name: str, default: str | None = None) -> str:
    value = os.getenv(name, default)
    if value is None:
        raise RuntimeError(f"Missing required environment variable: {name}")
    return value


@dataclass(slots=True)
class BotConfig:
    token: str
    dev_guild_id: int | None = None
    log_level: str = "INFO"
    roles_file: Path = DEFAULT_ROLES_FILE
    challenge_ttl: int = 900

    @classmethod
    def from_env(cls) -> "BotConfig":
        token = env("DISCORD_TOKEN")
        raw_guild = os.getenv("CASTBOT_GUILD_ID", "").strip()
        dev_guild_id = int(raw_guild) if raw_guild else None
        log_level = os.getenv("LOG_LEVEL", "INFO").upper()
        roles_file = Path(os.getenv("CASTBOT_ROLES_FILE", str(DEFAULT_ROLES_FILE))).expanduser()
        challenge_ttl = max(1, int(os.getenv("CASTBOT_CHALLENGE_TTL", "900")))
        return cls(
            token=token,
            dev_guild_id=dev_guild_id,
            log_level=log_level,
            roles_file=roles_file,
            challenge_ttl=challenge_ttl,
        )


__all__ = ["BotConfig"]

"""Exception taxonomy shared by the stores, the roster pipeline and the cogs."""

from __future__ import annotations

import re

import discord
from discord import app_commands

EMOJI_LIMIT_ERROR_CODE = 30008

_LIMIT_RE = re.compile(r"\((\d+)\)")


class CastbotError(Exception):
    """Base class for errors that can be reported back to a Discord user."""


class StorageError(CastbotError):
    """Raised when a data file cannot be read or written."""


class ConfigError(CastbotError):
    """Raised when a persisted configuration document is malformed."""


class PlatformError(CastbotError):
    """Raised when a Discord API call fails."""

    def __init__(self, message: str, *, forbidden: bool = False) -> None:
        super().__init__(message)
        self.forbidden = forbidden


class ResourceLimitExceeded(PlatformError):
    """Raised when the guild has no room left for another custom emoji."""

    def __init__(self, message: str, limit: int | None = None) -> None:
        super().__init__(message)
        self.limit = limit


class NotFoundError(CastbotError):
    """Raised when a referenced role, member or player does not exist."""


class InvalidInputError(CastbotError):
    """Raised when a command argument is outside the accepted range."""


def parse_resource_limit(text: str | None) -> int | None:
    """Extract the numeric cap from messages like ``Maximum number of emojis reached (50)``."""

    if not text:
        return None
    match = _LIMIT_RE.search(text)
    if match is None:
        return None
    return int(match.group(1))


def platform_error_from_http(exc: discord.HTTPException, action: str) -> PlatformError:
    """Translate a discord.py HTTP failure into the castbot taxonomy."""

    if exc.code == EMOJI_LIMIT_ERROR_CODE:
        return ResourceLimitExceeded(
            f"Unable to {action}: {exc.text}", limit=parse_resource_limit(exc.text)
        )
    if isinstance(exc, discord.Forbidden):
        return PlatformError(f"Unable to {action}: missing permissions", forbidden=True)
    if isinstance(exc, discord.NotFound):
        return PlatformError(f"Unable to {action}: the resource no longer exists")
    return PlatformError(f"Unable to {action}: {exc.text or exc.status}")


def describe_error(error: BaseException) -> str:
    """Return a user-facing line naming the probable cause of ``error``."""

    if isinstance(error, app_commands.CheckFailure):
        detail = str(error) or "You are not allowed to use this command."
        return f"🚫 Permission denied: {detail}"
    if isinstance(error, ResourceLimitExceeded):
        if error.limit is not None:
            return (
                "⚠️ Limit reached: this server already has the maximum of "
                f"{error.limit} custom emojis."
            )
        return "⚠️ Limit reached: this server has no free custom emoji slots."
    if isinstance(error, PlatformError):
        if error.forbidden:
            return "🚫 Permission problem: the bot lacks the Discord permissions for this action."
        return f"⚠️ Discord request failed: {error}"
    if isinstance(error, discord.Forbidden):
        return "🚫 Permission problem: the bot lacks the Discord permissions for this action."
    if isinstance(error, InvalidInputError):
        return f"❌ Invalid input: {error}"
    if isinstance(error, NotFoundError):
        return f"❌ Not found: {error}"
    if isinstance(error, ConfigError):
        return f"⚠️ Configuration problem: {error}"
    if isinstance(error, StorageError):
        return "⚠️ Storage problem: the bot could not read or write its data files."
    return "⚠️ Something went wrong while handling this command."


__all__ = [
    "CastbotError",
    "ConfigError",
    "InvalidInputError",
    "NotFoundError",
    "PlatformError",
    "ResourceLimitExceeded",
    "StorageError",
    "describe_error",
    "parse_resource_limit",
    "platform_error_from_http",
]

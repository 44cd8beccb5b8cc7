"""Custom emoji management for player icons."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

import discord

from .constants import AVATAR_EMOJI_SIZE
from .errors import PlatformError, platform_error_from_http
from .utils import emoji_id

log = logging.getLogger(__name__)


async def create_avatar_emoji(guild: discord.Guild, member: discord.Member) -> dict[str, str]:
    """Upload ``member``'s avatar as a custom emoji named after their user ID."""

    try:
        image = await member.display_avatar.with_size(AVATAR_EMOJI_SIZE).read()
        emoji = await guild.create_custom_emoji(
            name=str(member.id), image=image, reason="Castlist player icon"
        )
    except discord.HTTPException as exc:
        raise platform_error_from_http(exc, f"create an emoji for {member.display_name}") from exc
    log.info("Created emoji %s for %s (%s)", emoji.id, member.display_name, member.id)
    return {"name": emoji.name, "id": str(emoji.id)}


def player_emoji_fields(handle: Mapping[str, str]) -> dict[str, Any]:
    """Record fields describing a freshly created player emoji."""

    token = str(discord.PartialEmoji(name=handle["name"], id=int(handle["id"])))
    return {"emoji": dict(handle), "emojiCode": token}


async def delete_player_emojis(
    guild: discord.Guild, records: Iterable[Mapping[str, Any]]
) -> tuple[int, list[str]]:
    """Delete the platform emoji referenced by each record.

    Returns the number deleted and the failure messages; a failure for one
    emoji does not stop the others.
    """

    deleted = 0
    failures: list[str] = []
    for record in records:
        target = emoji_id(record)
        if target is None:
            continue
        try:
            await guild.delete_emoji(discord.Object(id=target), reason="Castlist player icon cleared")
        except discord.NotFound:
            log.info("Emoji %s was already deleted", target)
            continue
        except discord.HTTPException as exc:
            error: PlatformError = platform_error_from_http(exc, f"delete emoji {target}")
            log.warning("%s", error)
            failures.append(str(error))
            continue
        deleted += 1
    return deleted, failures


__all__ = ["create_avatar_emoji", "delete_player_emojis", "player_emoji_fields"]

"""Shared constants used across the castlist renderer and the cogs."""

from __future__ import annotations

import discord

CASTLIST_TITLE = "Dynamic Castlist"
CASTLIST_COLOR = discord.Colour(0x7ED321)
UNKNOWN_GUILD_NAME = "Unknown Server"

# Discord rejects embeds with more fields or characters than this.
EMBED_FIELD_LIMIT = 25
EMBED_CHARACTER_LIMIT = 6000

# Zero-width space; Discord refuses empty field names and values.
BLANK = "​"

NO_PRONOUNS_TEXT = "No pronoun roles"
NO_TIMEZONE_TEXT = "No timezone roles"
NO_AGE_TEXT = "No age set"

AVATAR_EMOJI_SIZE = 128

# Message bodies are capped at 2000 characters.
MESSAGE_CHARACTER_LIMIT = 2000

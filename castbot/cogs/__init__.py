"""Slash command cogs loaded by :class:`castbot.bot.CastBot`."""

"""Castlist bot for Discord servers."""

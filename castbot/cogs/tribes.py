from __future__ import annotations

import logging
from typing import Optional

import discord
from discord import app_commands
from discord.ext import commands

from ..emojis import delete_player_emojis
from ..errors import CastbotError
from ..roles import TRIBE_SLOTS, TribeConfig, TribeSlot
from .base import CastCog, require_admin

log = logging.getLogger(__name__)

SLOT_CHOICES: list[app_commands.Choice[int]] = [
    app_commands.Choice(name=f"Tribe {slot}", value=slot) for slot in TRIBE_SLOTS
]


def describe_slot(entry: TribeSlot) -> str:
    if entry.role_id is None:
        return f"**Tribe {entry.slot}**: not set"
    emoji = f" {entry.emoji}" if entry.emoji else ""
    return f"**Tribe {entry.slot}**: <@&{entry.role_id}>{emoji}"


class TribesCog(CastCog):
    async def _strip_tribe_emoji(
        self, interaction: discord.Interaction, role_ids: set[str]
    ) -> str:
        """Remove decorative emoji from members of the cleared tribes."""

        if not role_ids:
            return ""
        guild = interaction.guild
        assert guild is not None
        snapshot = await self.snapshot(interaction)
        member_ids = [
            member.id for member in snapshot.members if member.role_ids & role_ids
        ]
        removed = await self.store.players.clear_emoji(member_ids)
        deleted, failures = await delete_player_emojis(guild, removed.values())
        summary = f" Removed {deleted} player emoji."
        if failures:
            summary += f" {len(failures)} emoji could not be deleted."
        return summary

    @app_commands.command(name="set_tribe", description="Assign a role to a castlist tribe slot")
    @app_commands.describe(
        slot="Tribe slot to configure",
        role="Role whose members form this tribe",
        emoji="Emoji shown on both sides of the tribe name (optional)",
    )
    @app_commands.choices(slot=SLOT_CHOICES)
    @require_admin()
    @app_commands.guild_only()
    async def set_tribe(
        self,
        interaction: discord.Interaction,
        slot: app_commands.Choice[int],
        role: discord.Role,
        emoji: Optional[str] = None,
    ) -> None:
        cleaned = emoji.strip() if emoji else None
        await self.store.set_tribe_slot(slot.value, role.id, cleaned or None)
        log.info("Tribe %d set to role %s (%s)", slot.value, role.name, role.id)
        suffix = f" with {cleaned}" if cleaned else ""
        await interaction.response.send_message(
            f"Tribe {slot.value} is now {role.mention}{suffix}.",
            ephemeral=True,
            allowed_mentions=discord.AllowedMentions.none(),
        )

    @app_commands.command(name="clear_tribe", description="Clear one castlist tribe slot")
    @app_commands.describe(slot="Tribe slot to clear")
    @app_commands.choices(slot=SLOT_CHOICES)
    @require_admin()
    @app_commands.guild_only()
    async def clear_tribe(
        self, interaction: discord.Interaction, slot: app_commands.Choice[int]
    ) -> None:
        await interaction.response.defer(ephemeral=True, thinking=True)
        try:
            previous = (await self.store.tribes.load_tribes()).get(slot.value)
            await self.store.clear_tribe_slot(slot.value)
            cleared = {previous.role_id} if previous.role_id else set()
            summary = await self._strip_tribe_emoji(interaction, cleared)
        except (CastbotError, discord.HTTPException) as exc:
            await self.report_failure(interaction, exc, action="/clear_tribe")
            return
        await interaction.followup.send(f"Tribe {slot.value} cleared.{summary}", ephemeral=True)

    @app_commands.command(name="clear_all_tribes", description="Clear every castlist tribe slot")
    @require_admin()
    @app_commands.guild_only()
    async def clear_all_tribes(self, interaction: discord.Interaction) -> None:
        await interaction.response.defer(ephemeral=True, thinking=True)
        try:
            previous = await self.store.tribes.load_tribes()
            await self.store.clear_all_tribes()
            summary = await self._strip_tribe_emoji(interaction, previous.active_role_ids())
        except (CastbotError, discord.HTTPException) as exc:
            await self.report_failure(interaction, exc, action="/clear_all_tribes")
            return
        await interaction.followup.send(f"All tribes cleared.{summary}", ephemeral=True)

    @app_commands.command(name="view_tribes", description="Show the configured castlist tribes")
    @app_commands.guild_only()
    async def view_tribes(self, interaction: discord.Interaction) -> None:
        tribes: TribeConfig = await self.store.tribes.load_tribes()
        lines = [describe_slot(entry) for entry in tribes.slots]
        await interaction.response.send_message(
            "\n".join(lines),
            ephemeral=True,
            allowed_mentions=discord.AllowedMentions.none(),
        )


async def setup(bot: commands.Bot) -> None:
    await bot.add_cog(TribesCog(bot))

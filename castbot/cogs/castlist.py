from __future__ import annotations

import logging

import discord
from discord import app_commands
from discord.ext import commands

from ..castlist import aggregate_and_render
from ..errors import CastbotError
from ..roles import TribeConfig
from ..views import CastlistPageView
from .base import CastCog

log = logging.getLogger(__name__)

NO_TRIBES_MESSAGE = "No tribes are configured yet. An administrator should run `/set_tribe` first."
MISSING_ROLES_MESSAGE = (
    "None of the configured tribe roles exist on this server anymore. "
    "An administrator should update them with `/set_tribe`."
)


def empty_castlist_message(tribes: TribeConfig) -> str:
    if tribes.active_slots():
        return MISSING_ROLES_MESSAGE
    return NO_TRIBES_MESSAGE


class CastlistCog(CastCog):
    @app_commands.command(name="castlist", description="Display the dynamic castlist")
    @app_commands.guild_only()
    async def castlist(self, interaction: discord.Interaction) -> None:
        guild = interaction.guild
        assert guild is not None
        log.info("Building castlist for guild %s (%s)", guild.name, guild.id)
        await interaction.response.defer(thinking=True)
        try:
            document = await aggregate_and_render(guild, self.store, self.roles)
            if not document.fields:
                tribes = await self.store.tribes.load_tribes()
        except (CastbotError, discord.HTTPException) as exc:
            await self.report_failure(interaction, exc, action="/castlist")
            return

        if not document.fields:
            await interaction.followup.send(empty_castlist_message(tribes))
            return

        embeds = document.to_embeds()
        if len(embeds) == 1:
            await interaction.followup.send(embed=embeds[0])
            return
        view = CastlistPageView(embeds)
        view.message = await interaction.followup.send(embed=view.current, view=view, wait=True)


async def setup(bot: commands.Bot) -> None:
    await bot.add_cog(CastlistCog(bot))

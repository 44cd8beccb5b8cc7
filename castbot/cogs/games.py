from __future__ import annotations

import logging

import discord
from discord import app_commands
from discord.ext import commands

from ..games import MOVES, resolve_match
from ..views import ChallengeAcceptView, MoveSelectView
from .base import CastCog

log = logging.getLogger(__name__)

MOVE_CHOICES: list[app_commands.Choice[str]] = [
    app_commands.Choice(name=name.title(), value=name) for name in MOVES
]

GONE_MESSAGE = "This challenge has already been answered or has expired."


class GamesCog(CastCog):
    @app_commands.command(name="challenge", description="Challenge to a match of rock paper scissors")
    @app_commands.describe(choice="Pick your object")
    @app_commands.choices(choice=MOVE_CHOICES)
    async def challenge(
        self, interaction: discord.Interaction, choice: app_commands.Choice[str]
    ) -> None:
        game_id = str(interaction.id)
        challenger_id = interaction.user.id
        self.challenges.open(game_id, challenger_id, choice.value)
        ttl = self.challenges.ttl

        async def on_accept(accept_interaction: discord.Interaction) -> None:
            if game_id not in self.challenges:
                await accept_interaction.response.send_message(GONE_MESSAGE, ephemeral=True)
                return

            async def on_select(select_interaction: discord.Interaction, move: str) -> None:
                await self._finish(select_interaction, game_id, move)

            await accept_interaction.response.send_message(
                "What is your object of choice?",
                view=MoveSelectView(on_select=on_select, timeout=ttl),
                ephemeral=True,
            )

        view = ChallengeAcceptView(challenger_id, on_accept=on_accept, timeout=ttl)
        await interaction.response.send_message(
            f"Rock paper scissors challenge from <@{challenger_id}>", view=view
        )

    async def _finish(self, interaction: discord.Interaction, game_id: str, move: str) -> None:
        challenge = self.challenges.claim(game_id)
        if challenge is None:
            await interaction.response.edit_message(content=GONE_MESSAGE, view=None)
            return
        result = resolve_match(challenge.challenger_id, challenge.move, interaction.user.id, move)
        log.info("Challenge %s resolved", game_id)
        await interaction.response.edit_message(content="Nice choice!", view=None)
        channel = interaction.channel
        if isinstance(channel, discord.abc.Messageable):
            await channel.send(result)
        else:
            await interaction.followup.send(result)


async def setup(bot: commands.Bot) -> None:
    await bot.add_cog(GamesCog(bot))

from __future__ import annotations

import json
import logging
from typing import Optional

import discord
from discord import app_commands
from discord.ext import commands

from ..constants import MESSAGE_CHARACTER_LIMIT
from ..emojis import create_avatar_emoji, delete_player_emojis, player_emoji_fields
from ..errors import CastbotError, InvalidInputError
from ..utils import truncate_block
from .base import CastCog, require_admin

log = logging.getLogger(__name__)

MAX_AGE = 150


class PlayersCog(CastCog):
    @app_commands.command(name="set_age", description="Set the age shown for a player")
    @app_commands.describe(player="Player to update", age="Age to display on the castlist")
    @require_admin()
    @app_commands.guild_only()
    async def set_age(
        self, interaction: discord.Interaction, player: discord.Member, age: int
    ) -> None:
        if not 0 < age <= MAX_AGE:
            raise InvalidInputError(f"Age must be between 1 and {MAX_AGE}.")
        await self.store.players.update_player_field(player.id, "age", age)
        log.info("Age for %s (%s) set to %d", player.display_name, player.id, age)
        await interaction.response.send_message(
            f"Age updated to {age} for {player.display_name}.", ephemeral=True
        )

    @app_commands.command(
        name="player_icons", description="Create castlist emoji from players' avatars"
    )
    @app_commands.describe(player1="First player", player2="Second player (optional)")
    @require_admin()
    @app_commands.guild_only()
    async def player_icons(
        self,
        interaction: discord.Interaction,
        player1: discord.Member,
        player2: Optional[discord.Member] = None,
    ) -> None:
        guild = interaction.guild
        assert guild is not None
        await interaction.response.defer(thinking=True)

        created: list[tuple[discord.Member, str]] = []
        players = [player1] if player2 is None or player2.id == player1.id else [player1, player2]
        for member in players:
            try:
                handle = await create_avatar_emoji(guild, member)
                fields = player_emoji_fields(handle)
                previous = await self.store.players.get_player(member.id)
                await self.store.players.update_player(member.id, fields)
            except CastbotError as exc:
                await self.report_failure(interaction, exc, action="/player_icons")
                if created:
                    await interaction.followup.send(self._icons_summary(created))
                return
            if previous:
                await delete_player_emojis(guild, [previous])
            created.append((member, fields["emojiCode"]))

        await interaction.followup.send(self._icons_summary(created))

    @staticmethod
    def _icons_summary(created: list[tuple[discord.Member, str]]) -> str:
        names = " and ".join(member.display_name for member, _ in created)
        noun = "emojis" if len(created) > 1 else "emoji"
        tokens = " ".join(token for _, token in created)
        codes = "\n".join(f"`{token}`" for _, token in created)
        return f"Created {noun} for {names}!\n{tokens}\n\nEmoji codes:\n{codes}"

    @app_commands.command(name="clear_player", description="Delete a player's stored castlist record")
    @app_commands.describe(player="Player whose record should be removed")
    @require_admin()
    @app_commands.guild_only()
    async def clear_player(self, interaction: discord.Interaction, player: discord.Member) -> None:
        guild = interaction.guild
        assert guild is not None
        record = await self.store.players.get_player(player.id)
        if record is None:
            await interaction.response.send_message(
                f"{player.display_name} has no stored record.", ephemeral=True
            )
            return
        await interaction.response.defer(ephemeral=True, thinking=True)
        await self.store.players.delete_player(player.id)
        _, failures = await delete_player_emojis(guild, [record])
        message = f"Cleared the stored record for {player.display_name}."
        if failures:
            message += " Their emoji could not be deleted from the server."
        await interaction.followup.send(message, ephemeral=True)

    @app_commands.command(name="check_data", description="Show the stored player data")
    @require_admin()
    @app_commands.guild_only()
    async def check_data(self, interaction: discord.Interaction) -> None:
        await interaction.response.defer(ephemeral=True, thinking=True)
        document = await self.store.players.load()
        wrapper = "```json\n{}\n```"
        body = truncate_block(
            json.dumps(document, indent=2, ensure_ascii=False),
            MESSAGE_CHARACTER_LIMIT - 40,
        )
        await interaction.followup.send(wrapper.format(body), ephemeral=True)


async def setup(bot: commands.Bot) -> None:
    await bot.add_cog(PlayersCog(bot))

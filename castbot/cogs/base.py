"""Shared helpers for cogs."""

from __future__ import annotations

import logging

import discord
from discord import app_commands
from discord.ext import commands

from ..errors import CastbotError, describe_error
from ..games import ChallengeTable
from ..roles import RoleConfig
from ..roster import GuildSnapshot, fetch_guild_snapshot
from ..storage import DataStore

log = logging.getLogger(__name__)


def require_admin() -> app_commands.Check:
    """Check ensuring the invoker may manage the castlist configuration."""

    async def predicate(interaction: discord.Interaction) -> bool:
        guild = interaction.guild
        if guild is None:
            raise app_commands.CheckFailure("This command can only be used in a server.")

        member: discord.Member | None
        user = interaction.user
        if isinstance(user, discord.Member):
            member = user
        else:
            member = guild.get_member(user.id)
            if member is None:
                try:
                    member = await guild.fetch_member(user.id)
                except discord.HTTPException:
                    member = None

        if member is not None:
            permissions = member.guild_permissions
            if permissions.administrator or permissions.manage_roles:
                return True

        raise app_commands.CheckFailure(
            "Only members with the Administrator or Manage Roles permission may use this command."
        )

    return app_commands.check(predicate)


async def send_reply(
    interaction: discord.Interaction, message: str, *, ephemeral: bool = True
) -> None:
    """Answer the interaction, using a follow-up when it was already acknowledged."""

    if interaction.response.is_done():
        await interaction.followup.send(message, ephemeral=ephemeral)
    else:
        await interaction.response.send_message(message, ephemeral=ephemeral)


class CastCog(commands.Cog):
    def __init__(self, bot: commands.Bot):
        self.bot = bot

    @property
    def store(self) -> DataStore:
        return self.bot.store  # type: ignore[return-value]

    @property
    def roles(self) -> RoleConfig:
        return self.bot.roles  # type: ignore[return-value]

    @property
    def challenges(self) -> ChallengeTable:
        return self.bot.challenges  # type: ignore[return-value]

    async def current_roles(self) -> RoleConfig:
        """Fixed timezone roles combined with the persisted pronoun list."""

        return self.roles.with_pronouns(await self.store.pronouns.load())

    async def snapshot(self, interaction: discord.Interaction) -> GuildSnapshot:
        guild = interaction.guild
        assert guild is not None
        return await fetch_guild_snapshot(guild)

    async def report_failure(
        self, interaction: discord.Interaction, error: BaseException, *, action: str
    ) -> None:
        if isinstance(error, CastbotError):
            log.warning("%s failed: %s", action, error)
        else:
            log.exception("%s failed", action, exc_info=error)
        try:
            await send_reply(interaction, describe_error(error))
        except discord.HTTPException:
            log.exception("Could not report failure of %s to the user", action)

    async def cog_app_command_error(
        self, interaction: discord.Interaction, error: app_commands.AppCommandError
    ) -> None:
        original = getattr(error, "original", error)
        command = interaction.command.qualified_name if interaction.command else "command"
        await self.report_failure(interaction, original, action=f"/{command}")

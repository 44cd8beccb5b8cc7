from __future__ import annotations

import logging
from typing import Optional

import discord
from discord import app_commands
from discord.ext import commands

from ..constants import MESSAGE_CHARACTER_LIMIT
from ..utils import truncate_block
from .base import CastCog, require_admin

log = logging.getLogger(__name__)


def _collect(*roles: Optional[discord.Role]) -> list[discord.Role]:
    seen: dict[int, discord.Role] = {}
    for role in roles:
        if role is not None:
            seen.setdefault(role.id, role)
    return list(seen.values())


def _mentions(role_ids: list[str]) -> str:
    return ", ".join(f"<@&{role_id}>" for role_id in role_ids)


class RolesCog(CastCog):
    @app_commands.command(name="add_pronouns", description="Add roles to the pronoun role list")
    @app_commands.describe(role1="Pronoun role", role2="Pronoun role", role3="Pronoun role",
                           role4="Pronoun role", role5="Pronoun role")
    @require_admin()
    @app_commands.guild_only()
    async def add_pronouns(
        self,
        interaction: discord.Interaction,
        role1: discord.Role,
        role2: Optional[discord.Role] = None,
        role3: Optional[discord.Role] = None,
        role4: Optional[discord.Role] = None,
        role5: Optional[discord.Role] = None,
    ) -> None:
        roles = _collect(role1, role2, role3, role4, role5)
        added, present = await self.store.pronouns.add_pronoun_roles(role.id for role in roles)
        lines = []
        if added:
            lines.append(f"Added: {_mentions(added)}")
        if present:
            lines.append(f"Already listed: {_mentions(present)}")
        log.info("Pronoun roles added=%s already_present=%s", added, present)
        await interaction.response.send_message(
            "\n".join(lines), ephemeral=True, allowed_mentions=discord.AllowedMentions.none()
        )

    @app_commands.command(
        name="remove_pronouns", description="Remove roles from the pronoun role list"
    )
    @app_commands.describe(role1="Pronoun role", role2="Pronoun role", role3="Pronoun role",
                           role4="Pronoun role", role5="Pronoun role")
    @require_admin()
    @app_commands.guild_only()
    async def remove_pronouns(
        self,
        interaction: discord.Interaction,
        role1: discord.Role,
        role2: Optional[discord.Role] = None,
        role3: Optional[discord.Role] = None,
        role4: Optional[discord.Role] = None,
        role5: Optional[discord.Role] = None,
    ) -> None:
        roles = _collect(role1, role2, role3, role4, role5)
        removed, missing = await self.store.pronouns.remove_pronoun_roles(role.id for role in roles)
        lines = []
        if removed:
            lines.append(f"Removed: {_mentions(removed)}")
        if missing:
            lines.append(f"Not in the list: {_mentions(missing)}")
        log.info("Pronoun roles removed=%s not_found=%s", removed, missing)
        await interaction.response.send_message(
            "\n".join(lines), ephemeral=True, allowed_mentions=discord.AllowedMentions.none()
        )

    @app_commands.command(name="list_roles", description="List every role ID in this server")
    @require_admin()
    @app_commands.guild_only()
    async def list_roles(self, interaction: discord.Interaction) -> None:
        guild = interaction.guild
        assert guild is not None
        pronouns = set((await self.current_roles()).pronoun_role_ids)
        lines = []
        for role in sorted(guild.roles, key=lambda role: role.position, reverse=True):
            marker = " (pronoun)" if str(role.id) in pronouns else ""
            lines.append(f"{role.name}: {role.id}{marker}")
        content = truncate_block("\n".join(lines), MESSAGE_CHARACTER_LIMIT - 20, marker="\n...")
        await interaction.response.send_message(f"```\n{content}\n```", ephemeral=True)


async def setup(bot: commands.Bot) -> None:
    await bot.add_cog(RolesCog(bot))

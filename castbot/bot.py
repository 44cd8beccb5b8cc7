"""Entry point for the castlist Discord bot."""

from __future__ import annotations

import asyncio
import logging

import discord
from discord.ext import commands

from .config import PROJECT_BASE, BotConfig
from .games import ChallengeTable
from .roles import load_role_config
from .storage import DataStore, resolve_storage_root

log = logging.getLogger(__name__)

EXTENSIONS = (
    "castbot.cogs.castlist",
    "castbot.cogs.tribes",
    "castbot.cogs.players",
    "castbot.cogs.roles",
    "castbot.cogs.games",
)


class CastBot(commands.Bot):
    def __init__(self, config: BotConfig):
        intents = discord.Intents.default()
        intents.members = True
        super().__init__(command_prefix=commands.when_mentioned, intents=intents)
        self.config = config
        self.roles = load_role_config(config.roles_file)
        self.store = DataStore(
            resolve_storage_root(PROJECT_BASE),
            pronoun_defaults=self.roles.pronoun_role_ids,
        )
        self.challenges = ChallengeTable(ttl=config.challenge_ttl)
        self._synced = False

    async def setup_hook(self) -> None:
        for extension in EXTENSIONS:
            await self.load_extension(extension)
        log.info("Using data directory %s", self.store.root)

    async def on_ready(self) -> None:
        if not self._synced:
            if self.config.dev_guild_id:
                guild = discord.Object(id=self.config.dev_guild_id)
                self.tree.copy_global_to(guild=guild)
                synced = await self.tree.sync(guild=guild)
                log.info("Synced %d commands to guild %s", len(synced), self.config.dev_guild_id)
            else:
                synced = await self.tree.sync()
                log.info("Synced %d global commands", len(synced))
            self._synced = True
        if self.user:
            log.info("Connected as %s (%s)", self.user, self.user.id)


async def main() -> None:
    config = BotConfig.from_env()
    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
    )
    bot = CastBot(config)
    async with bot:
        await bot.start(config.token)


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()

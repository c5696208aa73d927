import asyncio
import logging
import traceback
from collections.abc import Sequence

import discord
from discord.ext import commands

import config
from archive import DbEngine, get_engine
from utils.logging import init_logging


class ArchiveBot(commands.Bot):
    def __init__(
            self,
            *args,
            initial_extensions: Sequence[str],
            engine: DbEngine,
            **kwargs
    ):
        super().__init__(*args, **kwargs)
        self.initial_extensions = initial_extensions
        self.engine = engine

    async def setup_hook(self) -> None:
        await self.load_extensions()
        await self.tree.sync()

    async def load_extensions(self):
        for extension in self.initial_extensions:
            try:
                await self.load_extension(extension)
            except Exception as e:
                error_details = ''.join(traceback.format_exception(type(e), e, e.__traceback__))
                logging.error(f"Failed to load cog {extension} - {e}\n{error_details}")

    async def on_ready(self):
        logging.info(f"Logged in as {self.user.name} (ID: {self.user.id})")

    async def close(self) -> None:
        await self.engine.close()
        await super().close()


async def main():
    settings = config.get_settings()
    init_logging(settings.logging_level, settings.logfile, settings.log_format.value)

    logging.info("Logging started...")

    if not settings.bot_token:
        raise SystemExit("BOT_TOKEN is not set")

    intents = discord.Intents.default()
    intents.members = True
    intents.message_content = True
    intents.moderation = True
    async with ArchiveBot(
            commands.when_mentioned_or("!"),
            initial_extensions=['cogs.archive'],
            engine=get_engine(),
            owner_id=settings.owner_id,
            intents=intents
    ) as bot:
        await bot.start(settings.bot_token)


if __name__ == "__main__":
    asyncio.run(main())

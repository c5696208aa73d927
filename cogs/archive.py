"""
Discord binding for the message archive.

This cog forwards gateway events to the archive engine and exposes two
commands: a per-server ban listing and an owner-only ad-hoc SQL query.
"""

import logging

import discord
from discord import app_commands
from discord.ext import commands
from discord.ext.commands import Cog

from archive import Author, DbEngine, MessageEvent, get_engine
from archive.events import Identity

# Leave room for the code block around the text
MAX_REPLY_LENGTH = 1900


def as_identity(target) -> Identity:
    """Return an identity for an audit log target or actor.

    Uncached users only come as ``discord.Object``; their id doubles as name.
    """
    if isinstance(target, Identity):
        return target
    return Author(id=str(target.id), name=str(getattr(target, "name", None) or target.id))


def clip(text: str, limit: int = MAX_REPLY_LENGTH) -> str:
    if len(text) > limit:
        return text[:limit] + "\n... (truncated)"
    return text


class ArchiveCog(commands.Cog, name="Archive"):
    archive = app_commands.Group(name="archive", description="Message and ban archive")

    def __init__(self, bot: commands.Bot, engine: DbEngine | None = None) -> None:
        self.bot = bot
        self.engine = engine or get_engine()
        self.logger = logging.getLogger(__name__)

    async def cog_load(self) -> None:
        if not await self.engine.init():
            self.logger.warning("Archive database unavailable, messages will not be recorded")

    async def cog_unload(self) -> None:
        await self.engine.close()

    @Cog.listener("on_message")
    async def archive_message(self, message: discord.Message) -> None:
        await self.engine.record_message(MessageEvent.from_message(message))

    @Cog.listener("on_message_edit")
    async def archive_edit(self, before: discord.Message, after: discord.Message) -> None:
        # Embed unfurls also fire edit events without touching the content
        if after.edited_at is None or before.content == after.content:
            return
        await self.engine.record_message(MessageEvent.from_message(after, edit=True))

    @Cog.listener("on_raw_message_delete")
    async def archive_delete(self, payload: discord.RawMessageDeleteEvent) -> None:
        await self.engine.delete_message(payload.message_id)

    @Cog.listener("on_audit_log_entry_create")
    async def archive_ban(self, entry: discord.AuditLogEntry) -> None:
        if entry.action is not discord.AuditLogAction.ban:
            return
        if entry.target is None or entry.user is None:
            self.logger.warning(f"Ban in guild {entry.guild.id} without target or executor")
            return
        await self.engine.add_ban(
            entry.guild, as_identity(entry.target), as_identity(entry.user), entry.reason
        )

    @archive.command(name="bans", description="List the bans recorded for this server")
    @app_commands.guild_only()
    @app_commands.default_permissions(ban_members=True)
    async def bans(self, interaction: discord.Interaction) -> None:
        bans = await self.engine.get_bans(interaction.guild)
        if not bans:
            await interaction.response.send_message("No bans recorded.", ephemeral=True)
            return
        lines = [
            f"{ban.created_at:%Y-%m-%d %H:%M} {ban.banned_name} ({ban.banned_id}) "
            f"by {ban.executor_name}: {ban.reason or '-'}"
            for ban in bans
        ]
        text = "\n".join(lines)
        await interaction.response.send_message(f"```\n{clip(text)}\n```", ephemeral=True)

    @archive.command(name="sql", description="Run a read-only query against the archive")
    async def sql(self, interaction: discord.Interaction, query: str) -> None:
        if not await self.bot.is_owner(interaction.user):
            await interaction.response.send_message(
                "This command can only be used by the bot owner", ephemeral=True
            )
            return
        await interaction.response.defer()
        text = await self.engine.run_query(query)
        await interaction.followup.send(f"```\n{clip(text)}\n```")


async def setup(bot: commands.Bot) -> None:
    await bot.add_cog(ArchiveCog(bot, getattr(bot, "engine", None)))

"""Main Discord bot for Sentinel Bot.

This module provides the Discord client that wires storage, the permission
resolver, the moderation ledger and the slash command tree together.
"""

import asyncio
from typing import Any

import discord
import structlog
from discord.ext import tasks

from sentinel_bot.commands.handler import ModerationCommandTree, register_commands
from sentinel_bot.config import Settings
from sentinel_bot.database.postgres import PostgresClient
from sentinel_bot.database.redis import RedisClient
from sentinel_bot.moderation.ledger import ModerationLedger
from sentinel_bot.moderation.permissions import PermissionResolver

logger = structlog.get_logger()

PRESENCE_ACTIVITIES: tuple[discord.BaseActivity, ...] = (
    discord.Game(name="with slash commands"),
    discord.Activity(type=discord.ActivityType.watching, name="the server"),
    discord.Activity(type=discord.ActivityType.listening, name="your commands"),
)


class SentinelBot(discord.Client):
    """Sentinel moderation bot.

    Attributes:
        settings: Application settings.
        db: PostgreSQL database client.
        redis: Redis client.
        resolver: Permission resolver shared by all commands.
        ledger: Moderation ledger shared by all commands.
        tree: Slash command tree.
    """

    def __init__(self, settings: Settings) -> None:
        """Initialize Sentinel bot.

        Args:
            settings: Application settings.
        """
        intents = discord.Intents.default()
        intents.members = True  # Member roles for permission checks
        intents.message_content = True

        super().__init__(
            intents=intents,
            application_id=settings.discord_client_id or None,
        )

        self.settings = settings
        self._logger = logger.bind(component="bot")

        self.db = PostgresClient(settings)
        self.redis = RedisClient(settings)
        self.resolver = PermissionResolver(self.db)
        self.ledger = ModerationLedger(settings, self.db)
        self.tree = ModerationCommandTree(self)

        self._ready: asyncio.Event = asyncio.Event()
        self._presence_index = 0
        self.presence_task.change_interval(minutes=settings.presence_rotation_minutes)

    async def setup_hook(self) -> None:
        """Set up the bot before connecting to Discord.

        This is called automatically by discord.py before the bot starts.
        """
        self._logger.info("bot_setup_starting")

        try:
            await self.db.connect()
            self._logger.info("postgres_connected")

            if self.settings.auto_apply_schema:
                await self.db.apply_schema()
                self._logger.info("schema_applied")

            await self.redis.connect()
            self._logger.info("redis_connected")

            register_commands(self.tree)
            await self.sync_commands()

            self.presence_task.start()
            self._logger.info("background_tasks_started")

            self._logger.info("bot_setup_complete")

        except Exception as e:
            self._logger.error("bot_setup_failed", error=str(e))
            raise

    async def sync_commands(self) -> None:
        """Publish slash commands to Discord.

        With a development guild configured, commands are synced to that guild
        only, where they update instantly. Otherwise they are synced globally.
        """
        if self.settings.dev_guild_id:
            guild = discord.Object(id=self.settings.dev_guild_id)
            self.tree.copy_global_to(guild=guild)
            synced = await self.tree.sync(guild=guild)
            self._logger.info(
                "commands_synced",
                scope="guild",
                guild_id=self.settings.dev_guild_id,
                count=len(synced),
            )
        else:
            synced = await self.tree.sync()
            self._logger.info("commands_synced", scope="global", count=len(synced))

    async def on_ready(self) -> None:
        """Handle bot ready event.

        Called when the bot has successfully connected to Discord.
        """
        self._ready.set()
        self._logger.info(
            "bot_ready",
            bot_user=str(self.user),
            guilds=len(self.guilds),
            latency=f"{self.latency * 1000:.2f}ms",
        )

    async def on_guild_join(self, guild: discord.Guild) -> None:
        """Create the configuration row for a newly joined guild.

        Args:
            guild: Guild the bot joined.
        """
        self._logger.info("guild_joined", guild_id=guild.id, guild_name=guild.name)

        try:
            await self.db.ensure_guild(guild.id)
        except Exception as e:
            self._logger.error("guild_registration_failed", guild_id=guild.id, error=str(e))

    async def on_message(self, message: discord.Message) -> None:
        """Make sure the author and guild of every guild message are known.

        Args:
            message: Discord message object.
        """
        if message.author.bot:
            return

        if message.guild is None:
            return

        try:
            await self.db.ensure_guild(message.guild.id)
            await self.db.ensure_user(message.author.id, message.author.name)
        except Exception as e:
            self._logger.error(
                "message_tracking_failed",
                message_id=message.id,
                user_id=message.author.id,
                error=str(e),
            )

    @tasks.loop(minutes=5)
    async def presence_task(self) -> None:
        """Rotate the bot's presence through the configured activities."""
        activity = PRESENCE_ACTIVITIES[self._presence_index % len(PRESENCE_ACTIVITIES)]
        self._presence_index += 1

        try:
            await self.change_presence(status=discord.Status.online, activity=activity)
        except Exception as e:
            self._logger.error("presence_update_failed", error=str(e))

    @presence_task.before_loop
    async def before_presence_task(self) -> None:
        """Wait for bot to be ready before rotating presence."""
        await self._ready.wait()

    async def health_check(self) -> dict[str, Any]:
        """Check health of all bot components.

        Returns:
            Dictionary with health status of each component.
        """
        return {
            "bot_ready": self._ready.is_set(),
            "postgres": await self.db.health_check(),
            "redis": await self.redis.health_check(),
            "latency_ms": self.latency * 1000,
        }

    async def close(self) -> None:
        """Close bot and cleanup resources gracefully."""
        self._logger.info("bot_closing")

        if self.presence_task.is_running():
            self.presence_task.cancel()

        await self.db.disconnect()
        self._logger.info("postgres_disconnected")

        await self.redis.disconnect()
        self._logger.info("redis_disconnected")

        await super().close()

        self._logger.info("bot_closed")

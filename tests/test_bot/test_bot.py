"""Tests for main bot implementation.

This module tests the Discord client's startup, event handling and shutdown.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import discord
import pytest

from sentinel_bot.bot import PRESENCE_ACTIVITIES, SentinelBot
from sentinel_bot.commands.handler import ModerationCommandTree
from sentinel_bot.config import Settings
from sentinel_bot.moderation.ledger import ModerationLedger
from sentinel_bot.moderation.permissions import PermissionResolver


@pytest.mark.unit
class TestSentinelBot:
    """Test suite for SentinelBot class."""

    @pytest.fixture
    async def bot(self, test_settings: Settings) -> SentinelBot:
        """Create bot instance with storage mocked out.

        Args:
            test_settings: Test settings fixture.

        Returns:
            SentinelBot instance.
        """
        bot = SentinelBot(test_settings)

        bot.db = AsyncMock()
        bot.redis = AsyncMock()

        return bot

    @pytest.fixture
    def mock_message(self) -> MagicMock:
        """Create mock guild message from a human author."""
        message = MagicMock(spec=discord.Message)
        message.id = 987654321098765432
        message.author = MagicMock()
        message.author.id = 123456789
        message.author.name = "testuser"
        message.author.bot = False
        message.guild = MagicMock(spec=discord.Guild)
        message.guild.id = 777888999
        return message

    async def test_bot_initialization(self, test_settings: Settings) -> None:
        """Test bot wires its services together."""
        bot = SentinelBot(test_settings)

        assert bot.settings == test_settings
        assert bot.intents.members is True
        assert bot.intents.message_content is True
        assert isinstance(bot.tree, ModerationCommandTree)
        assert isinstance(bot.resolver, PermissionResolver)
        assert isinstance(bot.ledger, ModerationLedger)
        assert bot.resolver.db is bot.db
        assert bot.ledger.db is bot.db

    async def test_setup_hook(self, bot: SentinelBot) -> None:
        """Test setup connects storage, registers and syncs commands."""
        bot.sync_commands = AsyncMock()
        bot.presence_task = MagicMock()

        await bot.setup_hook()

        bot.db.connect.assert_awaited_once()
        bot.db.apply_schema.assert_awaited_once()
        bot.redis.connect.assert_awaited_once()
        bot.sync_commands.assert_awaited_once()
        bot.presence_task.start.assert_called_once()
        assert {c.name for c in bot.tree.get_commands()} >= {"warn", "ban", "config"}

    async def test_setup_hook_skips_schema(self, test_settings: Settings) -> None:
        """Test schema creation can be disabled."""
        bot = SentinelBot(test_settings.model_copy(update={"auto_apply_schema": False}))
        bot.db = AsyncMock()
        bot.redis = AsyncMock()
        bot.sync_commands = AsyncMock()
        bot.presence_task = MagicMock()

        await bot.setup_hook()

        bot.db.apply_schema.assert_not_awaited()

    async def test_setup_hook_failure_propagates(self, bot: SentinelBot) -> None:
        """Test startup aborts when the database is unreachable."""
        bot.db.connect.side_effect = ConnectionError("refused")

        with pytest.raises(ConnectionError):
            await bot.setup_hook()

        bot.redis.connect.assert_not_awaited()

    async def test_sync_commands_globally(self, bot: SentinelBot) -> None:
        """Test commands sync globally without a development guild."""
        bot.tree.sync = AsyncMock(return_value=[])

        await bot.sync_commands()

        bot.tree.sync.assert_awaited_once_with()

    async def test_sync_commands_to_dev_guild(self, test_settings: Settings) -> None:
        """Test commands sync to the development guild when configured."""
        bot = SentinelBot(test_settings.model_copy(update={"dev_guild_id": 42}))
        bot.tree.copy_global_to = MagicMock()
        bot.tree.sync = AsyncMock(return_value=[])

        await bot.sync_commands()

        guild = bot.tree.sync.call_args.kwargs["guild"]
        assert guild.id == 42
        bot.tree.copy_global_to.assert_called_once_with(guild=guild)

    async def test_on_ready_sets_ready_flag(self, bot: SentinelBot) -> None:
        """Test on_ready marks the bot ready."""
        assert not bot._ready.is_set()

        await bot.on_ready()

        assert bot._ready.is_set()

    async def test_on_guild_join_registers_guild(self, bot: SentinelBot) -> None:
        """Test joining a guild creates its configuration."""
        guild = MagicMock(spec=discord.Guild)
        guild.id = 777888999
        guild.name = "New Guild"

        await bot.on_guild_join(guild)

        bot.db.ensure_guild.assert_awaited_once_with(777888999)

    async def test_on_guild_join_failure_logged(self, bot: SentinelBot) -> None:
        """Test a failed registration does not raise."""
        guild = MagicMock(spec=discord.Guild)
        guild.id = 777888999
        guild.name = "New Guild"
        bot.db.ensure_guild.side_effect = RuntimeError("db down")

        await bot.on_guild_join(guild)

    async def test_on_message_tracks_author(
        self, bot: SentinelBot, mock_message: MagicMock
    ) -> None:
        """Test guild messages register their guild and author."""
        await bot.on_message(mock_message)

        bot.db.ensure_guild.assert_awaited_once_with(777888999)
        bot.db.ensure_user.assert_awaited_once_with(123456789, "testuser")

    async def test_on_message_ignores_bot_messages(
        self, bot: SentinelBot, mock_message: MagicMock
    ) -> None:
        """Test bot messages are ignored."""
        mock_message.author.bot = True

        await bot.on_message(mock_message)

        bot.db.ensure_user.assert_not_awaited()

    async def test_on_message_ignores_dms(
        self, bot: SentinelBot, mock_message: MagicMock
    ) -> None:
        """Test direct messages are ignored."""
        mock_message.guild = None

        await bot.on_message(mock_message)

        bot.db.ensure_guild.assert_not_awaited()

    async def test_on_message_failure_logged(
        self, bot: SentinelBot, mock_message: MagicMock
    ) -> None:
        """Test tracking failures do not raise."""
        bot.db.ensure_user.side_effect = RuntimeError("db down")

        await bot.on_message(mock_message)

    async def test_presence_rotates(self, bot: SentinelBot) -> None:
        """Test each run shows the next activity, wrapping around."""
        bot.change_presence = AsyncMock()

        for _ in range(len(PRESENCE_ACTIVITIES) + 1):
            await bot.presence_task()

        shown = [c.kwargs["activity"] for c in bot.change_presence.await_args_list]
        assert shown == [*PRESENCE_ACTIVITIES, PRESENCE_ACTIVITIES[0]]
        assert bot.change_presence.call_args.kwargs["status"] == discord.Status.online

    async def test_presence_interval_from_settings(self, test_settings: Settings) -> None:
        """Test the rotation interval follows the settings."""
        bot = SentinelBot(test_settings.model_copy(update={"presence_rotation_minutes": 9}))

        assert bot.presence_task.minutes == 9

    async def test_health_check_all_healthy(self, bot: SentinelBot) -> None:
        """Test health check reports every component."""
        bot.db.health_check.return_value = True
        bot.redis.health_check.return_value = True

        health = await bot.health_check()

        assert health["postgres"] is True
        assert health["redis"] is True
        assert health["bot_ready"] is False

    async def test_health_check_database_unhealthy(self, bot: SentinelBot) -> None:
        """Test health check surfaces an unhealthy database."""
        bot.db.health_check.return_value = False
        bot.redis.health_check.return_value = True

        health = await bot.health_check()

        assert health["postgres"] is False

    async def test_close_disconnects_storage(self, bot: SentinelBot) -> None:
        """Test close releases database and Redis connections."""
        with patch.object(discord.Client, "close", AsyncMock()) as client_close:
            await bot.close()

        bot.db.disconnect.assert_awaited_once()
        bot.redis.disconnect.assert_awaited_once()
        client_close.assert_awaited_once()

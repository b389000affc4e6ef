"""Command tree and registry for slash commands.

This module provides the command tree that runs preflight checks before every
slash command and turns command errors into replies, plus the static registry
of every command the bot exposes.
"""

from typing import Any

import discord
import redis.asyncio as redis
import structlog
from discord import app_commands

from sentinel_bot.commands.base import (
    GUILD_ONLY,
    NO_PERMISSION,
    UNKNOWN_ERROR,
    BotMissingPermissionsError,
    CommandError,
    CommandMetadata,
    CooldownError,
    InvalidArgumentError,
    UnauthorizedError,
)
from sentinel_bot.commands.config_commands import config_group
from sentinel_bot.commands.moderation_commands import (
    ban,
    kick,
    modlogs,
    mute,
    purge,
    unban,
    unmute,
    warn,
    warnings,
)
from sentinel_bot.commands.system_commands import ping
from sentinel_bot.moderation.embeds import error_embed
from sentinel_bot.moderation.permissions import PermissionLevel, missing_permissions

logger = structlog.get_logger()

# Every command the bot registers, in display order
COMMANDS: tuple[app_commands.Command[Any, ..., Any] | app_commands.Group, ...] = (
    ping,
    warn,
    warnings,
    kick,
    ban,
    unban,
    mute,
    unmute,
    purge,
    modlogs,
    config_group,
)


def register_commands(tree: app_commands.CommandTree) -> list[str]:
    """Add every command in the registry to a command tree.

    Args:
        tree: Command tree to populate.

    Returns:
        Names of the registered commands.
    """
    for command in COMMANDS:
        tree.add_command(command)

    names = [command.name for command in COMMANDS]
    logger.info("commands_registered", count=len(names), commands=names)
    return names


class ModerationCommandTree(app_commands.CommandTree):
    """Command tree with permission, bot-permission and cooldown preflight.

    The client this tree is attached to must expose ``resolver`` (a
    PermissionResolver) and ``redis`` (a RedisClient).
    """

    def __init__(self, client: discord.Client) -> None:
        super().__init__(client)
        self._logger = logger.bind(component="command_tree")

    async def interaction_check(self, interaction: discord.Interaction) -> bool:
        """Run preflight checks before a command executes.

        Checks run in order: guild-only, invoking member's permission level,
        bot permissions, then per-user cooldown.

        Args:
            interaction: Interaction invoking a command.

        Returns:
            True if the command may run.

        Raises:
            CommandError: If a check fails; handled by on_error.
        """
        command = interaction.command
        if command is None:
            return True

        meta = CommandMetadata.for_command(command)

        if meta.guild_only and interaction.guild is None:
            raise CommandError(GUILD_ONLY, title="Error")

        if interaction.guild is not None:
            member = interaction.user
            if not isinstance(member, discord.Member):
                raise CommandError(GUILD_ONLY, title="Error")

            if meta.permission_level > PermissionLevel.USER:
                if not await self.client.resolver.has_permission(member, meta.permission_level):
                    raise UnauthorizedError(NO_PERMISSION)

            bot_member = interaction.guild.me
            if bot_member is not None and meta.bot_permissions:
                missing = missing_permissions(bot_member, meta.bot_permissions)
                if missing:
                    raise BotMissingPermissionsError(missing)

        if meta.cooldown:
            await self._check_cooldown(interaction, command.qualified_name, meta.cooldown)

        self._logger.debug(
            "command_invoked",
            command=command.qualified_name,
            user_id=interaction.user.id,
            guild_id=interaction.guild_id,
        )
        return True

    async def _check_cooldown(
        self, interaction: discord.Interaction, command_name: str, seconds: int
    ) -> None:
        """Claim the user's cooldown for a command.

        Cooldowns are advisory: if Redis is unavailable the command runs.

        Args:
            interaction: Interaction invoking the command.
            command_name: Qualified command name.
            seconds: Cooldown length.

        Raises:
            CooldownError: If the user is still cooling down.
        """
        try:
            remaining = await self.client.redis.acquire_cooldown(
                interaction.user.id, command_name, seconds
            )
        except (redis.RedisError, RuntimeError) as e:
            self._logger.warning(
                "cooldown_check_failed",
                command=command_name,
                user_id=interaction.user.id,
                error=str(e),
            )
            return

        if remaining is not None:
            raise CooldownError(remaining)

    async def on_error(
        self, interaction: discord.Interaction, error: app_commands.AppCommandError
    ) -> None:
        """Reply to the user with an error embed for a failed command.

        Args:
            interaction: Interaction whose command failed.
            error: Error raised by preflight or by the command.
        """
        command_name = interaction.command.qualified_name if interaction.command else None
        original = error.original if isinstance(error, app_commands.CommandInvokeError) else error

        if isinstance(original, UnauthorizedError):
            self._logger.warning(
                "command_unauthorized",
                command=command_name,
                user_id=interaction.user.id,
                error=str(original),
            )
            embed = error_embed(original.title, str(original))

        elif isinstance(original, (InvalidArgumentError, CooldownError)):
            self._logger.info(
                "command_rejected",
                command=command_name,
                user_id=interaction.user.id,
                error=str(original),
            )
            embed = error_embed(original.title, str(original))

        elif isinstance(original, CommandError):
            self._logger.warning(
                "command_error",
                command=command_name,
                user_id=interaction.user.id,
                error=str(original),
            )
            embed = error_embed(original.title, str(original))

        elif isinstance(original, app_commands.AppCommandError):
            # Library-level failures such as option transform errors
            self._logger.info(
                "command_app_error",
                command=command_name,
                user_id=interaction.user.id,
                error=str(original),
            )
            embed = error_embed("Command Error", str(original))

        else:
            self._logger.error(
                "command_unexpected_error",
                command=command_name,
                user_id=interaction.user.id,
                error=str(original),
                exc_info=original,
            )
            embed = error_embed("Command Error", UNKNOWN_ERROR)

        try:
            if interaction.response.is_done():
                await interaction.followup.send(embed=embed, ephemeral=True)
            else:
                await interaction.response.send_message(embed=embed, ephemeral=True)
        except discord.HTTPException as e:
            self._logger.error(
                "command_error_reply_failed",
                command=command_name,
                error=str(e),
            )

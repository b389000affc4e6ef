"""Base command infrastructure for slash commands.

This module provides the error taxonomy shared by all commands, the metadata
each command declares for preflight checks, and the per-invocation context
commands use to reach bot services and reply to the user.
"""

from dataclasses import dataclass, field
from typing import Any

import discord
import structlog
from discord import app_commands

from sentinel_bot.config import Settings
from sentinel_bot.database.postgres import PostgresClient
from sentinel_bot.moderation.embeds import success_embed
from sentinel_bot.moderation.ledger import ModerationLedger
from sentinel_bot.moderation.permissions import PermissionLevel, PermissionResolver

logger = structlog.get_logger()

NO_PERMISSION = "You do not have permission to use this command."
BOT_NO_PERMISSION = "I do not have permission to perform this action."
GUILD_ONLY = "This command can only be used in a server."
UNKNOWN_ERROR = "An unknown error occurred. Please try again later."


class CommandError(app_commands.AppCommandError):
    """Base exception for command errors.

    The message is shown to the invoking user, so it must be safe to display.

    Attributes:
        title: Heading of the error embed.
    """

    default_title = "Command Error"

    def __init__(self, message: str, title: str | None = None) -> None:
        super().__init__(message)
        self.title = title or self.default_title


class UnauthorizedError(CommandError):
    """User is not authorized to run this command."""

    default_title = "No Permission"


class InvalidArgumentError(CommandError):
    """Command received invalid arguments."""

    default_title = "Invalid Argument"


class BotMissingPermissionsError(CommandError):
    """The bot lacks Discord permissions the command needs.

    Attributes:
        missing: Names of the missing permissions.
    """

    default_title = "Bot Missing Permissions"

    def __init__(self, missing: list[str]) -> None:
        listed = ", ".join(f"`{name}`" for name in missing)
        super().__init__(f"{BOT_NO_PERMISSION}\n\nMissing: {listed}")
        self.missing = missing


class CooldownError(CommandError):
    """User must wait before running this command again.

    Attributes:
        retry_after: Seconds remaining on the cooldown.
    """

    default_title = "Cooldown"

    def __init__(self, retry_after: float) -> None:
        super().__init__(
            f"Please wait {retry_after:.1f} second(s) before using this command again."
        )
        self.retry_after = retry_after


@dataclass(frozen=True)
class CommandMetadata:
    """Preflight requirements a command declares through its ``extras``.

    Attributes:
        permission_level: Minimum permission level of the invoking member.
        bot_permissions: Discord permissions the bot needs, e.g. "kick_members".
        cooldown: Per-user cooldown in seconds (None for no cooldown).
        guild_only: Whether the command is rejected outside a guild.
    """

    permission_level: PermissionLevel = PermissionLevel.USER
    bot_permissions: tuple[str, ...] = field(default_factory=tuple)
    cooldown: int | None = None
    guild_only: bool = True

    @classmethod
    def for_command(
        cls, command: app_commands.Command[Any, ..., Any] | app_commands.Group
    ) -> "CommandMetadata":
        """Read a command's metadata, falling back to its parent group's.

        Args:
            command: Command (or subcommand) being invoked.

        Returns:
            Metadata with keys from the command taking precedence.
        """
        extras: dict[str, Any] = {}
        parent = command.parent
        if parent is not None:
            extras.update(parent.extras)
        extras.update(command.extras)

        return cls(
            permission_level=PermissionLevel(
                extras.get("permission_level", PermissionLevel.USER)
            ),
            bot_permissions=tuple(extras.get("bot_permissions", ())),
            cooldown=extras.get("cooldown"),
            guild_only=extras.get("guild_only", True),
        )


@dataclass
class CommandContext:
    """Context for command execution.

    Attributes:
        interaction: Interaction that invoked the command.
        settings: Bot settings.
        db: Database client.
        resolver: Permission resolver.
        ledger: Moderation ledger.
    """

    interaction: discord.Interaction
    settings: Settings
    db: PostgresClient
    resolver: PermissionResolver
    ledger: ModerationLedger

    @classmethod
    def from_interaction(cls, interaction: discord.Interaction) -> "CommandContext":
        """Build a context from the services owned by the bot client.

        Args:
            interaction: Interaction that invoked the command.

        Returns:
            Command context.
        """
        bot = interaction.client
        return cls(
            interaction=interaction,
            settings=bot.settings,
            db=bot.db,
            resolver=bot.resolver,
            ledger=bot.ledger,
        )

    @property
    def guild(self) -> discord.Guild:
        """The guild the command was invoked in."""
        guild = self.interaction.guild
        if guild is None:
            raise CommandError(GUILD_ONLY, title="Error")
        return guild

    @property
    def author(self) -> discord.Member:
        """The invoking user as a guild member."""
        user = self.interaction.user
        if not isinstance(user, discord.Member):
            raise CommandError(GUILD_ONLY, title="Error")
        return user

    async def defer(self, ephemeral: bool = False) -> None:
        """Acknowledge the interaction so the reply can take longer than 3 seconds.

        Args:
            ephemeral: Whether the eventual reply is only visible to the user.
        """
        if not self.interaction.response.is_done():
            await self.interaction.response.defer(ephemeral=ephemeral, thinking=True)

    async def reply(self, embed: discord.Embed, ephemeral: bool = False) -> None:
        """Send a reply, as a follow-up if the interaction was already answered.

        Args:
            embed: Embed to send.
            ephemeral: Whether only the invoking user can see it.
        """
        if self.interaction.response.is_done():
            await self.interaction.followup.send(embed=embed, ephemeral=ephemeral)
        else:
            await self.interaction.response.send_message(embed=embed, ephemeral=ephemeral)

    async def reply_success(self, title: str, message: str) -> None:
        """Send a success message.

        Args:
            title: Success heading.
            message: Success message to send.
        """
        await self.reply(success_embed(title, message))

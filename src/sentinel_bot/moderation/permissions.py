"""Authorization checks for moderation actions.

This module derives a member's permission level from Discord permissions and
the guild's configured roles, and decides whether one member may moderate
another based on that level and the guild's role hierarchy.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from enum import IntEnum

import discord
import structlog

from sentinel_bot.database.postgres import PostgresClient

logger = structlog.get_logger()


class PermissionLevel(IntEnum):
    """Ordered permission tiers. A higher level can do everything a lower one can."""

    USER = 0
    MODERATOR = 1
    ADMINISTRATOR = 2


# Rejection reasons, shown to users verbatim
CANNOT_ACTION_SELF = "You cannot perform this action on yourself."
CANNOT_ACTION_BOT = "You cannot perform this action on a bot."
INSUFFICIENT_PERMISSION = "You do not have permission to perform this action."
ROLE_HIERARCHY = "You cannot perform this action on a user with a higher or equal role."
BOT_MEMBER_MISSING = "Bot member not found in guild."
BOT_ROLE_HIERARCHY = (
    "I cannot perform this action on a user with a higher or equal role than mine."
)


@dataclass(frozen=True)
class ModerationCheck:
    """Outcome of a moderation eligibility check.

    Attributes:
        allowed: Whether the action may proceed.
        reason: Why the action was rejected (None when allowed).
    """

    allowed: bool
    reason: str | None = None

    @classmethod
    def allow(cls) -> "ModerationCheck":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: str) -> "ModerationCheck":
        return cls(allowed=False, reason=reason)


def is_guild_owner(member: discord.Member) -> bool:
    """Check whether a member owns their guild."""
    return member.guild.owner_id == member.id


def check_role_hierarchy(executor: discord.Member, target: discord.Member) -> bool:
    """Check that the executor outranks the target.

    The guild owner always passes. Everyone else needs a strictly higher top
    role position than the target; equal positions fail.

    Args:
        executor: Member performing the action.
        target: Member being acted on.

    Returns:
        True if the executor may act on the target.
    """
    if is_guild_owner(executor):
        return True
    return executor.top_role.position > target.top_role.position


def bot_can_act_on(bot_member: discord.Member, target: discord.Member) -> bool:
    """Check that the bot's own role outranks the target.

    The guild owner can never be acted on by the bot, whatever the roles.

    Args:
        bot_member: The bot's member object in the guild.
        target: Member being acted on.

    Returns:
        True if Discord will let the bot act on the target.
    """
    if is_guild_owner(target):
        return False
    return bot_member.top_role.position > target.top_role.position


def missing_permissions(member: discord.Member, permissions: Iterable[str]) -> list[str]:
    """List the Discord permissions a member lacks.

    Args:
        member: Guild member to inspect.
        permissions: Permission flag names, e.g. "ban_members".

    Returns:
        Names of the permissions the member does not hold, in input order.
    """
    granted = member.guild_permissions
    return [name for name in permissions if not getattr(granted, name, False)]


class PermissionResolver:
    """Resolves permission levels and moderation eligibility.

    The resolver only reads guild policy; it never mutates members or storage.

    Attributes:
        db: PostgreSQL client used to read guild policy.
    """

    def __init__(self, db: PostgresClient) -> None:
        """Initialize permission resolver.

        Args:
            db: PostgreSQL database client.
        """
        self.db = db
        self._logger = logger.bind(component="permission_resolver")

    async def level_of(self, member: discord.Member) -> PermissionLevel:
        """Get a member's permission level.

        Checked in order, first match wins: Discord administrator permission,
        the guild's admin role, the guild's mod role. If the guild policy
        cannot be read the member is treated as a regular user.

        Args:
            member: Guild member to evaluate.

        Returns:
            The member's permission level.
        """
        if member.guild_permissions.administrator:
            return PermissionLevel.ADMINISTRATOR

        try:
            config = await self.db.get_guild_config(member.guild.id)
        except Exception as e:
            self._logger.error(
                "permission_level_lookup_failed",
                guild_id=member.guild.id,
                user_id=member.id,
                error=str(e),
            )
            return PermissionLevel.USER

        role_ids = {role.id for role in member.roles}

        if config.admin_role_id is not None and config.admin_role_id in role_ids:
            return PermissionLevel.ADMINISTRATOR

        if config.mod_role_id is not None and config.mod_role_id in role_ids:
            return PermissionLevel.MODERATOR

        return PermissionLevel.USER

    async def has_permission(
        self, member: discord.Member, required_level: PermissionLevel
    ) -> bool:
        """Check whether a member meets a permission level.

        Args:
            member: Guild member to evaluate.
            required_level: Minimum level needed.

        Returns:
            True if the member's level is at least the required level.
        """
        return await self.level_of(member) >= required_level

    async def resolve(
        self,
        executor: discord.Member,
        target: discord.Member,
        required_level: PermissionLevel = PermissionLevel.MODERATOR,
    ) -> ModerationCheck:
        """Decide whether the executor may moderate the target.

        Checks run in a fixed order and the first failure is returned:
        self-targeting, bot targets, permission level, executor role
        hierarchy, then the bot's own role hierarchy.

        Args:
            executor: Member performing the action.
            target: Member being acted on.
            required_level: Permission level the action needs.

        Returns:
            A ModerationCheck; when rejected it carries a user-facing reason.
        """
        if executor.id == target.id:
            return ModerationCheck.deny(CANNOT_ACTION_SELF)

        # Applies to every action type, including bans of misbehaving bots
        if target.bot:
            return ModerationCheck.deny(CANNOT_ACTION_BOT)

        if not await self.has_permission(executor, required_level):
            return ModerationCheck.deny(INSUFFICIENT_PERMISSION)

        if not check_role_hierarchy(executor, target):
            return ModerationCheck.deny(ROLE_HIERARCHY)

        bot_member = executor.guild.me
        if bot_member is None:
            return ModerationCheck.deny(BOT_MEMBER_MISSING)

        if not bot_can_act_on(bot_member, target):
            return ModerationCheck.deny(BOT_ROLE_HIERARCHY)

        return ModerationCheck.allow()

"""Moderation case ledger.

This module records moderation actions as numbered cases, announces them in
the guild's mod-log channel and notifies the affected user. Only the database
write is critical; both notifications are best-effort.
"""

from dataclasses import dataclass

import discord
import structlog

from sentinel_bot.config import Settings
from sentinel_bot.database.models import ActionType, ModerationCase, WarningRecord
from sentinel_bot.database.postgres import PostgresClient
from sentinel_bot.moderation.durations import format_duration
from sentinel_bot.moderation.embeds import dm_notice_embed, mod_action_embed

logger = structlog.get_logger()


@dataclass
class ModerationAction:
    """A moderation action to be recorded.

    Attributes:
        guild: Guild the action happened in.
        action_type: Kind of action taken.
        target: User the action was taken against.
        moderator: User who took the action.
        reason: Reason given by the moderator.
        duration_seconds: Mute length in seconds (mutes only).
        evidence: Optional evidence reference.
    """

    guild: discord.Guild
    action_type: ActionType
    target: discord.abc.User
    moderator: discord.abc.User
    reason: str
    duration_seconds: int | None = None
    evidence: str | None = None

    @property
    def formatted_duration(self) -> str | None:
        """Human readable duration, for mutes."""
        if self.duration_seconds is None:
            return None
        return format_duration(self.duration_seconds)


class ModerationLedger:
    """Records moderation cases and warnings.

    Attributes:
        settings: Bot settings.
        db: PostgreSQL client holding cases and warnings.
    """

    def __init__(self, settings: Settings, db: PostgresClient) -> None:
        """Initialize moderation ledger.

        Args:
            settings: Bot settings.
            db: PostgreSQL database client.
        """
        self.settings = settings
        self.db = db
        self._logger = logger.bind(component="moderation_ledger")

    async def record(self, action: ModerationAction) -> int:
        """Persist a moderation action as a new case and announce it.

        The case number is only returned once the case row is stored. After
        that the mod-log post and the DM to the target are attempted
        independently; their failures are logged and never affect the result.

        Args:
            action: Action to record.

        Returns:
            The case number assigned to the action.

        Raises:
            psycopg.Error: If the case could not be persisted.
            RuntimeError: If the database is not connected or the stored case
                has no case number.
        """
        case = ModerationCase(
            guild_id=action.guild.id,
            action_type=action.action_type,
            target_id=action.target.id,
            moderator_id=action.moderator.id,
            reason=action.reason,
            duration_seconds=action.duration_seconds,
            evidence=action.evidence,
        )

        try:
            created = await self.db.create_moderation_case(case)
        except Exception as e:
            self._logger.error(
                "case_record_failed",
                guild_id=action.guild.id,
                action_type=action.action_type,
                target_id=action.target.id,
                error=str(e),
            )
            raise

        case_number = created.case_number
        if case_number is None:
            self._logger.error(
                "case_number_missing",
                guild_id=action.guild.id,
                action_type=action.action_type,
                target_id=action.target.id,
            )
            raise RuntimeError("Persisted moderation case has no case number")

        self._logger.info(
            "case_recorded",
            guild_id=action.guild.id,
            case_number=case_number,
            action_type=action.action_type,
            target_id=action.target.id,
            moderator_id=action.moderator.id,
        )

        await self._post_mod_log(action, case_number)
        await self._notify_target(action)

        return case_number

    async def _post_mod_log(self, action: ModerationAction, case_number: int) -> None:
        """Post the case to the guild's mod-log channel, if one is configured.

        Args:
            action: Recorded action.
            case_number: Case number assigned to it.
        """
        try:
            config = await self.db.get_guild_config(action.guild.id)
            if config.mod_log_channel_id is None:
                self._logger.debug("mod_log_channel_not_configured", guild_id=action.guild.id)
                return

            channel = action.guild.get_channel(config.mod_log_channel_id)
            if channel is None:
                channel = await action.guild.fetch_channel(config.mod_log_channel_id)

            if not isinstance(channel, discord.abc.Messageable):
                self._logger.warning(
                    "mod_log_channel_not_messageable",
                    guild_id=action.guild.id,
                    channel_id=config.mod_log_channel_id,
                )
                return

            embed = mod_action_embed(
                action.action_type,
                target=action.target,
                moderator=action.moderator,
                reason=action.reason,
                case_number=case_number,
                duration=action.formatted_duration,
            )
            await channel.send(embed=embed)

        except Exception as e:
            self._logger.error(
                "mod_log_post_failed",
                guild_id=action.guild.id,
                case_number=case_number,
                error=str(e),
            )

    async def _notify_target(self, action: ModerationAction) -> None:
        """Send the target a DM describing the action.

        Args:
            action: Recorded action.
        """
        # Self-recorded actions (a purge without a user filter) have nobody to notify
        if action.target.id == action.moderator.id:
            return

        embed = dm_notice_embed(
            action.action_type,
            guild_name=action.guild.name,
            reason=action.reason,
            duration=action.formatted_duration,
        )
        try:
            await action.target.send(embed=embed)
        except discord.Forbidden:
            self._logger.warning(
                "dm_notice_forbidden",
                guild_id=action.guild.id,
                user_id=action.target.id,
            )
        except Exception as e:
            self._logger.error(
                "dm_notice_failed",
                guild_id=action.guild.id,
                user_id=action.target.id,
                error=str(e),
            )

    async def list_cases(
        self,
        guild_id: int,
        target_id: int | None = None,
        action_type: ActionType | None = None,
        case_number: int | None = None,
    ) -> list[ModerationCase]:
        """List a guild's cases, newest first.

        Args:
            guild_id: Discord guild ID.
            target_id: Only cases against this user.
            action_type: Only cases of this kind.
            case_number: Only this case; at most one case is returned.

        Returns:
            Matching cases, at most one page.
        """
        limit = 1 if case_number is not None else self.settings.modlogs_page_size
        return await self.db.list_cases(
            guild_id,
            target_id=target_id,
            action_type=action_type,
            case_number=case_number,
            limit=limit,
        )

    async def add_warning(
        self, guild_id: int, user_id: int, moderator_id: int, reason: str
    ) -> WarningRecord:
        """Store a warning. Warnings do not get a case number of their own.

        Args:
            guild_id: Discord guild ID.
            user_id: Warned user's Discord ID.
            moderator_id: Issuing moderator's Discord ID.
            reason: Reason for the warning.

        Returns:
            The stored warning.
        """
        warning = await self.db.create_warning(
            WarningRecord(
                guild_id=guild_id,
                user_id=user_id,
                moderator_id=moderator_id,
                reason=reason,
            )
        )
        self._logger.info(
            "warning_added", guild_id=guild_id, user_id=user_id, moderator_id=moderator_id
        )
        return warning

    async def list_warnings(self, guild_id: int, user_id: int) -> list[WarningRecord]:
        """List every warning a user has in a guild, newest first."""
        return await self.db.list_warnings(guild_id, user_id)

"""Data models for Sentinel Bot.

This module defines Pydantic models for all database entities, providing
type safety, validation, and serialization.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, ValidationInfo, field_validator

ActionType = Literal["warn", "kick", "ban", "unban", "mute", "unmute", "purge"]

ACTION_TYPES: tuple[str, ...] = ("warn", "kick", "ban", "unban", "mute", "unmute", "purge")


class GuildConfig(BaseModel):
    """Per-guild moderation policy.

    Created lazily the first time the bot sees a guild. Only configuration
    commands mutate it.

    Attributes:
        guild_id: Discord guild ID (snowflake).
        mod_role_id: Role granting moderator level, if configured.
        admin_role_id: Role granting administrator level, if configured.
        mod_log_channel_id: Channel receiving moderation log posts, if configured.
        created_at: Record creation timestamp.
        updated_at: Record last update timestamp.
    """

    guild_id: int = Field(gt=0)
    mod_role_id: int | None = Field(default=None, gt=0)
    admin_role_id: int | None = Field(default=None, gt=0)
    mod_log_channel_id: int | None = Field(default=None, gt=0)
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)


class UserRecord(BaseModel):
    """Discord user seen by the bot.

    Attributes:
        user_id: Discord user ID (snowflake).
        username: Last known username.
        created_at: Record creation timestamp.
        updated_at: Record last update timestamp.
    """

    user_id: int = Field(gt=0)
    username: str = Field(min_length=1, max_length=32)
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)


class ModerationCase(BaseModel):
    """Audit record for one moderation action.

    Case numbers are allocated per guild by the database at insert time, so a
    case that has not been persisted carries ``case_number=None``.

    Attributes:
        id: Database auto-increment ID.
        guild_id: Guild the action happened in.
        case_number: Per-guild sequential case number, starting at 1.
        action_type: Kind of moderation action.
        target_id: Discord ID of the affected user.
        moderator_id: Discord ID of the acting moderator.
        reason: Free-text reason.
        duration_seconds: Mute length in seconds (mutes only).
        evidence: Optional evidence reference (URL, message link...).
        status: Case status, "active" unless changed externally.
        created_at: Action timestamp.
    """

    id: int | None = None
    guild_id: int = Field(gt=0)
    case_number: int | None = Field(default=None, ge=1)
    action_type: ActionType
    target_id: int = Field(gt=0)
    moderator_id: int = Field(gt=0)
    reason: str = Field(min_length=1, max_length=1024)
    duration_seconds: int | None = Field(default=None, gt=0)
    evidence: str | None = None
    status: str = "active"
    created_at: datetime = Field(default_factory=datetime.now)

    @field_validator("duration_seconds")
    @classmethod
    def validate_duration(cls, v: int | None, info: ValidationInfo) -> int | None:
        """Validate that only mutes carry a duration.

        Args:
            v: Duration in seconds.
            info: Field validation info.

        Returns:
            Validated duration.

        Raises:
            ValueError: If a non-mute action has a duration.
        """
        if v is not None and info.data.get("action_type") != "mute":
            raise ValueError("Only mute actions may have a duration")
        return v


class WarningRecord(BaseModel):
    """Lightweight warning record, separate from the case ledger.

    Attributes:
        id: Database auto-increment ID.
        guild_id: Guild the warning was issued in.
        user_id: Warned user's Discord ID.
        moderator_id: Issuing moderator's Discord ID.
        reason: Reason for the warning.
        created_at: Warning timestamp.
    """

    id: int | None = None
    guild_id: int = Field(gt=0)
    user_id: int = Field(gt=0)
    moderator_id: int = Field(gt=0)
    reason: str = Field(min_length=1, max_length=1024)
    created_at: datetime = Field(default_factory=datetime.now)

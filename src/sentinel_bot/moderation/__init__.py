"""Moderation core: authorization checks and the case ledger."""

from sentinel_bot.moderation.durations import format_duration, parse_duration
from sentinel_bot.moderation.ledger import ModerationAction, ModerationLedger
from sentinel_bot.moderation.permissions import (
    ModerationCheck,
    PermissionLevel,
    PermissionResolver,
)

__all__ = [
    "ModerationAction",
    "ModerationCheck",
    "ModerationLedger",
    "PermissionLevel",
    "PermissionResolver",
    "format_duration",
    "parse_duration",
]

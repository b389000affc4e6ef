"""Database layer for Sentinel Bot.

This package provides database clients and models for PostgreSQL and Redis.
"""

from sentinel_bot.database.models import (
    ACTION_TYPES,
    ActionType,
    GuildConfig,
    ModerationCase,
    UserRecord,
    WarningRecord,
)
from sentinel_bot.database.postgres import PostgresClient
from sentinel_bot.database.redis import RedisClient

__all__ = [
    "PostgresClient",
    "RedisClient",
    "GuildConfig",
    "UserRecord",
    "ModerationCase",
    "WarningRecord",
    "ActionType",
    "ACTION_TYPES",
]

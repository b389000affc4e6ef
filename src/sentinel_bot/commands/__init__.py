"""Slash commands for Sentinel Bot.

This package provides the moderation, configuration and system slash commands,
the command tree that runs preflight checks, and the static command registry.
"""

from sentinel_bot.commands.base import (
    BotMissingPermissionsError,
    CommandContext,
    CommandError,
    CommandMetadata,
    CooldownError,
    InvalidArgumentError,
    UnauthorizedError,
)
from sentinel_bot.commands.handler import COMMANDS, ModerationCommandTree, register_commands

__all__ = [
    "COMMANDS",
    "ModerationCommandTree",
    "register_commands",
    "CommandContext",
    "CommandMetadata",
    "CommandError",
    "UnauthorizedError",
    "InvalidArgumentError",
    "BotMissingPermissionsError",
    "CooldownError",
]

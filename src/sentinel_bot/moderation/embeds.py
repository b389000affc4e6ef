"""Embed builders for command replies, mod-log posts and DM notices."""

import discord

from sentinel_bot.database.models import ActionType

DEFAULT_COLOR = 0x5865F2
ERROR_COLOR = 0xED4245
SUCCESS_COLOR = 0x57F287
WARNING_COLOR = 0xFEE75C
INFO_COLOR = 0x5865F2

ACTION_COLORS: dict[str, int] = {
    "warn": WARNING_COLOR,
    "kick": 0xFFA500,
    "ban": ERROR_COLOR,
    "unban": SUCCESS_COLOR,
    "mute": 0x95A5A6,
    "unmute": SUCCESS_COLOR,
    "purge": 0x3498DB,
}

ACTION_EMOJIS: dict[str, str] = {
    "warn": "⚠️",
    "kick": "👢",
    "ban": "🔨",
    "unban": "🔓",
    "mute": "🔇",
    "unmute": "🔊",
    "purge": "🗑️",
}

ACTION_PAST_TENSE: dict[str, str] = {
    "warn": "warned",
    "kick": "kicked",
    "ban": "banned",
    "unban": "unbanned",
    "mute": "muted",
    "unmute": "unmuted",
    "purge": "purged",
}

DM_FOOTER = "If you believe this was a mistake, please contact the server moderators."
DEFAULT_REASON = "No reason provided"


def _base_embed(
    title: str, description: str | None = None, color: int = DEFAULT_COLOR
) -> discord.Embed:
    return discord.Embed(
        title=title,
        description=description,
        color=color,
        timestamp=discord.utils.utcnow(),
    )


def success_embed(title: str, description: str | None = None) -> discord.Embed:
    """Build a green embed with a check mark in the title."""
    return _base_embed(f"✅ {title}", description, SUCCESS_COLOR)


def error_embed(title: str, description: str | None = None) -> discord.Embed:
    """Build a red embed with a cross in the title."""
    return _base_embed(f"❌ {title}", description, ERROR_COLOR)


def action_color(action_type: str) -> int:
    """Return the embed colour for an action type, or the default colour."""
    return ACTION_COLORS.get(action_type.lower(), DEFAULT_COLOR)


def action_emoji(action_type: str) -> str:
    """Return the emoji shown next to an action type in mod-log titles."""
    return ACTION_EMOJIS.get(action_type.lower(), "📝")


def mod_action_embed(
    action_type: ActionType,
    target: discord.abc.User,
    moderator: discord.abc.User,
    reason: str,
    case_number: int | None = None,
    duration: str | None = None,
) -> discord.Embed:
    """Build the mod-log entry for a moderation action.

    Args:
        action_type: Kind of action taken.
        target: User the action was taken against.
        moderator: User who took the action.
        reason: Reason given by the moderator.
        case_number: Case number assigned by the ledger, if any.
        duration: Already formatted duration, for mutes.

    Returns:
        Embed ready to post to the guild's mod-log channel.
    """
    embed = _base_embed(
        f"{action_emoji(action_type)} {action_type.capitalize()}",
        color=action_color(action_type),
    )
    embed.add_field(name="User", value=f"{target} ({target.id})", inline=True)
    embed.add_field(name="Moderator", value=str(moderator), inline=True)

    if case_number:
        embed.add_field(name="Case", value=f"#{case_number}", inline=True)

    embed.add_field(name="Reason", value=reason or DEFAULT_REASON, inline=False)

    if duration:
        embed.add_field(name="Duration", value=duration, inline=True)

    embed.set_thumbnail(url=target.display_avatar.url)
    return embed


def dm_notice_embed(
    action_type: ActionType,
    guild_name: str,
    reason: str,
    duration: str | None = None,
) -> discord.Embed:
    """Build the direct-message notice sent to the target of an action.

    Args:
        action_type: Kind of action taken.
        guild_name: Name of the guild where it happened.
        reason: Reason given by the moderator.
        duration: Already formatted duration, for mutes.

    Returns:
        Embed describing the action to its target.
    """
    past_tense = ACTION_PAST_TENSE.get(action_type, action_type)
    embed = _base_embed(
        f"You have been {past_tense} in {guild_name}",
        color=action_color(action_type),
    )
    embed.add_field(name="Reason", value=reason or DEFAULT_REASON, inline=False)

    if duration:
        embed.add_field(name="Duration", value=duration, inline=False)

    embed.set_footer(text=DM_FOOTER)
    return embed

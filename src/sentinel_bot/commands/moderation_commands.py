"""Moderation slash commands.

This module provides the commands moderators use to act on members (warn,
kick, ban, unban, mute, unmute, purge) and to review past actions (warnings,
modlogs). Every action that changes a member's standing is recorded in the
moderation ledger.
"""

import re
from datetime import timedelta

import discord
from discord import app_commands

from sentinel_bot.commands.base import (
    NO_PERMISSION,
    CommandContext,
    CommandError,
    InvalidArgumentError,
    UnauthorizedError,
)
from sentinel_bot.config import PURGE_COUNT_LIMIT, REASON_LENGTH_LIMIT
from sentinel_bot.database.models import ModerationCase
from sentinel_bot.moderation.durations import format_duration, parse_duration
from sentinel_bot.moderation.embeds import (
    DEFAULT_COLOR,
    DEFAULT_REASON,
    SUCCESS_COLOR,
    WARNING_COLOR,
)
from sentinel_bot.moderation.ledger import ModerationAction
from sentinel_bot.moderation.permissions import PermissionLevel

BULK_DELETE_MAX_AGE = timedelta(days=14)
WARNINGS_SHOWN = 10
SUMMARY_REASON_LENGTH = 100

_SNOWFLAKE_PATTERN = re.compile(r"^\d{17,19}$")

ReasonOption = app_commands.Range[str, 1, REASON_LENGTH_LIMIT]


def _resolve_reason(ctx: CommandContext, reason: str | None) -> str:
    """Apply the default reason and the configured length limit.

    Raises:
        InvalidArgumentError: If the reason is longer than allowed.
    """
    if not reason:
        return DEFAULT_REASON
    if len(reason) > ctx.settings.max_reason_length:
        raise InvalidArgumentError(
            f"Reason must be at most {ctx.settings.max_reason_length} characters."
        )
    return reason


async def _require_moderation(
    ctx: CommandContext, target: discord.Member, title: str
) -> None:
    """Ensure the invoking member may moderate the target.

    Raises:
        UnauthorizedError: With the resolver's reason, if the action is not allowed.
    """
    check = await ctx.resolver.resolve(ctx.author, target, PermissionLevel.MODERATOR)
    if not check.allowed:
        raise UnauthorizedError(check.reason or NO_PERMISSION, title=title)


async def _fetch_user(client: discord.Client, user_id: int) -> discord.User | None:
    """Look up a user from the cache, falling back to the API.

    Args:
        client: Discord client.
        user_id: Discord user ID.

    Returns:
        The user, or None if Discord cannot resolve the ID.
    """
    user = client.get_user(user_id)
    if user is None:
        try:
            user = await client.fetch_user(user_id)
        except discord.HTTPException:
            return None
    return user


def _is_muted(member: discord.Member) -> bool:
    """Check whether a member's timeout is still running."""
    until = member.timed_out_until
    return until is not None and until > discord.utils.utcnow()


@app_commands.command(
    name="warn",
    description="Warn a user",
    extras={"permission_level": PermissionLevel.MODERATOR},
)
@app_commands.describe(user="The user to warn", reason="Reason for the warning")
@app_commands.guild_only()
async def warn(
    interaction: discord.Interaction, user: discord.Member, reason: ReasonOption
) -> None:
    """Store a warning for a member and record it as a case."""
    ctx = CommandContext.from_interaction(interaction)
    await ctx.defer()
    reason = _resolve_reason(ctx, reason)

    await _require_moderation(ctx, user, "Cannot Warn User")

    await ctx.ledger.add_warning(ctx.guild.id, user.id, ctx.author.id, reason)
    case_number = await ctx.ledger.record(
        ModerationAction(
            guild=ctx.guild,
            action_type="warn",
            target=user,
            moderator=ctx.author,
            reason=reason,
        )
    )

    await ctx.reply_success(
        "User Warned",
        f"**{user}** has been warned.\n**Reason:** {reason}\n**Case:** #{case_number}",
    )


@app_commands.command(
    name="warnings",
    description="View warnings for a user",
    extras={"permission_level": PermissionLevel.MODERATOR},
)
@app_commands.describe(user="The user to check warnings for")
@app_commands.guild_only()
async def warnings(interaction: discord.Interaction, user: discord.User) -> None:
    """List a user's warnings, newest first."""
    ctx = CommandContext.from_interaction(interaction)
    await ctx.defer()

    records = await ctx.ledger.list_warnings(ctx.guild.id, user.id)

    if not records:
        embed = discord.Embed(
            title=f"Warnings for {user}",
            description="This user has no warnings.",
            color=SUCCESS_COLOR,
            timestamp=discord.utils.utcnow(),
        )
        embed.set_thumbnail(url=user.display_avatar.url)
        await ctx.reply(embed)
        return

    lines = [
        f"**{index}.** {discord.utils.format_dt(record.created_at, 'R')}\n"
        f"**Moderator:** <@{record.moderator_id}>\n"
        f"**Reason:** {record.reason}"
        for index, record in enumerate(records[:WARNINGS_SHOWN], start=1)
    ]

    embed = discord.Embed(
        title=f"⚠️ Warnings for {user}",
        description=f"**Total Warnings:** {len(records)}\n\n" + "\n\n".join(lines),
        color=WARNING_COLOR,
        timestamp=discord.utils.utcnow(),
    )
    if len(records) > WARNINGS_SHOWN:
        embed.set_footer(text=f"Showing last {WARNINGS_SHOWN} of {len(records)} warnings")
    embed.set_thumbnail(url=user.display_avatar.url)

    await ctx.reply(embed)


@app_commands.command(
    name="kick",
    description="Kick a user from the server",
    extras={"permission_level": PermissionLevel.MODERATOR, "bot_permissions": ("kick_members",)},
)
@app_commands.describe(user="The user to kick", reason="Reason for kicking")
@app_commands.guild_only()
async def kick(
    interaction: discord.Interaction,
    user: discord.Member,
    reason: ReasonOption | None = None,
) -> None:
    """Kick a member and record the case.

    Args:
        interaction: Invoking interaction.
        user: Member to kick.
        reason: Reason for the kick.

    Raises:
        UnauthorizedError: If the moderator may not act on the member.
        CommandError: If Discord rejects the kick.
    """
    ctx = CommandContext.from_interaction(interaction)
    await ctx.defer()
    reason = _resolve_reason(ctx, reason)

    await _require_moderation(ctx, user, "Cannot Kick User")

    try:
        await user.kick(reason=reason)
    except discord.HTTPException as e:
        raise CommandError(f"Failed to kick user: {e}", title="Kick Failed") from e

    case_number = await ctx.ledger.record(
        ModerationAction(
            guild=ctx.guild,
            action_type="kick",
            target=user,
            moderator=ctx.author,
            reason=reason,
        )
    )

    await ctx.reply_success(
        "User Kicked",
        f"**{user}** has been kicked from the server.\n"
        f"**Reason:** {reason}\n**Case:** #{case_number}",
    )


@app_commands.command(
    name="ban",
    description="Ban a user from the server",
    extras={"permission_level": PermissionLevel.MODERATOR, "bot_permissions": ("ban_members",)},
)
@app_commands.describe(
    user="The user to ban",
    reason="Reason for banning",
    delete_days="Number of days of messages to delete (0-7)",
)
@app_commands.guild_only()
async def ban(
    interaction: discord.Interaction,
    user: discord.User,
    reason: ReasonOption | None = None,
    delete_days: app_commands.Range[int, 0, 7] = 0,
) -> None:
    """Ban a user, optionally deleting their recent messages.

    Users who are not members of the guild can be banned by ID.

    Args:
        interaction: Invoking interaction.
        user: User to ban.
        reason: Reason for the ban.
        delete_days: Days of message history to delete.
    """
    ctx = CommandContext.from_interaction(interaction)
    await ctx.defer()
    reason = _resolve_reason(ctx, reason)

    # Users who already left can still be banned; only members are checked
    if isinstance(user, discord.Member):
        await _require_moderation(ctx, user, "Cannot Ban User")

    try:
        await ctx.guild.ban(
            user,
            reason=reason,
            delete_message_seconds=delete_days * 24 * 60 * 60,
        )
    except discord.HTTPException as e:
        raise CommandError(f"Failed to ban user: {e}", title="Ban Failed") from e

    case_number = await ctx.ledger.record(
        ModerationAction(
            guild=ctx.guild,
            action_type="ban",
            target=user,
            moderator=ctx.author,
            reason=reason,
        )
    )

    description = (
        f"**{user}** has been banned from the server.\n"
        f"**Reason:** {reason}\n**Case:** #{case_number}"
    )
    if delete_days > 0:
        description += f"\n**Messages Deleted:** Last {delete_days} day(s)"
    await ctx.reply_success("User Banned", description)


@app_commands.command(
    name="unban",
    description="Unban a user from the server",
    extras={"permission_level": PermissionLevel.MODERATOR, "bot_permissions": ("ban_members",)},
)
@app_commands.describe(user_id="The ID of the user to unban", reason="Reason for unbanning")
@app_commands.guild_only()
async def unban(
    interaction: discord.Interaction,
    user_id: str,
    reason: ReasonOption | None = None,
) -> None:
    """Lift a ban by user ID.

    Raises:
        InvalidArgumentError: If the ID is malformed or the user is not banned.
        CommandError: If Discord rejects the unban.
    """
    ctx = CommandContext.from_interaction(interaction)
    await ctx.defer()
    reason = _resolve_reason(ctx, reason)

    user_id = user_id.strip()
    if not _SNOWFLAKE_PATTERN.match(user_id):
        raise InvalidArgumentError(
            "Please provide a valid Discord user ID.", title="Invalid User ID"
        )

    try:
        ban_entry = await ctx.guild.fetch_ban(discord.Object(id=int(user_id)))
    except discord.NotFound as e:
        raise InvalidArgumentError("This user is not banned.", title="User Not Banned") from e

    try:
        await ctx.guild.unban(ban_entry.user, reason=reason)
    except discord.HTTPException as e:
        raise CommandError(f"Failed to unban user: {e}", title="Unban Failed") from e

    case_number = await ctx.ledger.record(
        ModerationAction(
            guild=ctx.guild,
            action_type="unban",
            target=ban_entry.user,
            moderator=ctx.author,
            reason=reason,
        )
    )

    await ctx.reply_success(
        "User Unbanned",
        f"**{ban_entry.user}** has been unbanned from the server.\n"
        f"**Reason:** {reason}\n**Case:** #{case_number}",
    )


@app_commands.command(
    name="mute",
    description="Mute a user (timeout)",
    extras={
        "permission_level": PermissionLevel.MODERATOR,
        "bot_permissions": ("moderate_members",),
    },
)
@app_commands.describe(
    user="The user to mute",
    duration="Duration (e.g., 10m, 2h, 1d)",
    reason="Reason for muting",
)
@app_commands.guild_only()
async def mute(
    interaction: discord.Interaction,
    user: discord.Member,
    duration: str,
    reason: ReasonOption | None = None,
) -> None:
    """Time a member out for a parsed duration.

    Args:
        interaction: Invoking interaction.
        user: Member to mute.
        duration: Duration such as ``10m`` or ``2h``.
        reason: Reason for the mute.

    Raises:
        InvalidArgumentError: If the duration is invalid or too long, or the
            member is already muted.
        CommandError: If Discord rejects the timeout.
    """
    ctx = CommandContext.from_interaction(interaction)
    await ctx.defer()
    reason = _resolve_reason(ctx, reason)

    seconds = parse_duration(duration)
    if seconds is None:
        raise InvalidArgumentError(
            "Please provide a valid duration (e.g., 10m, 2h, 1d).\n"
            "Format: `<number><unit>` where unit is s, m, h, d, or w",
            title="Invalid Duration",
        )

    if seconds > ctx.settings.max_mute_seconds:
        raise InvalidArgumentError(
            f"Maximum mute duration is {ctx.settings.max_mute_days} days.",
            title="Duration Too Long",
        )

    await _require_moderation(ctx, user, "Cannot Mute User")

    if _is_muted(user):
        raise InvalidArgumentError("This user is already muted.", title="User Already Muted")

    try:
        await user.timeout(timedelta(seconds=seconds), reason=reason)
    except discord.HTTPException as e:
        raise CommandError(f"Failed to mute user: {e}", title="Mute Failed") from e

    case_number = await ctx.ledger.record(
        ModerationAction(
            guild=ctx.guild,
            action_type="mute",
            target=user,
            moderator=ctx.author,
            reason=reason,
            duration_seconds=seconds,
        )
    )

    await ctx.reply_success(
        "User Muted",
        f"**{user}** has been muted.\n**Duration:** {format_duration(seconds)}\n"
        f"**Reason:** {reason}\n**Case:** #{case_number}",
    )


@app_commands.command(
    name="unmute",
    description="Unmute a user (remove timeout)",
    extras={
        "permission_level": PermissionLevel.MODERATOR,
        "bot_permissions": ("moderate_members",),
    },
)
@app_commands.describe(user="The user to unmute", reason="Reason for unmuting")
@app_commands.guild_only()
async def unmute(
    interaction: discord.Interaction,
    user: discord.Member,
    reason: ReasonOption | None = None,
) -> None:
    """Remove a member's active timeout."""
    ctx = CommandContext.from_interaction(interaction)
    await ctx.defer()
    reason = _resolve_reason(ctx, reason)

    await _require_moderation(ctx, user, "Cannot Unmute User")

    if not _is_muted(user):
        raise InvalidArgumentError("This user is not currently muted.", title="User Not Muted")

    try:
        await user.timeout(None, reason=reason)
    except discord.HTTPException as e:
        raise CommandError(f"Failed to unmute user: {e}", title="Unmute Failed") from e

    case_number = await ctx.ledger.record(
        ModerationAction(
            guild=ctx.guild,
            action_type="unmute",
            target=user,
            moderator=ctx.author,
            reason=reason,
        )
    )

    await ctx.reply_success(
        "User Unmuted",
        f"**{user}** has been unmuted.\n**Reason:** {reason}\n**Case:** #{case_number}",
    )


@app_commands.command(
    name="purge",
    description="Bulk delete messages",
    extras={
        "permission_level": PermissionLevel.MODERATOR,
        "bot_permissions": ("manage_messages",),
        "cooldown": 5,
    },
)
@app_commands.describe(
    amount=f"Number of messages to delete (1-{PURGE_COUNT_LIMIT})",
    user="Only delete messages from this user",
    reason="Reason for purging",
)
@app_commands.guild_only()
async def purge(
    interaction: discord.Interaction,
    amount: app_commands.Range[int, 1, PURGE_COUNT_LIMIT],
    user: discord.User | None = None,
    reason: ReasonOption | None = None,
) -> None:
    """Bulk delete recent messages in the current text channel.

    Messages older than 14 days are skipped since Discord refuses to bulk
    delete them. The purge is recorded against the filtered user, or against
    the moderator when no user is given.

    Args:
        interaction: Invoking interaction.
        amount: Maximum number of messages to delete.
        user: Only delete messages from this user.
        reason: Reason for the purge.
    """
    ctx = CommandContext.from_interaction(interaction)
    await ctx.defer(ephemeral=True)
    reason = _resolve_reason(ctx, reason)

    channel = interaction.channel
    if not isinstance(channel, discord.TextChannel):
        raise CommandError("This command can only be used in text channels.", title="Error")

    amount = min(amount, ctx.settings.max_purge_count)
    cutoff = discord.utils.utcnow() - BULK_DELETE_MAX_AGE

    messages = [message async for message in channel.history(limit=amount + 1)]
    if user is not None:
        messages = [message for message in messages if message.author.id == user.id]
    recent = [message for message in messages if message.created_at > cutoff][:amount]

    if not recent:
        raise InvalidArgumentError(
            "No messages found to delete. Messages older than 14 days cannot be bulk deleted.",
            title="No Messages",
        )

    try:
        await channel.delete_messages(recent, reason=reason)
    except discord.HTTPException as e:
        raise CommandError(f"Failed to purge messages: {e}", title="Purge Failed") from e

    deleted = len(recent)
    from_user = f" from {user}" if user is not None else ""
    await ctx.ledger.record(
        ModerationAction(
            guild=ctx.guild,
            action_type="purge",
            target=user if user is not None else ctx.author,
            moderator=ctx.author,
            reason=f"Purged {deleted} message(s){from_user}: {reason}",
        )
    )

    from_user_bold = f" from **{user}**" if user is not None else ""
    await ctx.reply_success(
        "Messages Purged",
        f"Successfully deleted **{deleted}** message(s){from_user_bold}.",
    )


@app_commands.command(
    name="modlogs",
    description="View moderation logs",
    extras={"permission_level": PermissionLevel.MODERATOR},
)
@app_commands.describe(
    user="Filter by user",
    action_type="Filter by action type",
    case_number="View a specific case number",
)
@app_commands.rename(action_type="type", case_number="case")
@app_commands.choices(
    action_type=[
        app_commands.Choice(name="Warn", value="warn"),
        app_commands.Choice(name="Kick", value="kick"),
        app_commands.Choice(name="Ban", value="ban"),
        app_commands.Choice(name="Unban", value="unban"),
        app_commands.Choice(name="Mute", value="mute"),
        app_commands.Choice(name="Unmute", value="unmute"),
        app_commands.Choice(name="Purge", value="purge"),
    ]
)
@app_commands.guild_only()
async def modlogs(
    interaction: discord.Interaction,
    user: discord.User | None = None,
    action_type: app_commands.Choice[str] | None = None,
    case_number: app_commands.Range[int, 1] | None = None,
) -> None:
    """Show a single case in detail, or a filtered list of recent cases."""
    ctx = CommandContext.from_interaction(interaction)
    await ctx.defer()

    kind = action_type.value if action_type is not None else None
    cases = await ctx.ledger.list_cases(
        ctx.guild.id,
        target_id=user.id if user is not None else None,
        action_type=kind,
        case_number=case_number,
    )

    if not cases:
        await ctx.reply(
            discord.Embed(
                title="📋 Moderation Logs",
                description="No moderation logs found matching the criteria.",
                color=DEFAULT_COLOR,
                timestamp=discord.utils.utcnow(),
            )
        )
        return

    if case_number is not None:
        await ctx.reply(await _case_detail_embed(interaction.client, cases[0]))
        return

    entries = []
    for case in cases:
        target = await _fetch_user(interaction.client, case.target_id)
        moderator = await _fetch_user(interaction.client, case.moderator_id)
        target_display = str(target) if target else f"Unknown User ({case.target_id})"
        moderator_display = str(moderator) if moderator else f"Unknown ({case.moderator_id})"
        summary = case.reason[:SUMMARY_REASON_LENGTH]
        if len(case.reason) > SUMMARY_REASON_LENGTH:
            summary += "..."
        entries.append(
            f"**Case #{case.case_number}** | {case.action_type.upper()} | "
            f"{discord.utils.format_dt(case.created_at, 'R')}\n"
            f"**Target:** {target_display} | **Mod:** {moderator_display}\n"
            f"**Reason:** {summary}"
        )

    title = "📋 Moderation Logs"
    if user is not None:
        title += f" for {user}"
    if kind is not None:
        title += f" ({kind})"

    embed = discord.Embed(
        title=title,
        description="\n\n".join(entries),
        color=DEFAULT_COLOR,
        timestamp=discord.utils.utcnow(),
    )
    embed.set_footer(
        text=f"Showing last {len(cases)} log(s). "
        "Use /modlogs case:<number> for details."
    )
    await ctx.reply(embed)


async def _case_detail_embed(client: discord.Client, case: ModerationCase) -> discord.Embed:
    """Build the detailed view of a single case."""
    target = await _fetch_user(client, case.target_id)
    moderator = await _fetch_user(client, case.moderator_id)

    embed = discord.Embed(
        title=f"📋 Case #{case.case_number}",
        color=DEFAULT_COLOR,
        timestamp=discord.utils.utcnow(),
    )
    embed.add_field(name="Action", value=case.action_type.upper(), inline=True)
    embed.add_field(name="Status", value=case.status, inline=True)
    target_display = str(target) if target else "Unknown User"
    moderator_display = str(moderator) if moderator else f"Unknown ({case.moderator_id})"
    embed.add_field(name="Target", value=f"{target_display} ({case.target_id})", inline=False)
    embed.add_field(name="Moderator", value=moderator_display, inline=False)
    embed.add_field(name="Reason", value=case.reason or DEFAULT_REASON, inline=False)
    embed.add_field(
        name="Date", value=discord.utils.format_dt(case.created_at, "F"), inline=False
    )

    if case.duration_seconds:
        embed.add_field(
            name="Duration", value=format_duration(case.duration_seconds), inline=True
        )

    if case.evidence:
        embed.add_field(name="Evidence", value=case.evidence, inline=False)

    return embed

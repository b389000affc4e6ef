"""Guild configuration commands.

This module provides the /config command group, which lets administrators view
and change the roles and channel the bot uses in their guild.
"""

import discord
import structlog
from discord import app_commands

from sentinel_bot.commands.base import CommandContext
from sentinel_bot.database.models import GuildConfig
from sentinel_bot.moderation.embeds import INFO_COLOR
from sentinel_bot.moderation.permissions import PermissionLevel

logger = structlog.get_logger()

config_group = app_commands.Group(
    name="config",
    description="View or change the bot's settings for this server",
    guild_only=True,
    extras={"permission_level": PermissionLevel.ADMINISTRATOR},
)


def _mention(prefix: str, object_id: int | None) -> str:
    """Format a role (``@&``) or channel (``#``) mention, or "Not set"."""
    if object_id is None:
        return "Not set"
    return f"<{prefix}{object_id}>"


def _config_embed(guild: discord.Guild, config: GuildConfig) -> discord.Embed:
    """Render a guild's moderation settings.

    Args:
        guild: Guild the settings belong to.
        config: Stored guild settings.

    Returns:
        Embed listing the configured roles and mod-log channel.
    """
    embed = discord.Embed(
        title=f"⚙️ Configuration for {guild.name}",
        color=INFO_COLOR,
        timestamp=discord.utils.utcnow(),
    )
    embed.add_field(name="Moderator Role", value=_mention("@&", config.mod_role_id), inline=True)
    embed.add_field(
        name="Administrator Role", value=_mention("@&", config.admin_role_id), inline=True
    )
    embed.add_field(
        name="Mod Log Channel", value=_mention("#", config.mod_log_channel_id), inline=False
    )
    embed.set_footer(text="Use /config mod-role, /config admin-role or /config log-channel to update")
    return embed


async def _update(ctx: CommandContext, **changes: int | None) -> GuildConfig:
    """Apply changes to the guild's configuration and persist them.

    Args:
        ctx: Command context.
        **changes: GuildConfig fields to set.

    Returns:
        The stored configuration.
    """
    current = await ctx.db.get_guild_config(ctx.guild.id)
    updated = await ctx.db.update_guild_config(current.model_copy(update=changes))
    logger.info(
        "guild_config_updated",
        guild_id=ctx.guild.id,
        user_id=ctx.author.id,
        changes=changes,
    )
    return updated


@config_group.command(name="show", description="Show this server's bot configuration")
async def show(interaction: discord.Interaction) -> None:
    """Show the guild's moderation settings to the invoking administrator."""
    ctx = CommandContext.from_interaction(interaction)
    config = await ctx.db.get_guild_config(ctx.guild.id)
    await ctx.reply(_config_embed(ctx.guild, config), ephemeral=True)


@config_group.command(name="mod-role", description="Set or clear the moderator role")
@app_commands.describe(role="Role whose members are moderators (omit to clear)")
async def mod_role(interaction: discord.Interaction, role: discord.Role | None = None) -> None:
    """Set the moderator role, or clear it when no role is given."""
    ctx = CommandContext.from_interaction(interaction)
    await _update(ctx, mod_role_id=role.id if role is not None else None)
    if role is None:
        await ctx.reply_success("Moderator Role Cleared", "No role grants moderator access now.")
    else:
        await ctx.reply_success("Moderator Role Set", f"Members with {role.mention} are moderators.")


@config_group.command(name="admin-role", description="Set or clear the administrator role")
@app_commands.describe(role="Role whose members are administrators (omit to clear)")
async def admin_role(
    interaction: discord.Interaction, role: discord.Role | None = None
) -> None:
    """Set the administrator role, or clear it when no role is given."""
    ctx = CommandContext.from_interaction(interaction)
    await _update(ctx, admin_role_id=role.id if role is not None else None)
    if role is None:
        await ctx.reply_success(
            "Administrator Role Cleared", "No role grants administrator access now."
        )
    else:
        await ctx.reply_success(
            "Administrator Role Set", f"Members with {role.mention} are administrators."
        )


@config_group.command(name="log-channel", description="Set or clear the mod-log channel")
@app_commands.describe(channel="Channel that receives moderation logs (omit to clear)")
async def log_channel(
    interaction: discord.Interaction, channel: discord.TextChannel | None = None
) -> None:
    """Set the mod-log channel, or disable mod-log posts when none is given."""
    ctx = CommandContext.from_interaction(interaction)
    await _update(ctx, mod_log_channel_id=channel.id if channel is not None else None)
    if channel is None:
        await ctx.reply_success("Mod Log Disabled", "Moderation actions will not be posted.")
    else:
        await ctx.reply_success(
            "Mod Log Channel Set", f"Moderation actions will be posted in {channel.mention}."
        )

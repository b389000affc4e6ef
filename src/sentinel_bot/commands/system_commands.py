"""System commands."""

import discord
from discord import app_commands

from sentinel_bot.moderation.embeds import DEFAULT_COLOR


@app_commands.command(name="ping", description="Check the bot's latency and response time")
@app_commands.guild_only()
async def ping(interaction: discord.Interaction) -> None:
    """Report round-trip and websocket latency."""
    await interaction.response.send_message(
        embed=discord.Embed(description="🏓 Pinging...", color=DEFAULT_COLOR)
    )
    message = await interaction.original_response()

    latency_ms = round((message.created_at - interaction.created_at).total_seconds() * 1000)
    api_latency_ms = round(interaction.client.latency * 1000)

    embed = discord.Embed(
        title="🏓 Pong!",
        color=DEFAULT_COLOR,
        timestamp=discord.utils.utcnow(),
    )
    embed.add_field(name="Bot Latency", value=f"{latency_ms}ms", inline=True)
    embed.add_field(name="API Latency", value=f"{api_latency_ms}ms", inline=True)

    await interaction.edit_original_response(embed=embed)

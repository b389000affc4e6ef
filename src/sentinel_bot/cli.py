"""Command-line interface for Sentinel Bot.

This module provides the CLI entry points for running the bot and for
removing its globally registered slash commands.
"""

import asyncio
import logging
import signal
import sys
from typing import NoReturn

import discord
import structlog
from discord import app_commands

from sentinel_bot.bot import SentinelBot
from sentinel_bot.config import Settings, get_settings

logger = structlog.get_logger()


def setup_logging(settings: Settings) -> None:
    """Configure structured logging.

    Args:
        settings: Application settings.
    """
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer()
            if settings.environment == "development"
            else structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, settings.log_level.upper(), logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


async def run_bot_async() -> None:
    """Run the bot asynchronously with proper signal handling."""
    settings = get_settings()
    setup_logging(settings)

    log = logger.bind(component="cli")
    log.info(
        "sentinel_bot_starting",
        environment=settings.environment,
        log_level=settings.log_level,
    )

    bot = SentinelBot(settings)

    def signal_handler(sig: int) -> None:
        """Handle shutdown signals.

        Args:
            sig: Signal number.
        """
        log.info("shutdown_signal_received", signal=signal.Signals(sig).name)
        asyncio.create_task(bot.close())

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, signal_handler, sig)

    try:
        log.info("connecting_to_discord")
        await bot.start(settings.discord_token)

    except Exception as e:
        log.error("bot_error", error=str(e), exc_info=True)
        raise
    finally:
        if not bot.is_closed():
            await bot.close()

        log.info("bot_stopped")


async def clear_global_commands(settings: Settings) -> int:
    """Remove every globally registered slash command of the application.

    Syncs an empty command tree globally, which overwrites the registered set.

    Args:
        settings: Application settings.

    Returns:
        Number of global commands left registered (0 on success).
    """
    log = logger.bind(component="cli")
    client = discord.Client(
        intents=discord.Intents.none(),
        application_id=settings.discord_client_id or None,
    )
    tree = app_commands.CommandTree(client)

    async with client:
        await client.login(settings.discord_token)
        log.info("clearing_global_commands", application_id=client.application_id)
        remaining = await tree.sync()

    log.info("global_commands_cleared", remaining=len(remaining))
    return len(remaining)


def main() -> NoReturn:
    """Main entry point for the CLI.

    This function is called when running `sentinel-bot` from the command line.
    """
    try:
        asyncio.run(run_bot_async())
        sys.exit(0)

    except KeyboardInterrupt:
        logger.info("shutdown_complete")
        sys.exit(0)

    except Exception as e:
        logger.error("fatal_error", error=str(e), exc_info=True)
        sys.exit(1)


def clear_commands_main() -> NoReturn:
    """Entry point for `sentinel-bot-clear-commands`."""
    settings = get_settings()
    setup_logging(settings)

    try:
        asyncio.run(clear_global_commands(settings))
        sys.exit(0)

    except Exception as e:
        logger.error("clear_commands_failed", error=str(e), exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()

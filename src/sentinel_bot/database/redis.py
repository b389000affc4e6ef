"""Redis client for Sentinel Bot.

This module provides a Redis client for per-user command cooldowns.
"""

import redis.asyncio as redis

from sentinel_bot.config import Settings


class RedisClient:
    """Async Redis client for command cooldowns.

    Attributes:
        settings: Application settings containing Redis configuration.
        client: Async Redis client instance.
    """

    def __init__(self, settings: Settings) -> None:
        """Initialize Redis client.

        Args:
            settings: Application settings.
        """
        self.settings = settings
        self.client: redis.Redis | None = None

    async def connect(self) -> None:
        """Establish connection to Redis.

        Creates a connection pool with configured max connections.

        Raises:
            redis.RedisError: If connection fails.
        """
        self.client = redis.from_url(
            str(self.settings.redis_url),
            max_connections=self.settings.redis_max_connections,
            decode_responses=False,
        )
        await self.client.ping()

    async def disconnect(self) -> None:
        """Close Redis connection gracefully."""
        if self.client is not None:
            await self.client.aclose()
            self.client = None

    # Cooldowns

    @staticmethod
    def _cooldown_key(user_id: int, command: str) -> bytes:
        return f"cooldown:{command}:{user_id}".encode()

    async def acquire_cooldown(
        self, user_id: int, command: str, seconds: int
    ) -> float | None:
        """Start a cooldown for a user on a command unless one is running.

        Uses SET NX EX so the check and the claim are a single atomic step.

        Args:
            user_id: Discord user ID.
            command: Command name.
            seconds: Cooldown length in seconds.

        Returns:
            None if the cooldown was started (the command may run), otherwise
            the seconds remaining on the running cooldown.

        Raises:
            redis.RedisError: If Redis operation fails.
        """
        if self.client is None:
            raise RuntimeError("Redis not connected. Call connect() first.")

        key = self._cooldown_key(user_id, command)
        was_set = await self.client.set(key, b"1", nx=True, ex=seconds)
        if was_set:
            return None

        remaining_ms = await self.client.pttl(key)
        # Key expired between SET and PTTL
        if remaining_ms is None or remaining_ms < 0:
            return 0.0
        return remaining_ms / 1000

    async def clear_cooldown(self, user_id: int, command: str) -> None:
        """Clear a user's cooldown on a command.

        Args:
            user_id: Discord user ID.
            command: Command name.

        Raises:
            redis.RedisError: If Redis operation fails.
        """
        if self.client is None:
            raise RuntimeError("Redis not connected. Call connect() first.")

        await self.client.delete(self._cooldown_key(user_id, command))

    # Health Check

    async def health_check(self) -> bool:
        """Check Redis connectivity.

        Returns:
            True if Redis is accessible, False otherwise.
        """
        try:
            if self.client is None:
                return False
            return bool(await self.client.ping())
        except Exception:
            return False

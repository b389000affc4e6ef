"""PostgreSQL database client for Sentinel Bot.

This module provides an async PostgreSQL client with connection pooling,
query execution, and the guild policy, case ledger, and warning operations
the moderation core depends on.
"""

import contextlib
from collections.abc import AsyncIterator
from importlib import resources
from typing import Any

import psycopg
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

from sentinel_bot.config import Settings
from sentinel_bot.database.models import (
    GuildConfig,
    ModerationCase,
    UserRecord,
    WarningRecord,
)


class PostgresClient:
    """Async PostgreSQL client with connection pooling.

    This client manages a connection pool and provides high-level methods
    for database operations. One instance is created at startup and passed to
    every component that needs storage.

    Attributes:
        settings: Application settings containing database configuration.
        pool: Async connection pool for PostgreSQL.
    """

    def __init__(self, settings: Settings) -> None:
        """Initialize PostgreSQL client.

        Args:
            settings: Application settings.
        """
        self.settings = settings
        self.pool: AsyncConnectionPool | None = None

    async def connect(self) -> None:
        """Establish connection pool to PostgreSQL.

        Creates an async connection pool with configured min/max sizes.

        Raises:
            psycopg.Error: If connection fails.
        """
        self.pool = AsyncConnectionPool(
            conninfo=str(self.settings.postgres_dsn),
            min_size=self.settings.postgres_min_pool_size,
            max_size=self.settings.postgres_max_pool_size,
            kwargs={
                "row_factory": dict_row,
                "autocommit": False,
            },
            open=False,
        )
        await self.pool.open()
        await self.pool.wait()

    async def disconnect(self) -> None:
        """Close connection pool gracefully.

        Waits for all connections to be returned before closing.
        """
        if self.pool is not None:
            await self.pool.close()
            self.pool = None

    @contextlib.asynccontextmanager
    async def transaction(self) -> AsyncIterator[psycopg.AsyncConnection]:
        """Context manager for database transactions.

        Yields:
            Database connection with an open transaction. The transaction
            commits when the block exits normally and rolls back otherwise.

        Raises:
            RuntimeError: If the client is not connected.
            psycopg.Error: If transaction fails.
        """
        if self.pool is None:
            raise RuntimeError("Database not connected. Call connect() first.")

        async with self.pool.connection() as conn, conn.transaction():
            yield conn

    async def execute(
        self, query: str, params: tuple[Any, ...] | dict[str, Any] | None = None
    ) -> list[dict[str, Any]]:
        """Execute query and return results.

        Args:
            query: SQL query string.
            params: Query parameters (optional).

        Returns:
            List of result rows as dictionaries.

        Raises:
            psycopg.Error: If query execution fails.
        """
        if self.pool is None:
            raise RuntimeError("Database not connected. Call connect() first.")

        async with self.pool.connection() as conn, conn.cursor() as cur:
            await cur.execute(query, params)
            if cur.description is None:
                return []
            return list(await cur.fetchall())

    async def execute_one(
        self, query: str, params: tuple[Any, ...] | dict[str, Any] | None = None
    ) -> dict[str, Any] | None:
        """Execute query and return single result.

        Args:
            query: SQL query with %s or %(name)s placeholders.
            params: Query parameters as tuple or dict.

        Returns:
            First result row as a dictionary, or None if no row was returned.
        """
        if self.pool is None:
            raise RuntimeError("Database not connected. Call connect() first.")

        async with self.pool.connection() as conn, conn.cursor() as cur:
            await cur.execute(query, params)
            if cur.description is None:
                return None
            return await cur.fetchone()

    async def apply_schema(self) -> None:
        """Create any missing tables and indexes.

        Raises:
            psycopg.Error: If a DDL statement fails.
        """
        ddl = resources.files("sentinel_bot.database").joinpath("schema.sql").read_text("utf-8")
        async with self.transaction() as conn:
            await conn.execute(ddl)

    # Guild Operations

    async def ensure_guild(self, guild_id: int) -> bool:
        """Create the guild's policy row if it does not exist yet.

        Args:
            guild_id: Discord guild ID.

        Returns:
            True if a row was created, False if it already existed.

        Raises:
            psycopg.Error: If insertion fails.
        """
        query = """
            INSERT INTO guilds (guild_id) VALUES (%s)
            ON CONFLICT (guild_id) DO NOTHING
            RETURNING guild_id
        """
        result = await self.execute_one(query, (guild_id,))
        return result is not None

    async def get_guild_config(self, guild_id: int) -> GuildConfig:
        """Get a guild's moderation policy, creating it on first contact.

        Args:
            guild_id: Discord guild ID.

        Returns:
            The guild's policy. A freshly created policy has no roles or
            log channel configured.

        Raises:
            psycopg.Error: If query fails.
        """
        query = "SELECT * FROM guilds WHERE guild_id = %s"
        result = await self.execute_one(query, (guild_id,))
        if result is None:
            await self.ensure_guild(guild_id)
            result = await self.execute_one(query, (guild_id,))
        assert result is not None
        return GuildConfig.model_validate(result)

    async def update_guild_config(self, config: GuildConfig) -> GuildConfig:
        """Persist a guild's moderation policy.

        Args:
            config: Policy to store. None fields clear the stored value.

        Returns:
            The stored policy.

        Raises:
            psycopg.Error: If update fails.
        """
        query = """
            INSERT INTO guilds (
                guild_id, mod_role_id, admin_role_id, mod_log_channel_id
            ) VALUES (
                %(guild_id)s, %(mod_role_id)s, %(admin_role_id)s, %(mod_log_channel_id)s
            )
            ON CONFLICT (guild_id) DO UPDATE SET
                mod_role_id = EXCLUDED.mod_role_id,
                admin_role_id = EXCLUDED.admin_role_id,
                mod_log_channel_id = EXCLUDED.mod_log_channel_id,
                updated_at = NOW()
            RETURNING *
        """
        result = await self.execute_one(
            query,
            config.model_dump(include={"guild_id", "mod_role_id", "admin_role_id", "mod_log_channel_id"}),
        )
        assert result is not None
        return GuildConfig.model_validate(result)

    # User Operations

    async def ensure_user(self, user_id: int, username: str) -> UserRecord | None:
        """Create a user record, or refresh the stored username if it changed.

        Args:
            user_id: Discord user ID.
            username: Current username.

        Returns:
            The written record, or None when the stored record was already
            up to date.

        Raises:
            psycopg.Error: If the upsert fails.
        """
        query = """
            INSERT INTO users (user_id, username) VALUES (%s, %s)
            ON CONFLICT (user_id) DO UPDATE SET
                username = EXCLUDED.username,
                updated_at = NOW()
            WHERE users.username IS DISTINCT FROM EXCLUDED.username
            RETURNING *
        """
        result = await self.execute_one(query, (user_id, username))
        return UserRecord.model_validate(result) if result else None

    # Moderation Case Operations

    async def get_max_case_number(self, guild_id: int) -> int:
        """Get the highest case number recorded for a guild.

        Args:
            guild_id: Discord guild ID.

        Returns:
            Highest case number, or 0 if the guild has no cases.

        Raises:
            psycopg.Error: If query fails.
        """
        query = """
            SELECT case_number FROM moderation_cases
            WHERE guild_id = %s
            ORDER BY case_number DESC
            LIMIT 1
        """
        result = await self.execute_one(query, (guild_id,))
        return int(result["case_number"]) if result else 0

    async def create_moderation_case(self, case: ModerationCase) -> ModerationCase:
        """Allocate the guild's next case number and persist the case.

        Allocation and insert share one transaction. The counter row is locked
        by the upsert, so concurrent actions in the same guild serialize, and a
        failed insert rolls the counter back so no number is ever skipped.

        Args:
            case: Case to create. Its case_number is ignored.

        Returns:
            Persisted case with case_number, id, and created_at populated.

        Raises:
            psycopg.Error: If allocation or creation fails.
        """
        allocate = """
            INSERT INTO guild_case_counters (guild_id, last_case_number)
            VALUES (
                %(guild_id)s,
                COALESCE(
                    (SELECT MAX(case_number) FROM moderation_cases WHERE guild_id = %(guild_id)s),
                    0
                ) + 1
            )
            ON CONFLICT (guild_id) DO UPDATE
            SET last_case_number = guild_case_counters.last_case_number + 1
            RETURNING last_case_number
        """
        insert = """
            INSERT INTO moderation_cases (
                guild_id, case_number, action_type, target_id, moderator_id,
                reason, duration_seconds, evidence, status
            ) VALUES (
                %(guild_id)s, %(case_number)s, %(action_type)s, %(target_id)s,
                %(moderator_id)s, %(reason)s, %(duration_seconds)s, %(evidence)s,
                %(status)s
            )
            RETURNING *
        """
        params = case.model_dump(exclude={"id", "case_number", "created_at"})

        async with self.transaction() as conn, conn.cursor() as cur:
            await cur.execute(
                "INSERT INTO guilds (guild_id) VALUES (%s) ON CONFLICT (guild_id) DO NOTHING",
                (case.guild_id,),
            )
            await cur.execute(allocate, {"guild_id": case.guild_id})
            counter = await cur.fetchone()
            assert counter is not None
            params["case_number"] = counter["last_case_number"]

            await cur.execute(insert, params)
            result = await cur.fetchone()

        assert result is not None
        return ModerationCase.model_validate(result)

    async def get_case(self, guild_id: int, case_number: int) -> ModerationCase | None:
        """Get a single case by number.

        Args:
            guild_id: Discord guild ID.
            case_number: Per-guild case number.

        Returns:
            The case if found, None otherwise.

        Raises:
            psycopg.Error: If query fails.
        """
        query = "SELECT * FROM moderation_cases WHERE guild_id = %s AND case_number = %s"
        result = await self.execute_one(query, (guild_id, case_number))
        return ModerationCase.model_validate(result) if result else None

    async def list_cases(
        self,
        guild_id: int,
        target_id: int | None = None,
        action_type: str | None = None,
        case_number: int | None = None,
        limit: int = 10,
    ) -> list[ModerationCase]:
        """Get a guild's cases matching the given filters.

        Args:
            guild_id: Discord guild ID.
            target_id: Only cases against this user.
            action_type: Only cases of this kind.
            case_number: Only this case number.
            limit: Maximum number of cases to retrieve.

        Returns:
            Matching cases, newest first.

        Raises:
            psycopg.Error: If query fails.
        """
        query = """
            SELECT * FROM moderation_cases
            WHERE guild_id = %(guild_id)s
            AND (%(target_id)s::bigint IS NULL OR target_id = %(target_id)s)
            AND (%(action_type)s::varchar IS NULL OR action_type = %(action_type)s)
            AND (%(case_number)s::integer IS NULL OR case_number = %(case_number)s)
            ORDER BY created_at DESC, case_number DESC
            LIMIT %(limit)s
        """
        results = await self.execute(
            query,
            {
                "guild_id": guild_id,
                "target_id": target_id,
                "action_type": action_type,
                "case_number": case_number,
                "limit": limit,
            },
        )
        return [ModerationCase.model_validate(r) for r in results]

    # Warning Operations

    async def create_warning(self, warning: WarningRecord) -> WarningRecord:
        """Create a new warning record.

        Args:
            warning: Warning to create.

        Returns:
            Created warning with database-generated fields populated.

        Raises:
            psycopg.Error: If creation fails.
        """
        query = """
            INSERT INTO warnings (
                guild_id, user_id, moderator_id, reason
            ) VALUES (
                %(guild_id)s, %(user_id)s, %(moderator_id)s, %(reason)s
            )
            RETURNING *
        """
        async with self.transaction() as conn, conn.cursor() as cur:
            await cur.execute(
                "INSERT INTO guilds (guild_id) VALUES (%s) ON CONFLICT (guild_id) DO NOTHING",
                (warning.guild_id,),
            )
            await cur.execute(query, warning.model_dump(exclude={"id", "created_at"}))
            result = await cur.fetchone()

        assert result is not None
        return WarningRecord.model_validate(result)

    async def list_warnings(self, guild_id: int, user_id: int) -> list[WarningRecord]:
        """Get all of a user's warnings in a guild.

        Args:
            guild_id: Discord guild ID.
            user_id: Discord user ID.

        Returns:
            Every matching warning, newest first.

        Raises:
            psycopg.Error: If query fails.
        """
        query = """
            SELECT * FROM warnings
            WHERE guild_id = %s AND user_id = %s
            ORDER BY created_at DESC, id DESC
        """
        results = await self.execute(query, (guild_id, user_id))
        return [WarningRecord.model_validate(r) for r in results]

    async def health_check(self) -> bool:
        """Check database connectivity.

        Returns:
            True if database is accessible, False otherwise.
        """
        try:
            result = await self.execute_one("SELECT 1 AS health")
            return result is not None and result.get("health") == 1
        except Exception:
            return False

"""
Directory Sync Database Connection Pool

Manages the asyncpg connection pool for the directory sync domain database.
Creates the ``dirsync`` schema from schema.sql on first start.

Schema Evolution:
-----------------
When adding/removing/renaming tables in schema.sql:
1. Update the schema.sql file with new DDL
2. Update DomainDBPool.EXPECTED_TABLES with the new table names
3. For existing deployments, migrate manually or drop/recreate the schema:
   DROP SCHEMA dirsync CASCADE;
   (then restart app to auto-create)
"""

from pathlib import Path
from typing import Optional

import asyncpg
from loguru import logger

SCHEMA_NAME = "dirsync"
SCHEMA_PATH = Path(__file__).parent / "schema.sql"


class DomainDBPool:
    """Directory sync database connection pool manager."""

    # Update this set when schema.sql changes
    EXPECTED_TABLES = {
        "integrations",
        "employees",
    }

    def __init__(self, connection_string: str, min_size: int = 2, max_size: int = 10):
        """
        Initialize domain DB pool.

        Args:
            connection_string: PostgreSQL connection string
            min_size: Minimum pool connections
            max_size: Maximum pool connections (should cover worker concurrency)
        """
        self.connection_string = connection_string
        self.min_size = min_size
        self.max_size = max_size
        self.pool: Optional[asyncpg.Pool] = None
        self._pool_initialized = False

    async def initialize(self) -> None:
        """
        Initialize connection pool and run migrations.

        Raises:
            Exception: If the pool cannot be created or the schema is inconsistent
        """
        if self._pool_initialized and self.pool is not None:
            logger.debug("Domain DB pool already initialized")
            return

        try:
            logger.info("Initializing directory sync database pool")

            self.pool = await asyncpg.create_pool(
                self.connection_string,
                min_size=self.min_size,
                max_size=self.max_size,
                command_timeout=60,
                timeout=15,
                max_cached_statement_lifetime=0,  # Disable prepared statement caching (safer for DDL)
            )

            async with self.pool.acquire() as conn:
                result = await conn.fetchval("SELECT 1")
                if result != 1:
                    raise RuntimeError("Pool validation query failed")

            logger.info("Domain DB pool validated")

            await self._run_migrations()

            self._pool_initialized = True
            logger.success("Directory sync database initialized successfully")

        except Exception as e:
            logger.bind(error_type=type(e).__name__).error(f"Failed to initialize domain DB pool: {e}")
            if self.pool:
                await self.pool.close()
                self.pool = None
            raise

    async def _existing_tables(self, conn) -> set:
        rows = await conn.fetch(
            """
            SELECT table_name
            FROM information_schema.tables
            WHERE table_schema = $1
            ORDER BY table_name
            """,
            SCHEMA_NAME,
        )
        return {row["table_name"] for row in rows}

    async def _run_migrations(self) -> None:
        """
        Execute schema.sql unless the schema and all expected tables already exist.

        Raises:
            RuntimeError: If the schema holds a different set of tables than expected
            FileNotFoundError: If schema.sql is missing from the package
        """
        async with self.pool.acquire() as conn:
            schema_exists = await conn.fetchval(
                "SELECT EXISTS (SELECT 1 FROM information_schema.schemata WHERE schema_name = $1)",
                SCHEMA_NAME,
            )

            if schema_exists:
                existing_tables = await self._existing_tables(conn)
                if existing_tables == self.EXPECTED_TABLES:
                    logger.info(f"Schema '{SCHEMA_NAME}' and all {len(existing_tables)} expected tables exist")
                    return

                extra_tables = existing_tables - self.EXPECTED_TABLES
                if extra_tables:
                    logger.error(
                        f"Schema '{SCHEMA_NAME}' contains unexpected tables: {sorted(extra_tables)}. "
                        f"Update DomainDBPool.EXPECTED_TABLES or clean up the schema."
                    )
                    raise RuntimeError(f"Unexpected tables in schema: {sorted(extra_tables)}")

                logger.warning(
                    f"Schema '{SCHEMA_NAME}' is missing tables: "
                    f"{sorted(self.EXPECTED_TABLES - existing_tables)} - running migrations"
                )
            else:
                logger.info(f"Schema '{SCHEMA_NAME}' not found - running migrations")

            if not SCHEMA_PATH.exists():
                raise FileNotFoundError(f"schema.sql not found at {SCHEMA_PATH}")

            await conn.execute(SCHEMA_PATH.read_text())

            existing_tables = await self._existing_tables(conn)
            if existing_tables != self.EXPECTED_TABLES:
                raise RuntimeError(
                    f"Migration incomplete: missing {sorted(self.EXPECTED_TABLES - existing_tables)}, "
                    f"extra {sorted(existing_tables - self.EXPECTED_TABLES)}"
                )

            logger.success(f"All {len(self.EXPECTED_TABLES)} directory sync tables verified successfully")

    async def close(self) -> None:
        """Close the connection pool gracefully."""
        if self.pool:
            logger.info("Closing directory sync database pool")
            await self.pool.close()
            self.pool = None
            self._pool_initialized = False

    async def health_check(self) -> bool:
        """
        Check if database connection is healthy.

        Returns:
            True if connection is healthy, False otherwise
        """
        if not self.pool:
            return False
        try:
            async with self.pool.acquire() as conn:
                result = await conn.fetchval("SELECT 1")
                return result == 1
        except Exception as e:
            logger.error(f"Domain DB health check failed: {e}")
            return False

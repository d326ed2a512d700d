"""Key-value store backends for the idempotency ledger.

This module defines the KeyValueStore protocol the ledger is written
against, and two implementations:

- InMemoryKeyValueStore: dict guarded by an asyncio lock, for local
  development and tests
- PostgresKeyValueStore: asyncpg connection pool over a single
  ``kv_store`` table

Neither backend offers compare-and-set. Writes are plain upserts, so the
last writer wins at the storage layer.
"""

import asyncio
import logging
from typing import Any, Dict, Optional, Protocol, Tuple, runtime_checkable

import asyncpg


logger = logging.getLogger(__name__)


CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS kv_store (
    namespace TEXT NOT NULL,
    key TEXT NOT NULL,
    value TEXT NOT NULL,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
    PRIMARY KEY (namespace, key)
)
"""


class StoreError(Exception):
    """Raised when a store operation fails.

    Attributes:
        message: Human-readable error description.
        original_error: The underlying exception, if any.
    """

    def __init__(
        self,
        message: str,
        original_error: Optional[Exception] = None,
    ):
        self.message = message
        self.original_error = original_error
        super().__init__(message)


@runtime_checkable
class KeyValueStore(Protocol):
    """Protocol for namespaced key-value persistence."""

    async def get(self, namespace: str, key: str) -> Optional[str]:
        """Return the stored value, or None if the key is absent."""
        ...

    async def set(self, namespace: str, key: str, value: str) -> None:
        """Store a value, replacing any existing one."""
        ...


class InMemoryKeyValueStore:
    """In-process key-value store for local development and tests."""

    def __init__(self) -> None:
        self._data: Dict[Tuple[str, str], str] = {}
        self._lock = asyncio.Lock()

    async def get(self, namespace: str, key: str) -> Optional[str]:
        async with self._lock:
            return self._data.get((namespace, key))

    async def set(self, namespace: str, key: str, value: str) -> None:
        async with self._lock:
            self._data[(namespace, key)] = value

    def __len__(self) -> int:
        return len(self._data)


class PostgresKeyValueStore:
    """PostgreSQL implementation of the KeyValueStore protocol.

    The table is created on connect if it does not exist.

    Attributes:
        connection_string: PostgreSQL connection URL.
        min_pool_size: Minimum connections in pool.
        max_pool_size: Maximum connections in pool.

    Example:
        >>> async with PostgresKeyValueStore("postgresql://...") as store:
        ...     await store.set("changelog-events", "k", "{}")
    """

    def __init__(
        self,
        connection_string: str,
        min_pool_size: int = 1,
        max_pool_size: int = 5,
    ):
        self.connection_string = connection_string
        self.min_pool_size = min_pool_size
        self.max_pool_size = max_pool_size
        self._pool: Optional[asyncpg.Pool] = None

    @property
    def pool(self) -> asyncpg.Pool:
        """Get the connection pool, raising if not connected.

        Raises:
            StoreError: If the pool is not initialized.
        """
        if self._pool is None:
            raise StoreError("Database pool not initialized. Call connect() first.")
        return self._pool

    async def connect(self) -> None:
        """Initialize the connection pool and ensure the table exists.

        Raises:
            StoreError: If connection fails.
        """
        if self._pool is not None:
            logger.warning("Connection pool already initialized")
            return

        try:
            logger.info(
                "Connecting to PostgreSQL",
                extra={
                    "min_pool_size": self.min_pool_size,
                    "max_pool_size": self.max_pool_size,
                },
            )
            self._pool = await asyncpg.create_pool(
                self.connection_string,
                min_size=self.min_pool_size,
                max_size=self.max_pool_size,
            )
            async with self._pool.acquire() as conn:
                await conn.execute(CREATE_TABLE_SQL)
            logger.info("PostgreSQL connection pool established")
        except Exception as e:
            logger.error(
                "Failed to connect to PostgreSQL",
                extra={"error": str(e)},
            )
            raise StoreError(
                f"Failed to connect to PostgreSQL: {e}",
                original_error=e,
            ) from e

    async def disconnect(self) -> None:
        """Close the connection pool."""
        if self._pool is not None:
            logger.info("Closing PostgreSQL connection pool")
            await self._pool.close()
            self._pool = None

    async def __aenter__(self) -> "PostgresKeyValueStore":
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.disconnect()

    async def get(self, namespace: str, key: str) -> Optional[str]:
        try:
            async with self.pool.acquire() as conn:
                return await conn.fetchval(
                    "SELECT value FROM kv_store WHERE namespace = $1 AND key = $2",
                    namespace,
                    key,
                )
        except StoreError:
            raise
        except Exception as e:
            raise StoreError(f"Failed to read key {key}: {e}", original_error=e) from e

    async def set(self, namespace: str, key: str, value: str) -> None:
        try:
            async with self.pool.acquire() as conn:
                await conn.execute(
                    """
                    INSERT INTO kv_store (namespace, key, value, updated_at)
                    VALUES ($1, $2, $3, now())
                    ON CONFLICT (namespace, key)
                    DO UPDATE SET value = EXCLUDED.value, updated_at = now()
                    """,
                    namespace,
                    key,
                    value,
                )
        except StoreError:
            raise
        except Exception as e:
            raise StoreError(f"Failed to write key {key}: {e}", original_error=e) from e

"""
# Database Management Module

This module provides the **MongoDB infrastructure** for the Club Admin API through the
`DatabaseManager` class, built on the **Motor** async driver.

## Architecture Overview

```
┌──────────────┐      ┌───────────────────────────────┐
│ Routes /     │─────▶│        DatabaseManager        │
│ Services     │      │          (Singleton)          │
└──────────────┘      └──────────────┬────────────────┘
                                     │
                      ┌──────────────▼──────────────┐
                      │  Motor connection pool      │
                      └──────────────┬──────────────┘
                                     ▼
                 admins · clubs · users · events · logs
```

## Key Features

### 1. Connection Lifecycle
- **Exponential backoff**: up to 3 connection attempts (1s, 2s between them).
- **Transaction detection**: replica sets and mongos routers support multi-document
  transactions; standalone servers do not. The result is cached in `transactions_supported`.
- **Graceful shutdown** through `disconnect()`.

### 2. Multi-Collection Writes
`run_transaction()` executes a callback inside a MongoDB transaction when the deployment supports
it, and as plain sequential writes otherwise. Callbacks receive the session (or `None`) and must
pass it to every operation so the writes join the transaction.

### 3. Index Management
`create_indexes()` delegates to `club_admin_api.database.indexes`, which holds the declarative
index list for all collections.

## Module Attributes

Attributes:
    logger (Logger): General application logger.
    db_logger (Logger): Database operations logger (`[DATABASE]`).
    perf_logger (Logger): Timing logger (`[DB_PERFORMANCE]`).
    health_logger (Logger): Health check logger (`[DB_HEALTH]`).
    db_manager (DatabaseManager): Global singleton, connected in the `main.py` lifespan.
"""

import asyncio
import time
from typing import Any, Awaitable, Callable, Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorClientSession, AsyncIOMotorCollection, AsyncIOMotorDatabase
from pymongo.errors import ConnectionFailure, PyMongoError, ServerSelectionTimeoutError

from club_admin_api.config import settings
from club_admin_api.managers.logging_manager import get_logger

logger = get_logger()
db_logger = get_logger(prefix="[DATABASE]")
perf_logger = get_logger(prefix="[DB_PERFORMANCE]")
health_logger = get_logger(prefix="[DB_HEALTH]")

MAX_POOL_SIZE = 50
MIN_POOL_SIZE = 5


class DatabaseManager:
    """
    Manages the MongoDB connection, collection access and transactional helpers.

    **Lifecycle:**
    1. **Instantiation**: `client` and `database` are `None`.
    2. **Connection**: `connect()` opens the pool and detects transaction support.
    3. **Operations**: `get_collection()` hands out Motor collections.
    4. **Shutdown**: `disconnect()` closes the pool.

    Attributes:
        client (`Optional[AsyncIOMotorClient]`): Motor client, `None` until connected.
        database (`Optional[AsyncIOMotorDatabase]`): Selected database, `None` until connected.
        transactions_supported (`Optional[bool]`): Whether multi-document transactions are
            available. Detected during `connect()`.

    Note:
        Use the `db_manager` singleton rather than creating new instances, otherwise each
        instance opens its own connection pool.
    """

    def __init__(self):
        self.client: Optional[AsyncIOMotorClient] = None
        self.database: Optional[AsyncIOMotorDatabase] = None
        self._connection_retries = 3
        # Set after connect(); True on replica sets and mongos routers
        self.transactions_supported: Optional[bool] = None

    def _build_connection_string(self) -> str:
        if settings.MONGODB_USERNAME and settings.MONGODB_PASSWORD:
            password = settings.MONGODB_PASSWORD.get_secret_value()
            db_logger.debug("Using authenticated connection to MongoDB")
            return f"mongodb://{settings.MONGODB_USERNAME}:{password}@{settings.MONGODB_URL.replace('mongodb://', '')}"
        db_logger.debug("Using unauthenticated connection to MongoDB")
        return settings.MONGODB_URL

    async def connect(self):
        """
        Establish the MongoDB connection with exponential backoff.

        Steps: build the connection string (injecting credentials when configured), create the
        Motor client, ping the server, then run `hello` to decide whether transactions are
        available.

        Raises:
            `ServerSelectionTimeoutError`: MongoDB unreachable after all attempts.
            `ConnectionFailure`: Authentication failed or connection refused.
        """
        start_time = time.time()
        target = settings.MONGODB_URL.split("@")[-1]

        for attempt in range(1, self._connection_retries + 1):
            attempt_start = time.time()
            try:
                db_logger.info("Connecting to %s/%s (attempt %d of %d)", target, settings.MONGODB_DATABASE, attempt, self._connection_retries)

                self.client = AsyncIOMotorClient(
                    self._build_connection_string(),
                    serverSelectionTimeoutMS=settings.MONGODB_SERVER_SELECTION_TIMEOUT,
                    connectTimeoutMS=settings.MONGODB_CONNECTION_TIMEOUT,
                    maxPoolSize=MAX_POOL_SIZE,
                    minPoolSize=MIN_POOL_SIZE,
                    tz_aware=True,
                )
                self.database = self.client[settings.MONGODB_DATABASE]

                await self.client.admin.command("ping")
                self.transactions_supported = await self._detect_transactions()

                perf_logger.info("MongoDB ready after %.3fs", time.time() - start_time)
                db_logger.info(
                    "Connected to %s (transactions %s)",
                    settings.MONGODB_DATABASE,
                    "enabled" if self.transactions_supported else "unavailable, sequential writes",
                )
                await self._log_connection_pool_status()
                return

            except (ServerSelectionTimeoutError, ConnectionFailure) as e:
                perf_logger.warning("Attempt %d gave up after %.3fs", attempt, time.time() - attempt_start)
                db_logger.warning("MongoDB unreachable on attempt %d: %s", attempt, e)
                if attempt == self._connection_retries:
                    db_logger.error("Giving up on MongoDB after %.3fs", time.time() - start_time)
                    raise

                delay = 2 ** (attempt - 1)
                db_logger.info("Retrying in %ds", delay)
                await asyncio.sleep(delay)

    async def _detect_transactions(self) -> bool:
        """Replica set members and mongos routers accept multi-document transactions."""
        try:
            hello = await self.client.admin.command({"hello": 1})
        except PyMongoError as e:
            db_logger.warning("Transaction support unknown, falling back to sequential writes: %s", e)
            return False
        return bool(hello.get("setName") or hello.get("msg") == "isdbgrid")

    async def _log_connection_pool_status(self):
        """Log server version and pool configuration."""
        try:
            if self.client:
                server_info = await self.client.server_info()
                health_logger.info(
                    "MongoDB server version %s, pool %d-%d",
                    server_info.get("version", "unknown"),
                    MIN_POOL_SIZE,
                    MAX_POOL_SIZE,
                )
        except Exception as e:
            health_logger.warning("Failed to log connection pool status: %s", e)

    async def disconnect(self):
        """Close the Motor client and release all pooled connections."""
        start_time = time.time()
        if not self.client:
            db_logger.warning("Disconnect called but no active MongoDB connection found")
            return

        self.client.close()
        self.client = None
        self.database = None
        perf_logger.info("MongoDB disconnection completed in %.3fs", time.time() - start_time)
        db_logger.info("Successfully disconnected from MongoDB")

    async def health_check(self) -> bool:
        """
        Ping MongoDB and report whether it answered.

        Returns:
            bool: `True` if the ping succeeded, `False` otherwise (never raises).
        """
        if not self.client:
            health_logger.warning("Health check requested without an active client")
            return False
        start_time = time.time()
        try:
            await self.client.admin.command("ping")
            health_logger.debug("Database ping response time: %.3fs", time.time() - start_time)
            return True
        except Exception as e:
            perf_logger.warning("Database health check failed after %.3fs", time.time() - start_time)
            health_logger.error("Database health check failed: %s", e)
            return False

    def get_collection(self, collection_name: str) -> AsyncIOMotorCollection:
        """
        Retrieve a collection from the connected database.

        Args:
            collection_name (`str`): e.g. `"clubs"`, `"logs"`.

        Returns:
            `AsyncIOMotorCollection`: Motor collection handle.

        Raises:
            `ConnectionError`: If `connect()` has not been called.
        """
        if self.database is None:
            db_logger.error("Attempted to get collection '%s' without database connection", collection_name)
            raise ConnectionError("Database not connected. Call connect() first.")
        return self.database[collection_name]

    async def run_transaction(
        self, callback: Callable[[Optional[AsyncIOMotorClientSession]], Awaitable[Any]]
    ) -> Any:
        """
        Run dependent writes atomically when the deployment allows it.

        With transaction support the callback runs inside `session.start_transaction()` and is
        committed or aborted as a unit. Without it the callback runs with `session=None`; in that
        mode callers must keep each step idempotent so a retry after a partial failure converges.

        Args:
            callback: Coroutine function taking the session (or `None`).

        Returns:
            Whatever the callback returns.
        """
        if not self.transactions_supported or self.client is None:
            return await callback(None)

        async with await self.client.start_session() as session:
            async with session.start_transaction():
                return await callback(session)

    async def create_indexes(self):
        """Create every index declared in `club_admin_api.database.indexes`."""
        from club_admin_api.database.indexes import create_club_admin_indexes

        start_time = time.time()
        db_logger.info("Starting database index creation process")
        await create_club_admin_indexes()
        perf_logger.info("Database index creation completed in %.3fs", time.time() - start_time)


# Global database manager instance
db_manager = DatabaseManager()

"""
# Database Management Module

MongoDB infrastructure for the Club Sphere API, built on the **Motor** async driver.

## Lifecycle

The manager is constructed explicitly from `Settings` and owned by the FastAPI
lifespan (see `club_sphere.main`):

1. **Instantiation**: `DatabaseManager(settings)`, no I/O.
2. **Connection** (startup): `connect()` pings the server with exponential backoff.
3. **Indexes** (startup): `create_indexes()` ensures the uniqueness constraints the
   checkout and registration flows rely on.
4. **Operations**: handlers borrow collections through `get_collection()`.
5. **Disconnection** (shutdown): `disconnect()` closes the pool.

```python
manager = DatabaseManager(settings)
await manager.connect()
await manager.create_indexes()
clubs = manager.get_collection("clubs")
await manager.disconnect()
```

## Collections

| Name | Contents |
|------|----------|
| `users` | one document per email, `role` in {member, admin} |
| `clubs` | club profile, `managerEmail`, `status` |
| `memberships` | user ↔ club link created by a paid checkout |
| `events` | club events, `clubId` stored as text |
| `eventRegistrations` | user ↔ event link, soft-cancelled |
| `payments` | record of each confirmed checkout |
"""

import asyncio
import time
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection, AsyncIOMotorDatabase
from pymongo.errors import ConnectionFailure, PyMongoError, ServerSelectionTimeoutError

from club_sphere.config import Settings
from club_sphere.database.indexes import COLLECTION_INDEXES
from club_sphere.managers.logging_manager import get_logger

db_logger = get_logger(prefix="[DATABASE]")
perf_logger = get_logger(prefix="[DB_PERFORMANCE]")
health_logger = get_logger(prefix="[DB_HEALTH]")

USERS = "users"
CLUBS = "clubs"
MEMBERSHIPS = "memberships"
EVENTS = "events"
EVENT_REGISTRATIONS = "eventRegistrations"
PAYMENTS = "payments"


class DatabaseManager:
    """
    Owns the Motor client and hands out collections.

    Attributes:
        client (`Optional[AsyncIOMotorClient]`): `None` until `connect()` succeeds.
        database (`Optional[AsyncIOMotorDatabase]`): the selected database.

    A pre-built database object (for example an in-memory double in tests) can be
    passed as `database`; `connect()` and `disconnect()` then skip the network.
    """

    def __init__(self, settings: Settings, database: Optional[AsyncIOMotorDatabase] = None):
        self.settings = settings
        self.client: Optional[AsyncIOMotorClient] = None
        self.database: Optional[AsyncIOMotorDatabase] = database
        self._connection_retries = 3

    async def connect(self):
        """
        Establish the connection with exponential backoff (1s, 2s between attempts).

        Raises:
            `ServerSelectionTimeoutError` / `ConnectionFailure`: after the last attempt.
        """
        if self.database is not None and self.client is None:
            db_logger.info(f"Using injected database '{getattr(self.database, 'name', '?')}'")
            return

        start_time = time.time()
        db_logger.info("Starting MongoDB connection process")

        for attempt in range(self._connection_retries):
            attempt_start = time.time()
            try:
                db_logger.info(f"Connection attempt {attempt + 1}/{self._connection_retries} to MongoDB")
                db_logger.info(
                    f"MongoDB connection config - Database: {self.settings.MONGODB_DATABASE}, "
                    f"ServerTimeout: {self.settings.MONGODB_SERVER_SELECTION_TIMEOUT}ms, "
                    f"ConnTimeout: {self.settings.MONGODB_CONNECTION_TIMEOUT}ms"
                )

                self.client = AsyncIOMotorClient(
                    self.settings.MONGODB_URL,
                    serverSelectionTimeoutMS=self.settings.MONGODB_SERVER_SELECTION_TIMEOUT,
                    connectTimeoutMS=self.settings.MONGODB_CONNECTION_TIMEOUT,
                    maxPoolSize=50,
                    minPoolSize=5,
                )
                self.database = self.client[self.settings.MONGODB_DATABASE]

                ping_start = time.time()
                await self.client.admin.command("ping")
                ping_duration = time.time() - ping_start

                total_duration = time.time() - start_time
                perf_logger.info(
                    f"MongoDB connection established successfully in {total_duration:.3f}s (ping: {ping_duration:.3f}s)"
                )
                db_logger.info(f"Successfully connected to MongoDB database: {self.settings.MONGODB_DATABASE}")
                return

            except (ServerSelectionTimeoutError, ConnectionFailure) as e:
                attempt_duration = time.time() - attempt_start
                perf_logger.warning(f"Connection attempt {attempt + 1} failed after {attempt_duration:.3f}s")
                db_logger.warning(
                    f"Failed to connect to MongoDB (attempt {attempt + 1}/{self._connection_retries}): {e}"
                )
                if attempt == self._connection_retries - 1:
                    db_logger.error(f"All connection attempts failed after {time.time() - start_time:.3f}s")
                    raise

                backoff_time = 2**attempt
                db_logger.info(f"Waiting {backoff_time:.1f}s before retry (exponential backoff)")
                await asyncio.sleep(backoff_time)

    async def disconnect(self):
        """Close the pool. Safe to call when never connected."""
        start_time = time.time()
        if self.client is not None:
            self.client.close()
            perf_logger.info(f"MongoDB disconnection completed in {time.time() - start_time:.3f}s")
            db_logger.info("Successfully disconnected from MongoDB")
        else:
            db_logger.debug("Disconnect called without an owned MongoDB client")

    async def health_check(self) -> bool:
        if self.database is None:
            return False
        try:
            await self.database.command("ping")
            return True
        except PyMongoError as e:
            health_logger.warning(f"Database health check failed: {e}")
            return False

    def get_collection(self, collection_name: str) -> AsyncIOMotorCollection:
        """
        Return a collection handle.

        Raises:
            ConnectionError: if called before `connect()`.
        """
        if self.database is None:
            db_logger.error(f"Attempted to get collection '{collection_name}' without database connection")
            raise ConnectionError("Database not connected. Call connect() first.")
        return self.database[collection_name]

    async def create_indexes(self):
        """
        Ensure every index in `COLLECTION_INDEXES`.

        Failures on individual indexes are logged and skipped so a single conflicting
        legacy index does not prevent startup.
        """
        start_time = time.time()
        db_logger.info("Starting database index creation process")

        for collection_name, specs in COLLECTION_INDEXES.items():
            collection = self.get_collection(collection_name)
            for keys, options in specs:
                await self._create_index_if_not_exists(collection, keys, options)

        perf_logger.info(f"Database index creation completed in {time.time() - start_time:.3f}s")

    async def _create_index_if_not_exists(self, collection: AsyncIOMotorCollection, field_spec, options):
        start_time = time.time()
        try:
            await collection.create_index(field_spec, **options)
            perf_logger.debug(f"Created/ensured index '{field_spec}' in {time.time() - start_time:.3f}s")
        except PyMongoError as e:
            perf_logger.warning(f"Failed to create/ensure index '{field_spec}' after {time.time() - start_time:.3f}s")
            db_logger.warning(f"Could not create/ensure index '{field_spec}': {e}")

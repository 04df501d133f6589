"""MongoDB connection for the artist document mirror."""
import logging
from typing import Optional

from pymongo import ASCENDING, DESCENDING, TEXT, AsyncMongoClient
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.monitoring import ServerListener

from harmony.config import Settings

logger = logging.getLogger(__name__)

ARTISTS_COLLECTION = "ai_artists"
GENERATION_LOGS_COLLECTION = "ai_generation_logs"


class _ServerLogger(ServerListener):
    """Logs server lifecycle events reported by the driver."""

    def opened(self, event):
        logger.info(f"MongoDB server {event.server_address} opened")

    def description_changed(self, event):
        previous = event.previous_description.server_type_name
        new = event.new_description.server_type_name
        if previous != new:
            logger.info(f"MongoDB server {event.server_address} changed from {previous} to {new}")

    def closed(self, event):
        logger.warning(f"MongoDB server {event.server_address} closed")


async def ensure_indexes(db: AsyncDatabase) -> None:
    artists = db[ARTISTS_COLLECTION]
    await artists.create_index([("artistId", ASCENDING)], unique=True)
    await artists.create_index([("userId", ASCENDING)])
    await artists.create_index([("performanceMetrics.engagementRate", DESCENDING)])
    await artists.create_index(
        [("name", TEXT), ("persona.backstory", TEXT), ("musicStyle.primaryGenres", TEXT)],
        name="artist_text_search",
    )

    logs = db[GENERATION_LOGS_COLLECTION]
    await logs.create_index([("generationId", ASCENDING)], unique=True)
    await logs.create_index([("userId", ASCENDING), ("createdAt", DESCENDING)])


class MongoConnection:
    """Owns the single AsyncMongoClient used by the mirror."""

    def __init__(self):
        self.client: Optional[AsyncMongoClient] = None
        self.db: Optional[AsyncDatabase] = None
        self.is_connected = False

    async def connect(self, settings: Settings) -> AsyncDatabase:
        self.client = AsyncMongoClient(
            settings.mongodb_url,
            maxPoolSize=settings.mongodb_max_pool_size,
            serverSelectionTimeoutMS=settings.mongodb_server_selection_timeout_ms,
            socketTimeoutMS=settings.mongodb_socket_timeout_ms,
            retryWrites=True,
            w="majority",
            tz_aware=True,
            event_listeners=[_ServerLogger()],
        )
        try:
            await self.client.admin.command("ping")
            self.db = self.client[settings.mongodb_db]
            await ensure_indexes(self.db)
        except Exception as e:
            logger.error(f"Failed to connect to MongoDB: {e}")
            await self.client.close()
            self.client = None
            self.db = None
            raise

        self.is_connected = True
        logger.info("MongoDB connected successfully")
        return self.db

    async def disconnect(self) -> None:
        if self.client is not None:
            await self.client.close()
            self.client = None
            self.db = None
            self.is_connected = False
            logger.info("MongoDB connection closed")

    async def check_health(self) -> bool:
        if not self.is_connected or self.client is None:
            return False
        try:
            await self.client.admin.command("ping")
            return True
        except Exception as e:
            logger.error(f"MongoDB health check failed: {e}")
            return False

    def get_db(self) -> AsyncDatabase:
        if self.db is None:
            raise RuntimeError("MongoDB not connected")
        return self.db


mongo = MongoConnection()


async def get_documents() -> AsyncDatabase:
    """Dependency that provides the mirror database."""
    return mongo.get_db()

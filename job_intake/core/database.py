"""
MongoDB access for the service.

One pooled motor client per process. Application records live in a regular
collection; resumes live in a GridFS bucket of the same database. The jobs
and users collections belong to other services and are only read.
"""
from motor.motor_asyncio import (
    AsyncIOMotorClient,
    AsyncIOMotorDatabase,
    AsyncIOMotorGridFSBucket,
)
from pymongo import ASCENDING, DESCENDING, IndexModel
from pymongo.errors import PyMongoError

from job_intake.core.config import settings
from job_intake.log.logging import logger

# Queries: my applications, applications of a job (optionally by status), newest first
APPLICATION_INDEXES = [
    IndexModel([("applicant_id", ASCENDING), ("created_at", DESCENDING)], name="applicant_recent"),
    IndexModel([("job_id", ASCENDING), ("created_at", DESCENDING)], name="job_recent"),
    IndexModel([("job_id", ASCENDING), ("status", ASCENDING)], name="job_status"),
    IndexModel([("created_at", DESCENDING)], name="recent"),
]


class DatabaseManager:
    """
    Lazily created motor client, database handle and resume bucket.
    """

    def __init__(self):
        self._client: AsyncIOMotorClient | None = None
        self._indexes_ready = False

    @property
    def client(self) -> AsyncIOMotorClient:
        if self._client is None:
            self._client = AsyncIOMotorClient(settings.mongodb, **settings.mongo_client_options)
        return self._client

    @property
    def database(self) -> AsyncIOMotorDatabase:
        return self.client[settings.mongodb_database]

    def resume_bucket(self) -> AsyncIOMotorGridFSBucket:
        """GridFS bucket for resume files, with the configured chunk size."""
        return AsyncIOMotorGridFSBucket(
            self.database,
            bucket_name=settings.resume_bucket_name,
            chunk_size_bytes=settings.resume_chunk_size_bytes,
        )

    async def ensure_indexes(self) -> None:
        """Create the application indexes once per process. GridFS indexes itself."""
        if self._indexes_ready:
            return
        names = await self.database[settings.applications_collection].create_indexes(
            APPLICATION_INDEXES
        )
        self._indexes_ready = True
        logger.info(
            "Application indexes ready",
            collection=settings.applications_collection,
            indexes=names,
        )

    async def try_ensure_indexes(self) -> bool:
        """Like ``ensure_indexes`` but reports a driver error as False."""
        try:
            await self.ensure_indexes()
        except PyMongoError as e:
            logger.error(
                "Creating application indexes failed",
                error=str(e),
                event_type="db_index_error",
            )
            return False
        return True

    async def ping(self) -> bool:
        """True when the server answers a ping."""
        try:
            await self.client.admin.command("ping")
        except PyMongoError as e:
            logger.error("MongoDB ping failed", error=str(e), event_type="db_unreachable")
            return False
        return True

    async def close(self) -> None:
        if self._client is None:
            return
        self._client.close()
        self._client = None
        self._indexes_ready = False
        logger.info("MongoDB connection closed")


db_manager = DatabaseManager()


async def init_database() -> None:
    """
    Check connectivity and create indexes. Called from the app lifespan.

    Raises:
        RuntimeError: If MongoDB cannot be reached.
    """
    if not await db_manager.ping():
        raise RuntimeError("MongoDB is not reachable")
    await db_manager.ensure_indexes()
    logger.info("MongoDB ready", database=settings.mongodb_database)


async def close_database() -> None:
    await db_manager.close()

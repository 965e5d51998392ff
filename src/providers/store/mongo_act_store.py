"""MongoDB act store implementing IActStore.

Uses pymongo's native asyncio client (``AsyncMongoClient``).  Acts live in
the ``acts`` collection keyed by ``_id`` = MusicBrainz id; background refresh
failures go to ``dataUpdateErrors`` with a 7-day TTL index.

Every failure is raised as :class:`CacheError` carrying a ``DB_xxx`` code so
a client-visible error can be traced back to the exact operation.  Operations
issued while no client is held (startup connect failed, or the store was
disconnected) connect lazily first, so background writers recover without
waiting for a foreground health check.  A client that never finished its
first ping is always closed, including when the caller's timeout cancels it.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import structlog
from pymongo import AsyncMongoClient
from pymongo.errors import PyMongoError
from pymongo.server_api import ServerApi

from src.interfaces.act_store import HEALTH_CHECK_ID, ActTimestamp, IActStore, UpdateErrorRecord
from src.models.act import Act
from src.utils.errors import CacheError

logger = structlog.get_logger(logger_name=__name__)

_ACTS = "acts"
_UPDATE_ERRORS = "dataUpdateErrors"
_ERROR_RETENTION = timedelta(days=7)


class MongoActStore(IActStore):
    """Act cache persisted in MongoDB."""

    def __init__(
        self,
        uri: str,
        database: str = "musicfavorites",
        server_selection_timeout_ms: int = 5000,
    ) -> None:
        if not uri:
            raise CacheError("MONGODB_URI is not set", provider_name="mongodb", code="DB_001")
        self._uri = uri
        self._database_name = database
        self._server_selection_timeout_ms = server_selection_timeout_ms
        self._client: AsyncMongoClient | None = None
        self._connect_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        async with self._connect_lock:
            if self._client is not None:
                return

            client: AsyncMongoClient = AsyncMongoClient(
                self._uri,
                server_api=ServerApi("1", strict=True, deprecation_errors=True),
                serverSelectionTimeoutMS=self._server_selection_timeout_ms,
            )
            try:
                result = await client.admin.command("ping")
                if result.get("ok") != 1:
                    raise CacheError(provider_name="mongodb", code="DB_002")
            except PyMongoError as exc:
                await client.close()
                raise CacheError(
                    f"MongoDB connection failed: {exc}", provider_name="mongodb", code="DB_011"
                ) from exc
            except BaseException:
                # Includes cancellation by an outer timeout.
                await client.close()
                raise

            self._client = client
            logger.info("mongodb_connected", database=self._database_name)

    async def disconnect(self) -> None:
        if self._client is None:
            return
        try:
            await self._client.close()
        except PyMongoError as exc:
            raise CacheError(provider_name="mongodb", code="DB_012") from exc
        self._client = None
        logger.info("mongodb_disconnected")

    async def _collection(self, name: str, code: str):  # noqa: ANN202
        if self._client is None:
            try:
                await self.connect()
            except CacheError as exc:
                raise CacheError(
                    f"MongoDB not connected: {exc.message}", provider_name="mongodb", code=code
                ) from exc
        return self._client[self._database_name][name]

    # ------------------------------------------------------------------
    # IActStore implementation
    # ------------------------------------------------------------------

    async def get_act(self, act_id: str) -> Act | None:
        collection = await self._collection(_ACTS, "DB_004")
        document = await collection.find_one({"_id": act_id})
        if document is None:
            return None
        return Act.from_document(document)

    async def cache_act(self, act: Act) -> None:
        collection = await self._collection(_ACTS, "DB_005")
        document = act.to_document()
        act_id = document.pop("_id")
        result = await collection.update_one({"_id": act_id}, {"$set": document}, upsert=True)
        if not result.acknowledged:
            raise CacheError(provider_name="mongodb", code="DB_007")

    async def test_cache_health(self) -> None:
        collection = await self._collection(_ACTS, "DB_008")
        # The client is kept on failure; it reconnects to the server by itself.
        write = await collection.update_one(
            {"_id": HEALTH_CHECK_ID},
            {"$set": {"name": "Health Check", "testEntry": True}},
            upsert=True,
        )
        if not write.acknowledged:
            raise CacheError(provider_name="mongodb", code="DB_009")

        delete = await collection.delete_one({"_id": HEALTH_CHECK_ID})
        if not delete.acknowledged:
            raise CacheError(provider_name="mongodb", code="DB_010")

    async def get_all_act_ids(self) -> list[str]:
        collection = await self._collection(_ACTS, "DB_013")
        documents = await collection.find({}, {"_id": 1}).to_list(None)
        return sorted(str(doc["_id"]) for doc in documents if doc["_id"] != HEALTH_CHECK_ID)

    async def get_all_acts_with_metadata(self) -> list[ActTimestamp]:
        collection = await self._collection(_ACTS, "DB_014")
        documents = await collection.find({}, {"_id": 1, "updatedAt": 1}).to_list(None)
        entries = [
            ActTimestamp(act_id=str(doc["_id"]), updated_at=doc.get("updatedAt"))
            for doc in documents
            if doc["_id"] != HEALTH_CHECK_ID
        ]
        return sorted(entries, key=lambda entry: entry.act_id)

    async def get_acts_without_bandsintown(self) -> list[str]:
        collection = await self._collection(_ACTS, "DB_015")
        documents = await collection.find(
            {"_id": {"$ne": HEALTH_CHECK_ID}, "relations.bandsintown": {"$exists": False}},
            {"_id": 1},
        ).to_list(None)
        return sorted(str(doc["_id"]) for doc in documents)

    async def clear_cache(self) -> int:
        collection = await self._collection(_ACTS, "DB_021")
        result = await collection.delete_many({})
        if not result.acknowledged:
            raise CacheError(provider_name="mongodb", code="DB_022")
        logger.info("cache_cleared", deleted_count=result.deleted_count)
        return result.deleted_count

    async def log_update_error(self, record: UpdateErrorRecord) -> None:
        collection = await self._collection(_UPDATE_ERRORS, "DB_016")
        result = await collection.insert_one(
            {
                "timestamp": record.timestamp,
                "actId": record.act_id,
                "errorMessage": record.error_message,
                "errorSource": record.error_source,
                "createdAt": datetime.now(timezone.utc),
            }
        )
        if not result.acknowledged:
            raise CacheError(provider_name="mongodb", code="DB_018")

    async def get_recent_update_errors(self) -> list[UpdateErrorRecord]:
        collection = await self._collection(_UPDATE_ERRORS, "DB_019")
        since = datetime.now(timezone.utc) - _ERROR_RETENTION
        documents = (
            await collection.find(
                {"createdAt": {"$gte": since}},
                {"_id": 0, "timestamp": 1, "actId": 1, "errorMessage": 1, "errorSource": 1},
            )
            .sort("createdAt", -1)
            .to_list(None)
        )
        return [
            UpdateErrorRecord(
                timestamp=doc.get("timestamp", ""),
                act_id=doc.get("actId", ""),
                error_message=doc.get("errorMessage", ""),
                error_source=doc.get("errorSource", ""),
            )
            for doc in documents
        ]

    async def ensure_error_collection_indexes(self) -> None:
        collection = await self._collection(_UPDATE_ERRORS, "DB_020")
        await collection.create_index(
            "createdAt", expireAfterSeconds=int(_ERROR_RETENTION.total_seconds())
        )

    def get_store_name(self) -> str:
        return "mongodb"

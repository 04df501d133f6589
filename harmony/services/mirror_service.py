"""Document-store mirror of AI artists: read-optimized, rebuildable from the ledger."""

import logging
from collections.abc import Callable, Mapping
from datetime import datetime, timezone
from typing import Any, Optional

from pymongo import DESCENDING, ReturnDocument
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import DuplicateKeyError as MongoDuplicateKeyError

from harmony.core.exceptions import DuplicateKeyError, UnknownFieldError
from harmony.mongodb import ARTISTS_COLLECTION, GENERATION_LOGS_COLLECTION
from harmony.models.artist_detail import utcnow
from harmony.schemas.document import ArtistDocumentCreate, GenerationLog
from harmony.schemas.search import ArtistSearchFilters, ArtistSearchResult, SearchOptions
from harmony.utils.search import build_search_query, check_limit, page_info

logger = logging.getLogger(__name__)

NO_ID = {"_id": 0}
# Embedded arrays only change through push-and-resort or a full rebuild
PROTECTED_FIELDS = {"artistId", "imageGallery", "generationHistory", "createdAt"}


def ensure_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class MirrorService:
    """Operations on the ``ai_artists`` and ``ai_generation_logs`` collections."""

    def __init__(self, documents: AsyncDatabase, clock: Callable[[], datetime] = utcnow):
        self.artists = documents[ARTISTS_COLLECTION]
        self.logs = documents[GENERATION_LOGS_COLLECTION]
        self._clock = clock

    async def get_artist_document(self, artist_id: str) -> Optional[dict]:
        try:
            return await self.artists.find_one({"artistId": artist_id}, NO_ID)
        except Exception as e:
            logger.error(f"[MirrorService] Error fetching artist {artist_id}: {e}")
            raise

    async def create_artist_document(self, data: ArtistDocumentCreate | Mapping[str, Any]) -> dict:
        if not isinstance(data, ArtistDocumentCreate):
            data = ArtistDocumentCreate.model_validate(data)

        now = self._clock()
        document = {
            **data.model_dump(),
            "imageGallery": [],
            "generationHistory": [],
            "createdAt": now,
            "updatedAt": now,
        }
        try:
            await self.artists.insert_one(document)
        except MongoDuplicateKeyError as e:
            logger.error(f"[MirrorService] Artist document {data.artistId} already exists")
            raise DuplicateKeyError(f"Artist document {data.artistId} already exists") from e
        except Exception as e:
            logger.error(f"[MirrorService] Error creating artist {data.artistId}: {e}")
            raise

        document.pop("_id", None)
        return document

    async def update_artist_document(self, artist_id: str, updates: Mapping[str, Any]) -> Optional[dict]:
        """Merge-set the given fields and refresh updatedAt."""
        blocked = [key for key in updates if key.split(".")[0] in PROTECTED_FIELDS]
        if blocked:
            raise UnknownFieldError("artist document", blocked)

        return await self._find_and_update(
            "update_artist_document",
            artist_id,
            {"$set": {**updates, "updatedAt": self._clock()}},
        )

    async def append_image_to_document(self, artist_id: str, image: Mapping[str, Any]) -> Optional[dict]:
        """
        Push an image and re-sort the gallery newest-first in the same update.

        Sorting on every push keeps the order right when a slow write lands
        after a newer one.
        """
        entry = {**image, "generatedAt": ensure_utc(image.get("generatedAt") or self._clock())}
        return await self._push_sorted(artist_id, "imageGallery", entry, "generatedAt")

    async def append_history_to_document(self, artist_id: str, record: Mapping[str, Any]) -> Optional[dict]:
        entry = {**record, "createdAt": ensure_utc(record.get("createdAt") or self._clock())}
        return await self._push_sorted(artist_id, "generationHistory", entry, "createdAt")

    async def replace_embedded_arrays(
        self, artist_id: str, images: list[dict], history: list[dict]
    ) -> Optional[dict]:
        """Overwrite both embedded arrays. Only the ledger rebuild uses this."""
        images = sorted(
            ({**i, "generatedAt": ensure_utc(i["generatedAt"])} for i in images),
            key=lambda i: i["generatedAt"],
            reverse=True,
        )
        history = sorted(
            ({**h, "createdAt": ensure_utc(h["createdAt"])} for h in history),
            key=lambda h: h["createdAt"],
            reverse=True,
        )
        return await self._find_and_update(
            "replace_embedded_arrays",
            artist_id,
            {"$set": {"imageGallery": images, "generationHistory": history, "updatedAt": self._clock()}},
        )

    async def _push_sorted(self, artist_id: str, field: str, entry: dict, sort_key: str) -> Optional[dict]:
        return await self._find_and_update(
            f"push {field}",
            artist_id,
            {
                "$push": {field: {"$each": [entry], "$sort": {sort_key: DESCENDING}}},
                "$set": {"updatedAt": self._clock()},
            },
        )

    async def _find_and_update(self, operation: str, artist_id: str, update: dict) -> Optional[dict]:
        try:
            return await self.artists.find_one_and_update(
                {"artistId": artist_id},
                update,
                projection=NO_ID,
                return_document=ReturnDocument.AFTER,
            )
        except Exception as e:
            logger.error(f"[MirrorService] {operation} failed for artist {artist_id}: {e}")
            raise

    # ============= Generation logs =============

    async def list_generation_logs(self, user_id: str, limit: int = 50) -> list[dict]:
        try:
            cursor = self.logs.find({"userId": user_id}, NO_ID).sort("createdAt", DESCENDING).limit(limit)
            return await cursor.to_list(length=None)
        except Exception as e:
            logger.error(f"[MirrorService] Error fetching generation logs for {user_id}: {e}")
            raise

    async def create_generation_log(self, data: GenerationLog | Mapping[str, Any]) -> dict:
        if not isinstance(data, GenerationLog):
            data = GenerationLog.model_validate(data)

        document = data.model_dump()
        try:
            await self.logs.insert_one(document)
        except MongoDuplicateKeyError as e:
            raise DuplicateKeyError(f"Generation log {data.generationId} already exists") from e
        except Exception as e:
            logger.error(f"[MirrorService] Error creating generation log {data.generationId}: {e}")
            raise

        document.pop("_id", None)
        return document

    async def update_generation_log(self, generation_id: str, fields: Mapping[str, Any]) -> Optional[dict]:
        """Set outcome fields on an existing log entry. None if there is no entry."""
        try:
            return await self.logs.find_one_and_update(
                {"generationId": generation_id},
                {"$set": dict(fields)},
                projection=NO_ID,
                return_document=ReturnDocument.AFTER,
            )
        except Exception as e:
            logger.error(f"[MirrorService] Error updating generation log {generation_id}: {e}")
            raise

    # ============= Discovery =============

    async def search_artists(
        self,
        filters: Optional[ArtistSearchFilters] = None,
        options: Optional[SearchOptions] = None,
    ) -> ArtistSearchResult:
        filters = filters or ArtistSearchFilters()
        options = options or SearchOptions()
        check_limit(options.limit)

        query = build_search_query(filters, options.search)
        try:
            cursor = (
                self.artists.find(query, NO_ID)
                .sort(options.sort_by, options.sort_order)
                .skip(options.skip)
                .limit(options.limit)
            )
            artists = await cursor.to_list(length=None)
            total = await self.artists.count_documents(query)
        except Exception as e:
            logger.error(f"[MirrorService] Error searching artists with {query}: {e}")
            raise

        page, total_pages = page_info(total, options.skip, options.limit)
        return ArtistSearchResult(artists=artists, total=total, page=page, total_pages=total_pages)

    async def get_popular_artists(self, limit: int = 10) -> list[dict]:
        """All artists ranked by engagement rate."""
        check_limit(limit)
        try:
            cursor = (
                self.artists.find({}, NO_ID)
                .sort("performanceMetrics.engagementRate", DESCENDING)
                .limit(limit)
            )
            return await cursor.to_list(length=None)
        except Exception as e:
            logger.error(f"[MirrorService] Error fetching popular artists: {e}")
            raise

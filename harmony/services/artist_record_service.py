"""
Artist record orchestration across the Postgres ledger and the Mongo mirror.

Writes go to the ledger first; it is the system of record. The mirror is then
refreshed on a best-effort basis and can always be rebuilt from the ledger
with ``rebuild_document_from_ledger``. There is no cross-store transaction.
"""

import logging
import uuid
from collections.abc import Mapping
from datetime import datetime
from typing import Any, Optional

from pymongo.asynchronous.database import AsyncDatabase
from sqlalchemy.ext.asyncio import AsyncSession

from harmony.models import ArtistImage, GenerationHistory
from harmony.schemas.artist import ArtistImageCreate, RecordResult
from harmony.schemas.document import ArtistDocument, EmbeddedGeneration, EmbeddedImage, GenerationLog
from harmony.schemas.generation import GenerationHistoryCreate
from harmony.services.cache_service import CacheKeys, CacheService
from harmony.services.ledger_service import LedgerService, Updates
from harmony.services.mirror_service import MirrorService, ensure_utc

logger = logging.getLogger(__name__)


def image_entry(row: ArtistImage) -> dict:
    """Embedded gallery entry for a ledger image row."""
    return EmbeddedImage(
        imageId=str(row.id),
        imageUrl=row.image_url,
        prompt=row.prompt,
        model=row.model,
        isPrimary=row.is_primary,
        tags=list(row.tags or []),
        generatedAt=row.generated_at,
    ).model_dump()


def history_entry(row: GenerationHistory) -> dict:
    """Embedded history entry for a ledger generation row."""
    return EmbeddedGeneration(
        generationId=str(row.id),
        generationType=row.generation_type.value,
        prompt=row.prompt,
        serviceUsed=row.service_used,
        status=row.status.value,
        resultData=row.result_data or {},
        errorMessage=row.error_message,
        createdAt=row.created_at,
    ).model_dump()


def generation_log(row: GenerationHistory, processing_ms: int = 0) -> GenerationLog:
    return GenerationLog(
        generationId=str(row.id),
        userId=row.user_id,
        artistId=row.artist_id,
        generationType=row.generation_type.value,
        prompt=row.prompt,
        serviceUsed=row.service_used,
        status=row.status.value,
        errorMessage=row.error_message,
        parameters=row.parameters or {},
        result=row.result_data or {},
        processingTime=processing_ms,
        createdAt=row.created_at,
    )


def _comparable(entries: list[dict], time_key: str) -> list[dict]:
    # BSON dates keep millisecond precision
    normalized = []
    for entry in entries:
        value = entry.get(time_key)
        if isinstance(value, datetime):
            value = ensure_utc(value)
            value = value.replace(microsecond=value.microsecond // 1000 * 1000)
        normalized.append({**entry, time_key: value})
    return normalized


class ArtistRecordService:
    """Single owner of the artist read/write paths in both stores."""

    def __init__(
        self,
        db: AsyncSession,
        documents: AsyncDatabase,
        ledger: Optional[LedgerService] = None,
        mirror: Optional[MirrorService] = None,
        popular_ttl: int = 300,
    ):
        self.ledger = ledger or LedgerService(db)
        self.mirror = mirror or MirrorService(documents)
        self.popular_ttl = popular_ttl

    # ============= Ledger then mirror =============

    async def record_image(self, artist_id: str, image: ArtistImageCreate | Mapping[str, Any]) -> RecordResult:
        """Add an image to the ledger, then push it into the artist document."""
        row = await self.ledger.add_image(artist_id, image)
        synced = await self._sync_mirror(
            "image", artist_id, self.mirror.append_image_to_document(artist_id, image_entry(row))
        )
        return RecordResult(record=row, mirror_synced=synced)

    async def update_image(self, image_id: uuid.UUID, updates: Updates) -> Optional[RecordResult]:
        """Update a ledger image and rebuild the owning artist's document."""
        row = await self.ledger.update_image(image_id, updates)
        if row is None:
            return None
        synced = await self._sync_mirror(
            "image update", row.artist_id, self.rebuild_document_from_ledger(row.artist_id)
        )
        return RecordResult(record=row, mirror_synced=synced)

    async def delete_image(self, image_id: uuid.UUID) -> Optional[RecordResult]:
        row = await self.ledger.delete_image(image_id)
        if row is None:
            return None
        synced = await self._sync_mirror(
            "image delete", row.artist_id, self.rebuild_document_from_ledger(row.artist_id)
        )
        return RecordResult(record=row, mirror_synced=synced)

    async def record_generation(
        self,
        record: GenerationHistoryCreate | Mapping[str, Any],
        processing_ms: int = 0,
    ) -> RecordResult:
        """Add a generation to the ledger, then mirror it into the artist document and the log."""
        row = await self.ledger.add_history(record)

        synced = True
        if row.artist_id:
            synced = await self._sync_mirror(
                "generation", row.artist_id,
                self.mirror.append_history_to_document(row.artist_id, history_entry(row)),
            )
        logged = await self._sync_log(row, self.mirror.create_generation_log(generation_log(row, processing_ms)))

        return RecordResult(record=row, mirror_synced=synced and logged)

    async def update_generation(
        self,
        generation_id: uuid.UUID,
        updates: Updates,
        processing_ms: Optional[int] = None,
    ) -> Optional[RecordResult]:
        """
        Update a ledger entry, rebuild the owning artist's document and
        carry the outcome over to the generation log.
        """
        row = await self.ledger.update_history(generation_id, updates)
        if row is None:
            return None

        synced = True
        if row.artist_id:
            synced = await self._sync_mirror(
                "generation update", row.artist_id, self.rebuild_document_from_ledger(row.artist_id)
            )
        logged = await self._sync_log(row, self._refresh_generation_log(row, processing_ms))

        return RecordResult(record=row, mirror_synced=synced and logged)

    async def _refresh_generation_log(self, row: GenerationHistory, processing_ms: Optional[int]) -> dict:
        fields = {
            "status": row.status.value,
            "result": row.result_data or {},
            "errorMessage": row.error_message,
        }
        if processing_ms is not None:
            fields["processingTime"] = processing_ms

        log = await self.mirror.update_generation_log(str(row.id), fields)
        if log is None:
            # The initial log write was lost; write the entry in full
            log = await self.mirror.create_generation_log(generation_log(row, processing_ms or 0))
        return log

    async def _sync_mirror(self, what: str, artist_id: str, write) -> bool:
        try:
            document = await write
        except Exception as e:
            logger.warning(
                f"[ArtistRecordService] Mirror {what} write failed for artist {artist_id}, "
                f"ledger is ahead until the next rebuild: {type(e).__name__}: {e}"
            )
            return False
        if document is None:
            logger.info(f"[ArtistRecordService] No mirror document for artist {artist_id}, skipped {what}")
        return True

    async def _sync_log(self, row: GenerationHistory, write) -> bool:
        try:
            await write
        except Exception as e:
            logger.warning(f"[ArtistRecordService] Generation log write failed for {row.id}: {e}")
            return False
        return True

    async def rebuild_document_from_ledger(self, artist_id: str) -> Optional[dict]:
        """
        Replace the document's embedded arrays with what the ledger holds.

        Idempotent; returns None when the artist has no document.
        """
        images = await self.ledger.list_images(artist_id)
        history = await self.ledger.list_artist_history(artist_id)
        document = await self.mirror.replace_embedded_arrays(
            artist_id,
            [image_entry(row) for row in images],
            [history_entry(row) for row in history],
        )
        if document is not None:
            logger.info(
                f"[ArtistRecordService] Rebuilt artist {artist_id} "
                f"({len(images)} images, {len(history)} generations)"
            )
        return document

    async def find_drifted_artists(self) -> list[str]:
        """Artists whose embedded arrays differ from the ledger in size or content."""
        drifted = []
        for artist_id in await self.ledger.list_artist_ids():
            document = await self.mirror.get_artist_document(artist_id)
            if document is None:
                continue
            gallery = document.get("imageGallery", [])
            history = document.get("generationHistory", [])
            if (
                len(gallery) != await self.ledger.count_images(artist_id)
                or len(history) != await self.ledger.count_artist_history(artist_id)
            ):
                drifted.append(artist_id)
                continue

            images = [image_entry(row) for row in await self.ledger.list_images(artist_id)]
            generations = [history_entry(row) for row in await self.ledger.list_artist_history(artist_id)]
            if (
                _comparable(gallery, "generatedAt") != _comparable(images, "generatedAt")
                or _comparable(history, "createdAt") != _comparable(generations, "createdAt")
            ):
                drifted.append(artist_id)
        return drifted

    # ============= Discovery =============

    async def get_popular_artists(self, limit: int = 10) -> list[ArtistDocument]:
        """Popular artists, cached in Redis for a few minutes."""
        cache_key = f"{CacheKeys.POPULAR_ARTISTS}{limit}"
        cached = await CacheService.get_json(cache_key)
        if cached is not None:
            return [ArtistDocument.model_validate(artist) for artist in cached]

        artists = [ArtistDocument.model_validate(artist) for artist in await self.mirror.get_popular_artists(limit)]
        await CacheService.set_json(
            cache_key, [artist.model_dump(mode="json") for artist in artists], ttl=self.popular_ttl
        )
        return artists

    async def update_artist_document(self, artist_id: str, updates: Mapping[str, Any]) -> Optional[dict]:
        document = await self.mirror.update_artist_document(artist_id, updates)
        if any(key.startswith("performanceMetrics") for key in updates):
            await CacheService.delete_pattern(f"{CacheKeys.POPULAR_ARTISTS}*")
        return document

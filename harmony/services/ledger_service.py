"""Relational ledger for artist details, images and generation history."""

import logging
import uuid
from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from harmony.core.exceptions import ConstraintViolationError
from harmony.models import ArtistDetail, ArtistImage, GenerationHistory
from harmony.models.artist_detail import utcnow
from harmony.schemas.artist import ArtistDetailCreate, ArtistDetailUpdate, ArtistImageCreate, ArtistImageUpdate
from harmony.schemas.generation import GenerationHistoryCreate, GenerationHistoryUpdate
from harmony.utils.columns import (
    ARTIST_DETAIL_COLUMNS,
    ARTIST_IMAGE_COLUMNS,
    GENERATION_HISTORY_COLUMNS,
    translate_fields,
    validate_fields,
)

logger = logging.getLogger(__name__)

Updates = Mapping[str, Any] | BaseModel


def _as_mapping(updates: Updates) -> Mapping[str, Any]:
    if isinstance(updates, BaseModel):
        return updates.model_dump(exclude_unset=True)
    return updates


def _columns(
    entity: str, table: Mapping[str, str], schema: type[BaseModel], updates: Updates
) -> dict[str, Any]:
    """Translate field names to columns, then coerce the values to column types."""
    return validate_fields(entity, schema, translate_fields(entity, table, _as_mapping(updates)))


class LedgerService:
    """
    Reads and writes against the Postgres ledger.

    Absent rows come back as None. Every storage error is logged with the
    operation and re-raised; unique violations surface as
    ConstraintViolationError.
    """

    def __init__(self, db: AsyncSession, clock: Callable[[], datetime] = utcnow):
        self.db = db
        self._clock = clock

    async def _commit(self, operation: str) -> None:
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            logger.error(f"[LedgerService] {operation} violated a constraint: {e.orig}")
            raise ConstraintViolationError(f"{operation}: {e.orig}") from e
        except Exception as e:
            await self.db.rollback()
            logger.error(f"[LedgerService] {operation} failed: {type(e).__name__}: {e}")
            raise

    async def _fetch(self, operation: str, statement):
        try:
            return await self.db.execute(statement)
        except Exception as e:
            logger.error(f"[LedgerService] {operation} failed: {type(e).__name__}: {e}")
            raise

    # ============= Artist details =============

    async def get_artist_details(self, artist_id: str) -> Optional[ArtistDetail]:
        result = await self._fetch(
            "get_artist_details",
            select(ArtistDetail).where(ArtistDetail.artist_id == artist_id),
        )
        return result.scalar_one_or_none()

    async def create_artist_details(
        self, artist_id: str, details: ArtistDetailCreate | Mapping[str, Any]
    ) -> ArtistDetail:
        """Insert the single details row for an artist."""
        if not isinstance(details, ArtistDetailCreate):
            details = ArtistDetailCreate.model_validate(details)

        now = self._clock()
        row = ArtistDetail(
            artist_id=artist_id,
            **details.model_dump(),
            created_at=now,
            updated_at=now,
        )
        self.db.add(row)
        await self._commit(f"create_artist_details({artist_id})")
        return row

    async def update_artist_details(self, artist_id: str, updates: Updates) -> Optional[ArtistDetail]:
        """
        Apply a sparse update. Untouched fields keep their values and
        updated_at is refreshed even when ``updates`` is empty.
        """
        columns = _columns("artist detail", ARTIST_DETAIL_COLUMNS, ArtistDetailUpdate, updates)

        row = await self.get_artist_details(artist_id)
        if row is None:
            return None

        for column, value in columns.items():
            setattr(row, column, value)
        row.updated_at = self._clock()

        await self._commit(f"update_artist_details({artist_id})")
        return row

    # ============= Images =============

    async def list_images(self, artist_id: str) -> list[ArtistImage]:
        """All images for an artist, newest first."""
        result = await self._fetch(
            "list_images",
            select(ArtistImage)
            .where(ArtistImage.artist_id == artist_id)
            .order_by(ArtistImage.generated_at.desc()),
        )
        return list(result.scalars().all())

    async def add_image(self, artist_id: str, image: ArtistImageCreate | Mapping[str, Any]) -> ArtistImage:
        if not isinstance(image, ArtistImageCreate):
            image = ArtistImageCreate.model_validate(image)

        data = image.model_dump(exclude_none=True)
        data.setdefault("generated_at", self._clock())
        row = ArtistImage(artist_id=artist_id, **data)

        self.db.add(row)
        await self._commit(f"add_image({artist_id})")
        return row

    async def update_image(self, image_id: uuid.UUID, updates: Updates) -> Optional[ArtistImage]:
        columns = _columns("artist image", ARTIST_IMAGE_COLUMNS, ArtistImageUpdate, updates)

        row = await self.db.get(ArtistImage, image_id)
        if row is None:
            return None

        for column, value in columns.items():
            setattr(row, column, value)

        await self._commit(f"update_image({image_id})")
        return row

    async def delete_image(self, image_id: uuid.UUID) -> Optional[ArtistImage]:
        """Hard delete. Returns the deleted row, or None if it did not exist."""
        row = await self.db.get(ArtistImage, image_id)
        if row is None:
            return None

        await self.db.delete(row)
        await self._commit(f"delete_image({image_id})")
        return row

    async def count_images(self, artist_id: str) -> int:
        result = await self._fetch(
            "count_images",
            select(func.count(ArtistImage.id)).where(ArtistImage.artist_id == artist_id),
        )
        return result.scalar_one()

    # ============= Generation history =============

    async def list_history(self, user_id: str, limit: int = 50) -> list[GenerationHistory]:
        """A user's generation history, newest first."""
        result = await self._fetch(
            "list_history",
            select(GenerationHistory)
            .where(GenerationHistory.user_id == user_id)
            .order_by(GenerationHistory.created_at.desc())
            .limit(limit),
        )
        return list(result.scalars().all())

    async def list_artist_history(self, artist_id: str, limit: Optional[int] = None) -> list[GenerationHistory]:
        statement = (
            select(GenerationHistory)
            .where(GenerationHistory.artist_id == artist_id)
            .order_by(GenerationHistory.created_at.desc())
        )
        if limit is not None:
            statement = statement.limit(limit)
        result = await self._fetch("list_artist_history", statement)
        return list(result.scalars().all())

    async def count_artist_history(self, artist_id: str) -> int:
        result = await self._fetch(
            "count_artist_history",
            select(func.count(GenerationHistory.id)).where(GenerationHistory.artist_id == artist_id),
        )
        return result.scalar_one()

    async def get_history(self, generation_id: uuid.UUID) -> Optional[GenerationHistory]:
        return await self.db.get(GenerationHistory, generation_id)

    async def add_history(self, record: GenerationHistoryCreate | Mapping[str, Any]) -> GenerationHistory:
        if not isinstance(record, GenerationHistoryCreate):
            record = GenerationHistoryCreate.model_validate(record)

        data = record.model_dump()
        now = self._clock()
        if data.get("created_at") is None:
            data["created_at"] = now
        row = GenerationHistory(**data, updated_at=now)

        self.db.add(row)
        await self._commit(f"add_history({record.user_id})")
        return row

    async def update_history(self, generation_id: uuid.UUID, updates: Updates) -> Optional[GenerationHistory]:
        """Corrective or status update on one ledger entry."""
        columns = _columns(
            "generation history", GENERATION_HISTORY_COLUMNS, GenerationHistoryUpdate, updates
        )

        row = await self.get_history(generation_id)
        if row is None:
            return None

        for column, value in columns.items():
            setattr(row, column, value)
        row.updated_at = self._clock()

        await self._commit(f"update_history({generation_id})")
        return row

    async def list_artist_ids(self) -> list[str]:
        """Artist ids that have a details row."""
        result = await self._fetch("list_artist_ids", select(ArtistDetail.artist_id))
        return list(result.scalars().all())

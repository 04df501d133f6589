"""Structured persona details for an AI artist (one row per artist)."""

import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import DateTime, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from harmony.database import Base
from harmony.models.types import JSONType


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ArtistDetail(Base):
    """AI artist details. The artist entity itself is owned elsewhere."""

    __tablename__ = "ai_artist_details"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    artist_id: Mapped[str] = mapped_column(String(64), unique=True, index=True)

    # Persona
    personality_traits: Mapped[Any] = mapped_column(JSONType, default=list)
    visual_style: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    speaking_style: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    backstory: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    influences: Mapped[Any] = mapped_column(JSONType, default=list)
    unique_elements: Mapped[Any] = mapped_column(JSONType, default=list)

    # Opaque blobs, never null
    generation_parameters: Mapped[dict] = mapped_column(JSONType, default=dict)
    performance_metrics: Mapped[dict] = mapped_column(JSONType, default=dict)
    ai_training_data: Mapped[dict] = mapped_column(JSONType, default=dict)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
    )

    def __repr__(self) -> str:
        return f"<ArtistDetail {self.artist_id}>"

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Index, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from harmony.database import Base
from harmony.models.artist_detail import utcnow
from harmony.models.types import TagList


class ArtistImage(Base):
    """A generated image for an AI artist."""

    __tablename__ = "ai_artist_images"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    artist_id: Mapped[str] = mapped_column(String(64))

    image_url: Mapped[str] = mapped_column(String(1000))
    prompt: Mapped[str] = mapped_column(Text)
    model: Mapped[str] = mapped_column(String(100))
    is_primary: Mapped[bool] = mapped_column(Boolean, default=False)  # advisory only
    tags: Mapped[list[str]] = mapped_column(TagList, default=list)

    generated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
    )

    __table_args__ = (
        Index("idx_ai_artist_images_artist_generated", "artist_id", "generated_at"),
    )

    def __repr__(self) -> str:
        return f"<ArtistImage {self.id} for {self.artist_id}>"

import enum
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Enum, Index, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from harmony.database import Base
from harmony.models.artist_detail import utcnow
from harmony.models.types import JSONType


class GenerationType(str, enum.Enum):
    TEXT = "text"
    IMAGE = "image"
    AUDIO = "audio"
    VIDEO = "video"
    PERSONA = "persona"


class GenerationStatus(str, enum.Enum):
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not GenerationStatus.PENDING


class GenerationHistory(Base):
    """Ledger entry for one call to an external generation service."""

    __tablename__ = "ai_generation_history"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[str] = mapped_column(String(64))
    artist_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)

    generation_type: Mapped[GenerationType] = mapped_column(
        Enum(GenerationType, name="generation_type", values_callable=lambda e: [m.value for m in e])
    )
    prompt: Mapped[str] = mapped_column(Text)
    refined_prompt: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    parameters: Mapped[dict] = mapped_column(JSONType, default=dict)
    result_data: Mapped[dict] = mapped_column(JSONType, default=dict)
    service_used: Mapped[str] = mapped_column(String(50))
    status: Mapped[GenerationStatus] = mapped_column(
        Enum(GenerationStatus, name="generation_status", values_callable=lambda e: [m.value for m in e]),
        default=GenerationStatus.PENDING,
    )
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

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

    __table_args__ = (
        Index("idx_ai_generation_history_user_created", "user_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<GenerationHistory {self.id} {self.generation_type.value} {self.status.value}>"

"""Shapes of the denormalized artist document kept in MongoDB.

Field names are camelCase because they are stored as-is in the document.
"""
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Persona(BaseModel):
    personalityTraits: list[str] = []
    visualStyle: Optional[str] = None
    speakingStyle: Optional[str] = None
    backstory: Optional[str] = None
    uniqueElements: list[str] = []


class MusicStyle(BaseModel):
    primaryGenres: list[str] = []
    influences: list[str] = []
    tempo: Optional[str] = None
    mood: Optional[str] = None


class PerformanceMetrics(BaseModel):
    engagementRate: float = 0
    fanGrowth: float = 0
    streams: int = 0
    likes: int = 0
    shares: int = 0


class EmbeddedImage(BaseModel):
    imageId: str
    imageUrl: str
    prompt: Optional[str] = None
    model: Optional[str] = None
    isPrimary: bool = False
    tags: list[str] = []
    generatedAt: datetime = Field(default_factory=_now)


class EmbeddedGeneration(BaseModel):
    generationId: str
    generationType: str
    prompt: Optional[str] = None
    serviceUsed: Optional[str] = None
    status: str
    resultData: dict[str, Any] = {}
    errorMessage: Optional[str] = None
    createdAt: datetime = Field(default_factory=_now)


class ArtistDocumentCreate(BaseModel):
    artistId: str
    userId: str
    name: str
    persona: Persona = Field(default_factory=Persona)
    musicStyle: MusicStyle = Field(default_factory=MusicStyle)
    performanceMetrics: PerformanceMetrics = Field(default_factory=PerformanceMetrics)


class ArtistDocument(ArtistDocumentCreate):
    """An artist document as read back from the mirror. Unknown fields are kept."""
    model_config = ConfigDict(extra="allow")

    imageGallery: list[EmbeddedImage] = []
    generationHistory: list[EmbeddedGeneration] = []
    createdAt: datetime
    updatedAt: datetime


class GenerationLog(BaseModel):
    generationId: str
    userId: str
    artistId: Optional[str] = None
    generationType: str
    prompt: Optional[str] = None
    serviceUsed: Optional[str] = None
    status: str
    errorMessage: Optional[str] = None
    parameters: dict[str, Any] = {}
    result: dict[str, Any] = {}
    processingTime: int = 0  # milliseconds
    createdAt: datetime = Field(default_factory=_now)

"""Artist detail and image schemas.

Request bodies accept camelCase (``personalityTraits``) or snake_case keys.
"""
import uuid
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

CAMEL_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ArtistDetailCreate(BaseModel):
    """Schema for creating the details row of an artist."""
    model_config = CAMEL_CONFIG

    personality_traits: Any = Field(default_factory=list)
    visual_style: Optional[str] = None
    speaking_style: Optional[str] = None
    backstory: Optional[str] = None
    influences: Any = Field(default_factory=list)
    unique_elements: Any = Field(default_factory=list)
    generation_parameters: dict = Field(default_factory=dict)
    performance_metrics: dict = Field(default_factory=dict)
    ai_training_data: dict = Field(default_factory=dict)


class ArtistDetailUpdate(BaseModel):
    """Value types for a sparse details update. JSON blobs may not be set to null."""
    model_config = CAMEL_CONFIG

    personality_traits: Any = None
    visual_style: Optional[str] = Field(default=None, max_length=255)
    speaking_style: Optional[str] = Field(default=None, max_length=255)
    backstory: Optional[str] = None
    influences: Any = None
    unique_elements: Any = None
    generation_parameters: dict = Field(default_factory=dict)
    performance_metrics: dict = Field(default_factory=dict)
    ai_training_data: dict = Field(default_factory=dict)


class ArtistDetailResponse(BaseModel):
    """Artist details as stored in the ledger."""
    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)

    id: uuid.UUID
    artist_id: str
    personality_traits: Any = None
    visual_style: Optional[str] = None
    speaking_style: Optional[str] = None
    backstory: Optional[str] = None
    influences: Any = None
    unique_elements: Any = None
    generation_parameters: dict = {}
    performance_metrics: dict = {}
    ai_training_data: dict = {}
    created_at: datetime
    updated_at: datetime


class ArtistImageCreate(BaseModel):
    """Schema for adding a generated image."""
    model_config = CAMEL_CONFIG

    image_url: str = Field(..., min_length=1, max_length=1000)
    prompt: str
    model: str
    is_primary: bool = False
    tags: list[str] = Field(default_factory=list)
    generated_at: Optional[datetime] = None


class ArtistImageUpdate(BaseModel):
    """Only fields the caller sets are applied; defaults are never written."""
    model_config = CAMEL_CONFIG

    image_url: str = Field(default="", min_length=1, max_length=1000)
    prompt: str = ""
    model: str = ""
    is_primary: bool = False
    tags: list[str] = Field(default_factory=list)
    generated_at: datetime = None


class ArtistImageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)

    id: uuid.UUID
    artist_id: str
    image_url: str
    prompt: str
    model: str
    is_primary: bool
    tags: list[str] = []
    generated_at: datetime


class RecordResult(BaseModel):
    """Outcome of a ledger write followed by a best-effort mirror refresh."""
    record: Any
    mirror_synced: bool

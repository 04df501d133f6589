"""Pydantic schemas for the generation history ledger."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from harmony.models.generation_history import GenerationStatus, GenerationType


class GenerationHistoryCreate(BaseModel):
    """Schema for a new ledger entry. Only refined_prompt/error_message may be omitted."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    user_id: str
    artist_id: Optional[str]
    generation_type: GenerationType
    prompt: str
    refined_prompt: Optional[str] = None
    parameters: dict
    result_data: dict
    service_used: str
    status: GenerationStatus
    error_message: Optional[str] = None
    created_at: Optional[datetime] = None


class GenerationHistoryUpdate(BaseModel):
    """Value types for a corrective or status update on a ledger entry."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    artist_id: Optional[str] = None
    generation_type: GenerationType = GenerationType.TEXT
    prompt: str = ""
    refined_prompt: Optional[str] = None
    parameters: dict = Field(default_factory=dict)
    result_data: dict = Field(default_factory=dict)
    service_used: str = ""
    status: GenerationStatus = GenerationStatus.PENDING
    error_message: Optional[str] = None


class GenerationHistoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)

    id: uuid.UUID
    user_id: str
    artist_id: Optional[str] = None
    generation_type: GenerationType
    prompt: str
    refined_prompt: Optional[str] = None
    parameters: dict = {}
    result_data: dict = {}
    service_used: str
    status: GenerationStatus
    error_message: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class BackstoryRequest(BaseModel):
    """Schema for asking the text provider for an artist backstory."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    user_id: str
    prompt: str = Field(..., min_length=1, max_length=2000)

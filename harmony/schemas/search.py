from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ArtistSearchFilters(BaseModel):
    """Equality filters applied on top of the optional text search."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    user_id: Optional[str] = None
    visual_style: Optional[str] = None
    speaking_style: Optional[str] = None
    genre: Optional[str] = None


class SearchOptions(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    search: str = ""
    sort_by: str = "createdAt"
    sort_order: Literal[-1, 1] = -1
    skip: int = Field(default=0, ge=0)
    limit: int = 20


class ArtistSearchResult(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    artists: list[dict[str, Any]]
    total: int
    page: int
    total_pages: int

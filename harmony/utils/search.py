"""Query building and pagination arithmetic for artist discovery."""
import math
from typing import Any

from harmony.core.exceptions import InvalidPaginationError
from harmony.schemas.search import ArtistSearchFilters


def build_search_query(filters: ArtistSearchFilters, search: str = "") -> dict[str, Any]:
    """Combine an optional $text clause with the equality filters."""
    query: dict[str, Any] = {}

    if search:
        query["$text"] = {"$search": search}

    if filters.user_id:
        query["userId"] = filters.user_id
    if filters.visual_style:
        query["persona.visualStyle"] = filters.visual_style
    if filters.speaking_style:
        query["persona.speakingStyle"] = filters.speaking_style
    if filters.genre:
        query["musicStyle.primaryGenres"] = {"$in": [filters.genre]}

    return query


def check_limit(limit: int) -> None:
    if limit <= 0:
        raise InvalidPaginationError(f"limit must be a positive integer, got {limit}")


def page_info(total: int, skip: int, limit: int) -> tuple[int, int]:
    """Return (page, total_pages) for an offset/limit window."""
    check_limit(limit)
    return skip // limit + 1, math.ceil(total / limit)

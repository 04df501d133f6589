"""Artist router: ledger details and images, mirror documents, discovery."""

import uuid
from typing import Any, Optional

from fastapi import APIRouter, Body, Query, status

from harmony.core.exceptions import NotFoundException
from harmony.dependencies import Generations, Records
from harmony.schemas.artist import (
    ArtistDetailCreate,
    ArtistDetailResponse,
    ArtistImageCreate,
    ArtistImageResponse,
)
from harmony.schemas.document import ArtistDocumentCreate
from harmony.schemas.generation import BackstoryRequest, GenerationHistoryResponse
from harmony.schemas.search import ArtistSearchFilters, ArtistSearchResult, SearchOptions

router = APIRouter()


# ============= Discovery =============

@router.get(
    "/search",
    response_model=ArtistSearchResult,
    response_model_by_alias=True,
    summary="Search AI artists",
)
async def search_artists(
    records: Records,
    q: str = Query(default="", max_length=200),
    user_id: Optional[str] = Query(default=None, alias="userId"),
    visual_style: Optional[str] = Query(default=None, alias="visualStyle"),
    speaking_style: Optional[str] = Query(default=None, alias="speakingStyle"),
    genre: Optional[str] = None,
    sort_by: str = Query(default="createdAt", alias="sortBy"),
    sort_order: int = Query(default=-1, alias="sortOrder"),
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=20, ge=1, le=100),
):
    filters = ArtistSearchFilters(
        user_id=user_id,
        visual_style=visual_style,
        speaking_style=speaking_style,
        genre=genre,
    )
    options = SearchOptions(search=q, sort_by=sort_by, sort_order=1 if sort_order > 0 else -1, skip=skip, limit=limit)
    return await records.mirror.search_artists(filters, options)


@router.get("/popular", summary="Artists ranked by engagement")
async def popular_artists(
    records: Records,
    limit: int = Query(default=10, ge=1, le=50),
):
    return {"artists": await records.get_popular_artists(limit)}


# ============= Details (ledger) =============

@router.get("/{artist_id}/details", response_model=ArtistDetailResponse, response_model_by_alias=True)
async def get_artist_details(artist_id: str, records: Records):
    details = await records.ledger.get_artist_details(artist_id)
    if details is None:
        raise NotFoundException("Artist details not found")
    return details


@router.post(
    "/{artist_id}/details",
    response_model=ArtistDetailResponse,
    response_model_by_alias=True,
    status_code=status.HTTP_201_CREATED,
)
async def create_artist_details(artist_id: str, body: ArtistDetailCreate, records: Records):
    return await records.ledger.create_artist_details(artist_id, body)


@router.patch("/{artist_id}/details", response_model=ArtistDetailResponse, response_model_by_alias=True)
async def update_artist_details(
    artist_id: str,
    records: Records,
    updates: dict[str, Any] = Body(...),
):
    """Sparse update; field names may be camelCase or snake_case."""
    details = await records.ledger.update_artist_details(artist_id, updates)
    if details is None:
        raise NotFoundException("Artist details not found")
    return details


# ============= Images =============

@router.get("/{artist_id}/images", response_model=list[ArtistImageResponse], response_model_by_alias=True)
async def list_images(artist_id: str, records: Records):
    return await records.ledger.list_images(artist_id)


@router.post("/{artist_id}/images", status_code=status.HTTP_201_CREATED)
async def add_image(artist_id: str, body: ArtistImageCreate, records: Records):
    result = await records.record_image(artist_id, body)
    return {
        "image": ArtistImageResponse.model_validate(result.record).model_dump(by_alias=True),
        "mirrorSynced": result.mirror_synced,
    }


@router.patch("/images/{image_id}")
async def update_image(
    image_id: uuid.UUID,
    records: Records,
    updates: dict[str, Any] = Body(...),
):
    result = await records.update_image(image_id, updates)
    if result is None:
        raise NotFoundException("Image not found")
    return {
        "image": ArtistImageResponse.model_validate(result.record).model_dump(by_alias=True),
        "mirrorSynced": result.mirror_synced,
    }


@router.delete("/images/{image_id}")
async def delete_image(image_id: uuid.UUID, records: Records):
    result = await records.delete_image(image_id)
    if result is None:
        raise NotFoundException("Image not found")
    return {
        "image": ArtistImageResponse.model_validate(result.record).model_dump(by_alias=True),
        "mirrorSynced": result.mirror_synced,
    }


# ============= Documents (mirror) =============

@router.post("/documents", status_code=status.HTTP_201_CREATED)
async def create_artist_document(body: ArtistDocumentCreate, records: Records):
    return await records.mirror.create_artist_document(body)


@router.get("/{artist_id}/document")
async def get_artist_document(artist_id: str, records: Records):
    document = await records.mirror.get_artist_document(artist_id)
    if document is None:
        raise NotFoundException("Artist document not found")
    return document


@router.patch("/{artist_id}/document")
async def update_artist_document(
    artist_id: str,
    records: Records,
    updates: dict[str, Any] = Body(...),
):
    document = await records.update_artist_document(artist_id, updates)
    if document is None:
        raise NotFoundException("Artist document not found")
    return document


@router.post("/{artist_id}/document/rebuild", summary="Rebuild the document from the ledger")
async def rebuild_artist_document(artist_id: str, records: Records):
    document = await records.rebuild_document_from_ledger(artist_id)
    if document is None:
        raise NotFoundException("Artist document not found")
    return document


# ============= Generation =============

@router.post(
    "/{artist_id}/backstory",
    response_model=GenerationHistoryResponse,
    response_model_by_alias=True,
    status_code=status.HTTP_201_CREATED,
)
async def generate_backstory(artist_id: str, body: BackstoryRequest, generations: Generations):
    return await generations.generate_backstory(body.user_id, artist_id, body.prompt)

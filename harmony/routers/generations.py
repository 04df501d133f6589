"""Generation history router (ledger entries and the document-store log)."""

import uuid
from typing import Any

from fastapi import APIRouter, Body, Query, status

from harmony.core.exceptions import NotFoundException
from harmony.dependencies import Records
from harmony.schemas.generation import GenerationHistoryCreate, GenerationHistoryResponse

router = APIRouter()


@router.get(
    "/users/{user_id}",
    response_model=list[GenerationHistoryResponse],
    response_model_by_alias=True,
    summary="Generation history for a user, newest first",
)
async def list_history(
    user_id: str,
    records: Records,
    limit: int = Query(default=50, ge=1, le=200),
):
    return await records.ledger.list_history(user_id, limit=limit)


@router.get("/users/{user_id}/logs", summary="Generation log from the document store")
async def list_generation_logs(
    user_id: str,
    records: Records,
    limit: int = Query(default=50, ge=1, le=200),
):
    return {"logs": await records.mirror.list_generation_logs(user_id, limit=limit)}


@router.post("", status_code=status.HTTP_201_CREATED)
async def add_history(body: GenerationHistoryCreate, records: Records):
    result = await records.record_generation(body)
    return {
        "generation": GenerationHistoryResponse.model_validate(result.record).model_dump(by_alias=True),
        "mirrorSynced": result.mirror_synced,
    }


@router.patch("/{generation_id}")
async def update_history(
    generation_id: uuid.UUID,
    records: Records,
    updates: dict[str, Any] = Body(...),
):
    result = await records.update_generation(generation_id, updates)
    if result is None:
        raise NotFoundException("Generation not found")
    return {
        "generation": GenerationHistoryResponse.model_validate(result.record).model_dump(by_alias=True),
        "mirrorSynced": result.mirror_synced,
    }

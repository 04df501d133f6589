from typing import Annotated

from fastapi import Depends, Request
from pymongo.asynchronous.database import AsyncDatabase
from sqlalchemy.ext.asyncio import AsyncSession

from harmony.config import get_settings
from harmony.database import get_db
from harmony.mongodb import get_documents
from harmony.services.artist_record_service import ArtistRecordService
from harmony.services.gemini_service import GeminiService
from harmony.services.generation_service import TEXT_SERVICE, GenerationService
from harmony.services.key_manager import AIKeyManager

DbSession = Annotated[AsyncSession, Depends(get_db)]
Documents = Annotated[AsyncDatabase, Depends(get_documents)]


def get_key_manager(request: Request) -> AIKeyManager:
    """The process-wide key manager created in the app lifespan."""
    return request.app.state.key_manager


def get_gemini_service(request: Request) -> GeminiService:
    return request.app.state.gemini_service


KeyManager = Annotated[AIKeyManager, Depends(get_key_manager)]


async def get_record_service(db: DbSession, documents: Documents) -> ArtistRecordService:
    settings = get_settings()
    return ArtistRecordService(db, documents, popular_ttl=settings.popular_artists_cache_ttl)


Records = Annotated[ArtistRecordService, Depends(get_record_service)]


async def get_generation_service(
    records: Records,
    key_manager: KeyManager,
    gemini: Annotated[GeminiService, Depends(get_gemini_service)],
) -> GenerationService:
    settings = get_settings()
    limiter = key_manager.get_rate_limiter(
        TEXT_SERVICE, settings.ai_service_rate_limit, settings.ai_rate_window_seconds
    )
    return GenerationService(records, key_manager, limiter, gemini)


Generations = Annotated[GenerationService, Depends(get_generation_service)]

"""Generation workflow: key and rate-limit gate, provider call, ledger + mirror record."""

import logging
import time
from typing import Optional, Protocol

from harmony.core.exceptions import InvalidKeyFormatError, RateLimitExceededError
from harmony.models import GenerationHistory, GenerationStatus, GenerationType
from harmony.services.artist_record_service import ArtistRecordService
from harmony.services.key_manager import AIKeyManager, SlidingWindowRateLimiter

logger = logging.getLogger(__name__)

TEXT_SERVICE = "gemini"


class TextProvider(Protocol):
    model_name: str

    def refine_backstory_prompt(
        self,
        prompt: str,
        visual_style: Optional[str] = None,
        speaking_style: Optional[str] = None,
        genres: Optional[list[str]] = None,
    ) -> str: ...

    async def generate_text(self, api_key: str, prompt: str) -> str: ...


class GenerationService:
    """Runs one provider call and keeps the ledger and mirror informed."""

    def __init__(
        self,
        records: ArtistRecordService,
        key_manager: AIKeyManager,
        limiter: SlidingWindowRateLimiter,
        provider: TextProvider,
    ):
        self.records = records
        self.key_manager = key_manager
        self.limiter = limiter
        self.provider = provider

    async def generate_backstory(self, user_id: str, artist_id: str, prompt: str) -> GenerationHistory:
        """
        Generate a backstory for an artist and store it.

        The ledger entry starts as pending and ends as succeeded or failed.
        Provider errors are recorded on the entry and then re-raised.
        """
        if not self.limiter.can_make_request():
            raise RateLimitExceededError(TEXT_SERVICE, self.limiter.get_remaining_requests())

        api_key = self.key_manager.get_api_key(TEXT_SERVICE)
        if not self.key_manager.validate_api_key(api_key, TEXT_SERVICE):
            raise InvalidKeyFormatError(TEXT_SERVICE)

        details = await self.records.ledger.get_artist_details(artist_id)
        document = await self.records.mirror.get_artist_document(artist_id)
        genres = (document or {}).get("musicStyle", {}).get("primaryGenres", [])
        refined = self.provider.refine_backstory_prompt(
            prompt,
            visual_style=details.visual_style if details else None,
            speaking_style=details.speaking_style if details else None,
            genres=genres,
        )

        pending = (await self.records.record_generation({
            "user_id": user_id,
            "artist_id": artist_id,
            "generation_type": GenerationType.TEXT,
            "prompt": prompt,
            "refined_prompt": refined,
            "parameters": {"model": self.provider.model_name, "kind": "backstory"},
            "result_data": {},
            "service_used": TEXT_SERVICE,
            "status": GenerationStatus.PENDING,
        })).record

        started = time.perf_counter()
        try:
            text = await self.provider.generate_text(api_key, refined)
        except Exception as e:
            logger.error(f"[GenerationService] {TEXT_SERVICE} failed for artist {artist_id}: {e}")
            await self.records.update_generation(
                pending.id,
                {"status": GenerationStatus.FAILED, "errorMessage": str(e)},
                processing_ms=int((time.perf_counter() - started) * 1000),
            )
            raise

        processing_ms = int((time.perf_counter() - started) * 1000)
        result = await self.records.update_generation(
            pending.id,
            {"status": GenerationStatus.SUCCEEDED, "resultData": {"text": text, "processingTime": processing_ms}},
            processing_ms=processing_ms,
        )
        if details is not None:
            await self.records.ledger.update_artist_details(artist_id, {"backstory": text})
        if document is not None:
            await self.records.update_artist_document(artist_id, {"persona.backstory": text})

        logger.info(f"[GenerationService] Backstory generated for artist {artist_id} in {processing_ms}ms")
        return result.record

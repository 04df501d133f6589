import pytest

from harmony.core.exceptions import ApiKeyNotFoundError, InvalidKeyFormatError, RateLimitExceededError
from harmony.models import GenerationStatus
from harmony.services.gemini_service import GeminiService
from harmony.services.generation_service import GenerationService
from harmony.services.key_manager import AIKeyManager, SlidingWindowRateLimiter
from tests.conftest import VALID_KEY


class FakeProvider:
    model_name = "fake-text-model"

    def __init__(self, text: str = "Nova grew up in a lighthouse.", error: Exception | None = None):
        self.text = text
        self.error = error
        self.prompts = []
        self._refiner = GeminiService(self.model_name)

    def refine_backstory_prompt(self, prompt, visual_style=None, speaking_style=None, genres=None):
        return self._refiner.refine_backstory_prompt(prompt, visual_style, speaking_style, genres)

    async def generate_text(self, api_key: str, prompt: str) -> str:
        self.prompts.append((api_key, prompt))
        if self.error:
            raise self.error
        return self.text


def make_service(records, provider, keys=None, limit=10):
    key_manager = AIKeyManager(lambda name: (keys if keys is not None else {"gemini": VALID_KEY}).get(name))
    limiter = SlidingWindowRateLimiter("gemini", limit=limit, window=60)
    return GenerationService(records, key_manager, limiter, provider)


async def test_backstory_success(records, artist_document):
    await records.ledger.create_artist_details("artist-1", {"visualStyle": "neon"})
    provider = FakeProvider()
    service = make_service(records, provider)

    entry = await service.generate_backstory("user-1", "artist-1", "a lighthouse keeper")

    assert entry.status is GenerationStatus.SUCCEEDED
    assert entry.result_data["text"] == "Nova grew up in a lighthouse."
    api_key, prompt = provider.prompts[0]
    assert api_key == VALID_KEY
    assert "neon" in prompt and "synthpop, house" in prompt

    details = await records.ledger.get_artist_details("artist-1")
    assert details.backstory == "Nova grew up in a lighthouse."
    document = await records.mirror.get_artist_document("artist-1")
    assert document["persona"]["backstory"] == "Nova grew up in a lighthouse."
    assert document["generationHistory"][0]["status"] == "succeeded"

    [log] = await records.mirror.list_generation_logs("user-1")
    assert log["generationId"] == str(entry.id)
    assert log["status"] == "succeeded"
    assert log["result"]["text"] == "Nova grew up in a lighthouse."
    assert isinstance(log["processingTime"], int)


async def test_provider_failure_recorded(records, artist_document):
    service = make_service(records, FakeProvider(error=RuntimeError("quota exhausted")))

    with pytest.raises(RuntimeError):
        await service.generate_backstory("user-1", "artist-1", "anything")

    [entry] = await records.ledger.list_history("user-1")
    assert entry.status is GenerationStatus.FAILED
    assert entry.error_message == "quota exhausted"
    document = await records.mirror.get_artist_document("artist-1")
    assert document["generationHistory"][0]["status"] == "failed"
    [log] = await records.mirror.list_generation_logs("user-1")
    assert log["status"] == "failed"
    assert log["errorMessage"] == "quota exhausted"


async def test_rate_limited_before_any_write(records, artist_document):
    service = make_service(records, FakeProvider(), limit=1)
    await service.generate_backstory("user-1", "artist-1", "first")

    with pytest.raises(RateLimitExceededError) as exc_info:
        await service.generate_backstory("user-1", "artist-1", "second")

    assert exc_info.value.service_name == "gemini"
    assert len(await records.ledger.list_history("user-1")) == 1


async def test_missing_key(records):
    service = make_service(records, FakeProvider(), keys={})
    with pytest.raises(ApiKeyNotFoundError):
        await service.generate_backstory("user-1", "artist-1", "x")


async def test_placeholder_key(records):
    service = make_service(records, FakeProvider(), keys={"gemini": "your-gemini-api-key-here-please"})
    with pytest.raises(InvalidKeyFormatError):
        await service.generate_backstory("user-1", "artist-1", "x")
    assert await records.ledger.list_history("user-1") == []

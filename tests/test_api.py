import pytest
from httpx import ASGITransport, AsyncClient

from harmony.database import get_db
from harmony.dependencies import get_generation_service, get_key_manager
from harmony.main import app
from harmony.mongodb import get_documents
from harmony.services.generation_service import GenerationService
from harmony.services.key_manager import AIKeyManager, SlidingWindowRateLimiter
from tests.conftest import VALID_KEY
from tests.test_generation_service import FakeProvider

PREFIX = "/api/v1"


@pytest.fixture
async def client(db, documents, redis_client):
    key_manager = AIKeyManager(lambda name: {"gemini": VALID_KEY}.get(name))

    async def override_db():
        yield db

    async def override_documents():
        return documents

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_documents] = override_documents
    app.dependency_overrides[get_key_manager] = lambda: key_manager

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
async def artist(client):
    response = await client.post(f"{PREFIX}/artists/documents", json={
        "artistId": "artist-1",
        "userId": "user-1",
        "name": "Nova Bloom",
        "musicStyle": {"primaryGenres": ["synthpop"]},
    })
    assert response.status_code == 201
    return response.json()


async def test_root_and_health(client):
    assert (await client.get("/")).json()["version"] == "1.0.0"
    assert (await client.get("/health")).json() == {"status": "healthy"}


async def test_store_health_reports_degraded_without_connections(client):
    body = (await client.get("/health/stores")).json()
    assert body["status"] == "degraded"
    assert body["stores"]["postgres"] is False
    assert body["stores"]["redis"] is True


async def test_service_health(client):
    body = (await client.get("/health/services")).json()
    assert body["services"]["gemini"]["healthy"] is True
    assert body["services"]["openai"]["healthy"] is False
    assert body["key_cache"]["total_entries"] == 1


async def test_details_lifecycle(client):
    url = f"{PREFIX}/artists/artist-1/details"
    assert (await client.get(url)).status_code == 404

    created = await client.post(url, json={"visualStyle": "neon", "personalityTraits": ["shy"]})
    assert created.status_code == 201
    assert created.json()["visualStyle"] == "neon"

    assert (await client.post(url, json={})).status_code == 409

    patched = await client.patch(url, json={"backstory": "Born on tour"})
    assert patched.json()["backstory"] == "Born on tour"
    assert patched.json()["visualStyle"] == "neon"

    rejected = await client.patch(url, json={"artistId": "other"})
    assert rejected.status_code == 422


async def test_images_flow(client, artist):
    response = await client.post(f"{PREFIX}/artists/artist-1/images", json={
        "imageUrl": "https://cdn/1.png", "prompt": "portrait", "model": "nanobanana",
    })
    assert response.status_code == 201
    body = response.json()
    assert body["mirrorSynced"] is True
    image_id = body["image"]["id"]

    document = (await client.get(f"{PREFIX}/artists/artist-1/document")).json()
    assert document["imageGallery"][0]["imageId"] == image_id

    deleted = await client.delete(f"{PREFIX}/artists/images/{image_id}")
    assert deleted.status_code == 200
    document = (await client.get(f"{PREFIX}/artists/artist-1/document")).json()
    assert document["imageGallery"] == []

    assert (await client.delete(f"{PREFIX}/artists/images/{image_id}")).status_code == 404


async def test_image_patch_reaches_document(client, artist):
    created = await client.post(f"{PREFIX}/artists/artist-1/images", json={
        "imageUrl": "https://cdn/1.png", "prompt": "portrait", "model": "nanobanana",
    })
    image_id = created.json()["image"]["id"]

    response = await client.patch(f"{PREFIX}/artists/images/{image_id}", json={
        "isPrimary": True, "generatedAt": "2025-01-01T00:00:00+00:00",
    })
    assert response.status_code == 200
    body = response.json()
    assert body["mirrorSynced"] is True
    assert body["image"]["isPrimary"] is True

    [entry] = (await client.get(f"{PREFIX}/artists/artist-1/document")).json()["imageGallery"]
    assert entry["imageId"] == image_id
    assert entry["isPrimary"] is True
    assert entry["generatedAt"].startswith("2025-01-01")


async def test_image_patch_rejects_bad_values(client, artist):
    created = await client.post(f"{PREFIX}/artists/artist-1/images", json={
        "imageUrl": "https://cdn/1.png", "prompt": "portrait", "model": "nanobanana",
    })
    image_id = created.json()["image"]["id"]

    response = await client.patch(f"{PREFIX}/artists/images/{image_id}", json={"generatedAt": "soon"})
    assert response.status_code == 422
    assert response.json()["detail"].startswith("Invalid value for artist image")


async def test_duplicate_document(client, artist):
    response = await client.post(f"{PREFIX}/artists/documents", json={
        "artistId": "artist-1", "userId": "user-1", "name": "Again",
    })
    assert response.status_code == 409


async def test_search(client, artist):
    body = (await client.get(f"{PREFIX}/artists/search", params={"userId": "user-1"})).json()
    assert body["total"] == 1
    assert body["page"] == 1
    assert body["totalPages"] == 1

    assert (await client.get(f"{PREFIX}/artists/search", params={"limit": 0})).status_code == 422


async def test_generation_history(client, artist):
    response = await client.post(f"{PREFIX}/generations", json={
        "userId": "user-1",
        "artistId": "artist-1",
        "generationType": "audio",
        "prompt": "a chorus",
        "parameters": {},
        "resultData": {},
        "serviceUsed": "seedance",
        "status": "pending",
    })
    assert response.status_code == 201
    generation_id = response.json()["generation"]["id"]

    patched = await client.patch(f"{PREFIX}/generations/{generation_id}", json={"status": "succeeded"})
    assert patched.json()["generation"]["status"] == "succeeded"

    history = (await client.get(f"{PREFIX}/generations/users/user-1")).json()
    assert [h["id"] for h in history] == [generation_id]

    logs = (await client.get(f"{PREFIX}/generations/users/user-1/logs")).json()["logs"]
    assert logs[0]["generationId"] == generation_id
    assert logs[0]["status"] == "succeeded"

    bad = await client.patch(f"{PREFIX}/generations/{generation_id}", json={"status": "done"})
    assert bad.status_code == 422
    assert "status" in bad.json()["detail"]


async def test_backstory_rate_limited(client, artist, db, documents):
    from harmony.services.artist_record_service import ArtistRecordService

    key_manager = AIKeyManager(lambda name: VALID_KEY)
    limiter = SlidingWindowRateLimiter("gemini", limit=1, window=60)
    service = GenerationService(ArtistRecordService(db, documents), key_manager, limiter, FakeProvider())
    app.dependency_overrides[get_generation_service] = lambda: service

    url = f"{PREFIX}/artists/artist-1/backstory"
    first = await client.post(url, json={"userId": "user-1", "prompt": "a lighthouse keeper"})
    assert first.status_code == 201
    assert first.json()["status"] == "succeeded"

    second = await client.post(url, json={"userId": "user-1", "prompt": "again"})
    assert second.status_code == 429
    assert second.json()["service"] == "gemini"


async def test_backstory_without_key(client, artist, db, documents):
    from harmony.services.artist_record_service import ArtistRecordService

    key_manager = AIKeyManager(lambda name: None)
    limiter = SlidingWindowRateLimiter("gemini", limit=5, window=60)
    service = GenerationService(ArtistRecordService(db, documents), key_manager, limiter, FakeProvider())
    app.dependency_overrides[get_generation_service] = lambda: service

    response = await client.post(
        f"{PREFIX}/artists/artist-1/backstory", json={"userId": "user-1", "prompt": "x"}
    )
    assert response.status_code == 503

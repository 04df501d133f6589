import os
from datetime import datetime, timedelta, timezone

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("MONGODB_URL", "mongodb://localhost:27017")
os.environ.setdefault("AI_KEY_ENCRYPTION_KEY", "local-development-secret")

import pytest
from fakeredis import FakeAsyncRedis
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import harmony.models  # noqa: F401
from harmony.database import Base
from harmony.services.artist_record_service import ArtistRecordService
from harmony.services.cache_service import CacheService
from harmony.services.ledger_service import LedgerService
from harmony.services.mirror_service import MirrorService
from tests.fakes import FakeDatabase

VALID_KEY = "0123456789abcdef" * 2 + "01234567"


class StepClock:
    """Deterministic clock: each call returns a moment one second after the last."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.now = self.now + timedelta(seconds=1)
        return self.now


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db(engine):
    factory = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
    async with factory() as session:
        yield session


@pytest.fixture
def documents():
    return FakeDatabase()


@pytest.fixture
def clock():
    return StepClock()


@pytest.fixture
def ledger(db, clock):
    return LedgerService(db, clock=clock)


@pytest.fixture
def mirror(documents, clock):
    return MirrorService(documents, clock=clock)


@pytest.fixture
async def redis_client():
    client = FakeAsyncRedis(decode_responses=True)
    CacheService._client = client
    yield client
    await client.flushall()
    CacheService._client = None


@pytest.fixture
def records(db, documents, ledger, mirror, redis_client):
    return ArtistRecordService(db, documents, ledger=ledger, mirror=mirror)


@pytest.fixture
async def artist_document(mirror):
    return await mirror.create_artist_document({
        "artistId": "artist-1",
        "userId": "user-1",
        "name": "Nova Bloom",
        "persona": {"visualStyle": "neon", "speakingStyle": "warm"},
        "musicStyle": {"primaryGenres": ["synthpop", "house"]},
    })

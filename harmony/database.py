import logging
from typing import Optional

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from harmony.config import Settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


class PostgresConnection:
    """Owns the async engine and session factory for the ledger database."""

    def __init__(self):
        self.engine: Optional[AsyncEngine] = None
        self.session_factory: Optional[async_sessionmaker[AsyncSession]] = None
        self.is_connected = False

    async def connect(self, settings: Settings) -> AsyncEngine:
        """Create the pool and verify it with a round trip."""
        connect_args = {}
        if settings.database_url.startswith("postgresql+asyncpg"):
            connect_args = {
                "statement_cache_size": 0,           # Required for pgbouncer
                "prepared_statement_cache_size": 0,
                "command_timeout": settings.db_command_timeout,
            }

        self.engine = create_async_engine(
            settings.database_url,
            echo=settings.debug,  # Log SQL queries in debug mode
            pool_pre_ping=True,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_timeout=settings.db_pool_timeout,
            pool_recycle=settings.db_pool_recycle,
            connect_args=connect_args,
        )
        self._register_pool_events(self.engine)
        self.session_factory = async_sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except Exception as e:
            logger.error(f"Failed to connect to PostgreSQL: {e}")
            await self.engine.dispose()
            self.engine = None
            self.session_factory = None
            raise

        self.is_connected = True
        logger.info("PostgreSQL connected successfully")
        return self.engine

    @staticmethod
    def _register_pool_events(engine: AsyncEngine) -> None:
        sync_engine = engine.sync_engine

        @event.listens_for(sync_engine, "connect")
        def on_connect(dbapi_connection, connection_record):
            logger.debug("PostgreSQL pool opened a new connection")

        @event.listens_for(sync_engine, "invalidate")
        def on_invalidate(dbapi_connection, connection_record, exception):
            logger.warning(f"PostgreSQL connection invalidated: {exception}")

        @event.listens_for(sync_engine, "close")
        def on_close(dbapi_connection, connection_record):
            logger.debug("PostgreSQL pool closed a connection")

    async def disconnect(self) -> None:
        if self.engine is not None:
            await self.engine.dispose()
            self.engine = None
            self.session_factory = None
            self.is_connected = False
            logger.info("PostgreSQL connection closed")

    async def check_health(self) -> bool:
        if not self.is_connected or self.engine is None:
            return False
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.error(f"PostgreSQL health check failed: {e}")
            return False

    def session(self) -> AsyncSession:
        if self.session_factory is None:
            raise RuntimeError("PostgreSQL not connected")
        return self.session_factory()


postgres = PostgresConnection()


async def get_db():
    """
    Dependency that provides a database session.

    Usage in FastAPI:
        @app.get("/items")
        async def get_items(db: AsyncSession = Depends(get_db)):
            ...
    """
    async with postgres.session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from harmony.config import get_settings
from harmony.core.exceptions import (
    ApiKeyNotFoundError,
    ConflictError,
    InvalidKeyFormatError,
    InvalidFieldValueError,
    InvalidPaginationError,
    RateLimitExceededError,
    UnknownFieldError,
)
from harmony.core.logging import configure_logging
from harmony.database import postgres
from harmony.mongodb import mongo
from harmony.routers import artists, generations, health
from harmony.services.cache_service import CacheService
from harmony.services.gemini_service import GeminiService
from harmony.services.key_manager import AIKeyManager
from harmony.services.mirror_scheduler import setup_scheduler

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup/shutdown events.

    Both stores must be reachable before the app serves traffic.
    """
    configure_logging(settings.log_level)
    logger.info(f"Starting {settings.app_name}...")

    await postgres.connect(settings)
    await mongo.connect(settings)
    await CacheService.get_client()

    app.state.key_manager = AIKeyManager.from_settings(settings)
    app.state.gemini_service = GeminiService(settings.gemini_model, timeout=settings.ai_service_timeout)

    scheduler = None
    if settings.mirror_reconcile_minutes > 0:
        scheduler = setup_scheduler(settings.mirror_reconcile_minutes)

    yield

    logger.info(f"Shutting down {settings.app_name}...")
    if scheduler is not None:
        scheduler.shutdown(wait=False)
    await CacheService.close()
    await mongo.disconnect()
    await postgres.disconnect()


app = FastAPI(
    title=settings.app_name,
    description="Backend core for AI-generated music artists",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS Middleware - configure for your frontend domain in production
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.debug else ["https://yourdomain.com"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Domain errors -> HTTP
@app.exception_handler(ConflictError)
async def conflict_handler(request: Request, exc: ConflictError):
    return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={"detail": str(exc)})


@app.exception_handler(UnknownFieldError)
@app.exception_handler(InvalidFieldValueError)
@app.exception_handler(InvalidPaginationError)
async def invalid_request_handler(request: Request, exc: Exception):
    return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content={"detail": str(exc)})


@app.exception_handler(RateLimitExceededError)
async def rate_limit_handler(request: Request, exc: RateLimitExceededError):
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={"detail": str(exc), "service": exc.service_name, "remaining": exc.remaining},
    )


@app.exception_handler(ApiKeyNotFoundError)
@app.exception_handler(InvalidKeyFormatError)
async def provider_unavailable_handler(request: Request, exc: Exception):
    return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content={"detail": str(exc)})


# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(
    artists.router,
    prefix=f"{settings.api_v1_prefix}/artists",
    tags=["Artists"]
)
app.include_router(
    generations.router,
    prefix=f"{settings.api_v1_prefix}/generations",
    tags=["Generations"]
)


@app.get("/", tags=["Health"])
async def root():
    """Root endpoint - API info."""
    return {
        "name": settings.app_name,
        "version": "1.0.0",
        "docs": "/docs",
    }

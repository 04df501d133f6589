"""Health and provider status endpoints."""

from fastapi import APIRouter

from harmony.database import postgres
from harmony.dependencies import KeyManager
from harmony.mongodb import mongo
from harmony.services.cache_service import CacheService

router = APIRouter()


@router.get("/health")
async def health_check():
    """Liveness probe."""
    return {"status": "healthy"}


@router.get("/health/stores")
async def store_health():
    """Round trip to each datastore."""
    checks = {
        "postgres": await postgres.check_health(),
        "mongodb": await mongo.check_health(),
        "redis": await CacheService.ping(),
    }
    return {"status": "healthy" if all(checks.values()) else "degraded", "stores": checks}


@router.get("/health/services")
async def service_health(key_manager: KeyManager):
    """Key presence and format per AI provider. Providers are not contacted."""
    statuses = await key_manager.get_all_service_statuses()
    return {
        "services": {name: vars(status) for name, status in statuses.items()},
        "key_cache": key_manager.get_cache_stats(),
    }

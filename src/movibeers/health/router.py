"""Health, readiness, and version endpoints."""

from fastapi import APIRouter, Depends

from movibeers.config import get_settings
from movibeers.dependencies import get_services
from movibeers.redis_client import redis_status
from movibeers.services import Services

router = APIRouter()


@router.get("/health")
async def health() -> dict[str, str]:
    """Liveness probe: returns 200 if the process is alive."""
    return {"status": "healthy"}


@router.get("/ready")
async def readiness(
    services: Services = Depends(get_services),  # noqa: B008
) -> dict[str, object]:
    """Readiness probe: checks record store and Redis connectivity."""
    checks: dict[str, object] = {}

    try:
        await services.store.ping()
        checks["store"] = "ok"
    except Exception as exc:
        checks["store"] = f"error: {exc}"

    checks["redis"] = await redis_status()

    all_ok = all(v in ("ok", "disabled") for v in checks.values())
    return {"status": "ready" if all_ok else "degraded", "checks": checks}


@router.get("/version")
async def version() -> dict[str, str]:
    """Return API version and environment."""
    settings = get_settings()
    return {
        "version": settings.app_version,
        "environment": settings.environment,
    }

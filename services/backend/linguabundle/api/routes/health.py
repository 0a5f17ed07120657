from datetime import datetime, timezone

from fastapi import APIRouter

from linguabundle.core.config import get_settings

router = APIRouter()


@router.get("/healthz")
async def healthcheck() -> dict[str, str]:
    """Lightweight health endpoint for liveness probes."""
    settings = get_settings()
    return {
        "status": "ok",
        "provider": settings.translation_provider,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

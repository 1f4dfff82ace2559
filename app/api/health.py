# =============================================================================
# Health API
# =============================================================================
#
# GET /health always answers 200. `status` is "degraded" when the database
# probe fails so load balancers can still reach the service for diagnostics.
# =============================================================================

from datetime import UTC, datetime

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings, get_settings
from app.db.engine import get_async_session, ping_database
from app.models.responses import HealthResponse

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthResponse, summary="Service health")
async def health(
    session: AsyncSession = Depends(get_async_session),
    settings: Settings = Depends(get_settings),
) -> HealthResponse:
    connected = await ping_database(session)
    return HealthResponse(
        status="ok" if connected else "degraded",
        service=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
        database="connected" if connected else "disconnected",
        timestamp=datetime.now(UTC),
    )

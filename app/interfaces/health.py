"""
Health check router.

Liveness probe for load balancers. Reports the service identity and
which wallet backend and price source the process was started with.
"""

from fastapi import APIRouter

from app.core.config import settings
from app.interfaces.exchange.schemas import HealthResponse

router = APIRouter(tags=["health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service liveness",
    description="Reports the running service, its version and the configured backends.",
)
def get_health() -> HealthResponse:
    return HealthResponse(
        status="ok",
        service=settings.project_name,
        version=settings.version,
        wallet_backend=settings.wallet_backend,
        price_source=settings.price_source,
    )

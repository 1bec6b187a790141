from fastapi import APIRouter

from tipjar_api.dependencies import services
from tipjar_api.schemas.health import HealthCheckResponse
from tipjar_common.core.config_service import ConfigService
from tipjar_common.core.logging_service import get_logger

from .dashboard import dashboard_router
from .donations import donations_router
from .goals import goals_router
from .onboarding import onboarding_router
from .payouts import payouts_router
from .processor_api import router as processor_router
from .profiles import profiles_router
from .verification import verification_router

logger = get_logger(__name__)

config_service = ConfigService()

router = APIRouter()


# Health check endpoint
@router.get("/api/v1/health")
async def health_check() -> HealthCheckResponse:
    """Health check endpoint for monitoring and testing"""
    database_type = "sqlite" if config_service.get_database_url().startswith("sqlite") else "postgresql"
    logger.debug("Health check", environment=config_service.get_environment(), database_type=database_type)

    return HealthCheckResponse(
        status="healthy",
        service="backend",
        environment=config_service.get_environment(),
        is_testing=config_service.is_testing(),
        database_type=database_type,
        processor_configured=services.stripe_service.is_configured,
    )


# Include route definitions
router.include_router(processor_router, tags=["processor"])  # browser-facing /api/* and the webhook
router.include_router(profiles_router, prefix="/api/v1", tags=["profiles"])
router.include_router(donations_router, prefix="/api/v1", tags=["donations"])
router.include_router(dashboard_router, prefix="/api/v1", tags=["dashboard"])
router.include_router(payouts_router, prefix="/api/v1", tags=["payouts"])
router.include_router(goals_router, prefix="/api/v1", tags=["goals"])
router.include_router(verification_router, prefix="/api/v1", tags=["verification"])
router.include_router(onboarding_router, prefix="/api/v1", tags=["onboarding"])

"""
Health check routes.
"""
import logging

from fastapi import APIRouter

from nexus.adapters.dynamodb import User
from nexus.core.config import get_settings
from nexus.middleware.error_handling import error_tracker
from nexus.schemas.common import HealthResponse
from nexus.services.llm_service import get_llm_service
from nexus.utils.cache import get_cache

router = APIRouter(tags=["Health"])
logger = logging.getLogger(__name__)


@router.get("/health", response_model=HealthResponse)
def health_check():
    """Liveness check."""
    settings = get_settings()
    return HealthResponse(
        success=True,
        data={"status": "healthy", "version": settings.app_version},
        message="OK"
    )


@router.get("/health/detailed", response_model=HealthResponse)
def detailed_health_check():
    """
    Dependency checks: DynamoDB table reachability, Redis cache state,
    LLM configuration and error counters.
    """
    checks = {}
    issues = []

    try:
        checks["dynamodb"] = User.exists()
        if not checks["dynamodb"]:
            issues.append("Users table does not exist - run scripts/init_dynamodb.py")
    except Exception as e:
        logger.warning(f"DynamoDB health check failed: {e}")
        checks["dynamodb"] = False
        issues.append(f"DynamoDB unreachable: {e}")

    checks["cache"] = get_cache().get_stats()
    checks["llm_configured"] = get_llm_service().is_available()
    checks["errors"] = error_tracker.get_stats()

    healthy = bool(checks["dynamodb"])
    return HealthResponse(
        success=healthy,
        data={"status": "healthy" if healthy else "degraded", "checks": checks, "issues": issues},
        message="OK" if healthy else "DEGRADED"
    )

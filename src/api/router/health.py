from fastapi import APIRouter, status, Request
from datetime import datetime, timezone
from typing import Dict

from src.core.logger.logger import logger
from src.infra.config.settings import settings

router = APIRouter()


async def check_database_health(request: Request) -> Dict[str, str]:
    """Check PostgreSQL connection health."""
    db_manager = getattr(request.app.state, "db_manager", None)
    if db_manager is None or db_manager.get_engine() is None:
        return {"status": "not_connected", "message": "Database engine not initialized"}
    try:
        await db_manager.ping()
        return {"status": "healthy", "message": "Connected"}
    except Exception as e:
        logger.warning(f"Database health check failed: {e}")
        return {"status": "unhealthy", "message": f"Connection failed: {str(e)}"}


@router.get("/health", status_code=status.HTTP_200_OK)
async def health_check(request: Request):
    """
    Health check endpoint.
    Reports the API itself and the database connection.
    """
    database_health = await check_database_health(request)

    services = {
        "database": database_health["status"],
        "api_gateway": "healthy"
    }

    overall_status = "healthy" if database_health["status"] == "healthy" else "degraded"

    logger.info("Health check", extra={"overall_status": overall_status, "database": database_health["status"]})

    return {
        "status": overall_status,
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "services": services,
        "timestamp": datetime.now(timezone.utc).isoformat()
    }

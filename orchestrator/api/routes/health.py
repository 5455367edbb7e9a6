"""
Rota de health check.
"""
import logging

from fastapi import APIRouter, Depends

from orchestrator.api.deps import get_resources
from orchestrator.core.config import settings
from orchestrator.core.timezone import agora_utc
from orchestrator.services.resources import Resources

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health")
async def health_check(resources: Resources = Depends(get_resources)):
    """
    Liveness com estado das dependencias.

    Sempre 200 se a app esta rodando; broker fora vira status degraded.
    """
    broker_ok = await resources.broker.ping()
    ai = await resources.ai_service.health()

    status = "healthy" if broker_ok else "degraded"
    if not broker_ok:
        logger.warning("Health check: broker inacessivel")

    return {
        "status": status,
        "app": settings.APP_NAME,
        "environment": settings.ENVIRONMENT,
        "timestamp": agora_utc().isoformat(),
        "checks": {
            "broker": "ok" if broker_ok else "unreachable",
            "store": settings.STORE_BACKEND,
            "ai": ai["status"],
        },
    }

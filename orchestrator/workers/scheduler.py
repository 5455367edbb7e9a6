"""
Scheduler de campanhas agendadas.

A cada SCHEDULER_INTERVAL_SECONDS inicia as campanhas cujo scheduled_at passou.
"""
import asyncio
import logging

from orchestrator.core.config import settings
from orchestrator.services.campaigns import dispatch_due_campaigns
from orchestrator.services.resources import Resources

logger = logging.getLogger(__name__)


async def executar_ciclo(resources: Resources) -> dict:
    """Um ciclo do scheduler."""
    resultado = await dispatch_due_campaigns(resources.dispatcher, resources.campaigns)
    return resultado.to_dict()


async def scheduler_loop(resources: Resources = None, intervalo: int = None):
    """Loop principal do scheduler."""
    proprios = resources is None
    resources = resources or Resources.connect()
    intervalo = intervalo or settings.SCHEDULER_INTERVAL_SECONDS

    logger.info(f"Scheduler iniciado (intervalo {intervalo}s)")
    try:
        while True:
            try:
                await executar_ciclo(resources)
            except Exception as e:
                logger.error(f"Erro no ciclo do scheduler: {e}", exc_info=True)
            await asyncio.sleep(intervalo)
    finally:
        if proprios:
            await resources.close()

"""
Worker de recibos de entrega.

Consome queue.delivery.receipt e aplica cada recibo no CommunicationLog.
"""
import logging

from orchestrator.services.resources import Resources

logger = logging.getLogger(__name__)


async def processar_recibos(resources: Resources = None):
    """Loop do consumidor de recibos (roda ate ser cancelado)."""
    proprios = resources is None
    resources = resources or Resources.connect()
    consumer = resources.receipt_consumer()

    try:
        await consumer.run()
    finally:
        if proprios:
            await resources.close()

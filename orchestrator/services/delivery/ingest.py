"""
Entrada de recibos de entrega (webhook do provider).

Valida o formato e publica na fila de recibos. A reconciliacao acontece
no consumidor, fora do request.
"""
import logging

import pydantic

from orchestrator.core.config import settings
from orchestrator.core.exceptions import ValidationError
from orchestrator.services.broker import MessageBroker
from .types import DeliveryReceipt

logger = logging.getLogger(__name__)


def parse_receipt(payload) -> DeliveryReceipt:
    """
    Valida payload de recibo.

    Raises:
        ValidationError: Campos ausentes ou status desconhecido
    """
    if not isinstance(payload, dict):
        raise ValidationError("Recibo deve ser um objeto JSON")
    try:
        return DeliveryReceipt.model_validate(payload)
    except pydantic.ValidationError as e:
        erros = [
            {"field": ".".join(str(p) for p in err["loc"]), "error": err["msg"]}
            for err in e.errors()
        ]
        raise ValidationError("Recibo de entrega invalido", details={"errors": erros})


class ReceiptIngestService:
    """Publica recibos validos na fila de recibos."""

    def __init__(self, broker: MessageBroker, queue: str = None):
        self.broker = broker
        self.queue = queue or settings.QUEUE_DELIVERY_RECEIPT

    async def ingest(self, payload) -> DeliveryReceipt:
        """
        Aceita um recibo.

        Raises:
            ValidationError: Payload invalido (nada e publicado)
            ExternalServiceError: Broker indisponivel
        """
        receipt = parse_receipt(payload)
        await self.broker.publish(self.queue, receipt.model_dump(mode="json"))
        logger.debug(
            f"Recibo aceito: log={receipt.communicationLogId} status={receipt.status.value}"
        )
        return receipt

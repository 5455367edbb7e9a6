"""
Consumidor da fila de recibos.

Entrega at-least-once: o reconciliador e idempotente, entao reprocessar
um recibo nao altera contadores. Recibos cuja aplicacao falha voltam para
o fim da fila com o contador `attempts` incrementado; esgotadas as
tentativas vao para a fila de mortos.
"""
import asyncio
import logging
from typing import Optional

from orchestrator.core.config import settings
from orchestrator.core.exceptions import ValidationError
from orchestrator.services.broker import MessageBroker
from .ingest import parse_receipt
from .reconciler import DeliveryReconciler
from .types import ReconcileResult

logger = logging.getLogger(__name__)


class ReceiptConsumer:
    """
    Loop de consumo de recibos.

    Exemplo:
        consumer = ReceiptConsumer(broker, reconciler)
        await consumer.run()
    """

    def __init__(
        self,
        broker: MessageBroker,
        reconciler: DeliveryReconciler,
        queue: Optional[str] = None,
        poll_timeout: Optional[int] = None,
        max_attempts: Optional[int] = None,
        dead_queue: Optional[str] = None,
    ):
        self.broker = broker
        self.reconciler = reconciler
        self.queue = queue or settings.QUEUE_DELIVERY_RECEIPT
        self.poll_timeout = poll_timeout or settings.RECEIPT_POLL_TIMEOUT_SECONDS
        self.max_attempts = max_attempts or settings.RECEIPT_MAX_ATTEMPTS
        self.dead_queue = dead_queue or settings.QUEUE_DELIVERY_RECEIPT_DEAD
        self._running = False

    async def processar_um(self) -> Optional[ReconcileResult]:
        """
        Processa no maximo uma mensagem.

        Returns:
            Resultado da reconciliacao, ou None se a fila estava vazia
            ou a mensagem foi descartada por ser malformada.

        Raises:
            Exception: Erro da reconciliacao, depois de devolver o recibo a fila
        """
        payload = await self.broker.consume(self.queue, timeout=self.poll_timeout)
        if payload is None:
            return None

        try:
            receipt = parse_receipt(payload)
        except ValidationError as e:
            logger.error(f"Recibo malformado descartado: {e}")
            return None

        try:
            return await self.reconciler.apply(receipt)
        except Exception as e:
            await self._reagendar(payload, e)
            raise

    async def _reagendar(self, payload: dict, erro: Exception):
        """Devolve o recibo a fila ou, sem tentativas restantes, a fila de mortos."""
        tentativa = int(payload.get("attempts") or 0) + 1
        mensagem = {**payload, "attempts": tentativa, "lastError": str(erro)}
        log_id = payload.get("communicationLogId")

        if tentativa < self.max_attempts:
            await self.broker.publish(self.queue, mensagem)
            logger.warning(f"Recibo {log_id} reenfileirado (tentativa {tentativa}): {erro}")
        else:
            await self.broker.publish(self.dead_queue, mensagem)
            logger.error(f"Recibo {log_id} movido para {self.dead_queue} apos {tentativa} tentativas")

    async def run(self):
        """Consome ate stop() ser chamado ou a task ser cancelada."""
        self._running = True
        logger.info(f"Consumidor de recibos iniciado (fila {self.queue})")

        while self._running:
            try:
                await self.processar_um()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Erro ao processar recibo: {e}", exc_info=True)
                await asyncio.sleep(1)

        logger.info("Consumidor de recibos parado")

    def stop(self):
        self._running = False

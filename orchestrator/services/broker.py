"""
Broker de mensagens sobre Redis.

Cada fila nomeada e uma lista Redis (RPUSH para publicar, BLPOP para consumir).
Entrega at-least-once: consumidores devem ser idempotentes.
"""
import json
import logging
from typing import Any, Optional

import redis.asyncio as redis

from orchestrator.core.config import settings
from orchestrator.core.exceptions import ExternalServiceError

logger = logging.getLogger(__name__)


class MessageBroker:
    """
    Filas duraveis nomeadas.

    Exemplo:
        broker = MessageBroker.from_url("redis://localhost:6379/0")
        await broker.publish("queue.campaign.delivery", {"communicationLogId": "..."})
    """

    def __init__(self, client: "redis.Redis"):
        self.client = client

    @classmethod
    def from_url(cls, url: Optional[str] = None) -> "MessageBroker":
        client = redis.from_url(
            url or settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
        )
        return cls(client)

    async def publish(self, queue: str, payload: dict) -> None:
        """
        Publica mensagem na fila (fire-and-forget).

        Raises:
            ExternalServiceError: Se o Redis recusar a escrita
        """
        try:
            await self.client.rpush(queue, json.dumps(payload, ensure_ascii=False, default=str))
        except Exception as e:
            logger.error(f"Falha ao publicar em {queue}: {e}")
            raise ExternalServiceError(
                f"Falha ao publicar em {queue}",
                service="redis",
                original_error=e,
            )
        logger.debug(f"Mensagem publicada em {queue}")

    async def consume(self, queue: str, timeout: int = 5) -> Optional[Any]:
        """
        Bloqueia ate `timeout` segundos esperando a proxima mensagem.

        Returns:
            Payload decodificado, ou None se a fila estiver vazia.
            Payloads que nao sao JSON valido sao descartados com log.
        """
        item = await self.client.blpop([queue], timeout=timeout)
        if not item:
            return None

        _, raw = item
        try:
            return json.loads(raw)
        except (TypeError, ValueError):
            logger.error(f"Mensagem invalida descartada de {queue}: {raw!r:.200}")
            return None

    async def ping(self) -> bool:
        """Verifica se Redis esta acessivel."""
        try:
            await self.client.ping()
            return True
        except Exception as e:
            logger.error(f"Redis nao acessivel: {e}")
            return False

    async def close(self) -> None:
        await self.client.aclose()

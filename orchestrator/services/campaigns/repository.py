"""
Repositories de campanhas e logs de comunicacao.

Contadores (stats_*) so mudam por incremento atomico do store,
nunca por read-modify-write.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from orchestrator.core.timezone import agora_utc
from orchestrator.services.store import Condition, DocumentStore, Op, Predicate
from .types import (
    CampaignData,
    CampaignStats,
    CampaignStatus,
    CommunicationLog,
    LogStatus,
)

logger = logging.getLogger(__name__)


class CampaignRepository:
    """Repository para operacoes de campanhas no banco."""

    TABLE = "campaigns"

    def __init__(self, store: DocumentStore):
        self.store = store

    async def get(self, campaign_id: str) -> Optional[CampaignData]:
        """
        Busca campanha por ID.

        Returns:
            CampaignData ou None se nao encontrada
        """
        row = await self.store.find_one(self.TABLE, campaign_id)
        return CampaignData.from_db_row(row) if row else None

    async def create(self, data: Dict[str, Any]) -> CampaignData:
        """Cria campanha com stats zeradas."""
        agora = agora_utc().isoformat()
        row = {
            **data,
            **CampaignStats().to_db_columns(),
            "created_at": agora,
            "updated_at": agora,
        }
        stored = await self.store.insert(self.TABLE, row)
        logger.info(f"Campanha criada: {stored['id']} ({stored.get('status')})")
        return CampaignData.from_db_row(stored)

    async def update_status(
        self,
        campaign_id: str,
        status: CampaignStatus,
        expected: Optional[CampaignStatus] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """
        Atualiza status da campanha.

        Args:
            campaign_id: ID da campanha
            status: Novo status
            expected: Se informado, so atualiza quando o status atual for este
            extra: Campos adicionais a gravar junto

        Returns:
            True se a campanha foi atualizada
        """
        changes = {"status": status.value, "updated_at": agora_utc().isoformat()}
        if extra:
            changes.update(extra)

        atualizado = await self.store.update(
            self.TABLE,
            campaign_id,
            changes,
            expected={"status": expected.value} if expected else None,
        )
        if atualizado:
            logger.info(f"Campanha {campaign_id}: status -> {status.value}")
        return atualizado

    async def start(
        self,
        campaign_id: str,
        previous: CampaignStatus,
        total_recipients: int,
        started_at: datetime,
    ) -> bool:
        """
        Marca campanha como running e grava stats iniciais.

        Condicional ao status anterior: dois envios concorrentes
        nao conseguem iniciar a mesma campanha.
        """
        stats = CampaignStats(total_recipients=total_recipients)
        return await self.update_status(
            campaign_id,
            CampaignStatus.RUNNING,
            expected=previous,
            extra={**stats.to_db_columns(), "started_at": started_at.isoformat()},
        )

    async def increment_stat(self, campaign_id: str, column: str, amount: int = 1) -> Optional[int]:
        """Incrementa contador stats_* atomicamente."""
        return await self.store.increment(self.TABLE, campaign_id, column, amount)

    async def list_due(self, now: Optional[datetime] = None) -> List[CampaignData]:
        """
        Lista campanhas agendadas cujo horario ja passou.

        Args:
            now: Datetime atual (default: agora_utc)
        """
        now = now or agora_utc()
        predicate = Predicate.where(status=CampaignStatus.SCHEDULED.value).and_(
            Condition("scheduled_at", Op.LTE, now)
        )
        rows = await self.store.find(self.TABLE, predicate)
        return [CampaignData.from_db_row(row) for row in rows]

    async def list_all(self, limit: Optional[int] = None) -> List[CampaignData]:
        rows = await self.store.find(self.TABLE, limit=limit)
        return [CampaignData.from_db_row(row) for row in rows]


class CommunicationLogRepository:
    """Repository para logs de comunicacao (um por destinatario)."""

    TABLE = "communication_logs"

    def __init__(self, store: DocumentStore):
        self.store = store

    async def get(self, log_id: str) -> Optional[CommunicationLog]:
        row = await self.store.find_one(self.TABLE, log_id)
        return CommunicationLog.from_db_row(row) if row else None

    async def insert_batch(self, rows: List[Dict[str, Any]]) -> List[CommunicationLog]:
        """Insere todos os logs de um envio numa unica operacao."""
        stored = await self.store.insert_many(self.TABLE, rows)
        return [CommunicationLog.from_db_row(row) for row in stored]

    async def mark_enqueued(self, log_id: str, at: Optional[datetime] = None) -> bool:
        """
        Marca publicacao bem-sucedida (status continua PENDING).

        Nao sobrescreve logs que ja receberam recibo.
        """
        return await self.store.update(
            self.TABLE,
            log_id,
            {"enqueued_at": (at or agora_utc()).isoformat()},
            expected={"status": LogStatus.PENDING.value},
        )

    async def transition(self, log_id: str, status: LogStatus, changes: Dict[str, Any]) -> bool:
        """
        PENDING -> status terminal, num unico update condicional.

        Returns:
            True apenas para o chamador cuja atualizacao aplicou
        """
        return await self.store.update(
            self.TABLE,
            log_id,
            {**changes, "status": status.value},
            expected={"status": LogStatus.PENDING.value},
        )

    async def count_by_campaign(self, campaign_id: str) -> int:
        return await self.store.count(self.TABLE, Predicate.where(campaign_id=campaign_id))

    async def list_by_campaign(
        self, campaign_id: str, status: Optional[LogStatus] = None
    ) -> List[CommunicationLog]:
        predicate = Predicate.where(campaign_id=campaign_id)
        if status is not None:
            predicate = predicate.and_(Condition("status", Op.EQ, status.value))
        rows = await self.store.find(self.TABLE, predicate)
        return [CommunicationLog.from_db_row(row) for row in rows]

"""
Dispatcher de campanhas.

Responsavel por:
- Resolver o segmento em destinatarios
- Iniciar a campanha (running + stats iniciais), condicional ao status anterior
- Criar os CommunicationLogs num unico lote, com mensagem personalizada e snapshot
- Publicar cada log em queue.campaign.delivery
"""
import logging
from datetime import datetime
from typing import Callable, List, Optional

from orchestrator.core.config import settings
from orchestrator.core.exceptions import (
    InvalidCampaignStateError,
    NoRecipientsError,
    NotFoundError,
    ValidationError,
)
from orchestrator.core.timezone import agora_utc
from orchestrator.services.broker import MessageBroker
from orchestrator.services.personalization import CustomerSnapshot, personalize
from orchestrator.services.segments import (
    CustomerRepository,
    SegmentRepository,
    compile_rules,
)
from .repository import CampaignRepository, CommunicationLogRepository
from .types import (
    CampaignData,
    CampaignStats,
    CampaignStatus,
    CommunicationLog,
    DispatchSummary,
    LogStatus,
)
from .worker_pool import DispatchWorkerPool

logger = logging.getLogger(__name__)


class CampaignDispatcher:
    """
    Envio de campanhas para a fila de entrega.

    Exemplo:
        dispatcher = CampaignDispatcher(campaigns, logs, segments, customers, broker)
        summary = await dispatcher.send(campaign_id)
    """

    def __init__(
        self,
        campaigns: CampaignRepository,
        logs: CommunicationLogRepository,
        segments: SegmentRepository,
        customers: CustomerRepository,
        broker: MessageBroker,
        pool: Optional[DispatchWorkerPool] = None,
        queue_name: Optional[str] = None,
        clock: Callable[[], datetime] = agora_utc,
    ):
        self.campaigns = campaigns
        self.logs = logs
        self.segments = segments
        self.customers = customers
        self.broker = broker
        self.pool = pool
        self.queue_name = queue_name or settings.QUEUE_CAMPAIGN_DELIVERY
        self.clock = clock

    async def send(
        self,
        campaign_id: str,
        *,
        from_scheduler: bool = False,
        background: bool = False,
    ) -> DispatchSummary:
        """
        Envia uma campanha.

        Args:
            campaign_id: ID da campanha
            from_scheduler: Chamado pelo job de agendadas (aceita status scheduled)
            background: Publica pelo worker pool; retorna assim que os logs existem

        Returns:
            DispatchSummary (failed_recipients nao torna o envio um erro)

        Raises:
            NotFoundError: Campanha ou segmento nao existe
            InvalidCampaignStateError: Status nao permite envio
            NoRecipientsError: Segmento sem clientes
            ValidationError: Cliente com dados que nao podem ser personalizados
        """
        logger.info(f"Iniciando envio da campanha {campaign_id}")

        campaign = await self.campaigns.get(campaign_id)
        if campaign is None:
            raise NotFoundError("Campanha", campaign_id)

        permitidos = (CampaignStatus.SCHEDULED,) if from_scheduler else (CampaignStatus.DRAFT,)
        if campaign.status not in permitidos:
            raise InvalidCampaignStateError(
                campaign_id, campaign.status.value, tuple(s.value for s in permitidos)
            )

        segment = await self.segments.get(campaign.segment_id)
        if segment is None:
            raise NotFoundError("Segmento", campaign.segment_id)

        customers = await self.customers.find(compile_rules(segment.rules))
        if not customers:
            raise NoRecipientsError(campaign_id, segment.id)

        agora = self.clock()
        # Linhas montadas antes de iniciar: erro de dados nao deixa a campanha running
        rows = self._build_logs(campaign, customers, agora)

        iniciou = await self.campaigns.start(campaign_id, campaign.status, len(customers), agora)
        if not iniciou:
            atual = await self.campaigns.get(campaign_id)
            status = atual.status.value if atual else "unknown"
            raise InvalidCampaignStateError(
                campaign_id, status, tuple(s.value for s in permitidos)
            )

        try:
            logs = await self.logs.insert_batch(rows)
        except Exception as e:
            logger.error(f"Campanha {campaign_id}: falha ao criar logs, revertendo status: {e}")
            await self.campaigns.update_status(
                campaign_id,
                campaign.status,
                expected=CampaignStatus.RUNNING,
                extra={**CampaignStats().to_db_columns(), "started_at": None},
            )
            raise

        summary = DispatchSummary(
            campaign_id=campaign_id,
            total_recipients=len(logs),
            background=background,
        )

        if background and self.pool is not None:
            await self.pool.submit(lambda: self.publish_logs(campaign_id, logs, summary))
            logger.info(f"Campanha {campaign_id}: {len(logs)} logs criados, publicacao em background")
            return summary

        return await self.publish_logs(campaign_id, logs, summary)

    def _build_logs(self, campaign: CampaignData, customers: List[dict], agora: datetime) -> List[dict]:
        rows = []
        for customer in customers:
            try:
                rows.append(self._build_log(campaign, customer, agora))
            except (TypeError, ValueError) as e:
                raise ValidationError(
                    f"Cliente com dados invalidos: {e}",
                    details={"campaign_id": campaign.id, "customer_id": customer.get("id")},
                    original_error=e,
                )
        return rows

    def _build_log(self, campaign: CampaignData, customer: dict, agora: datetime) -> dict:
        snapshot = CustomerSnapshot.from_customer(customer)
        personalized = personalize(campaign.message, snapshot, campaign.personalization, now=agora)
        return {
            "campaign_id": campaign.id,
            "customer_id": snapshot.id,
            "message": personalized.message,
            "subject": personalized.subject,
            "customer_snapshot": snapshot.to_dict(),
            "status": LogStatus.PENDING.value,
            "enqueued_at": None,
            "created_at": agora.isoformat(),
        }

    async def publish_logs(
        self,
        campaign_id: str,
        logs: List[CommunicationLog],
        summary: Optional[DispatchSummary] = None,
    ) -> DispatchSummary:
        """
        Publica cada log na fila de entrega, em ordem.

        Falha de publicacao deixa o log PENDING sem enqueued_at,
        registra cliente e log em failed_recipients/failed_logs e segue
        para o proximo.
        """
        summary = summary or DispatchSummary(campaign_id=campaign_id, total_recipients=len(logs))

        for log in logs:
            try:
                await self.broker.publish(self.queue_name, log.delivery_payload())
            except Exception as e:
                logger.error(f"Campanha {campaign_id}: falha ao publicar log {log.id}: {e}")
                summary.failed_recipients.append(log.customer_id)
                summary.failed_logs.append(log.id)
                continue

            summary.enqueued += 1
            try:
                await self.logs.mark_enqueued(log.id, self.clock())
            except Exception as e:
                logger.error(f"Campanha {campaign_id}: log {log.id} publicado mas sem enqueued_at: {e}")

        logger.info(
            f"Campanha {campaign_id}: {summary.enqueued}/{summary.total_recipients} publicados "
            f"({len(summary.failed_recipients)} falhas)"
        )
        return summary

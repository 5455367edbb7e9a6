"""
Servico de campanhas.

Criacao, cancelamento, estatisticas e dados para as operacoes de IA.
"""
import logging
from datetime import datetime, timedelta
from typing import Optional, Tuple

from orchestrator.core.config import AIConfig, DispatchConfig
from orchestrator.core.exceptions import (
    InvalidCampaignStateError,
    NotFoundError,
    ValidationError,
)
from orchestrator.core.timezone import agora_utc, para_utc
from orchestrator.services.ai.types import CampaignOverview, CampaignSnapshot
from orchestrator.services.personalization import PersonalizationMode
from orchestrator.services.segments import CustomerRepository, SegmentRepository
from orchestrator.services.store import Condition, Op, Predicate
from .dispatcher import CampaignDispatcher
from .repository import CampaignRepository, CommunicationLogRepository
from .types import CampaignData, CampaignStatus, DispatchSummary, LogStatus

logger = logging.getLogger(__name__)

CANCELAVEIS = (CampaignStatus.DRAFT, CampaignStatus.SCHEDULED, CampaignStatus.RUNNING)


class CampaignService:
    """
    Operacoes de campanha usadas pela API.

    Exemplo:
        campaign, summary = await service.create(
            name="Black Friday", message="Hi! Big sale today", segment_id=segment.id
        )
    """

    def __init__(
        self,
        campaigns: CampaignRepository,
        logs: CommunicationLogRepository,
        segments: SegmentRepository,
        customers: CustomerRepository,
        dispatcher: CampaignDispatcher,
    ):
        self.campaigns = campaigns
        self.logs = logs
        self.segments = segments
        self.customers = customers
        self.dispatcher = dispatcher

    async def create(
        self,
        name: str,
        message: str,
        segment_id: str,
        description: str = "",
        personalization: PersonalizationMode = PersonalizationMode.SMART,
        scheduled_at: Optional[datetime] = None,
    ) -> Tuple[CampaignData, Optional[DispatchSummary]]:
        """
        Cria campanha.

        Com scheduled_at: fica "scheduled" e nao envia.
        Sem scheduled_at: envia em background (retorna quando os logs existem).

        Raises:
            ValidationError: Nome ou mensagem vazios
            NotFoundError: Segmento nao existe
            NoRecipientsError: Segmento sem clientes (campanha fica em draft)
        """
        if not name or not name.strip():
            raise ValidationError("Nome da campanha e obrigatorio")
        if not message or not message.strip():
            raise ValidationError("Mensagem da campanha e obrigatoria")

        segment = await self.segments.get(segment_id)
        if segment is None:
            raise NotFoundError("Segmento", segment_id)

        status = CampaignStatus.SCHEDULED if scheduled_at else CampaignStatus.DRAFT
        campaign = await self.campaigns.create({
            "name": name.strip(),
            "description": description or "",
            "message": message,
            "segment_id": segment_id,
            "status": status.value,
            "personalization": PersonalizationMode(personalization).value,
            "scheduled_at": para_utc(scheduled_at).isoformat() if scheduled_at else None,
            "started_at": None,
        })

        if scheduled_at:
            return campaign, None

        summary = await self.dispatcher.send(campaign.id, background=True)
        return await self.get(campaign.id), summary

    async def get(self, campaign_id: str) -> CampaignData:
        """
        Raises:
            NotFoundError: Campanha nao existe
        """
        campaign = await self.campaigns.get(campaign_id)
        if campaign is None:
            raise NotFoundError("Campanha", campaign_id)
        return campaign

    async def send(self, campaign_id: str) -> DispatchSummary:
        """Envio manual de uma campanha em draft (sincrono)."""
        return await self.dispatcher.send(campaign_id)

    async def cancel(self, campaign_id: str) -> CampaignData:
        """
        Cancela campanha. So impede envios futuros: logs ja publicados seguem.

        Raises:
            NotFoundError: Campanha nao existe
            InvalidCampaignStateError: Campanha ja concluida ou cancelada
        """
        campaign = await self.get(campaign_id)
        esperados = tuple(s.value for s in CANCELAVEIS)

        if campaign.status not in CANCELAVEIS:
            raise InvalidCampaignStateError(
                campaign_id, campaign.status.value, esperados, acao="cancelada"
            )

        ok = await self.campaigns.update_status(
            campaign_id, CampaignStatus.CANCELLED, expected=campaign.status
        )
        if not ok:
            atual = await self.get(campaign_id)
            raise InvalidCampaignStateError(
                campaign_id, atual.status.value, esperados, acao="cancelada"
            )

        logger.info(f"Campanha {campaign_id} cancelada (status anterior {campaign.status.value})")
        return await self.get(campaign_id)

    async def get_stats(self, campaign_id: str) -> dict:
        """Stats da campanha com a taxa de entrega canonica."""
        campaign = await self.get(campaign_id)
        total_logs = await self.logs.count_by_campaign(campaign_id)
        return {
            "campaign_id": campaign.id,
            "status": campaign.status.value,
            **campaign.stats.to_dict(),
            "communication_logs": total_logs,
        }

    async def snapshot(self, campaign_id: str) -> CampaignSnapshot:
        """Dados da campanha para o resumo de IA."""
        campaign = await self.get(campaign_id)
        stats = campaign.stats
        return CampaignSnapshot(
            name=campaign.name,
            status=campaign.status.value,
            message=campaign.message,
            total_recipients=stats.total_recipients,
            sent=stats.sent,
            delivered=stats.delivered,
            failed=stats.failed,
            bounced=stats.bounced,
        )

    async def overview(self, now: Optional[datetime] = None) -> CampaignOverview:
        """Agregados de clientes e campanhas para insights de IA."""
        now = now or agora_utc()
        customers = await self.customers.find()
        campaigns = await self.campaigns.list_all()

        gastos = [float(c.get("total_spend") or 0) for c in customers]
        corte = now - timedelta(days=AIConfig.INACTIVE_DAYS_DEFAULT)
        inativos = await self.customers.count(
            Predicate((
                Condition("total_spend", Op.GTE, DispatchConfig.TIER_VIP),
                Condition("last_order_at", Op.LT, corte),
            ))
        )

        return CampaignOverview(
            total_customers=len(customers),
            total_campaigns=len(campaigns),
            average_spend=sum(gastos) / len(gastos) if gastos else 0.0,
            inactive_high_value=inativos,
            total_recipients=sum(c.stats.total_recipients for c in campaigns),
            total_delivered=sum(c.stats.delivered for c in campaigns),
            total_failed=sum(c.stats.failed for c in campaigns),
            total_bounced=sum(c.stats.bounced for c in campaigns),
        )

    async def pending_logs(self, campaign_id: str) -> list:
        """Logs ainda PENDING (inclui os sem enqueued_at, para reenvio manual)."""
        await self.get(campaign_id)
        return await self.logs.list_by_campaign(campaign_id, LogStatus.PENDING)

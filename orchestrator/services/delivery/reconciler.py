"""
Reconciliacao de recibos de entrega.

Aplica um recibo ao CommunicationLog e incrementa o contador da campanha.
Idempotente: o update condicional PENDING -> terminal e o ponto de
linearizacao. So quem aplicou o update incrementa o contador.
"""
import logging

from orchestrator.core.timezone import iso
from orchestrator.services.campaigns import (
    STATS_COLUMNS,
    CampaignRepository,
    CampaignStatus,
    CommunicationLogRepository,
)
from .types import DeliveryReceipt, ReceiptStatus, ReconcileOutcome, ReconcileResult

logger = logging.getLogger(__name__)


class DeliveryReconciler:
    """
    Aplica recibos de entrega.

    Exemplo:
        reconciler = DeliveryReconciler(logs, campaigns)
        result = await reconciler.apply(DeliveryReceipt(communicationLogId=log_id, status="DELIVERED"))
        result.outcome  # ReconcileOutcome.APPLIED
    """

    def __init__(self, logs: CommunicationLogRepository, campaigns: CampaignRepository):
        self.logs = logs
        self.campaigns = campaigns

    async def apply(self, receipt: DeliveryReceipt) -> ReconcileResult:
        """
        Aplica um recibo.

        Returns:
            ReconcileResult com outcome:
            - applied: log atualizado e contador incrementado
            - not_found: log desconhecido (recibo descartado, sem retry)
            - duplicate: log ja estava terminal ou outro consumidor aplicou antes
        """
        log_id = receipt.communicationLogId
        log = await self.logs.get(log_id)

        if log is None:
            logger.warning(f"Recibo para log inexistente descartado: {log_id}")
            return ReconcileResult(ReconcileOutcome.NOT_FOUND, log_id, receipt.status)

        if log.status.is_terminal:
            logger.debug(f"Recibo duplicado para log {log_id} (status {log.status.value})")
            return ReconcileResult(
                ReconcileOutcome.DUPLICATE, log_id, receipt.status, log.campaign_id
            )

        recebido_em = iso(receipt.receivedAt)
        changes = {}
        if receipt.status in (ReceiptStatus.SENT, ReceiptStatus.DELIVERED):
            changes["sent_at"] = iso(log.sent_at) or recebido_em
        if receipt.status == ReceiptStatus.DELIVERED:
            changes["delivered_at"] = recebido_em
        if receipt.reason:
            changes["reason"] = receipt.reason
        if receipt.vendorId:
            changes["vendor_id"] = receipt.vendorId

        aplicado = await self.logs.transition(log_id, receipt.status.log_status, changes)
        if not aplicado:
            logger.debug(f"Recibo para log {log_id} perdeu a corrida, ignorando")
            return ReconcileResult(
                ReconcileOutcome.DUPLICATE, log_id, receipt.status, log.campaign_id
            )

        await self.campaigns.increment_stat(
            log.campaign_id, STATS_COLUMNS[receipt.status.log_status]
        )
        await self._concluir_se_finalizada(log.campaign_id)

        logger.info(f"Log {log_id}: PENDING -> {receipt.status.value}")
        return ReconcileResult(
            ReconcileOutcome.APPLIED, log_id, receipt.status, log.campaign_id
        )

    async def _concluir_se_finalizada(self, campaign_id: str):
        """Marca a campanha como completed quando todos os logs sao terminais."""
        campaign = await self.campaigns.get(campaign_id)
        if campaign is None or campaign.status != CampaignStatus.RUNNING:
            return
        stats = campaign.stats
        if stats.total_recipients and stats.processed >= stats.total_recipients:
            await self.campaigns.update_status(
                campaign_id, CampaignStatus.COMPLETED, expected=CampaignStatus.RUNNING
            )

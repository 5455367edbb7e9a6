"""
Processamento de campanhas agendadas.

Ponto de entrada para um scheduler externo (cron, jobs).
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from orchestrator.core.exceptions import OrchestratorError
from orchestrator.core.timezone import agora_utc
from .dispatcher import CampaignDispatcher
from .repository import CampaignRepository
from .types import DispatchSummary

logger = logging.getLogger(__name__)


@dataclass
class ResultadoAgendadas:
    """Resultado do processamento de campanhas agendadas."""
    campanhas_encontradas: int = 0
    campanhas_iniciadas: int = 0
    summaries: List[DispatchSummary] = field(default_factory=list)
    erros: List[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "campanhas_encontradas": self.campanhas_encontradas,
            "campanhas_iniciadas": self.campanhas_iniciadas,
            "summaries": [s.to_dict() for s in self.summaries],
            "erros": list(self.erros),
        }


async def dispatch_due_campaigns(
    dispatcher: CampaignDispatcher,
    campaigns: CampaignRepository,
    now: Optional[datetime] = None,
) -> ResultadoAgendadas:
    """
    Envia campanhas agendadas cujo horario ja passou.

    Erro em uma campanha nao impede as demais.
    """
    now = now or agora_utc()
    devidas = await campaigns.list_due(now)
    resultado = ResultadoAgendadas(campanhas_encontradas=len(devidas))

    for campaign in devidas:
        try:
            summary = await dispatcher.send(campaign.id, from_scheduler=True)
        except OrchestratorError as e:
            logger.error(f"Erro ao iniciar campanha agendada {campaign.id}: {e}")
            resultado.erros.append({"campaign_id": campaign.id, "error": e.message})
            continue

        resultado.campanhas_iniciadas += 1
        resultado.summaries.append(summary)

    if devidas:
        logger.info(
            f"Agendadas: {resultado.campanhas_iniciadas}/{resultado.campanhas_encontradas} iniciadas"
        )
    return resultado

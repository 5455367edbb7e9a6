"""
Endpoints de campanhas.
"""
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from orchestrator.api.deps import get_ai_service, get_campaign_service
from orchestrator.services.ai import AIService
from orchestrator.services.campaigns import CampaignService
from orchestrator.services.personalization import (
    CustomerSnapshot,
    PersonalizationMode,
    personalize,
)

router = APIRouter(prefix="/api/v1/campaigns", tags=["campaigns"])


class CriarCampanha(BaseModel):
    name: str
    message: str
    segment_id: str = Field(..., alias="segmentId")
    description: str = ""
    personalization: PersonalizationMode = PersonalizationMode.SMART
    scheduled_at: Optional[datetime] = Field(None, alias="scheduledAt")

    model_config = {"populate_by_name": True}


class TestePersonalizacao(BaseModel):
    message: str
    customer: Dict[str, Any]
    mode: PersonalizationMode = PersonalizationMode.SMART


@router.post("", status_code=201)
async def criar_campanha(
    dados: CriarCampanha,
    service: CampaignService = Depends(get_campaign_service),
):
    """
    Cria campanha.

    Sem scheduledAt o envio comeca na hora: a resposta volta quando os
    CommunicationLogs existem e a publicacao segue em background.
    """
    campaign, summary = await service.create(
        name=dados.name,
        message=dados.message,
        segment_id=dados.segment_id,
        description=dados.description,
        personalization=dados.personalization,
        scheduled_at=dados.scheduled_at,
    )
    return {
        "campaign": campaign.to_dict(),
        "dispatch": summary.to_dict() if summary else None,
    }


@router.post("/test-personalization")
async def testar_personalizacao(dados: TestePersonalizacao):
    """Mostra como a mensagem ficaria para um cliente, sem enviar nada."""
    snapshot = CustomerSnapshot.from_customer(dados.customer)
    resultado = personalize(dados.message, snapshot, dados.mode)
    return {"mode": dados.mode.value, **resultado.to_dict()}


@router.post("/{campaign_id}/send")
async def enviar_campanha(
    campaign_id: str,
    service: CampaignService = Depends(get_campaign_service),
):
    summary = await service.send(campaign_id)
    return summary.to_dict()


@router.post("/{campaign_id}/cancel")
async def cancelar_campanha(
    campaign_id: str,
    service: CampaignService = Depends(get_campaign_service),
):
    campaign = await service.cancel(campaign_id)
    return campaign.to_dict()


@router.get("/{campaign_id}/stats")
async def stats_campanha(
    campaign_id: str,
    service: CampaignService = Depends(get_campaign_service),
):
    return await service.get_stats(campaign_id)


@router.get("/{campaign_id}/summary")
async def resumo_campanha(
    campaign_id: str,
    service: CampaignService = Depends(get_campaign_service),
    ai_service: AIService = Depends(get_ai_service),
):
    """Resumo de performance gerado por IA (sempre responde, com confidence)."""
    snapshot = await service.snapshot(campaign_id)
    result = await ai_service.generate_campaign_summary(snapshot)
    return result.to_dict()

"""
Endpoints de IA.

Nunca retornam erro por falha do provider: a resposta sempre traz um
resultado (ao vivo ou de fallback) com confidence e source.
"""
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from orchestrator.api.deps import get_ai_service, get_resources
from orchestrator.services.ai import AIService
from orchestrator.services.resources import Resources
from orchestrator.services.segments import compile_rules

router = APIRouter(prefix="/api/v1/ai", tags=["ai"])


class NLParaSegmento(BaseModel):
    prompt: str = Field(..., min_length=1)


class VariantesMensagem(BaseModel):
    objective: str = ""
    tone: str = ""
    offer: Optional[str] = None
    brand_voice: Optional[str] = Field(None, alias="brandVoice")

    model_config = {"populate_by_name": True}


@router.post("/nl-to-segment")
async def nl_para_segmento(
    dados: NLParaSegmento,
    resources: Resources = Depends(get_resources),
):
    """Converte descricao em regras e estima quantos clientes casam."""
    result = await resources.ai_service.generate_segment_rules(dados.prompt)
    estimativa = await resources.customers.count(compile_rules(result.data.get("rules")))
    resposta = result.to_dict()
    resposta["estimated_count"] = estimativa
    return resposta


@router.post("/message-variants")
async def variantes_mensagem(
    dados: VariantesMensagem,
    ai_service: AIService = Depends(get_ai_service),
):
    result = await ai_service.generate_message_variants(
        dados.objective,
        tone=dados.tone,
        offer=dados.offer,
        brand_voice=dados.brand_voice,
    )
    return result.to_dict()


@router.post("/insights")
async def insights(resources: Resources = Depends(get_resources)):
    """Insights sobre a base de clientes e as campanhas."""
    overview = await resources.campaign_service.overview()
    result = await resources.ai_service.generate_analytics_insights(overview)
    return result.to_dict()


@router.get("/health")
async def ai_health(ai_service: AIService = Depends(get_ai_service)):
    return await ai_service.health()

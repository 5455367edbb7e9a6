"""
Dependency Injection para as rotas.

Os componentes vivem em app.state.resources (montado no lifespan).

Uso em endpoints:
    @router.get("/segments/{segment_id}")
    async def get_segment(
        segment_id: str,
        service: SegmentService = Depends(get_segment_service),
    ):
        return await service.get(segment_id)

Uso em testes:
    app.dependency_overrides[get_resources] = lambda: resources
"""
from fastapi import Depends, Request

from orchestrator.core.exceptions import ConfigurationError
from orchestrator.services.ai import AIService
from orchestrator.services.campaigns import CampaignService
from orchestrator.services.delivery import ReceiptIngestService
from orchestrator.services.resources import Resources
from orchestrator.services.segments import SegmentService


def get_resources(request: Request) -> Resources:
    resources = getattr(request.app.state, "resources", None)
    if resources is None:
        raise ConfigurationError("Recursos da aplicacao nao inicializados")
    return resources


def get_segment_service(resources: Resources = Depends(get_resources)) -> SegmentService:
    return resources.segment_service


def get_campaign_service(resources: Resources = Depends(get_resources)) -> CampaignService:
    return resources.campaign_service


def get_ai_service(resources: Resources = Depends(get_resources)) -> AIService:
    return resources.ai_service


def get_receipt_ingest(resources: Resources = Depends(get_resources)) -> ReceiptIngestService:
    return resources.receipt_ingest

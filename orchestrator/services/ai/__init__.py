"""
Camada de IA com circuit breaker, retry e fallback.

Uso:
    from orchestrator.services.ai import AIService

    service = AIService(provider=get_llm_provider())
    result = await service.generate_segment_rules("vip customers")
"""
from .types import (
    AIOperation,
    AIResult,
    AISource,
    CampaignOverview,
    CampaignSnapshot,
    MetricsSnapshot,
)
from .monitor import AIMonitor
from .resilience import ResilientGenerator, UnparseableResponseError, extrair_json
from .service import AIService

__all__ = [
    "AIOperation",
    "AIResult",
    "AISource",
    "CampaignOverview",
    "CampaignSnapshot",
    "MetricsSnapshot",
    "AIMonitor",
    "ResilientGenerator",
    "UnparseableResponseError",
    "extrair_json",
    "AIService",
]

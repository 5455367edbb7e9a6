"""
Factory para LLM Providers.

Centraliza criacao de providers para facilitar DI e configuracao.
"""
import logging
from functools import lru_cache
from typing import Optional

from orchestrator.core.config import settings
from .anthropic_provider import AnthropicProvider
from .protocol import LLMProvider

logger = logging.getLogger(__name__)


@lru_cache()
def get_llm_provider() -> Optional[LLMProvider]:
    """
    Retorna provider configurado, ou None quando nao ha API key.

    Sem provider, a camada de IA opera apenas com fallbacks.
    """
    if not settings.ai_available:
        logger.info("ANTHROPIC_API_KEY ausente, IA vai operar em modo fallback")
        return None
    return AnthropicProvider(model_id=settings.LLM_MODEL)


def clear_provider_cache():
    """Limpa cache de providers (usar em testes)."""
    get_llm_provider.cache_clear()

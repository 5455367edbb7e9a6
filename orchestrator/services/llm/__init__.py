"""
LLM Provider Module - Abstracao sobre providers de geracao de texto.

Uso basico:
    from orchestrator.services.llm import get_llm_provider, LLMRequest

    provider = get_llm_provider()
    response = await provider.generate(LLMRequest(system_prompt="...", user_prompt="..."))

Uso em testes:
    from orchestrator.services.llm import MockLLMProvider

    mock = MockLLMProvider(default_response="Mock!")
"""
from .protocol import LLMProvider, LLMError
from .models import LLMRequest, LLMResponse, StopReason
from .anthropic_provider import AnthropicProvider
from .mock_provider import (
    MockLLMProvider,
    create_mock_that_returns,
    create_mock_that_fails,
    create_mock_with_sequence,
)
from .factory import get_llm_provider, clear_provider_cache

__all__ = [
    "LLMProvider",
    "LLMError",
    "LLMRequest",
    "LLMResponse",
    "StopReason",
    "AnthropicProvider",
    "MockLLMProvider",
    "create_mock_that_returns",
    "create_mock_that_fails",
    "create_mock_with_sequence",
    "get_llm_provider",
    "clear_provider_cache",
]

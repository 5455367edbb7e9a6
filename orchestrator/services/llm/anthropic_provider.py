"""
Anthropic Provider - Implementacao do LLMProvider para Claude.

Nao aplica circuit breaker nem retry: isso e responsabilidade da
camada de resiliencia (orchestrator.services.ai).
"""
import logging
from typing import Any, Optional

import anthropic

from orchestrator.core.config import settings
from .models import LLMRequest, LLMResponse, StopReason
from .protocol import LLMError

logger = logging.getLogger(__name__)


class AnthropicProvider:
    """
    Provider de texto usando Anthropic Claude.

    Exemplo:
        provider = AnthropicProvider(model_id="claude-3-5-haiku-20241022")
        response = await provider.generate(request)
    """

    STOP_REASON_MAP = {
        "end_turn": StopReason.END_TURN,
        "max_tokens": StopReason.MAX_TOKENS,
        "stop_sequence": StopReason.STOP_SEQUENCE,
    }

    def __init__(
        self,
        model_id: Optional[str] = None,
        api_key: Optional[str] = None,
    ):
        self._model_id = model_id or settings.LLM_MODEL
        self._api_key = api_key or settings.ANTHROPIC_API_KEY

        if not self._api_key:
            raise LLMError(
                "ANTHROPIC_API_KEY nao configurada",
                provider="anthropic",
                retryable=False,
            )

        self._client = anthropic.AsyncAnthropic(api_key=self._api_key)

    @property
    def model_id(self) -> str:
        return self._model_id

    async def generate(self, request: LLMRequest) -> LLMResponse:
        """
        Gera resposta do Claude.

        Raises:
            LLMError: Se houver erro na API
        """
        logger.debug(
            f"Chamando Anthropic: model={self._model_id}, operation={request.operation}"
        )

        try:
            response = await self._client.messages.create(
                model=self._model_id,
                system=request.system_prompt,
                messages=request.to_messages(),
                max_tokens=request.max_tokens,
                temperature=request.temperature,
            )
        except anthropic.APIConnectionError as e:
            raise LLMError(
                f"Erro de conexao com Anthropic: {e}",
                provider="anthropic",
                retryable=True,
                original_error=e,
            )
        except anthropic.RateLimitError as e:
            raise LLMError(
                f"Rate limit Anthropic: {e}",
                provider="anthropic",
                retryable=True,
                original_error=e,
            )
        except anthropic.APIStatusError as e:
            raise LLMError(
                f"Erro API Anthropic: {e}",
                provider="anthropic",
                retryable=e.status_code >= 500,
                original_error=e,
            )

        return self._convert_response(response)

    def _convert_response(self, response: Any) -> LLMResponse:
        """Converte response da Anthropic para nosso formato."""
        content = "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        )

        return LLMResponse(
            content=content,
            stop_reason=self.STOP_REASON_MAP.get(response.stop_reason, StopReason.END_TURN),
            usage={
                "input_tokens": response.usage.input_tokens,
                "output_tokens": response.usage.output_tokens,
            },
            model_id=response.model,
            raw_response=response,
        )

"""
Mock LLM Provider - Para testes sem chamadas reais.
"""
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from .models import LLMRequest, LLMResponse
from .protocol import LLMError


@dataclass
class MockLLMProvider:
    """
    Provider mockado para testes.

    Exemplo de uso basico:
        mock = MockLLMProvider(default_response='{"rules": []}')
        response = await mock.generate(request)

    Exemplo com falhas:
        mock = MockLLMProvider(should_fail=True)
        # ... apos N chamadas
        assert mock.call_count == N
    """

    default_response: str = "Mock response"
    model_id: str = "mock-model"

    # Callback opcional para respostas dinamicas
    response_callback: Optional[Callable[[LLMRequest], str]] = None

    # Tracking de chamadas (para assertions em testes)
    calls: List[LLMRequest] = field(default_factory=list)

    # Simular erros
    should_fail: bool = False
    fail_message: str = "Mock error"

    # Sequencia de respostas; Exception na lista e levantada
    response_sequence: List[object] = field(default_factory=list)
    _sequence_index: int = field(default=0, repr=False)

    async def generate(self, request: LLMRequest) -> LLMResponse:
        self.calls.append(request)

        if self.response_sequence and self._sequence_index < len(self.response_sequence):
            item = self.response_sequence[self._sequence_index]
            self._sequence_index += 1
            if isinstance(item, Exception):
                raise item
            return LLMResponse(content=str(item), model_id=self.model_id)

        if self.should_fail:
            raise LLMError(self.fail_message, provider="mock", retryable=True)

        if self.response_callback:
            return LLMResponse(content=self.response_callback(request), model_id=self.model_id)

        return LLMResponse(
            content=self.default_response,
            usage={"input_tokens": 10, "output_tokens": 20},
            model_id=self.model_id,
        )

    def reset(self):
        """Limpa historico de chamadas e reseta sequencia."""
        self.calls.clear()
        self._sequence_index = 0

    @property
    def call_count(self) -> int:
        return len(self.calls)

    @property
    def last_call(self) -> Optional[LLMRequest]:
        return self.calls[-1] if self.calls else None


def create_mock_that_returns(content: str) -> MockLLMProvider:
    """Cria mock que sempre retorna o conteudo especificado."""
    return MockLLMProvider(default_response=content)


def create_mock_that_fails(message: str = "Mock error") -> MockLLMProvider:
    """Cria mock que sempre falha."""
    return MockLLMProvider(should_fail=True, fail_message=message)


def create_mock_with_sequence(responses: List[object]) -> MockLLMProvider:
    """Cria mock que retorna (ou levanta) itens em sequencia."""
    return MockLLMProvider(response_sequence=responses)

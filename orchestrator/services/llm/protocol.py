"""
LLM Provider Protocol - Interface para qualquer provider de geracao de texto.

Usar Protocol permite duck typing com type checking estatico.

Exemplo de uso:
    async def minha_funcao(provider: LLMProvider):
        response = await provider.generate(request)
"""
from typing import Optional, Protocol, runtime_checkable

from .models import LLMRequest, LLMResponse


@runtime_checkable
class LLMProvider(Protocol):
    """
    Interface para providers de texto.

    Qualquer classe que implemente estes metodos e um LLMProvider valido.
    Nao precisa herdar explicitamente.
    """

    @property
    def model_id(self) -> str:
        """Retorna o ID do modelo sendo usado."""
        ...

    async def generate(self, request: LLMRequest) -> LLMResponse:
        """
        Gera texto a partir de system prompt + user prompt.

        Raises:
            LLMError: Se houver erro na chamada ao provider.
        """
        ...


class LLMError(Exception):
    """Erro generico de LLM."""

    def __init__(
        self,
        message: str,
        provider: str = "unknown",
        retryable: bool = False,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.provider = provider
        self.retryable = retryable
        self.original_error = original_error

    def __str__(self) -> str:
        return f"[{self.provider}] {super().__str__()}"

"""
Modelos de dados para LLM Provider.

Dataclasses para request/response desacoplados de qualquer provider.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class StopReason(str, Enum):
    """Motivos de parada da geracao."""
    END_TURN = "end_turn"
    MAX_TOKENS = "max_tokens"
    STOP_SEQUENCE = "stop_sequence"


@dataclass(frozen=True)
class LLMRequest:
    """
    Request para o provider de texto.

    Attributes:
        system_prompt: Instrucoes de sistema
        user_prompt: Conteudo do usuario
        max_tokens: Maximo de tokens na resposta
        temperature: Temperatura (0.0 = deterministico, 1.0 = criativo)
        operation: Nome da operacao (para logging)
    """
    system_prompt: str
    user_prompt: str
    max_tokens: int = 800
    temperature: float = 0.3
    operation: Optional[str] = None

    def to_messages(self) -> list:
        """Converte para o formato de mensagens da API."""
        return [{"role": "user", "content": self.user_prompt}]


@dataclass
class LLMResponse:
    """
    Response do provider.

    Attributes:
        content: Texto gerado
        stop_reason: Por que a geracao parou
        usage: Tokens usados (input, output)
        model_id: Modelo que gerou a resposta
    """
    content: str
    stop_reason: StopReason = StopReason.END_TURN
    usage: Dict[str, int] = field(default_factory=dict)
    model_id: str = ""
    raw_response: Optional[Any] = None

    @property
    def input_tokens(self) -> int:
        return self.usage.get("input_tokens", 0)

    @property
    def output_tokens(self) -> int:
        return self.usage.get("output_tokens", 0)

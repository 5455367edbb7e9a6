"""
Circuit breaker para chamadas de IA.

Um breaker por tipo de operacao, injetado no servico que o usa.
Estado protegido por asyncio.Lock: handlers concorrentes podem
registrar falhas ao mesmo tempo.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, Iterable, Optional

from orchestrator.core.timezone import agora_utc

logger = logging.getLogger(__name__)


class CircuitState(Enum):
    CLOSED = "closed"  # Normal, chamadas passam
    OPEN = "open"      # Bloqueando chamadas, vai direto para fallback


@dataclass
class CircuitBreaker:
    """
    Circuit breaker para uma operacao.

    Estados:
    - CLOSED: Normal, todas as chamadas passam
    - OPEN: Muitas falhas, bloqueia chamadas ate o cooldown expirar

    Nao existe HALF_OPEN: expirado o cooldown, o proximo check volta
    para CLOSED com contador zerado.
    """
    nome: str
    falhas_para_abrir: int = 5
    cooldown_segundos: float = 60.0
    relogio: Callable[[], datetime] = field(default=agora_utc, repr=False)

    # Estado interno
    estado: CircuitState = field(default=CircuitState.CLOSED)
    falhas_consecutivas: int = field(default=0)
    ultima_falha: Optional[datetime] = field(default=None)
    ultimo_sucesso: Optional[datetime] = field(default=None)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False, compare=False)

    def _verificar_cooldown(self):
        """Reseta o breaker se o cooldown desde a ultima falha expirou."""
        if self.ultima_falha is None or self.falhas_consecutivas == 0:
            return

        tempo_desde_falha = (self.relogio() - self.ultima_falha).total_seconds()
        if tempo_desde_falha > self.cooldown_segundos:
            if self.estado == CircuitState.OPEN:
                logger.info(f"Circuit {self.nome}: OPEN -> CLOSED (cooldown expirado)")
            self.estado = CircuitState.CLOSED
            self.falhas_consecutivas = 0

    async def permitir(self) -> bool:
        """Retorna True se a chamada externa pode ser feita."""
        async with self._lock:
            self._verificar_cooldown()
            return self.estado == CircuitState.CLOSED

    async def registrar_sucesso(self):
        """Registra uma chamada bem-sucedida."""
        async with self._lock:
            self.falhas_consecutivas = 0
            self.ultimo_sucesso = self.relogio()
            self.estado = CircuitState.CLOSED

    async def registrar_falha(self, erro: Exception):
        """Registra uma falha (uma sequencia de retries esgotada conta como uma)."""
        async with self._lock:
            self.falhas_consecutivas += 1
            self.ultima_falha = self.relogio()

            logger.warning(
                f"Circuit {self.nome}: falha {self.falhas_consecutivas}/{self.falhas_para_abrir} - {erro}"
            )

            if (
                self.estado == CircuitState.CLOSED
                and self.falhas_consecutivas >= self.falhas_para_abrir
            ):
                logger.warning(f"Circuit {self.nome}: CLOSED -> OPEN (muitas falhas)")
                self.estado = CircuitState.OPEN

    @property
    def aberto(self) -> bool:
        return self.estado == CircuitState.OPEN

    async def status(self) -> dict:
        """Retorna status atual do circuit, ja aplicando o cooldown."""
        async with self._lock:
            self._verificar_cooldown()
            return {
                "nome": self.nome,
                "estado": self.estado.value,
                "falhas_consecutivas": self.falhas_consecutivas,
                "ultima_falha": self.ultima_falha.isoformat() if self.ultima_falha else None,
                "ultimo_sucesso": self.ultimo_sucesso.isoformat() if self.ultimo_sucesso else None,
            }


def criar_breakers(
    nomes: Iterable[str],
    falhas_para_abrir: int = 5,
    cooldown_segundos: float = 60.0,
    relogio: Callable[[], datetime] = agora_utc,
) -> Dict[str, CircuitBreaker]:
    """Cria um breaker independente para cada operacao."""
    return {
        nome: CircuitBreaker(
            nome=nome,
            falhas_para_abrir=falhas_para_abrir,
            cooldown_segundos=cooldown_segundos,
            relogio=relogio,
        )
        for nome in nomes
    }

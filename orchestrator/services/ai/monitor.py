"""
Monitor de chamadas de IA.

Conta sucessos/falhas por operacao e mantem uma janela movel
de tempos de resposta.
"""
import asyncio
import logging
from collections import Counter, deque

from orchestrator.core.config import AIConfig
from .types import MetricsSnapshot

logger = logging.getLogger(__name__)


class AIMonitor:
    """
    Metricas de requests ao provider de IA.

    Exemplo:
        monitor = AIMonitor()
        await monitor.registrar("segment_rules", sucesso=True, tempo_ms=320)
        monitor.metrics().success_rate
    """

    def __init__(self, janela: int = AIConfig.RESPONSE_TIME_WINDOW):
        self._tempos = deque(maxlen=janela)
        self._total = 0
        self._sucessos = 0
        self._falhas = 0
        self._por_operacao = Counter()
        self._lock = asyncio.Lock()

    async def registrar(self, operacao: str, sucesso: bool, tempo_ms: float):
        """Registra uma chamada ao provider externo."""
        async with self._lock:
            self._total += 1
            if sucesso:
                self._sucessos += 1
            else:
                self._falhas += 1
            self._por_operacao[operacao] += 1
            self._tempos.append(tempo_ms)

        logger.debug(
            f"IA {operacao}: {'sucesso' if sucesso else 'falha'} em {tempo_ms:.0f}ms"
        )

    def metrics(self) -> MetricsSnapshot:
        """Retorna snapshot das metricas (success_rate em %)."""
        success_rate = (self._sucessos / self._total) * 100 if self._total else 0.0
        media = sum(self._tempos) / len(self._tempos) if self._tempos else 0.0

        return MetricsSnapshot(
            total_requests=self._total,
            successful_requests=self._sucessos,
            failed_requests=self._falhas,
            success_rate=success_rate,
            average_response_time_ms=media,
            by_operation=dict(self._por_operacao),
        )

    def reset(self):
        """Zera as metricas (usar em testes)."""
        self._tempos.clear()
        self._total = 0
        self._sucessos = 0
        self._falhas = 0
        self._por_operacao.clear()

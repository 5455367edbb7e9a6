"""
Testes para o circuit breaker.
"""
import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from orchestrator.services.circuit_breaker import (
    CircuitBreaker,
    CircuitState,
    criar_breakers,
)


class Relogio:
    """Relogio controlavel para testar cooldown."""

    def __init__(self):
        self.agora = datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.agora

    def avancar(self, segundos: float):
        self.agora += timedelta(seconds=segundos)


class TestCircuitBreaker:
    """Testes para a classe CircuitBreaker."""

    @pytest.mark.asyncio
    async def test_circuit_comeca_fechado(self):
        """Circuit deve comecar no estado CLOSED."""
        cb = CircuitBreaker(nome="test")
        assert cb.estado == CircuitState.CLOSED
        assert await cb.permitir() is True

    @pytest.mark.asyncio
    async def test_sucesso_mantem_fechado(self):
        cb = CircuitBreaker(nome="test")

        await cb.registrar_sucesso()

        assert cb.estado == CircuitState.CLOSED
        assert cb.falhas_consecutivas == 0
        assert cb.ultimo_sucesso is not None

    @pytest.mark.asyncio
    async def test_circuit_abre_apos_falhas(self):
        """Circuit deve abrir apos numero configurado de falhas."""
        cb = CircuitBreaker(nome="test", falhas_para_abrir=3)

        for _ in range(3):
            await cb.registrar_falha(Exception("Erro simulado"))

        assert cb.estado == CircuitState.OPEN
        assert cb.falhas_consecutivas == 3
        assert cb.aberto is True

    @pytest.mark.asyncio
    async def test_circuit_aberto_bloqueia_chamadas(self):
        cb = CircuitBreaker(nome="test", falhas_para_abrir=1)

        await cb.registrar_falha(Exception("Erro"))

        assert await cb.permitir() is False

    @pytest.mark.asyncio
    async def test_sucesso_zera_contador(self):
        cb = CircuitBreaker(nome="test", falhas_para_abrir=3)

        for _ in range(2):
            await cb.registrar_falha(Exception("Erro"))
        await cb.registrar_sucesso()

        assert cb.falhas_consecutivas == 0
        assert cb.estado == CircuitState.CLOSED


class TestCooldown:
    """Reset automatico apos cooldown (sem HALF_OPEN)."""

    @pytest.mark.asyncio
    async def test_continua_aberto_antes_do_cooldown(self):
        relogio = Relogio()
        cb = CircuitBreaker(nome="test", falhas_para_abrir=1, cooldown_segundos=60, relogio=relogio)
        await cb.registrar_falha(Exception("erro"))

        relogio.avancar(30)

        assert await cb.permitir() is False

    @pytest.mark.asyncio
    async def test_fecha_apos_cooldown(self):
        relogio = Relogio()
        cb = CircuitBreaker(nome="test", falhas_para_abrir=2, cooldown_segundos=60, relogio=relogio)
        await cb.registrar_falha(Exception("erro"))
        await cb.registrar_falha(Exception("erro"))
        assert cb.aberto

        relogio.avancar(61)

        assert await cb.permitir() is True
        assert cb.estado == CircuitState.CLOSED
        assert cb.falhas_consecutivas == 0

    @pytest.mark.asyncio
    async def test_cooldown_zera_falhas_mesmo_fechado(self):
        relogio = Relogio()
        cb = CircuitBreaker(nome="test", falhas_para_abrir=3, cooldown_segundos=60, relogio=relogio)
        await cb.registrar_falha(Exception("erro"))
        await cb.registrar_falha(Exception("erro"))

        relogio.avancar(61)
        await cb.permitir()
        await cb.registrar_falha(Exception("erro"))

        assert cb.falhas_consecutivas == 1
        assert cb.estado == CircuitState.CLOSED


class TestConcorrencia:

    @pytest.mark.asyncio
    async def test_falhas_concorrentes_sao_todas_contadas(self):
        cb = CircuitBreaker(nome="test", falhas_para_abrir=50)

        await asyncio.gather(*(cb.registrar_falha(Exception("erro")) for _ in range(40)))

        assert cb.falhas_consecutivas == 40
        assert cb.estado == CircuitState.CLOSED

        await asyncio.gather(*(cb.registrar_falha(Exception("erro")) for _ in range(10)))
        assert cb.aberto


class TestStatus:

    @pytest.mark.asyncio
    async def test_status(self):
        cb = CircuitBreaker(nome="segment_rules", falhas_para_abrir=1)
        await cb.registrar_falha(Exception("erro"))

        status = await cb.status()

        assert status["nome"] == "segment_rules"
        assert status["estado"] == "open"
        assert status["falhas_consecutivas"] == 1
        assert status["ultima_falha"] is not None

    @pytest.mark.asyncio
    async def test_status_aplica_cooldown(self):
        relogio = Relogio()
        cb = CircuitBreaker(nome="test", falhas_para_abrir=1, cooldown_segundos=60, relogio=relogio)
        await cb.registrar_falha(Exception("erro"))

        relogio.avancar(61)
        status = await cb.status()

        assert status["estado"] == "closed"
        assert status["falhas_consecutivas"] == 0
        assert cb.aberto is False

    def test_criar_breakers_independentes(self):
        breakers = criar_breakers(["a", "b"], falhas_para_abrir=2, cooldown_segundos=10)

        assert set(breakers) == {"a", "b"}
        assert breakers["a"] is not breakers["b"]
        assert breakers["a"].falhas_para_abrir == 2
        assert breakers["b"].cooldown_segundos == 10

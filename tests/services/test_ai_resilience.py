"""
Testes da camada de resiliencia de IA (retry, timeout, breaker, fallback).
"""
import asyncio
import json
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from orchestrator.services.ai import (
    AIMonitor,
    AIOperation,
    AIResult,
    AISource,
    ResilientGenerator,
    UnparseableResponseError,
    extrair_json,
)
from orchestrator.services.circuit_breaker import CircuitBreaker
from orchestrator.services.llm import (
    LLMError,
    LLMRequest,
    MockLLMProvider,
    create_mock_that_fails,
    create_mock_that_returns,
    create_mock_with_sequence,
)

REQUEST = LLMRequest(system_prompt="system", user_prompt="user", operation="segment_rules")
RESPOSTA_OK = json.dumps({"rules": [], "confidence": 0.7})


def _fallback():
    return AIResult(
        operation=AIOperation.SEGMENT_RULES,
        data={"rules": ["fallback"]},
        confidence=0.6,
        source=AISource.STATIC,
    )


def _parse(data):
    if "rules" not in data:
        raise ValueError("sem rules")
    return data


class Relogio:
    def __init__(self):
        self.agora = datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.agora


def _generator(provider, breaker=None, monitor=None, max_retries=2, timeout=1.0):
    sleep = AsyncMock()
    generator = ResilientGenerator(
        provider,
        breaker or CircuitBreaker(nome="segment_rules", falhas_para_abrir=3),
        monitor,
        max_retries=max_retries,
        backoff_seconds=1.0,
        timeout_seconds=timeout,
        sleep=sleep,
    )
    return generator, sleep


class TestExtrairJson:

    def test_json_puro(self):
        assert extrair_json('{"a": 1}') == {"a": 1}

    def test_bloco_markdown(self):
        assert extrair_json('Aqui:\n```json\n{"a": 1}\n```\nfim') == {"a": 1}

    def test_json_no_meio_do_texto(self):
        assert extrair_json('Claro! {"a": {"b": 2}} Espero ter ajudado') == {"a": {"b": 2}}

    @pytest.mark.parametrize("texto", ["", "sem json", "{quebrado", "[1, 2]", '{"a": }'])
    def test_invalido(self, texto):
        with pytest.raises(UnparseableResponseError):
            extrair_json(texto)


class TestResilientGenerator:

    @pytest.mark.asyncio
    async def test_resposta_live(self):
        generator, sleep = _generator(create_mock_that_returns(RESPOSTA_OK))

        result = await generator.run(AIOperation.SEGMENT_RULES, REQUEST, _parse, _fallback)

        assert result.source == AISource.LIVE
        assert result.confidence == 0.7
        assert result.data == {"rules": []}
        assert result.fallback_reason is None
        sleep.assert_not_called()

    @pytest.mark.asyncio
    async def test_confianca_padrao_e_limitada(self):
        sem_confianca, _ = _generator(create_mock_that_returns('{"rules": []}'))
        acima, _ = _generator(create_mock_that_returns('{"rules": [], "confidence": 7}'))
        invalida, _ = _generator(create_mock_that_returns('{"rules": [], "confidence": "alta"}'))

        assert (await sem_confianca.run(AIOperation.SEGMENT_RULES, REQUEST, _parse, _fallback)).confidence == 0.9
        assert (await acima.run(AIOperation.SEGMENT_RULES, REQUEST, _parse, _fallback)).confidence == 1.0
        assert (await invalida.run(AIOperation.SEGMENT_RULES, REQUEST, _parse, _fallback)).confidence == 0.9

    @pytest.mark.asyncio
    async def test_sem_provider_usa_fallback(self):
        generator, _ = _generator(None)

        result = await generator.run(AIOperation.SEGMENT_RULES, REQUEST, _parse, _fallback)

        assert result.source == AISource.STATIC
        assert result.fallback_reason == "api_unavailable"

    @pytest.mark.asyncio
    async def test_retry_com_backoff_linear(self):
        provider = create_mock_with_sequence([
            LLMError("overloaded", provider="mock", retryable=True),
            LLMError("overloaded", provider="mock", retryable=True),
            RESPOSTA_OK,
        ])
        generator, sleep = _generator(provider, max_retries=2)

        result = await generator.run(AIOperation.SEGMENT_RULES, REQUEST, _parse, _fallback)

        assert result.source == AISource.LIVE
        assert provider.call_count == 3
        assert [c.args[0] for c in sleep.await_args_list] == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_retries_esgotados_contam_uma_falha(self):
        provider = create_mock_that_fails("down")
        breaker = CircuitBreaker(nome="segment_rules", falhas_para_abrir=3)
        generator, _ = _generator(provider, breaker=breaker, max_retries=2)

        result = await generator.run(AIOperation.SEGMENT_RULES, REQUEST, _parse, _fallback)

        assert provider.call_count == 3
        assert breaker.falhas_consecutivas == 1
        assert result.source == AISource.STATIC
        assert result.fallback_reason.startswith("provider_error")

    @pytest.mark.asyncio
    async def test_erro_nao_retentavel_nao_repete(self):
        provider = MockLLMProvider(response_sequence=[
            LLMError("bad request", provider="mock", retryable=False),
        ])
        generator, sleep = _generator(provider, max_retries=3)

        result = await generator.run(AIOperation.SEGMENT_RULES, REQUEST, _parse, _fallback)

        assert provider.call_count == 1
        assert result.is_fallback
        sleep.assert_not_called()

    @pytest.mark.asyncio
    async def test_json_invalido_e_retentado(self):
        provider = create_mock_with_sequence(["nao sou json", '{"outra": 1}', RESPOSTA_OK])
        generator, _ = _generator(provider, max_retries=2)

        result = await generator.run(AIOperation.SEGMENT_RULES, REQUEST, _parse, _fallback)

        assert provider.call_count == 3
        assert result.source == AISource.LIVE

    @pytest.mark.asyncio
    async def test_timeout_por_tentativa(self):
        class ProviderLento:
            model_id = "lento"
            chamadas = 0

            async def generate(self, request):
                ProviderLento.chamadas += 1
                await asyncio.sleep(5)

        generator, _ = _generator(ProviderLento(), max_retries=1, timeout=0.01)

        result = await generator.run(AIOperation.SEGMENT_RULES, REQUEST, _parse, _fallback)

        assert ProviderLento.chamadas == 2
        assert result.is_fallback

    @pytest.mark.asyncio
    async def test_breaker_aberto_nao_chama_provider(self):
        provider = create_mock_that_fails()
        breaker = CircuitBreaker(nome="segment_rules", falhas_para_abrir=2)
        generator, _ = _generator(provider, breaker=breaker, max_retries=0)

        await generator.run(AIOperation.SEGMENT_RULES, REQUEST, _parse, _fallback)
        await generator.run(AIOperation.SEGMENT_RULES, REQUEST, _parse, _fallback)
        assert breaker.aberto
        chamadas = provider.call_count

        result = await generator.run(AIOperation.SEGMENT_RULES, REQUEST, _parse, _fallback)

        assert provider.call_count == chamadas
        assert result.fallback_reason == "circuit_open"

    @pytest.mark.asyncio
    async def test_breaker_fecha_apos_cooldown(self):
        relogio = Relogio()
        provider = create_mock_with_sequence([
            LLMError("down", provider="mock", retryable=True),
            RESPOSTA_OK,
        ])
        breaker = CircuitBreaker(
            nome="segment_rules", falhas_para_abrir=1, cooldown_segundos=60, relogio=relogio
        )
        generator, _ = _generator(provider, breaker=breaker, max_retries=0)

        await generator.run(AIOperation.SEGMENT_RULES, REQUEST, _parse, _fallback)
        assert breaker.aberto

        relogio.agora += timedelta(seconds=61)
        result = await generator.run(AIOperation.SEGMENT_RULES, REQUEST, _parse, _fallback)

        assert result.source == AISource.LIVE
        assert not breaker.aberto
        assert breaker.falhas_consecutivas == 0

    @pytest.mark.asyncio
    async def test_monitor_registra_cada_tentativa(self):
        monitor = AIMonitor()
        provider = create_mock_with_sequence([
            LLMError("down", provider="mock", retryable=True),
            RESPOSTA_OK,
        ])
        generator, _ = _generator(provider, monitor=monitor, max_retries=1)

        await generator.run(AIOperation.SEGMENT_RULES, REQUEST, _parse, _fallback)

        metrics = monitor.metrics()
        assert metrics.total_requests == 2
        assert metrics.successful_requests == 1
        assert metrics.failed_requests == 1
        assert metrics.success_rate == 50.0
        assert metrics.by_operation == {"segment_rules": 2}


class TestAIMonitor:

    @pytest.mark.asyncio
    async def test_janela_de_tempos(self):
        monitor = AIMonitor(janela=2)
        await monitor.registrar("a", True, 100)
        await monitor.registrar("a", True, 200)
        await monitor.registrar("b", False, 400)

        metrics = monitor.metrics()
        assert metrics.average_response_time_ms == 300
        assert metrics.total_requests == 3

    @pytest.mark.asyncio
    async def test_reset(self):
        monitor = AIMonitor()
        await monitor.registrar("a", True, 100)

        monitor.reset()

        assert monitor.metrics().total_requests == 0
        assert monitor.metrics().success_rate == 0.0

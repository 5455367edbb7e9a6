"""
Camada de resiliencia para chamadas ao provider de IA.

Ordem de decisao para cada chamada:
1. Sem provider configurado -> fallback
2. Circuit breaker aberto -> fallback (provider nao e chamado)
3. Chamada com timeout por tentativa e retry linear (tenacity)
4. Retries esgotados -> uma falha no breaker + fallback

Cancelamento da task (asyncio.CancelledError) nao e tratado como falha.
"""
import asyncio
import json
import logging
import re
import time
from typing import Any, Awaitable, Callable, Dict, Optional

from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_incrementing,
)

from orchestrator.services.circuit_breaker import CircuitBreaker
from orchestrator.services.llm import LLMError, LLMProvider, LLMRequest
from .monitor import AIMonitor
from .types import AIOperation, AIResult, AISource

logger = logging.getLogger(__name__)

# Confianca atribuida a respostas live que nao informam a propria
LIVE_CONFIDENCE_DEFAULT = 0.9


class UnparseableResponseError(ValueError):
    """Provider respondeu texto que nao e o JSON esperado."""
    pass


def extrair_json(texto: str) -> Dict[str, Any]:
    """
    Extrai objeto JSON da resposta do LLM.

    Aceita JSON puro, bloco ```json``` ou JSON no meio do texto.

    Raises:
        UnparseableResponseError: Se nao houver objeto JSON valido
    """
    texto = (texto or "").strip()

    bloco = re.search(r"```(?:json)?\s*(.*?)```", texto, re.DOTALL)
    if bloco:
        texto = bloco.group(1).strip()

    if not texto.startswith("{"):
        inicio, fim = texto.find("{"), texto.rfind("}")
        if inicio == -1 or fim <= inicio:
            raise UnparseableResponseError(f"JSON nao encontrado: {texto[:100]!r}")
        texto = texto[inicio:fim + 1]

    try:
        dados = json.loads(texto)
    except json.JSONDecodeError as e:
        raise UnparseableResponseError(f"JSON invalido: {e}") from e

    if not isinstance(dados, dict):
        raise UnparseableResponseError("Resposta nao e um objeto JSON")
    return dados


def _deve_retentar(erro: BaseException) -> bool:
    if isinstance(erro, LLMError):
        return erro.retryable
    return isinstance(erro, (asyncio.TimeoutError, UnparseableResponseError))


class ResilientGenerator:
    """
    Executa uma operacao de IA com breaker, retry e fallback.

    Exemplo:
        generator = ResilientGenerator(provider, breaker, monitor)
        result = await generator.run(
            AIOperation.SEGMENT_RULES,
            request,
            parse=validar_regras,
            fallback=lambda: segment_rules_heuristic(prompt),
        )
    """

    def __init__(
        self,
        provider: Optional[LLMProvider],
        breaker: CircuitBreaker,
        monitor: Optional[AIMonitor] = None,
        max_retries: int = 3,
        backoff_seconds: float = 1.0,
        timeout_seconds: float = 30.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.provider = provider
        self.breaker = breaker
        self.monitor = monitor
        self.max_retries = max_retries
        self.backoff_seconds = backoff_seconds
        self.timeout_seconds = timeout_seconds
        self._sleep = sleep
        # Fonte do ultimo resultado (live, heuristic ou static), para o health
        self.ultima_fonte: Optional[AISource] = None

    async def run(
        self,
        operation: AIOperation,
        request: LLMRequest,
        parse: Callable[[Dict[str, Any]], Dict[str, Any]],
        fallback: Callable[[], AIResult],
    ) -> AIResult:
        """
        Executa a operacao. Nunca levanta erro do provider: sempre retorna AIResult.

        Args:
            operation: Tipo da operacao
            request: Request para o provider
            parse: Valida/normaliza o JSON da resposta (ValueError = resposta invalida)
            fallback: Gera o resultado heuristico/estatico
        """
        if self.provider is None:
            return self._fallback(operation, fallback, "api_unavailable")

        if not await self.breaker.permitir():
            logger.info(f"Circuit {self.breaker.nome} aberto, usando fallback para {operation.value}")
            return self._fallback(operation, fallback, "circuit_open")

        try:
            data = await self._chamar_com_retry(operation, request, parse)
        except Exception as e:
            await self.breaker.registrar_falha(e)
            logger.error(f"IA {operation.value} falhou apos retries: {e}")
            return self._fallback(operation, fallback, f"provider_error: {e}")

        await self.breaker.registrar_sucesso()

        confidence = data.pop("confidence", LIVE_CONFIDENCE_DEFAULT)
        try:
            confidence = min(max(float(confidence), 0.0), 1.0)
        except (TypeError, ValueError):
            confidence = LIVE_CONFIDENCE_DEFAULT

        self.ultima_fonte = AISource.LIVE
        return AIResult(
            operation=operation,
            data=data,
            confidence=confidence,
            source=AISource.LIVE,
        )

    async def _chamar_com_retry(
        self,
        operation: AIOperation,
        request: LLMRequest,
        parse: Callable[[Dict[str, Any]], Dict[str, Any]],
    ) -> Dict[str, Any]:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_retries + 1),
            wait=wait_incrementing(start=self.backoff_seconds, increment=self.backoff_seconds),
            retry=retry_if_exception(_deve_retentar),
            sleep=self._sleep,
            reraise=True,
        )

        async for attempt in retrying:
            with attempt:
                numero = attempt.retry_state.attempt_number
                if numero > 1:
                    logger.info(
                        f"Retentando {operation.value} (tentativa {numero}/{self.max_retries + 1})"
                    )
                return await self._tentativa(operation, request, parse)

    async def _tentativa(
        self,
        operation: AIOperation,
        request: LLMRequest,
        parse: Callable[[Dict[str, Any]], Dict[str, Any]],
    ) -> Dict[str, Any]:
        inicio = time.monotonic()
        sucesso = False
        try:
            response = await asyncio.wait_for(
                self.provider.generate(request),
                timeout=self.timeout_seconds,
            )
            try:
                data = parse(extrair_json(response.content))
            except UnparseableResponseError:
                raise
            except (ValueError, KeyError, TypeError) as e:
                raise UnparseableResponseError(f"Resposta fora do formato: {e}") from e
            sucesso = True
            return data
        finally:
            if self.monitor is not None:
                await self.monitor.registrar(
                    operation.value,
                    sucesso=sucesso,
                    tempo_ms=(time.monotonic() - inicio) * 1000,
                )

    def _fallback(
        self,
        operation: AIOperation,
        fallback: Callable[[], AIResult],
        motivo: str,
    ) -> AIResult:
        result = fallback()
        result.fallback_reason = motivo
        self.ultima_fonte = result.source
        logger.info(
            f"IA {operation.value}: fallback {result.source.value} "
            f"(confianca {result.confidence}, motivo {motivo})"
        )
        return result

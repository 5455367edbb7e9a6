"""
Servico de IA do orquestrador.

Quatro operacoes, cada uma com seu proprio circuit breaker:
- segment_rules: texto livre -> regras de segmento
- message_variants: objetivo + tom -> variantes de copy
- analytics_insights: agregados -> insights
- campaign_summary: stats da campanha -> resumo

Nenhuma operacao levanta erro do provider: o resultado sempre vem
com `confidence` e `source`.
"""
import json
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from orchestrator.core.config import AIConfig, settings
from orchestrator.core.timezone import agora_utc, iso
from orchestrator.services.circuit_breaker import CircuitBreaker, CircuitState, criar_breakers
from orchestrator.services.llm import LLMProvider, LLMRequest
from .heuristics import (
    analytics_insights_heuristic,
    campaign_summary_heuristic,
    message_variants_heuristic,
    segment_rules_heuristic,
)
from .monitor import AIMonitor
from .resilience import ResilientGenerator
from .types import AIOperation, AIResult, AISource, CampaignOverview, CampaignSnapshot

logger = logging.getLogger(__name__)

# Do melhor para o pior
_FALLBACK_MODES = ("live", "smart", "static")

SEGMENT_FIELDS = ("totalSpend", "visits", "lastOrderAt", "tags")
SEGMENT_OPERATORS = (
    "equals", "not_equals", "greater_than", "less_than",
    "contains", "not_contains", "in", "not_in",
)

SYSTEM_SEGMENT = f"""You are an expert customer segmentation analyst. Convert natural language descriptions into database query rules.

Available fields: {", ".join(SEGMENT_FIELDS)}
Available operators: {", ".join(SEGMENT_OPERATORS)}
Dates are ISO 8601 strings. Today is {{today}}.

Return ONLY JSON with:
- rules: array of {{"field", "operator", "value"}}
- name: descriptive segment name
- description: clear explanation
- confidence: 0-1 confidence score"""

SYSTEM_VARIANTS = """You are a marketing copywriter. Generate conversion-focused message variants.

Return ONLY JSON with:
- name: campaign name
- description: campaign description
- message: primary message
- variants: array of 3-5 variants (1-3 sentences each, matching the tone, with a clear call to action)
- confidence: 0-1 confidence score"""

SYSTEM_INSIGHTS = """You are a CRM data analyst. Analyze the aggregates and generate actionable insights.

Return ONLY JSON with:
- insights: array of {"type": trend|anomaly|recommendation|warning, "title", "description", "impact": high|medium|low, "confidence"}
- summary: overall performance summary
- recommendations: array of next steps
- confidence: 0-1 confidence score"""

SYSTEM_SUMMARY = """You are a marketing analytics expert. Write a concise summary of campaign performance in 2-3 sentences:
key metrics, what worked, one recommendation.

Return ONLY JSON with:
- summary: the text
- confidence: 0-1 confidence score"""


def _parse_segment_rules(data: Dict[str, Any]) -> Dict[str, Any]:
    rules = data.get("rules")
    if not isinstance(rules, list):
        raise ValueError("campo 'rules' ausente")
    for rule in rules:
        if not isinstance(rule, dict) or "field" not in rule or "operator" not in rule:
            raise ValueError(f"regra invalida: {rule!r}")
    return {
        "rules": rules,
        "name": str(data.get("name") or "AI Segment"),
        "description": str(data.get("description") or ""),
        "confidence": data.get("confidence"),
    }


def _parse_variants(data: Dict[str, Any]) -> Dict[str, Any]:
    variants = data.get("variants")
    if not isinstance(variants, list) or not variants:
        raise ValueError("campo 'variants' ausente")
    variants = [str(v) for v in variants][:AIConfig.MAX_VARIANTS]
    return {
        "name": str(data.get("name") or "Marketing Campaign"),
        "description": str(data.get("description") or ""),
        "message": str(data.get("message") or variants[0]),
        "variants": variants,
        "confidence": data.get("confidence"),
    }


def _parse_insights(data: Dict[str, Any]) -> Dict[str, Any]:
    insights = data.get("insights")
    if not isinstance(insights, list):
        raise ValueError("campo 'insights' ausente")
    return {
        "insights": insights,
        "summary": str(data.get("summary") or ""),
        "recommendations": list(data.get("recommendations") or []),
        "confidence": data.get("confidence"),
    }


def _parse_summary(data: Dict[str, Any]) -> Dict[str, Any]:
    summary = data.get("summary")
    if not isinstance(summary, str) or not summary.strip():
        raise ValueError("campo 'summary' ausente")
    return {"summary": summary.strip(), "confidence": data.get("confidence")}


class AIService:
    """
    Fachada das operacoes de IA.

    Breakers e monitor sao injetaveis (testes criam os proprios).

    Exemplo:
        service = AIService(provider=MockLLMProvider(should_fail=True))
        result = await service.generate_segment_rules("customers who spent over $500")
        result.source  # AISource.HEURISTIC
    """

    def __init__(
        self,
        provider: Optional[LLMProvider] = None,
        breakers: Optional[Dict[str, CircuitBreaker]] = None,
        monitor: Optional[AIMonitor] = None,
        max_retries: Optional[int] = None,
        backoff_seconds: Optional[float] = None,
        timeout_seconds: Optional[float] = None,
        sleep=None,
    ):
        self.provider = provider
        self.breakers = breakers or criar_breakers(
            [op.value for op in AIOperation],
            falhas_para_abrir=settings.AI_FAILURE_THRESHOLD,
            cooldown_segundos=settings.AI_COOLDOWN_SECONDS,
        )
        self.monitor = monitor or AIMonitor()

        opcoes = {
            "max_retries": settings.AI_MAX_RETRIES if max_retries is None else max_retries,
            "backoff_seconds": settings.AI_BACKOFF_SECONDS if backoff_seconds is None else backoff_seconds,
            "timeout_seconds": settings.AI_CALL_TIMEOUT_SECONDS if timeout_seconds is None else timeout_seconds,
        }
        if sleep is not None:
            opcoes["sleep"] = sleep

        self._generators = {
            op: ResilientGenerator(
                provider,
                self.breakers[op.value],
                self.monitor,
                **opcoes,
            )
            for op in AIOperation
        }

    def _request(self, operation: AIOperation, system: str, user: str, temperature: float) -> LLMRequest:
        return LLMRequest(
            system_prompt=system,
            user_prompt=user,
            max_tokens=settings.LLM_MAX_TOKENS,
            temperature=temperature,
            operation=operation.value,
        )

    async def generate_segment_rules(self, prompt: str, now: Optional[datetime] = None) -> AIResult:
        """Converte descricao em linguagem natural em regras de segmento."""
        now = now or agora_utc()
        operation = AIOperation.SEGMENT_RULES
        request = self._request(
            operation,
            SYSTEM_SEGMENT.replace("{today}", now.date().isoformat()),
            prompt,
            temperature=0.1,
        )
        return await self._generators[operation].run(
            operation,
            request,
            parse=_parse_segment_rules,
            fallback=lambda: segment_rules_heuristic(prompt, now=now),
        )

    async def generate_message_variants(
        self,
        objective: str,
        tone: str = "",
        offer: Optional[str] = None,
        brand_voice: Optional[str] = None,
    ) -> AIResult:
        """Gera variantes de mensagem para uma campanha."""
        operation = AIOperation.MESSAGE_VARIANTS
        user = (
            f"Objective: {objective}\n"
            f"Tone: {tone or 'neutral'}\n"
            f"Offer: {offer or 'No specific offer'}\n"
            f"Brand Voice: {brand_voice or 'Professional and trustworthy'}"
        )
        request = self._request(operation, SYSTEM_VARIANTS, user, temperature=0.7)
        return await self._generators[operation].run(
            operation,
            request,
            parse=_parse_variants,
            fallback=lambda: message_variants_heuristic(objective, tone, offer),
        )

    async def generate_analytics_insights(
        self, overview: Optional[CampaignOverview] = None
    ) -> AIResult:
        """Gera insights a partir dos agregados de clientes/campanhas."""
        operation = AIOperation.ANALYTICS_INSIGHTS
        dados = overview.to_dict() if overview else {}
        request = self._request(
            operation,
            SYSTEM_INSIGHTS,
            f"CRM aggregates:\n{json.dumps(dados, indent=2)}",
            temperature=0.3,
        )
        return await self._generators[operation].run(
            operation,
            request,
            parse=_parse_insights,
            fallback=lambda: analytics_insights_heuristic(overview),
        )

    async def generate_campaign_summary(self, campaign: Optional[CampaignSnapshot]) -> AIResult:
        """Gera resumo de performance da campanha."""
        operation = AIOperation.CAMPAIGN_SUMMARY
        if campaign is None:
            user = "No campaign data available."
        else:
            user = (
                f"Campaign: {campaign.name}\n"
                f"Status: {campaign.status}\n"
                f"Total Recipients: {campaign.total_recipients}\n"
                f"Sent: {campaign.sent}\n"
                f"Delivered: {campaign.delivered}\n"
                f"Failed: {campaign.failed}\n"
                f"Bounced: {campaign.bounced}\n"
                f"Delivery Rate: {campaign.delivery_rate * 100:.1f}%\n"
                f"Message: {campaign.message}"
            )
        request = self._request(operation, SYSTEM_SUMMARY, user, temperature=0.5)
        return await self._generators[operation].run(
            operation,
            request,
            parse=_parse_summary,
            fallback=lambda: campaign_summary_heuristic(campaign),
        )

    async def _health_operacao(self, operation: AIOperation) -> Dict[str, Any]:
        breaker = self.breakers[operation.value]
        estado = await breaker.status()
        aberto = estado["estado"] == CircuitState.OPEN.value
        return {
            "status": self._estado_saude(estado["falhas_consecutivas"], aberto),
            "circuit_open": aberto,
            "failure_count": estado["falhas_consecutivas"],
            "last_failure_at": estado["ultima_falha"],
            "fallback_mode": self._modo_fallback(aberto, self._generators[operation].ultima_fonte),
        }

    def _modo_fallback(self, aberto: bool, ultima_fonte: Optional[AISource]) -> str:
        if ultima_fonte == AISource.STATIC:
            return "static"
        if self.provider is None or aberto or ultima_fonte == AISource.HEURISTIC:
            return "smart"
        return "live"

    def _estado_saude(self, falhas: int, aberto: bool) -> str:
        if aberto:
            return "offline"
        if falhas > 0:
            return "degraded"
        return "healthy"

    async def health(self) -> Dict[str, Any]:
        """
        Saude da camada de IA, agregada e por operacao.

        status: offline se algum breaker esta aberto, degraded se ha falhas
        recentes, healthy caso contrario. Breakers com cooldown expirado ja
        aparecem fechados.
        fallback_mode: live quando o provider responde; smart quando a operacao
        esta nas heuristicas; static quando o ultimo resultado foi o default
        fixo. O agregado e o pior modo entre as operacoes.
        """
        operacoes: Dict[str, Dict[str, Any]] = {}
        for operation in AIOperation:
            operacoes[operation.value] = await self._health_operacao(operation)

        algum_aberto = any(op["circuit_open"] for op in operacoes.values())
        falhas = sum(op["failure_count"] for op in operacoes.values())
        ultimas = [op["last_failure_at"] for op in operacoes.values() if op["last_failure_at"]]
        fallback_mode = max(
            (op["fallback_mode"] for op in operacoes.values()),
            key=_FALLBACK_MODES.index,
        )

        return {
            "status": self._estado_saude(falhas, algum_aberto),
            "api_available": self.provider is not None,
            "fallback_mode": fallback_mode,
            "circuit_open": algum_aberto,
            "failure_count": falhas,
            "last_failure_at": max(ultimas) if ultimas else None,
            "operations": operacoes,
            "metrics": self.monitor.metrics().to_dict(),
        }

"""
Tipos da camada de IA.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class AIOperation(str, Enum):
    """Tipos de operacao de IA. Cada um tem seu proprio circuit breaker."""

    SEGMENT_RULES = "segment_rules"
    MESSAGE_VARIANTS = "message_variants"
    ANALYTICS_INSIGHTS = "analytics_insights"
    CAMPAIGN_SUMMARY = "campaign_summary"


class AISource(str, Enum):
    """De onde veio o resultado."""

    LIVE = "live"            # Provider externo
    HEURISTIC = "heuristic"  # Fallback por regex/regras
    STATIC = "static"        # Default fixo


@dataclass
class AIResult:
    """
    Resultado uniforme de qualquer chamada de IA.

    Nunca e None: quando o provider falha, `source` indica qual
    nivel de fallback produziu `data`.
    """

    operation: AIOperation
    data: Dict[str, Any]
    confidence: float
    source: AISource
    fallback_reason: Optional[str] = None

    @property
    def is_fallback(self) -> bool:
        return self.source != AISource.LIVE

    def to_dict(self) -> dict:
        return {
            "operation": self.operation.value,
            "data": self.data,
            "confidence": self.confidence,
            "source": self.source.value,
            "fallback_reason": self.fallback_reason,
        }


@dataclass
class CampaignOverview:
    """Agregados usados para gerar insights de analytics."""

    total_customers: int = 0
    total_campaigns: int = 0
    average_spend: float = 0.0
    inactive_high_value: int = 0
    total_recipients: int = 0
    total_delivered: int = 0
    total_failed: int = 0
    total_bounced: int = 0

    @property
    def delivery_rate(self) -> float:
        if not self.total_recipients:
            return 0.0
        return self.total_delivered / self.total_recipients

    def to_dict(self) -> dict:
        return {
            "total_customers": self.total_customers,
            "total_campaigns": self.total_campaigns,
            "average_spend": round(self.average_spend, 2),
            "inactive_high_value": self.inactive_high_value,
            "total_recipients": self.total_recipients,
            "total_delivered": self.total_delivered,
            "total_failed": self.total_failed,
            "total_bounced": self.total_bounced,
            "delivery_rate": round(self.delivery_rate, 4),
        }


@dataclass
class CampaignSnapshot:
    """Dados de uma campanha usados para o resumo."""

    name: str
    status: str
    message: str
    total_recipients: int = 0
    sent: int = 0
    delivered: int = 0
    failed: int = 0
    bounced: int = 0

    @property
    def delivery_rate(self) -> float:
        if not self.total_recipients:
            return 0.0
        return self.delivered / self.total_recipients


@dataclass
class MetricsSnapshot:
    """Metricas agregadas do monitor de IA."""

    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    success_rate: float = 0.0
    average_response_time_ms: float = 0.0
    by_operation: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "total_requests": self.total_requests,
            "successful_requests": self.successful_requests,
            "failed_requests": self.failed_requests,
            "success_rate": round(self.success_rate, 2),
            "average_response_time_ms": round(self.average_response_time_ms, 2),
            "by_operation": dict(self.by_operation),
        }

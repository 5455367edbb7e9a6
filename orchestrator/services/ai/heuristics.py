"""
Fallbacks das operacoes de IA.

Dois niveis:
1. Heuristico: extracao por regex / regras sobre os dados, com confianca
2. Estatico: default fixo quando nada casa

Todas as funcoes sao puras; a data de referencia e parametro.
"""
import logging
import re
from datetime import datetime, timedelta
from typing import List, Optional

from orchestrator.core.config import AIConfig
from orchestrator.core.timezone import agora_utc
from .types import AIOperation, AIResult, AISource, CampaignOverview, CampaignSnapshot

logger = logging.getLogger(__name__)


# =============================================================================
# SEGMENT RULES
# =============================================================================

_SPEND_PATTERN = re.compile(
    r"spen(?:t|d|ding)\s+(?:(?:over|above|more\s+than|at\s+least|>)\s*)?\$?(\d[\d,]*(?:\.\d+)?)",
    re.IGNORECASE,
)
_VISITS_PATTERNS = (
    re.compile(
        r"(?:visited?|been\s+to)(?:\s+(?:the\s+)?(?:site|website|store))?\s+"
        r"(?:(at\s+least|more\s+than)\s+)?(\d+)\s+times?",
        re.IGNORECASE,
    ),
    re.compile(r"(?:(at\s+least|more\s+than)\s+)?(\d+)\+?\s+visits", re.IGNORECASE),
)
_INACTIVE_PATTERN = re.compile(
    r"(?:inactive|dormant|haven'?t\s+(?:ordered|purchased|bought)|not\s+ordered|no\s+orders?)"
    r"(?:\s+(?:in|for)\s+(?:the\s+)?(?:last\s+|past\s+)?(\d+)\s+days?)?",
    re.IGNORECASE,
)
_RECENT_PATTERN = re.compile(r"(?:last|past|recent)\s+(\d+)\s+days?", re.IGNORECASE)
_TIER_PATTERN = re.compile(r"\b(?:vip|premium|gold|platinum|loyal|elite)\b", re.IGNORECASE)


def _numero(texto: str) -> float:
    valor = float(texto.replace(",", ""))
    return int(valor) if valor.is_integer() else valor


def _confianca_por_gasto(valor: float) -> tuple:
    if valor >= 5000:
        return "Ultra Elite Customers", 0.95
    if valor >= 2000:
        return "Elite High-Value Customers", 0.9
    if valor >= 1000:
        return "High-Value Customers", 0.85
    return "Active Spenders", 0.8


def _limite_visitas(qualificador: Optional[str], visitas: int) -> int:
    """
    Valor para visits > X.

    "more than N" vira visits > N. "at least N" (ou so "N visits") vira
    visits > N-1, ja que nao existe operador >=.
    """
    if qualificador and qualificador.lower().startswith("more"):
        return visitas
    return max(visitas - 1, 0)


def _juntar_nome(atual: str, novo: str) -> str:
    return f"{atual} & {novo}" if atual else novo


def segment_rules_heuristic(prompt: str, now: Optional[datetime] = None) -> AIResult:
    """
    Extrai regras de segmento de texto livre.

    Exemplos:
        "customers who spent over $500" -> totalSpend > 500 (0.8)
        "visited the store at least 10 times" -> visits > 9
        "more than 5 visits" -> visits > 5
        "ordered in the last 30 days" -> lastOrderAt > now-30d
        "inactive for 90 days" -> lastOrderAt < now-90d
        "vip customers" -> tags contains VIP

    Nenhum padrao casa -> default estatico (totalSpend > 100, visits > 1).
    """
    now = now or agora_utc()
    texto = prompt or ""
    rules: List[dict] = []
    nomes: List[str] = []
    descricoes: List[str] = []
    confianca = 0.0

    match = _SPEND_PATTERN.search(texto)
    if match:
        valor = _numero(match.group(1))
        rules.append({"field": "totalSpend", "operator": "greater_than", "value": valor})
        nome, confianca = _confianca_por_gasto(valor)
        nomes.append(nome)
        descricoes.append(f"spent over ${valor:,}")

    for pattern in _VISITS_PATTERNS:
        match = pattern.search(texto)
        if not match:
            continue
        visitas = int(match.group(2))
        limite = _limite_visitas(match.group(1), visitas)
        rules.append({"field": "visits", "operator": "greater_than", "value": limite})
        if visitas >= 20:
            nomes.append("Super Frequent Visitors")
            confianca = max(confianca, 0.9)
        elif visitas >= 10:
            nomes.append("Frequent Visitors")
            confianca = max(confianca, 0.85)
        else:
            nomes.append("Regular Visitors")
            confianca = max(confianca, 0.8)
        if limite == visitas:
            descricoes.append(f"visited more than {visitas} times")
        else:
            descricoes.append(f"visited at least {visitas} times")
        break

    match = _INACTIVE_PATTERN.search(texto)
    if match:
        dias = int(match.group(1)) if match.group(1) else AIConfig.INACTIVE_DAYS_DEFAULT
        corte = now - timedelta(days=dias)
        rules.append({"field": "lastOrderAt", "operator": "less_than", "value": corte.isoformat()})
        nomes.append(f"Inactive {dias}+ Days")
        descricoes.append(f"no orders in the last {dias} days")
        confianca = max(confianca, 0.85)
    else:
        match = _RECENT_PATTERN.search(texto)
        if match:
            dias = int(match.group(1))
            corte = now - timedelta(days=dias)
            rules.append({"field": "lastOrderAt", "operator": "greater_than", "value": corte.isoformat()})
            nomes.append(f"Recent {dias}-Day Customers")
            descricoes.append(f"active in the last {dias} days")
            confianca = max(confianca, 0.85)

    if _TIER_PATTERN.search(texto):
        rules.append({"field": "tags", "operator": "contains", "value": "VIP"})
        nomes.append("VIP Customers")
        descricoes.append("with VIP status")
        confianca = max(confianca, 0.9)

    if not rules:
        logger.debug(f"Nenhum padrao reconhecido em '{texto[:80]}', usando default estatico")
        return AIResult(
            operation=AIOperation.SEGMENT_RULES,
            data={
                "rules": [
                    {"field": "totalSpend", "operator": "greater_than", "value": 100},
                    {"field": "visits", "operator": "greater_than", "value": 1},
                ],
                "name": "General Active Customers",
                "description": "Customers with basic activity",
            },
            confidence=AIConfig.CONFIDENCE_STATIC_SEGMENT,
            source=AISource.STATIC,
        )

    nome = ""
    for parte in nomes:
        nome = _juntar_nome(nome, parte)

    return AIResult(
        operation=AIOperation.SEGMENT_RULES,
        data={
            "rules": rules,
            "name": nome,
            "description": "Customers who " + " and ".join(descricoes),
        },
        confidence=confianca,
        source=AISource.HEURISTIC,
    )


# =============================================================================
# MESSAGE VARIANTS
# =============================================================================

_NOMES_POR_OBJETIVO = (
    (("sale", "discount"), "Flash Sale Campaign"),
    (("new", "launch"), "Product Launch Campaign"),
    (("welcome", "onboard"), "Welcome Series Campaign"),
    (("retention", "loyalty", "win back", "re-engage"), "Customer Retention Campaign"),
    (("upsell", "upgrade"), "Upsell Campaign"),
)

STATIC_VARIANTS = [
    "Don't miss out! Check out our latest offer - limited time only!",
    "We picked something special for you. Take a look today!",
    "Our newest collection is here. Shop now before it's gone!",
]


def _nome_campanha(objetivo: str) -> str:
    objetivo = objetivo.lower()
    for palavras, nome in _NOMES_POR_OBJETIVO:
        if any(palavra in objetivo for palavra in palavras):
            return nome
    return "Marketing Campaign"


def _variantes_por_tom(objetivo: str, tom: str, oferta: Optional[str]) -> List[str]:
    tom = tom.lower()
    minusculo = objetivo.lower()

    if "urgent" in tom:
        return [
            f"URGENT: {objetivo}! " + ("Don't miss out on " + oferta if oferta else "Limited time offer - act now!"),
            f"Time-sensitive: {objetivo}. {oferta or 'This will not last long!'}",
            f"Last chance: {minusculo}. {oferta or 'Limited quantities available!'}",
        ]
    if "friendly" in tom or "casual" in tom:
        return [
            f"Hey there! {objetivo}. {'Here is what we have for you: ' + oferta if oferta else 'We think you will love this!'}",
            f"Hi! We wanted to share: {minusculo}. {oferta or 'Check it out!'}",
            f"Hello! {objetivo}. {'Special for you: ' + oferta if oferta else 'Hope you enjoy!'}",
        ]
    if "professional" in tom or "formal" in tom:
        return [
            f"We're excited to share: {objetivo}. {'Our special offer: ' + oferta if oferta else 'Please find details below.'}",
            f"Important update: {minusculo}. {oferta or 'We appreciate your business.'}",
            f"We're pleased to announce: {objetivo}. {'Exclusive opportunity: ' + oferta if oferta else 'Thank you for your continued support.'}",
        ]
    return [
        f"{objetivo}! {oferta or 'Check out what we have for you.'}",
        f"Don't miss out! {minusculo}. {oferta or 'Limited time only!'}",
        f"{objetivo}. {oferta or 'Special offer inside!'}",
    ]


def message_variants_heuristic(
    objective: str,
    tone: str = "",
    offer: Optional[str] = None,
) -> AIResult:
    """Gera nome e variantes de copy a partir do objetivo e do tom."""
    objetivo = (objective or "").strip()
    tom = (tone or "").strip()

    if not objetivo:
        return AIResult(
            operation=AIOperation.MESSAGE_VARIANTS,
            data={
                "name": "Marketing Campaign",
                "description": "A marketing campaign",
                "message": STATIC_VARIANTS[0],
                "variants": list(STATIC_VARIANTS),
            },
            confidence=AIConfig.CONFIDENCE_STATIC_VARIANTS,
            source=AISource.STATIC,
        )

    variantes = _variantes_por_tom(objetivo, tom, offer)[:AIConfig.MAX_VARIANTS]

    return AIResult(
        operation=AIOperation.MESSAGE_VARIANTS,
        data={
            "name": _nome_campanha(objetivo),
            "description": f"A {tom or 'general'} campaign designed to {objetivo.lower()}",
            "message": variantes[0],
            "variants": variantes,
        },
        confidence=AIConfig.CONFIDENCE_HEURISTIC_VARIANTS,
        source=AISource.HEURISTIC,
    )


# =============================================================================
# ANALYTICS INSIGHTS
# =============================================================================

STATIC_INSIGHTS = {
    "insights": [
        {
            "type": "recommendation",
            "title": "Campaign Timing",
            "description": "Test sending campaigns on different weekdays to find the best engagement window",
            "impact": "medium",
            "confidence": 0.5,
        },
        {
            "type": "recommendation",
            "title": "Re-engagement",
            "description": "Customers without recent orders are good candidates for a win-back campaign",
            "impact": "high",
            "confidence": 0.5,
        },
    ],
    "summary": "Not enough data for a detailed analysis. Start with segmentation by spend and recency.",
    "recommendations": [
        "Launch a re-engagement campaign for dormant high-value customers",
        "Segment customers by spend tier before sending offers",
        "Track delivery outcomes to measure campaign reach",
    ],
}


def analytics_insights_heuristic(overview: Optional[CampaignOverview]) -> AIResult:
    """Gera insights a partir dos agregados. Sem dados -> lista estatica."""
    if overview is None or overview.total_customers == 0:
        return AIResult(
            operation=AIOperation.ANALYTICS_INSIGHTS,
            data={
                "insights": [dict(item) for item in STATIC_INSIGHTS["insights"]],
                "summary": STATIC_INSIGHTS["summary"],
                "recommendations": list(STATIC_INSIGHTS["recommendations"]),
            },
            confidence=AIConfig.CONFIDENCE_STATIC_INSIGHTS,
            source=AISource.STATIC,
        )

    insights = []
    recomendacoes = []

    if overview.inactive_high_value > 0:
        percentual = overview.inactive_high_value / overview.total_customers * 100
        insights.append({
            "type": "warning",
            "title": "Churn Risk Alert",
            "description": (
                f"{overview.inactive_high_value} high-value customers ({percentual:.0f}%) "
                f"have not ordered in {AIConfig.INACTIVE_DAYS_DEFAULT}+ days"
            ),
            "impact": "high",
            "confidence": 0.8,
        })
        recomendacoes.append("Launch a re-engagement campaign for dormant high-value customers")

    if overview.total_recipients > 0:
        taxa = overview.delivery_rate * 100
        if taxa < 90:
            insights.append({
                "type": "anomaly",
                "title": "Low Delivery Rate",
                "description": (
                    f"Only {taxa:.1f}% of messages were delivered "
                    f"({overview.total_failed} failed, {overview.total_bounced} bounced)"
                ),
                "impact": "high" if taxa < 70 else "medium",
                "confidence": 0.85,
            })
            recomendacoes.append("Clean up contact data to reduce bounces and failures")
        else:
            insights.append({
                "type": "trend",
                "title": "Healthy Delivery",
                "description": f"{taxa:.1f}% of messages were delivered",
                "impact": "low",
                "confidence": 0.85,
            })

    if overview.total_campaigns == 0:
        recomendacoes.append("Create a first campaign for your most valuable segment")
    else:
        insights.append({
            "type": "trend",
            "title": "Campaign Activity",
            "description": (
                f"{overview.total_campaigns} campaigns reached "
                f"{overview.total_recipients} recipients in total"
            ),
            "impact": "medium",
            "confidence": 0.75,
        })

    if overview.average_spend >= 500:
        recomendacoes.append("Offer premium-tier perks, the average customer spend is high")
    else:
        recomendacoes.append("Use tiered discounts to move customers into higher spend tiers")

    summary = (
        f"{overview.total_customers} customers with average spend "
        f"${overview.average_spend:,.2f}; {overview.total_campaigns} campaigns sent."
    )

    return AIResult(
        operation=AIOperation.ANALYTICS_INSIGHTS,
        data={"insights": insights, "summary": summary, "recommendations": recomendacoes},
        confidence=AIConfig.CONFIDENCE_HEURISTIC_INSIGHTS,
        source=AISource.HEURISTIC,
    )


# =============================================================================
# CAMPAIGN SUMMARY
# =============================================================================

STATIC_SUMMARY = "No delivery data is available for this campaign yet."


def campaign_summary_heuristic(campaign: Optional[CampaignSnapshot]) -> AIResult:
    """Resumo templated a partir das stats da campanha."""
    if campaign is None or campaign.total_recipients == 0:
        return AIResult(
            operation=AIOperation.CAMPAIGN_SUMMARY,
            data={"summary": STATIC_SUMMARY},
            confidence=AIConfig.CONFIDENCE_STATIC_SUMMARY,
            source=AISource.STATIC,
        )

    taxa = campaign.delivery_rate * 100
    if taxa >= 90:
        avaliacao = "Delivery was strong; consider A/B testing the offer next time."
    elif taxa >= 70:
        avaliacao = "Delivery was acceptable; review failed and bounced contacts."
    else:
        avaliacao = "Delivery was weak; clean the contact list before the next send."

    resumo = (
        f"Campaign '{campaign.name}' ({campaign.status}) reached {campaign.total_recipients} recipients: "
        f"{campaign.delivered} delivered, {campaign.sent} sent, {campaign.failed} failed, "
        f"{campaign.bounced} bounced ({taxa:.1f}% delivery rate). {avaliacao}"
    )

    return AIResult(
        operation=AIOperation.CAMPAIGN_SUMMARY,
        data={"summary": resumo},
        confidence=AIConfig.CONFIDENCE_HEURISTIC_SUMMARY,
        source=AISource.HEURISTIC,
    )

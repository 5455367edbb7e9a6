"""
Personalizacao de mensagens por cliente.

Duas estrategias:
- TEMPLATE: substitui placeholders {{firstName}}, {{totalSpend}}, ...
- SMART: saudacao e oferta de acordo com tier de gasto e recencia

Funcoes puras: a data de referencia (now) e parametro explicito.
"""
import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional, Tuple

from orchestrator.core.config import DispatchConfig
from orchestrator.core.timezone import agora_utc, para_utc, parse_datetime

TOKEN_PATTERN = re.compile(r"\{\{(\w+)\}\}")
SUBJECT_PATTERN = re.compile(r"\{\{subject:(.*?)\}\}", re.DOTALL)
GREETING_PATTERN = re.compile(r"^(hi|hello|hey)\b[^!]*!?", re.IGNORECASE)
OFFER_PATTERN = re.compile(r"\b(?:off|discount\w*|offer\w*)\b", re.IGNORECASE)


class PersonalizationMode(str, Enum):
    """Estrategia de personalizacao da campanha."""

    SMART = "smart"
    TEMPLATE = "template"


@dataclass(frozen=True)
class CustomerSnapshot:
    """
    Copia dos dados do cliente no momento do envio.

    Fica embutida no CommunicationLog e nunca e recalculada.
    """

    id: str
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: Optional[str] = None
    total_spend: float = 0.0
    visits: int = 0
    last_order_at: Optional[datetime] = None
    tags: Tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_customer(cls, row: Mapping[str, Any]) -> "CustomerSnapshot":
        """Cria snapshot a partir da linha da tabela customers."""
        return cls(
            id=str(row.get("id", "")),
            first_name=row.get("first_name") or "",
            last_name=row.get("last_name") or "",
            email=row.get("email") or "",
            phone=row.get("phone"),
            total_spend=float(row.get("total_spend") or 0),
            visits=int(row.get("visits") or 0),
            last_order_at=parse_datetime(row.get("last_order_at")),
            tags=tuple(row.get("tags") or ()),
        )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "phone": self.phone,
            "total_spend": self.total_spend,
            "visits": self.visits,
            "last_order_at": self.last_order_at.isoformat() if self.last_order_at else None,
            "tags": list(self.tags),
        }


@dataclass(frozen=True)
class PersonalizedMessage:
    """Mensagem pronta para um destinatario."""

    message: str
    subject: str
    email: str = ""
    phone: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "message": self.message,
            "subject": self.subject,
            "email": self.email,
            "phone": self.phone,
        }


def _default_subject(customer: CustomerSnapshot) -> str:
    return f"Hi {customer.first_name}!"


def _placeholders(customer: CustomerSnapshot) -> dict:
    return {
        "firstName": customer.first_name,
        "lastName": customer.last_name,
        "fullName": customer.full_name,
        "email": customer.email,
        "phone": customer.phone or "",
        "totalSpend": f"{customer.total_spend:.2f}",
        "visits": str(customer.visits),
        "lastOrderDate": (
            customer.last_order_at.date().isoformat() if customer.last_order_at else "Never"
        ),
        "tags": ", ".join(customer.tags),
    }


def personalize_template(template: str, customer: CustomerSnapshot) -> PersonalizedMessage:
    """
    Substitui placeholders {{...}} pelos dados do cliente.

    Placeholders desconhecidos ficam como estao. {{subject:...}} sai do
    corpo e vira o assunto. Sem nenhum {{...}} a mensagem volta inalterada.

    Exemplo:
        personalize_template("Hi {{firstName}}!", snapshot).message  # "Hi Ana!"
    """
    if "{{" not in template:
        return PersonalizedMessage(
            message=template,
            subject=_default_subject(customer),
            email=customer.email,
            phone=customer.phone,
        )

    subject = ""
    body = template
    match = SUBJECT_PATTERN.search(body)
    if match:
        subject = match.group(1).strip()
        body = body[:match.start()] + body[match.end():]

    values = _placeholders(customer)
    body = TOKEN_PATTERN.sub(lambda m: values.get(m.group(1), m.group(0)), body)
    if subject:
        subject = TOKEN_PATTERN.sub(lambda m: values.get(m.group(1), m.group(0)), subject)

    return PersonalizedMessage(
        message=body.strip(),
        subject=subject or _default_subject(customer),
        email=customer.email,
        phone=customer.phone,
    )


def customer_tier(total_spend: float) -> str:
    """VIP >= 1000, premium >= 500, loyal >= 100, senao valued."""
    if total_spend >= DispatchConfig.TIER_VIP:
        return "VIP"
    if total_spend >= DispatchConfig.TIER_PREMIUM:
        return "premium"
    if total_spend >= DispatchConfig.TIER_LOYAL:
        return "loyal"
    return "valued"


def customer_recency(last_order_at: Optional[datetime], now: datetime) -> str:
    """recent <= 7 dias, returning <= 30, occasional <= 90, senao new."""
    if last_order_at is None:
        return "new"
    days = (para_utc(now) - para_utc(last_order_at)).days
    if days <= 7:
        return "recent"
    if days <= 30:
        return "returning"
    if days <= 90:
        return "occasional"
    return "new"


def _greeting(customer: CustomerSnapshot, tier: str) -> str:
    name = customer.first_name
    if tier == "VIP":
        return f"Hi {name}, our VIP customer!"
    if tier == "premium":
        return f"Hi {name}, our premium customer!"
    if customer.visits >= 5:
        return f"Hi {name}, our loyal customer!"
    return f"Hi {name}!"


def _offer(customer: CustomerSnapshot, tier: str, recency: str) -> str:
    if tier == "VIP":
        return "As our VIP customer, here's an exclusive 15% off your next order!"
    if tier == "premium":
        return "As a premium customer, here's 12% off your next order!"
    if customer.visits >= 3:
        return "Thanks for being a loyal customer! Here's 10% off your next order!"
    if recency == "new":
        return "Welcome! Here's 10% off your first order!"
    if recency == "occasional":
        return "We miss you! Here's 10% off to welcome you back!"
    return "Here's 10% off your next order!"


def generate_smart_message(
    base: str,
    customer: CustomerSnapshot,
    now: Optional[datetime] = None,
) -> PersonalizedMessage:
    """
    Personaliza pelo perfil do cliente.

    A saudacao do tier substitui um "hi/hello/hey" inicial ou e prefixada.
    A oferta so e adicionada se a mensagem ainda nao fala em off/discount/offer.
    """
    now = para_utc(now) if now else agora_utc()
    tier = customer_tier(customer.total_spend)
    recency = customer_recency(customer.last_order_at, now)
    greeting = _greeting(customer, tier)

    message = base.strip()
    if GREETING_PATTERN.match(message):
        message = GREETING_PATTERN.sub(lambda _: greeting, message, count=1)
    else:
        message = f"{greeting} {message}".strip()

    if not OFFER_PATTERN.search(message):
        message = f"{message} {_offer(customer, tier, recency)}"

    return PersonalizedMessage(
        message=message,
        subject=_default_subject(customer),
        email=customer.email,
        phone=customer.phone,
    )


def personalize(
    message: str,
    customer: CustomerSnapshot,
    mode: PersonalizationMode = PersonalizationMode.SMART,
    now: Optional[datetime] = None,
) -> PersonalizedMessage:
    """Aplica a estrategia da campanha."""
    if PersonalizationMode(mode) == PersonalizationMode.TEMPLATE:
        return personalize_template(message, customer)
    return generate_smart_message(message, customer, now=now)

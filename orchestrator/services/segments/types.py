"""
Tipos e enums para segmentos.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, List, Optional, Tuple

from orchestrator.core.timezone import parse_datetime


class RuleField(str, Enum):
    """Campos do cliente que podem ser usados em regras."""

    TOTAL_SPEND = "totalSpend"
    VISITS = "visits"
    LAST_ORDER_AT = "lastOrderAt"
    TAGS = "tags"


class RuleOperator(str, Enum):
    """Operadores de regra."""

    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    IN = "in"
    NOT_IN = "not_in"


# Campo da regra -> coluna na tabela customers
FIELD_COLUMNS = {
    RuleField.TOTAL_SPEND: "total_spend",
    RuleField.VISITS: "visits",
    RuleField.LAST_ORDER_AT: "last_order_at",
    RuleField.TAGS: "tags",
}

ARRAY_FIELDS = frozenset({RuleField.TAGS})


@dataclass(frozen=True)
class SegmentRule:
    """
    Regra de segmento.

    field/operator ficam como string: regras lidas do banco podem ter
    valores desconhecidos, que a compilacao ignora.
    """

    field: str
    operator: str
    value: Any = None

    @classmethod
    def from_dict(cls, data: dict) -> "SegmentRule":
        value = data.get("value")
        if isinstance(value, list):
            value = tuple(value)
        return cls(
            field=str(data.get("field", "")),
            operator=str(data.get("operator", "")),
            value=value,
        )

    def to_dict(self) -> dict:
        value = list(self.value) if isinstance(self.value, tuple) else self.value
        return {"field": self.field, "operator": self.operator, "value": value}


def rules_from_list(data: Optional[List[dict]]) -> Tuple[SegmentRule, ...]:
    """Converte lista de dicts (JSON) em tupla imutavel de regras."""
    return tuple(SegmentRule.from_dict(item) for item in (data or []))


@dataclass
class Segment:
    """Segmento de clientes definido por regras (AND)."""

    id: str
    name: str
    description: str = ""
    rules: Tuple[SegmentRule, ...] = field(default_factory=tuple)
    customer_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_db_row(cls, row: dict) -> "Segment":
        """Cria a partir de linha do banco."""
        return cls(
            id=row["id"],
            name=row.get("name", ""),
            description=row.get("description") or "",
            rules=rules_from_list(row.get("rules")),
            customer_count=row.get("customer_count") or 0,
            created_at=parse_datetime(row.get("created_at")),
            updated_at=parse_datetime(row.get("updated_at")),
        )

    def to_dict(self) -> dict:
        """Converte para resposta da API."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "rules": [rule.to_dict() for rule in self.rules],
            "customer_count": self.customer_count,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

"""
Predicados de consulta independentes de backend.

Um Predicate e uma conjuncao (AND) de Conditions. Ele pode ser:
- avaliado em memoria via `matches(record)`
- traduzido para o query builder do Supabase/PostgREST via `apply(query)`

Nao existe OR nem agrupamento.
"""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Tuple

from orchestrator.core.timezone import parse_datetime, para_utc


class Op(str, Enum):
    """Operadores suportados por uma Condition."""

    EQ = "eq"
    NEQ = "neq"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    IN = "in"
    NOT_IN = "not_in"


def _comparable(value: Any) -> Any:
    """Normaliza datas (string ISO ou datetime) para datetime UTC."""
    if isinstance(value, datetime):
        return para_utc(value)
    if isinstance(value, str):
        parsed = parse_datetime(value)
        if parsed is not None:
            return parsed
    return value


def _to_query_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return para_utc(value).isoformat()
    if isinstance(value, tuple):
        return [_to_query_value(v) for v in value]
    return value


@dataclass(frozen=True)
class Condition:
    """
    Comparacao sobre um unico campo.

    Attributes:
        field: Nome da coluna/chave no documento
        op: Operador
        value: Valor de comparacao (tuple para IN/NOT_IN)
        array: Se o campo e um array (tags), o que muda a semantica
               de EQ/CONTAINS/IN
    """

    field: str
    op: Op
    value: Any
    array: bool = False

    def matches(self, record: Mapping[str, Any]) -> bool:
        """Avalia a condicao contra um documento em memoria."""
        current = record.get(self.field)

        if self.op in (Op.EQ, Op.CONTAINS):
            return self._contains(current, self.value)
        if self.op in (Op.NEQ, Op.NOT_CONTAINS):
            return not self._contains(current, self.value)
        if self.op == Op.IN:
            return self._in(current)
        if self.op == Op.NOT_IN:
            return not self._in(current)

        if current is None:
            return False
        left, right = _comparable(current), _comparable(self.value)
        try:
            if self.op == Op.GT:
                return left > right
            if self.op == Op.GTE:
                return left >= right
            if self.op == Op.LT:
                return left < right
            if self.op == Op.LTE:
                return left <= right
        except TypeError:
            return False
        return False

    @staticmethod
    def _contains(current: Any, value: Any) -> bool:
        if isinstance(current, (list, tuple, set)):
            return value in current
        return current == value

    def _in(self, current: Any) -> bool:
        options = self.value if isinstance(self.value, (list, tuple, set)) else (self.value,)
        if isinstance(current, (list, tuple, set)):
            return any(item in options for item in current)
        return current in options

    def apply(self, query: Any) -> Any:
        """Adiciona a condicao ao query builder do PostgREST."""
        value = _to_query_value(self.value)

        if self.op in (Op.EQ, Op.CONTAINS):
            return query.contains(self.field, [value]) if self.array else query.eq(self.field, value)
        if self.op in (Op.NEQ, Op.NOT_CONTAINS):
            if self.array:
                return query.not_.contains(self.field, [value])
            return query.neq(self.field, value)
        if self.op == Op.IN:
            values = value if isinstance(value, list) else [value]
            return query.overlaps(self.field, values) if self.array else query.in_(self.field, values)
        if self.op == Op.NOT_IN:
            values = value if isinstance(value, list) else [value]
            if self.array:
                return query.not_.overlaps(self.field, values)
            return query.not_.in_(self.field, values)
        if self.op == Op.GT:
            return query.gt(self.field, value)
        if self.op == Op.GTE:
            return query.gte(self.field, value)
        if self.op == Op.LT:
            return query.lt(self.field, value)
        if self.op == Op.LTE:
            return query.lte(self.field, value)
        return query


@dataclass(frozen=True)
class Predicate:
    """Conjuncao ordenada de Conditions. Vazio casa com tudo."""

    conditions: Tuple[Condition, ...] = ()

    @classmethod
    def where(cls, **equals: Any) -> "Predicate":
        """
        Atalho para filtros de igualdade.

        Exemplo:
            Predicate.where(campaign_id="abc", status="PENDING")
        """
        return cls(tuple(Condition(field, Op.EQ, value) for field, value in equals.items()))

    def and_(self, *conditions: Condition) -> "Predicate":
        """Retorna novo predicado com condicoes adicionais."""
        return Predicate(self.conditions + tuple(conditions))

    @property
    def is_empty(self) -> bool:
        return not self.conditions

    def matches(self, record: Mapping[str, Any]) -> bool:
        return all(condition.matches(record) for condition in self.conditions)

    def apply(self, query: Any) -> Any:
        for condition in self.conditions:
            query = condition.apply(query)
        return query

"""
Compilador de regras de segmento.

Converte a lista de regras (AND) em um Predicate que o document store
sabe executar. Nao existe OR nem agrupamento.

Regras com campo/operador desconhecido nao geram condicao: sao ignoradas
com log de debug. Segmentos ja salvos dependem dessa tolerancia, entao
isso nao deve virar erro. Validacao estrita fica em validate_rules().
"""
import logging
from numbers import Number
from typing import Any, Iterable, List, Optional, Union

from orchestrator.core.exceptions import ValidationError
from orchestrator.core.timezone import parse_datetime
from orchestrator.services.store import Condition, Op, Predicate
from .types import ARRAY_FIELDS, FIELD_COLUMNS, RuleField, RuleOperator, SegmentRule

logger = logging.getLogger(__name__)

NUMERIC_FIELDS = frozenset({RuleField.TOTAL_SPEND, RuleField.VISITS})
LIST_OPERATORS = frozenset({RuleOperator.IN, RuleOperator.NOT_IN})
ORDER_OPERATORS = frozenset({RuleOperator.GREATER_THAN, RuleOperator.LESS_THAN})

RuleLike = Union[SegmentRule, dict]


def _as_rule(rule: RuleLike) -> SegmentRule:
    return rule if isinstance(rule, SegmentRule) else SegmentRule.from_dict(rule)


def _parse_enum(enum_cls, raw: str):
    try:
        return enum_cls(raw)
    except ValueError:
        return None


def _as_tuple(value: Any) -> tuple:
    if isinstance(value, (list, tuple, set)):
        return tuple(value)
    return (value,)


def _normalize_scalar(rule_field: RuleField, value: Any) -> Any:
    """Converte strings numericas para numero nos campos numericos."""
    if rule_field in NUMERIC_FIELDS and isinstance(value, str):
        try:
            number = float(value)
        except ValueError:
            return value
        return int(number) if number.is_integer() else number
    return value


def _condition(rule: SegmentRule) -> Optional[Condition]:
    rule_field = _parse_enum(RuleField, rule.field)
    operator = _parse_enum(RuleOperator, rule.operator)

    # Compatibilidade: par desconhecido nao restringe o segmento
    if rule_field is None or operator is None:
        logger.debug(f"Regra ignorada (campo/operador desconhecido): {rule.field} {rule.operator}")
        return None

    column = FIELD_COLUMNS[rule_field]
    array = rule_field in ARRAY_FIELDS

    if operator in LIST_OPERATORS:
        value = tuple(_normalize_scalar(rule_field, v) for v in _as_tuple(rule.value))
        op = Op.IN if operator == RuleOperator.IN else Op.NOT_IN
        return Condition(column, op, value, array=array)

    if isinstance(rule.value, (list, tuple)):
        # "contains" com lista em campo escalar = campo esta na lista
        if operator == RuleOperator.CONTAINS and not array:
            value = tuple(_normalize_scalar(rule_field, v) for v in rule.value)
            return Condition(column, Op.IN, value)
        if operator == RuleOperator.NOT_CONTAINS and not array:
            value = tuple(_normalize_scalar(rule_field, v) for v in rule.value)
            return Condition(column, Op.NOT_IN, value)

    value = _normalize_scalar(rule_field, rule.value)

    if operator == RuleOperator.EQUALS:
        return Condition(column, Op.EQ, value, array=array)
    if operator == RuleOperator.NOT_EQUALS:
        return Condition(column, Op.NEQ, value, array=array)
    if operator == RuleOperator.GREATER_THAN:
        return Condition(column, Op.GT, value, array=array)
    if operator == RuleOperator.LESS_THAN:
        return Condition(column, Op.LT, value, array=array)
    if operator == RuleOperator.CONTAINS:
        return Condition(column, Op.CONTAINS, value, array=array)
    if operator == RuleOperator.NOT_CONTAINS:
        return Condition(column, Op.NOT_CONTAINS, value, array=array)

    logger.debug(f"Operador sem traducao: {operator.value}")
    return None


def compile_rules(rules: Optional[Iterable[RuleLike]]) -> Predicate:
    """
    Compila regras em um Predicate (AND de todas as condicoes).

    Lista vazia -> Predicate vazio, que casa com todos os clientes.
    Regras repetidas no mesmo campo sao todas aplicadas.

    Exemplo:
        compile_rules([{"field": "totalSpend", "operator": "greater_than", "value": 100}])
        # Predicate((Condition("total_spend", Op.GT, 100),))
    """
    conditions = []
    for rule in rules or ():
        condition = _condition(_as_rule(rule))
        if condition is not None:
            conditions.append(condition)
    return Predicate(tuple(conditions))


def _validate_value(rule_field: RuleField, operator: RuleOperator, value: Any) -> Optional[str]:
    if value is None or value == "" or value == [] or value == ():
        return "valor obrigatorio"

    if operator in LIST_OPERATORS and not isinstance(value, (list, tuple)):
        return "operador exige lista de valores"

    values = value if isinstance(value, (list, tuple)) else (value,)

    if rule_field == RuleField.TAGS:
        if operator in ORDER_OPERATORS:
            return "tags nao aceita comparacao de ordem"
        if not all(isinstance(v, str) for v in values):
            return "tags exige texto"
        return None

    if rule_field in NUMERIC_FIELDS:
        for v in values:
            if isinstance(v, bool):
                return "valor numerico esperado"
            if isinstance(v, Number):
                continue
            if isinstance(_normalize_scalar(rule_field, v), str):
                return "valor numerico esperado"
        return None

    if rule_field == RuleField.LAST_ORDER_AT:
        if not all(parse_datetime(v) is not None for v in values):
            return "data ISO 8601 esperada"

    return None


def validate_rules(rules: Optional[Iterable[RuleLike]]) -> List[SegmentRule]:
    """
    Validacao estrita (para entradas novas da API).

    Returns:
        Regras normalizadas

    Raises:
        ValidationError: Com a lista de erros por indice em details["errors"]
    """
    normalized = []
    errors = []

    for index, raw in enumerate(rules or ()):
        if not isinstance(raw, (SegmentRule, dict)):
            errors.append({"index": index, "error": "regra deve ser um objeto"})
            continue

        rule = _as_rule(raw)
        rule_field = _parse_enum(RuleField, rule.field)
        operator = _parse_enum(RuleOperator, rule.operator)

        if rule_field is None:
            errors.append({"index": index, "error": f"campo desconhecido: {rule.field}"})
            continue
        if operator is None:
            errors.append({"index": index, "error": f"operador desconhecido: {rule.operator}"})
            continue

        problem = _validate_value(rule_field, operator, rule.value)
        if problem:
            errors.append({"index": index, "error": problem})
            continue

        normalized.append(rule)

    if errors:
        raise ValidationError("Regras de segmento invalidas", details={"errors": errors})

    return normalized

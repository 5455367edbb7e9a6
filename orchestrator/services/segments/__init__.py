"""
Segmentos de clientes: regras, compilacao e contagem.
"""
from .types import (
    ARRAY_FIELDS,
    FIELD_COLUMNS,
    RuleField,
    RuleOperator,
    Segment,
    SegmentRule,
    rules_from_list,
)
from .compiler import compile_rules, validate_rules
from .repository import CustomerRepository, SegmentRepository
from .service import SegmentService

__all__ = [
    "ARRAY_FIELDS",
    "FIELD_COLUMNS",
    "RuleField",
    "RuleOperator",
    "Segment",
    "SegmentRule",
    "rules_from_list",
    "compile_rules",
    "validate_rules",
    "CustomerRepository",
    "SegmentRepository",
    "SegmentService",
]

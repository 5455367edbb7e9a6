"""
Servico de segmentos.

Valida, compila e conta as regras. customer_count e um snapshot:
so e recalculado no create/update.
"""
import logging
from typing import Any, List, Optional

from orchestrator.core.exceptions import NotFoundError, ValidationError
from .compiler import compile_rules, validate_rules
from .repository import CustomerRepository, SegmentRepository
from .types import Segment

logger = logging.getLogger(__name__)


class SegmentService:
    """
    Operacoes de segmento usadas pela API.

    Exemplo:
        service = SegmentService(segments, customers)
        count = await service.preview([{"field": "visits", "operator": "greater_than", "value": 3}])
    """

    def __init__(self, segments: SegmentRepository, customers: CustomerRepository):
        self.segments = segments
        self.customers = customers

    async def preview(self, rules: Optional[List[Any]]) -> int:
        """Conta quantos clientes o segmento teria, sem salvar."""
        normalized = validate_rules(rules)
        return await self.customers.count(compile_rules(normalized))

    async def create(self, name: str, description: str = "", rules: Optional[List[Any]] = None) -> Segment:
        """
        Cria segmento.

        Raises:
            ValidationError: Nome vazio ou regras invalidas
        """
        if not name or not name.strip():
            raise ValidationError("Nome do segmento e obrigatorio")

        normalized = validate_rules(rules)
        count = await self.customers.count(compile_rules(normalized))
        return await self.segments.create(name.strip(), description or "", normalized, count)

    async def update(
        self,
        segment_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
        rules: Optional[List[Any]] = None,
    ) -> Segment:
        """
        Atualiza segmento. Recalcula customer_count quando as regras mudam.

        Raises:
            NotFoundError: Segmento nao existe
            ValidationError: Regras invalidas
        """
        current = await self.segments.get(segment_id)
        if current is None:
            raise NotFoundError("Segmento", segment_id)

        changes = {}
        if name is not None:
            if not name.strip():
                raise ValidationError("Nome do segmento e obrigatorio")
            changes["name"] = name.strip()
        if description is not None:
            changes["description"] = description
        if rules is not None:
            normalized = validate_rules(rules)
            changes["rules"] = normalized
            changes["customer_count"] = await self.customers.count(compile_rules(normalized))

        if not changes:
            return current

        updated = await self.segments.update(segment_id, changes)
        if updated is None:
            raise NotFoundError("Segmento", segment_id)

        logger.info(f"Segmento {segment_id} atualizado: {sorted(changes)}")
        return updated

    async def get(self, segment_id: str) -> Segment:
        """
        Raises:
            NotFoundError: Segmento nao existe
        """
        segment = await self.segments.get(segment_id)
        if segment is None:
            raise NotFoundError("Segmento", segment_id)
        return segment

"""
Repositories de segmentos e clientes.

Clientes sao somente leitura aqui: pertencem ao sistema de CRM.
"""
import logging
from typing import Any, Dict, List, Optional, Sequence

from orchestrator.core.timezone import agora_utc
from orchestrator.services.store import DocumentStore, Predicate
from .types import Segment, SegmentRule

logger = logging.getLogger(__name__)


class CustomerRepository:
    """Leitura de clientes por predicado compilado."""

    TABLE = "customers"

    def __init__(self, store: DocumentStore):
        self.store = store

    async def count(self, predicate: Optional[Predicate] = None) -> int:
        """Conta clientes que casam com o predicado."""
        return await self.store.count(self.TABLE, predicate)

    async def find(
        self, predicate: Optional[Predicate] = None, limit: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """Lista clientes que casam com o predicado."""
        return await self.store.find(self.TABLE, predicate, limit=limit)


class SegmentRepository:
    """Repository para segmentos."""

    TABLE = "segments"

    def __init__(self, store: DocumentStore):
        self.store = store

    async def get(self, segment_id: str) -> Optional[Segment]:
        """
        Busca segmento por ID.

        Returns:
            Segment ou None se nao encontrado
        """
        row = await self.store.find_one(self.TABLE, segment_id)
        return Segment.from_db_row(row) if row else None

    async def create(
        self,
        name: str,
        description: str,
        rules: Sequence[SegmentRule],
        customer_count: int,
    ) -> Segment:
        """Cria segmento com snapshot de customer_count."""
        agora = agora_utc().isoformat()
        row = await self.store.insert(
            self.TABLE,
            {
                "name": name,
                "description": description,
                "rules": [rule.to_dict() for rule in rules],
                "customer_count": customer_count,
                "created_at": agora,
                "updated_at": agora,
            },
        )
        logger.info(f"Segmento criado: {row['id']} ({customer_count} clientes)")
        return Segment.from_db_row(row)

    async def update(self, segment_id: str, changes: Dict[str, Any]) -> Optional[Segment]:
        """
        Atualiza campos do segmento.

        Returns:
            Segment atualizado ou None se nao existir
        """
        changes = dict(changes)
        if "rules" in changes:
            changes["rules"] = [
                rule.to_dict() if isinstance(rule, SegmentRule) else rule
                for rule in changes["rules"]
            ]
        changes["updated_at"] = agora_utc().isoformat()

        if not await self.store.update(self.TABLE, segment_id, changes):
            return None
        return await self.get(segment_id)

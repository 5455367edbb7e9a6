"""
Document Store Protocol - Interface para qualquer backend de persistencia.

O store garante no maximo atomicidade por documento, mais duas primitivas
usadas pela reconciliacao de recibos:
- update condicional (`expected`), que serve de ponto de linearizacao
- incremento atomico de contador

Exemplo de uso:
    async def contar(store: DocumentStore):
        return await store.count("customers", Predicate.where(visits=3))
"""
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from .query import Predicate


@runtime_checkable
class DocumentStore(Protocol):
    """Interface de persistencia usada pelos repositories."""

    async def find_one(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        """Busca documento por id. None se nao existir."""
        ...

    async def find(
        self,
        collection: str,
        predicate: Optional[Predicate] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Lista documentos que casam com o predicado."""
        ...

    async def count(self, collection: str, predicate: Optional[Predicate] = None) -> int:
        """Conta documentos que casam com o predicado."""
        ...

    async def insert(self, collection: str, doc: Dict[str, Any]) -> Dict[str, Any]:
        """Insere documento e retorna a versao persistida (com id)."""
        ...

    async def insert_many(
        self, collection: str, docs: List[Dict[str, Any]]
    ) -> List[Dict[str, Any]]:
        """Insere lote de documentos numa unica operacao."""
        ...

    async def update(
        self,
        collection: str,
        doc_id: str,
        changes: Dict[str, Any],
        expected: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """
        Atualiza documento.

        Args:
            collection: Nome da colecao/tabela
            doc_id: ID do documento
            changes: Campos a atualizar
            expected: Se informado, so aplica quando todos os campos
                      tiverem exatamente esses valores

        Returns:
            True se algum documento foi alterado
        """
        ...

    async def increment(
        self, collection: str, doc_id: str, field: str, amount: int = 1
    ) -> Optional[int]:
        """Incrementa contador atomicamente. Retorna o novo valor."""
        ...

    async def close(self) -> None:
        """Libera recursos do backend."""
        ...

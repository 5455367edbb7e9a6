"""
Document store sobre Supabase (PostgREST).

O cliente supabase-py e sincrono; as chamadas rodam no executor padrao
para nao bloquear o event loop.
"""
import asyncio
import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from supabase import Client, create_client

from orchestrator.core.config import settings
from orchestrator.core.exceptions import ConfigurationError, DatabaseError
from .query import Predicate

logger = logging.getLogger(__name__)

# RPC definida em migrations/001_campaign_orchestration.sql
INCREMENT_RPC = "increment_field"


def create_supabase_client() -> Client:
    """
    Cria cliente Supabase.
    Usa service key para acesso completo.
    """
    if not settings.SUPABASE_URL or not settings.SUPABASE_SERVICE_KEY:
        raise ConfigurationError("SUPABASE_URL e SUPABASE_SERVICE_KEY sao obrigatorios")

    return create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_KEY)


def _serializar(value: Any) -> Any:
    """Converte datetimes (inclusive aninhados) para ISO antes de enviar."""
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _serializar(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_serializar(v) for v in value]
    return value


class SupabaseDocumentStore:
    """Implementacao do DocumentStore usando tabelas do Supabase."""

    def __init__(self, client: Client, page_size: Optional[int] = None):
        self.client = client
        self.page_size = page_size or settings.SUPABASE_PAGE_SIZE

    async def _executar(self, operacao: str, func: Callable[[], Any]) -> Any:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, func)
        except Exception as e:
            logger.error(f"Erro no Supabase ({operacao}): {e}")
            raise DatabaseError(
                f"Erro no Supabase ao executar {operacao}",
                details={"error": str(e)},
                original_error=e,
            )

    async def find_one(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        response = await self._executar(
            f"find_one {collection}",
            lambda: self.client.table(collection).select("*").eq("id", doc_id).limit(1).execute(),
        )
        return response.data[0] if response.data else None

    async def find(
        self,
        collection: str,
        predicate: Optional[Predicate] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """
        Busca documentos paginando com range() ate vir uma pagina incompleta.

        O PostgREST corta respostas em max-rows, entao uma consulta sem
        paginacao devolveria no maximo uma pagina.
        """
        rows: List[Dict[str, Any]] = []

        while True:
            inicio = len(rows)
            tamanho = self.page_size if not limit else min(self.page_size, limit - inicio)

            def _query(inicio=inicio, tamanho=tamanho):
                query = self.client.table(collection).select("*")
                if predicate is not None:
                    query = predicate.apply(query)
                # Ordem total para as paginas nao se sobreporem
                query = query.order("created_at").order("id")
                return query.range(inicio, inicio + tamanho - 1).execute()

            response = await self._executar(f"find {collection}", _query)
            pagina = response.data or []
            rows.extend(pagina)

            if len(pagina) < tamanho or (limit and len(rows) >= limit):
                return rows

    async def count(self, collection: str, predicate: Optional[Predicate] = None) -> int:
        def _query():
            query = self.client.table(collection).select("id", count="exact")
            if predicate is not None:
                query = predicate.apply(query)
            return query.execute()

        response = await self._executar(f"count {collection}", _query)
        return response.count or 0

    async def insert(self, collection: str, doc: Dict[str, Any]) -> Dict[str, Any]:
        response = await self._executar(
            f"insert {collection}",
            lambda: self.client.table(collection).insert(_serializar(doc)).execute(),
        )
        if not response.data:
            raise DatabaseError(f"Insert em {collection} nao retornou dados")
        return response.data[0]

    async def insert_many(
        self, collection: str, docs: List[Dict[str, Any]]
    ) -> List[Dict[str, Any]]:
        if not docs:
            return []
        # Um unico INSERT multi-linha: ou entram todas, ou nenhuma
        response = await self._executar(
            f"insert_many {collection}",
            lambda: self.client.table(collection).insert(_serializar(docs)).execute(),
        )
        return response.data or []

    async def update(
        self,
        collection: str,
        doc_id: str,
        changes: Dict[str, Any],
        expected: Optional[Dict[str, Any]] = None,
    ) -> bool:
        def _query():
            query = self.client.table(collection).update(_serializar(changes)).eq("id", doc_id)
            for field, value in (expected or {}).items():
                query = query.eq(field, value)
            return query.execute()

        response = await self._executar(f"update {collection}", _query)
        return bool(response.data)

    async def increment(
        self, collection: str, doc_id: str, field: str, amount: int = 1
    ) -> Optional[int]:
        response = await self._executar(
            f"increment {collection}.{field}",
            lambda: self.client.rpc(
                INCREMENT_RPC,
                {"p_table": collection, "p_id": doc_id, "p_field": field, "p_amount": amount},
            ).execute(),
        )
        if response.data is None:
            return None
        row = response.data[0] if isinstance(response.data, list) else response.data
        if isinstance(row, dict):
            return row.get("value")
        return row

    async def close(self) -> None:
        # supabase-py nao mantem conexao persistente alem do httpx interno
        logger.debug("SupabaseDocumentStore fechado")

"""
Document store em memoria.

Usado para rodar localmente sem Supabase (STORE_BACKEND=memory) e nos testes.
Todas as escritas passam pelo mesmo lock, o que reproduz a atomicidade
por documento do backend real.
"""
import asyncio
import copy
import logging
from collections import OrderedDict
from typing import Any, Dict, List, Optional
from uuid import uuid4

from orchestrator.core.timezone import agora_utc
from .query import Predicate

logger = logging.getLogger(__name__)


class InMemoryDocumentStore:
    """
    Implementacao do DocumentStore em dicts.

    Exemplo:
        store = InMemoryDocumentStore()
        doc = await store.insert("customers", {"first_name": "Ana"})
        await store.find_one("customers", doc["id"])
    """

    def __init__(self):
        self._collections: Dict[str, "OrderedDict[str, Dict[str, Any]]"] = {}
        self._lock = asyncio.Lock()

    def _collection(self, name: str) -> "OrderedDict[str, Dict[str, Any]]":
        return self._collections.setdefault(name, OrderedDict())

    def _prepare(self, doc: Dict[str, Any]) -> Dict[str, Any]:
        stored = copy.deepcopy(doc)
        stored.setdefault("id", str(uuid4()))
        stored.setdefault("created_at", agora_utc().isoformat())
        return stored

    async def find_one(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        doc = self._collection(collection).get(doc_id)
        return copy.deepcopy(doc) if doc is not None else None

    async def find(
        self,
        collection: str,
        predicate: Optional[Predicate] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        predicate = predicate or Predicate()
        docs = [
            copy.deepcopy(doc)
            for doc in self._collection(collection).values()
            if predicate.matches(doc)
        ]
        return docs[:limit] if limit else docs

    async def count(self, collection: str, predicate: Optional[Predicate] = None) -> int:
        predicate = predicate or Predicate()
        return sum(1 for doc in self._collection(collection).values() if predicate.matches(doc))

    async def insert(self, collection: str, doc: Dict[str, Any]) -> Dict[str, Any]:
        async with self._lock:
            stored = self._prepare(doc)
            self._collection(collection)[stored["id"]] = stored
            return copy.deepcopy(stored)

    async def insert_many(
        self, collection: str, docs: List[Dict[str, Any]]
    ) -> List[Dict[str, Any]]:
        async with self._lock:
            prepared = [self._prepare(doc) for doc in docs]
            target = self._collection(collection)
            for stored in prepared:
                target[stored["id"]] = stored
            return copy.deepcopy(prepared)

    async def update(
        self,
        collection: str,
        doc_id: str,
        changes: Dict[str, Any],
        expected: Optional[Dict[str, Any]] = None,
    ) -> bool:
        async with self._lock:
            doc = self._collection(collection).get(doc_id)
            if doc is None:
                return False
            if expected and any(doc.get(key) != value for key, value in expected.items()):
                return False
            doc.update(copy.deepcopy(changes))
            return True

    async def increment(
        self, collection: str, doc_id: str, field: str, amount: int = 1
    ) -> Optional[int]:
        async with self._lock:
            doc = self._collection(collection).get(doc_id)
            if doc is None:
                logger.warning(f"increment em documento inexistente {collection}/{doc_id}")
                return None
            doc[field] = (doc.get(field) or 0) + amount
            return doc[field]

    async def close(self) -> None:
        self._collections.clear()

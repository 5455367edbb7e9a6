"""
Camada de persistencia.

Uso basico:
    from orchestrator.services.store import Predicate, InMemoryDocumentStore

    store = InMemoryDocumentStore()
    await store.find("customers", Predicate.where(visits=3))
"""
from .protocol import DocumentStore
from .query import Condition, Op, Predicate
from .memory_store import InMemoryDocumentStore
from .supabase_store import SupabaseDocumentStore, create_supabase_client

__all__ = [
    "DocumentStore",
    "Condition",
    "Op",
    "Predicate",
    "InMemoryDocumentStore",
    "SupabaseDocumentStore",
    "create_supabase_client",
]

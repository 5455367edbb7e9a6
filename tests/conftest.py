"""
Configuracao global de testes - Fixtures compartilhadas.

Store em memoria, broker falso, provider de IA mockado e uma base
pequena de clientes com datas relativas a um "agora" fixo.

Usage:
    Fixtures aqui definidas sao automaticamente disponiveis em todos os testes.
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, List, Optional
from unittest.mock import MagicMock

import pytest

from orchestrator.core.exceptions import ExternalServiceError
from orchestrator.services.ai import AIMonitor, AIService
from orchestrator.services.campaigns import (
    CampaignDispatcher,
    CampaignRepository,
    CampaignService,
    CommunicationLogRepository,
)
from orchestrator.services.circuit_breaker import criar_breakers
from orchestrator.services.ai.types import AIOperation
from orchestrator.services.delivery import DeliveryReconciler
from orchestrator.services.llm import MockLLMProvider
from orchestrator.services.segments import (
    CustomerRepository,
    SegmentRepository,
    SegmentService,
)
from orchestrator.services.store import InMemoryDocumentStore


AGORA = datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc)


# =============================================================================
# MOCK FACTORIES
# =============================================================================


def criar_mock_supabase(
    dados_retorno: Optional[List[dict]] = None,
    count: Optional[int] = None,
) -> MagicMock:
    """
    Cria mock do cliente Supabase com chain de metodos configurado.

    Example:
        mock = criar_mock_supabase([{"id": "123", "name": "Teste"}])
        mock.table("customers").select("*").execute().data  # retorna os dados
    """
    mock = MagicMock()
    for metodo in (
        "table", "select", "insert", "update", "delete", "eq", "neq", "gt", "gte",
        "lt", "lte", "in_", "contains", "overlaps", "order", "limit", "range", "rpc",
    ):
        getattr(mock, metodo).return_value = mock
    mock.not_ = mock

    resposta = MagicMock()
    resposta.data = dados_retorno if dados_retorno is not None else []
    resposta.count = count
    mock.execute.return_value = resposta
    return mock


class FakeBroker:
    """
    Broker em memoria com injecao de falhas.

    Args:
        falhar_em: Indices (0-based) das chamadas de publish que devem falhar
    """

    def __init__(self, falhar_em: Optional[set] = None):
        self.falhar_em = set(falhar_em or ())
        self.filas = {}
        self.publicacoes = 0
        self.disponivel = True

    async def publish(self, queue: str, payload: dict) -> None:
        indice = self.publicacoes
        self.publicacoes += 1
        if indice in self.falhar_em:
            raise ExternalServiceError(f"Falha ao publicar em {queue}", service="redis")
        self.filas.setdefault(queue, []).append(payload)

    async def consume(self, queue: str, timeout: int = 5) -> Optional[Any]:
        fila = self.filas.get(queue) or []
        return fila.pop(0) if fila else None

    async def ping(self) -> bool:
        return self.disponivel

    async def close(self) -> None:
        pass

    def mensagens(self, queue: str) -> List[dict]:
        return list(self.filas.get(queue, []))


def criar_clientes(agora: datetime = AGORA) -> List[dict]:
    """Base de clientes: gastos 50/150/500/1500 com recencias diferentes."""
    return [
        {
            "id": "cust-ana",
            "first_name": "Ana",
            "last_name": "Silva",
            "email": "ana@example.com",
            "phone": "+5511900000001",
            "total_spend": 50,
            "visits": 1,
            "last_order_at": (agora - timedelta(days=200)).isoformat(),
            "tags": [],
        },
        {
            "id": "cust-bruno",
            "first_name": "Bruno",
            "last_name": "Costa",
            "email": "bruno@example.com",
            "phone": "+5511900000002",
            "total_spend": 150,
            "visits": 4,
            "last_order_at": (agora - timedelta(days=5)).isoformat(),
            "tags": ["newsletter"],
        },
        {
            "id": "cust-carla",
            "first_name": "Carla",
            "last_name": "Souza",
            "email": "carla@example.com",
            "phone": None,
            "total_spend": 500,
            "visits": 12,
            "last_order_at": (agora - timedelta(days=20)).isoformat(),
            "tags": ["VIP", "newsletter"],
        },
        {
            "id": "cust-diego",
            "first_name": "Diego",
            "last_name": "Lima",
            "email": "diego@example.com",
            "phone": "+5511900000004",
            "total_spend": 1500,
            "visits": 30,
            "last_order_at": (agora - timedelta(days=120)).isoformat(),
            "tags": ["VIP"],
        },
    ]


async def sem_espera(_segundos: float) -> None:
    """Substitui asyncio.sleep no retry para os testes nao esperarem."""
    return None


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def agora() -> datetime:
    return AGORA


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def broker() -> FakeBroker:
    return FakeBroker()


@pytest.fixture
def clientes() -> List[dict]:
    return criar_clientes()


@pytest.fixture
def popular(store) -> Callable:
    """
    Insere documentos no store.

    Usage:
        await popular("customers", clientes)
    """
    async def _popular(collection: str, docs: List[dict]) -> List[dict]:
        return await store.insert_many(collection, docs)
    return _popular


@pytest.fixture
def mock_llm() -> MockLLMProvider:
    return MockLLMProvider()


@pytest.fixture
def breakers():
    return criar_breakers(
        [op.value for op in AIOperation],
        falhas_para_abrir=3,
        cooldown_segundos=60,
    )


@pytest.fixture
def ai_service(mock_llm, breakers) -> AIService:
    """AIService com mock, retry sem espera e breakers com threshold 3."""
    return AIService(
        provider=mock_llm,
        breakers=breakers,
        monitor=AIMonitor(),
        max_retries=1,
        backoff_seconds=0.01,
        timeout_seconds=1,
        sleep=sem_espera,
    )


@pytest.fixture
def repos(store) -> dict:
    return {
        "customers": CustomerRepository(store),
        "segments": SegmentRepository(store),
        "campaigns": CampaignRepository(store),
        "logs": CommunicationLogRepository(store),
    }


@pytest.fixture
def segment_service(repos) -> SegmentService:
    return SegmentService(repos["segments"], repos["customers"])


@pytest.fixture
def dispatcher(repos, broker, agora) -> CampaignDispatcher:
    """Dispatcher sem pool (envio em background cai no modo sincrono)."""
    return CampaignDispatcher(
        repos["campaigns"],
        repos["logs"],
        repos["segments"],
        repos["customers"],
        broker,
        clock=lambda: agora,
    )


@pytest.fixture
def campaign_service(repos, dispatcher) -> CampaignService:
    return CampaignService(
        repos["campaigns"],
        repos["logs"],
        repos["segments"],
        repos["customers"],
        dispatcher,
    )


@pytest.fixture
def reconciler(repos) -> DeliveryReconciler:
    return DeliveryReconciler(repos["logs"], repos["campaigns"])

"""
Montagem dos componentes da aplicacao.

Um unico lugar cria store, broker, provider de IA, repositories e services.
A API e os workers recebem um Resources pronto; os testes montam o seu
com store em memoria e broker falso.
"""
import logging
from typing import Optional

from orchestrator.core.config import settings
from orchestrator.core.exceptions import ConfigurationError
from orchestrator.services.ai import AIService
from orchestrator.services.broker import MessageBroker
from orchestrator.services.campaigns import (
    CampaignDispatcher,
    CampaignRepository,
    CampaignService,
    CommunicationLogRepository,
    DispatchWorkerPool,
)
from orchestrator.services.delivery import (
    DeliveryReconciler,
    ReceiptConsumer,
    ReceiptIngestService,
)
from orchestrator.services.llm import LLMProvider, get_llm_provider
from orchestrator.services.segments import (
    CustomerRepository,
    SegmentRepository,
    SegmentService,
)
from orchestrator.services.store import (
    DocumentStore,
    InMemoryDocumentStore,
    SupabaseDocumentStore,
    create_supabase_client,
)

logger = logging.getLogger(__name__)


def create_store(backend: Optional[str] = None) -> DocumentStore:
    """
    Cria o document store configurado.

    Raises:
        ConfigurationError: Backend desconhecido ou credenciais ausentes
    """
    backend = (backend or settings.STORE_BACKEND).lower()
    if backend == "memory":
        logger.warning("Usando store em memoria: dados nao sao persistidos")
        return InMemoryDocumentStore()
    if backend == "supabase":
        return SupabaseDocumentStore(create_supabase_client())
    raise ConfigurationError(f"STORE_BACKEND desconhecido: {backend}")


class Resources:
    """
    Grafo de dependencias da aplicacao.

    Exemplo:
        resources = Resources.connect()
        await resources.campaign_service.create(...)
        await resources.close()
    """

    def __init__(
        self,
        store: DocumentStore,
        broker: MessageBroker,
        provider: Optional[LLMProvider] = None,
        ai_service: Optional[AIService] = None,
        pool: Optional[DispatchWorkerPool] = None,
    ):
        self.store = store
        self.broker = broker
        self.pool = pool or DispatchWorkerPool(
            workers=settings.DISPATCH_WORKERS,
            queue_size=settings.DISPATCH_QUEUE_SIZE,
        )
        self.ai_service = ai_service or AIService(provider=provider)

        # Repositories
        self.customers = CustomerRepository(store)
        self.segments = SegmentRepository(store)
        self.campaigns = CampaignRepository(store)
        self.logs = CommunicationLogRepository(store)

        # Services
        self.segment_service = SegmentService(self.segments, self.customers)
        self.dispatcher = CampaignDispatcher(
            self.campaigns,
            self.logs,
            self.segments,
            self.customers,
            broker,
            pool=self.pool,
        )
        self.campaign_service = CampaignService(
            self.campaigns,
            self.logs,
            self.segments,
            self.customers,
            self.dispatcher,
        )
        self.reconciler = DeliveryReconciler(self.logs, self.campaigns)
        self.receipt_ingest = ReceiptIngestService(broker)

    @classmethod
    def connect(cls) -> "Resources":
        """Cria recursos a partir das settings."""
        store = create_store()
        broker = MessageBroker.from_url()
        provider = get_llm_provider()
        logger.info(
            f"Recursos prontos (store={settings.STORE_BACKEND}, "
            f"ia={'live' if provider else 'fallback'})"
        )
        return cls(store, broker, provider=provider)

    def receipt_consumer(self) -> ReceiptConsumer:
        return ReceiptConsumer(self.broker, self.reconciler)

    async def close(self):
        """Drena o pool de dispatch e fecha o broker."""
        await self.pool.stop(drain=True)
        await self.broker.close()

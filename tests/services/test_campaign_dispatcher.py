"""
Testes do CampaignDispatcher (envio de campanhas para a fila de entrega).
"""
from unittest.mock import AsyncMock

import pytest

from orchestrator.core.config import settings
from orchestrator.core.exceptions import (
    DatabaseError,
    InvalidCampaignStateError,
    NoRecipientsError,
    NotFoundError,
    ValidationError,
)
from orchestrator.services.campaigns import (
    CampaignDispatcher,
    CampaignStatus,
    DispatchWorkerPool,
    LogStatus,
)
from tests.conftest import FakeBroker

FILA = settings.QUEUE_CAMPAIGN_DELIVERY
GASTO_ACIMA_100 = [{"field": "totalSpend", "operator": "greater_than", "value": 100}]


async def _campanha(repos, segment_service, rules=GASTO_ACIMA_100, status="draft", **extra):
    segment = await segment_service.create("Segmento", "", rules)
    return await repos["campaigns"].create({
        "name": "Black Friday",
        "description": "",
        "message": "Hello! Big sale today",
        "segment_id": segment.id,
        "status": status,
        "personalization": "smart",
        **extra,
    })


class TestSend:

    @pytest.mark.asyncio
    async def test_envio_completo(self, dispatcher, repos, segment_service, popular, clientes, broker, agora):
        await popular("customers", clientes)
        campaign = await _campanha(repos, segment_service)

        summary = await dispatcher.send(campaign.id)

        assert summary.total_recipients == 3
        assert summary.enqueued == 3
        assert summary.failed_recipients == []

        atual = await repos["campaigns"].get(campaign.id)
        assert atual.status == CampaignStatus.RUNNING
        assert atual.started_at == agora
        assert atual.stats.total_recipients == 3
        assert atual.stats.processed == 0

        logs = await repos["logs"].list_by_campaign(campaign.id)
        assert len(logs) == await repos["logs"].count_by_campaign(campaign.id) == 3
        assert all(log.status == LogStatus.PENDING for log in logs)
        assert all(log.enqueued_at == agora for log in logs)
        assert len(broker.mensagens(FILA)) == 3

    @pytest.mark.asyncio
    async def test_payload_publicado(self, dispatcher, repos, segment_service, popular, clientes, broker):
        await popular("customers", clientes)
        campaign = await _campanha(
            repos, segment_service, rules=[{"field": "visits", "operator": "equals", "value": 12}]
        )

        await dispatcher.send(campaign.id)

        [payload] = broker.mensagens(FILA)
        log = (await repos["logs"].list_by_campaign(campaign.id))[0]
        assert payload == {
            "communicationLogId": log.id,
            "campaignId": campaign.id,
            "customerId": "cust-carla",
            "message": "Hi Carla, our premium customer! Big sale today As a premium customer, here's 12% off your next order!",
            "subject": "Hi Carla!",
            "email": "carla@example.com",
            "phone": None,
        }

    @pytest.mark.asyncio
    async def test_snapshot_do_cliente_fica_no_log(self, dispatcher, repos, segment_service, popular, clientes, store):
        await popular("customers", clientes)
        campaign = await _campanha(
            repos, segment_service, rules=[{"field": "visits", "operator": "equals", "value": 4}]
        )
        await dispatcher.send(campaign.id)

        await store.update("customers", "cust-bruno", {"first_name": "Outro"})

        [log] = await repos["logs"].list_by_campaign(campaign.id)
        assert log.customer_snapshot.first_name == "Bruno"
        assert log.customer_snapshot.total_spend == 150

    @pytest.mark.asyncio
    async def test_falha_de_publicacao_nao_interrompe(self, repos, segment_service, popular, clientes, agora):
        await popular("customers", clientes)
        broker = FakeBroker(falhar_em={1})
        dispatcher = CampaignDispatcher(
            repos["campaigns"], repos["logs"], repos["segments"], repos["customers"],
            broker, clock=lambda: agora,
        )
        campaign = await _campanha(repos, segment_service)

        summary = await dispatcher.send(campaign.id)

        logs = await repos["logs"].list_by_campaign(campaign.id)
        sem_enqueue = [log for log in logs if log.enqueued_at is None]
        assert summary.enqueued == 2
        assert summary.failed_recipients == [sem_enqueue[0].customer_id]
        assert summary.failed_logs == [sem_enqueue[0].id]
        assert len(sem_enqueue) == 1
        assert all(log.status == LogStatus.PENDING for log in logs)

    @pytest.mark.asyncio
    async def test_campanha_inexistente(self, dispatcher):
        with pytest.raises(NotFoundError):
            await dispatcher.send("nao-existe")

    @pytest.mark.asyncio
    async def test_segmento_inexistente(self, dispatcher, repos):
        campaign = await repos["campaigns"].create({
            "name": "x", "message": "m", "segment_id": "sumiu", "status": "draft",
        })

        with pytest.raises(NotFoundError) as exc:
            await dispatcher.send(campaign.id)
        assert "Segmento" in exc.value.message

    @pytest.mark.asyncio
    async def test_sem_destinatarios(self, dispatcher, repos, segment_service, popular, clientes):
        await popular("customers", clientes)
        campaign = await _campanha(
            repos, segment_service, rules=[{"field": "totalSpend", "operator": "greater_than", "value": 99999}]
        )

        with pytest.raises(NoRecipientsError):
            await dispatcher.send(campaign.id)

        atual = await repos["campaigns"].get(campaign.id)
        assert atual.status == CampaignStatus.DRAFT
        assert await repos["logs"].count_by_campaign(campaign.id) == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", ["running", "completed", "cancelled", "scheduled"])
    async def test_status_invalido_para_envio_manual(self, dispatcher, repos, segment_service, popular, clientes, status):
        await popular("customers", clientes)
        campaign = await _campanha(repos, segment_service, status=status)

        with pytest.raises(InvalidCampaignStateError) as exc:
            await dispatcher.send(campaign.id)
        assert exc.value.details["expected"] == ["draft"]

    @pytest.mark.asyncio
    async def test_scheduler_aceita_scheduled(self, dispatcher, repos, segment_service, popular, clientes):
        await popular("customers", clientes)
        campaign = await _campanha(repos, segment_service, status="scheduled")

        summary = await dispatcher.send(campaign.id, from_scheduler=True)

        assert summary.enqueued == 3

    @pytest.mark.asyncio
    async def test_segundo_envio_e_rejeitado(self, dispatcher, repos, segment_service, popular, clientes):
        await popular("customers", clientes)
        campaign = await _campanha(repos, segment_service)
        await dispatcher.send(campaign.id)

        with pytest.raises(InvalidCampaignStateError):
            await dispatcher.send(campaign.id)

        assert await repos["logs"].count_by_campaign(campaign.id) == 3

    @pytest.mark.asyncio
    async def test_corrida_no_inicio(self, dispatcher, repos, segment_service, popular, clientes):
        await popular("customers", clientes)
        campaign = await _campanha(repos, segment_service)
        repos["campaigns"].start = AsyncMock(return_value=False)

        with pytest.raises(InvalidCampaignStateError):
            await dispatcher.send(campaign.id)

        assert await repos["logs"].count_by_campaign(campaign.id) == 0

    @pytest.mark.asyncio
    async def test_falha_no_lote_reverte_campanha(self, dispatcher, repos, segment_service, popular, clientes, broker):
        await popular("customers", clientes)
        campaign = await _campanha(repos, segment_service)
        repos["logs"].insert_batch = AsyncMock(side_effect=DatabaseError("insert falhou"))

        with pytest.raises(DatabaseError):
            await dispatcher.send(campaign.id)

        atual = await repos["campaigns"].get(campaign.id)
        assert atual.status == CampaignStatus.DRAFT
        assert atual.stats.total_recipients == 0
        assert atual.started_at is None
        assert broker.publicacoes == 0

    @pytest.mark.asyncio
    async def test_cliente_invalido_nao_inicia_campanha(self, dispatcher, repos, segment_service, popular, clientes, broker):
        clientes[1]["total_spend"] = "n/a"
        await popular("customers", clientes)
        campaign = await _campanha(repos, segment_service, rules=[])

        with pytest.raises(ValidationError) as exc:
            await dispatcher.send(campaign.id)

        assert exc.value.details["customer_id"] == "cust-bruno"
        atual = await repos["campaigns"].get(campaign.id)
        assert atual.status == CampaignStatus.DRAFT
        assert atual.stats.total_recipients == 0
        assert atual.started_at is None
        assert await repos["logs"].count_by_campaign(campaign.id) == 0
        assert broker.publicacoes == 0

    @pytest.mark.asyncio
    async def test_background_usa_pool(self, repos, segment_service, popular, clientes, broker, agora):
        await popular("customers", clientes)
        pool = DispatchWorkerPool(workers=2, queue_size=10)
        dispatcher = CampaignDispatcher(
            repos["campaigns"], repos["logs"], repos["segments"], repos["customers"],
            broker, pool=pool, clock=lambda: agora,
        )
        campaign = await _campanha(repos, segment_service)

        summary = await dispatcher.send(campaign.id, background=True)

        assert summary.background is True
        assert await repos["logs"].count_by_campaign(campaign.id) == 3

        await pool.stop(drain=True)

        assert summary.enqueued == 3
        assert len(broker.mensagens(settings.QUEUE_CAMPAIGN_DELIVERY)) == 3

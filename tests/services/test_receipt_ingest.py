"""
Testes da entrada de recibos (webhook -> fila) e do consumidor.
"""
import asyncio
from unittest.mock import AsyncMock

import pytest

from orchestrator.core.config import settings
from orchestrator.core.exceptions import DatabaseError, ExternalServiceError, ValidationError
from orchestrator.services.delivery import (
    ReceiptConsumer,
    ReceiptIngestService,
    ReceiptStatus,
    ReconcileOutcome,
    parse_receipt,
)
from tests.conftest import FakeBroker

FILA = settings.QUEUE_DELIVERY_RECEIPT


class TestParseReceipt:

    def test_recibo_valido(self):
        receipt = parse_receipt({"communicationLogId": "log-1", "status": "DELIVERED"})

        assert receipt.communicationLogId == "log-1"
        assert receipt.status == ReceiptStatus.DELIVERED
        assert receipt.receivedAt is not None

    @pytest.mark.parametrize("payload", [
        {"status": "DELIVERED"},
        {"communicationLogId": "", "status": "DELIVERED"},
        {"communicationLogId": "log-1", "status": "OPENED"},
        {"communicationLogId": "log-1"},
    ])
    def test_recibo_invalido(self, payload):
        with pytest.raises(ValidationError) as exc:
            parse_receipt(payload)
        assert exc.value.details["errors"]

    def test_payload_nao_objeto(self):
        with pytest.raises(ValidationError, match="objeto JSON"):
            parse_receipt(["log-1", "DELIVERED"])


class TestReceiptIngestService:

    @pytest.mark.asyncio
    async def test_publica_na_fila(self, broker):
        service = ReceiptIngestService(broker)

        await service.ingest({"communicationLogId": "log-1", "status": "SENT", "vendorId": "v-9"})

        [mensagem] = broker.mensagens(FILA)
        assert mensagem["communicationLogId"] == "log-1"
        assert mensagem["status"] == "SENT"
        assert mensagem["vendorId"] == "v-9"
        assert isinstance(mensagem["receivedAt"], str)

    @pytest.mark.asyncio
    async def test_invalido_nao_publica(self, broker):
        service = ReceiptIngestService(broker)

        with pytest.raises(ValidationError):
            await service.ingest({"communicationLogId": "log-1", "status": "???"})

        assert broker.publicacoes == 0

    @pytest.mark.asyncio
    async def test_broker_indisponivel(self):
        service = ReceiptIngestService(FakeBroker(falhar_em={0}))

        with pytest.raises(ExternalServiceError):
            await service.ingest({"communicationLogId": "log-1", "status": "SENT"})


class TestReceiptConsumer:

    @pytest.mark.asyncio
    async def test_fila_vazia(self, broker, reconciler):
        consumer = ReceiptConsumer(broker, reconciler)
        assert await consumer.processar_um() is None

    @pytest.mark.asyncio
    async def test_processa_recibo_enfileirado(self, broker, reconciler):
        await ReceiptIngestService(broker).ingest({"communicationLogId": "log-x", "status": "SENT"})
        consumer = ReceiptConsumer(broker, reconciler)

        result = await consumer.processar_um()

        assert result.outcome == ReconcileOutcome.NOT_FOUND
        assert broker.mensagens(FILA) == []

    @pytest.mark.asyncio
    async def test_descarta_malformado(self, broker):
        await broker.publish(FILA, {"communicationLogId": "log-x"})
        reconciler = AsyncMock()
        consumer = ReceiptConsumer(broker, reconciler)

        assert await consumer.processar_um() is None
        reconciler.apply.assert_not_called()

    @pytest.mark.asyncio
    async def test_run_continua_apos_erro(self, broker):
        await broker.publish(FILA, {"communicationLogId": "log-1", "status": "SENT"})
        await broker.publish(FILA, {"communicationLogId": "log-2", "status": "SENT"})

        consumer = ReceiptConsumer(broker, AsyncMock())
        processados = []

        async def apply(receipt):
            processados.append(receipt.communicationLogId)
            if receipt.communicationLogId == "log-1":
                raise RuntimeError("store fora")
            consumer.stop()

        consumer.reconciler.apply = apply

        with pytest.MonkeyPatch.context() as mp:
            mp.setattr("orchestrator.services.delivery.consumer.asyncio.sleep", AsyncMock())
            await asyncio.wait_for(consumer.run(), timeout=2)

        assert processados == ["log-1", "log-2"]

    @pytest.mark.asyncio
    async def test_run_propaga_cancelamento(self, reconciler):
        broker = FakeBroker()

        async def consume_lento(queue, timeout=5):
            await asyncio.sleep(10)

        broker.consume = consume_lento
        consumer = ReceiptConsumer(broker, reconciler)

        task = asyncio.create_task(consumer.run())
        await asyncio.sleep(0)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

    @pytest.mark.asyncio
    async def test_falha_no_apply_reenfileira_recibo(self, broker):
        await broker.publish(FILA, {"communicationLogId": "log-1", "status": "SENT"})
        reconciler = AsyncMock()
        reconciler.apply.side_effect = DatabaseError("timeout")
        consumer = ReceiptConsumer(broker, reconciler, max_attempts=3)

        with pytest.raises(DatabaseError):
            await consumer.processar_um()

        [mensagem] = broker.mensagens(FILA)
        assert mensagem["communicationLogId"] == "log-1"
        assert mensagem["attempts"] == 1
        assert "timeout" in mensagem["lastError"]

    @pytest.mark.asyncio
    async def test_tentativas_esgotadas_vao_para_fila_de_mortos(self, broker):
        await broker.publish(FILA, {"communicationLogId": "log-1", "status": "SENT"})
        reconciler = AsyncMock()
        reconciler.apply.side_effect = DatabaseError("timeout")
        consumer = ReceiptConsumer(broker, reconciler, max_attempts=2, dead_queue="mortos")

        for _ in range(2):
            with pytest.raises(DatabaseError):
                await consumer.processar_um()

        assert broker.mensagens(FILA) == []
        [morto] = broker.mensagens("mortos")
        assert morto["attempts"] == 2
        assert reconciler.apply.await_count == 2

"""
Webhook de recibos de entrega.
"""
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends

from orchestrator.api.deps import get_receipt_ingest
from orchestrator.services.delivery import ReceiptIngestService

router = APIRouter(prefix="/api/v1/delivery", tags=["delivery"])


@router.post("/receipt", status_code=202)
async def receber_recibo(
    payload: Dict[str, Any] = Body(...),
    ingest: ReceiptIngestService = Depends(get_receipt_ingest),
):
    """
    Recebe recibo do provider de entrega.

    So valida e enfileira; a reconciliacao roda no worker de recibos.
    """
    receipt = await ingest.ingest(payload)
    return {
        "status": "queued",
        "communicationLogId": receipt.communicationLogId,
    }

"""
Recibos de entrega: ingestao e reconciliacao.
"""
from .types import DeliveryReceipt, ReceiptStatus, ReconcileOutcome, ReconcileResult
from .reconciler import DeliveryReconciler
from .ingest import ReceiptIngestService, parse_receipt
from .consumer import ReceiptConsumer

__all__ = [
    "DeliveryReceipt",
    "ReceiptStatus",
    "ReconcileOutcome",
    "ReconcileResult",
    "DeliveryReconciler",
    "ReceiptIngestService",
    "parse_receipt",
    "ReceiptConsumer",
]

"""
Tipos de recibos de entrega.
"""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from orchestrator.core.timezone import agora_utc
from orchestrator.services.campaigns.types import LogStatus


class ReceiptStatus(str, Enum):
    """Status que o provider de entrega pode reportar."""

    SENT = "SENT"
    DELIVERED = "DELIVERED"
    FAILED = "FAILED"
    BOUNCED = "BOUNCED"

    @property
    def log_status(self) -> LogStatus:
        return LogStatus(self.value)


class DeliveryReceipt(BaseModel):
    """
    Recibo recebido do provider (mensagem transitoria da fila).

    Validado no webhook e de novo no consumidor.
    """

    communicationLogId: str = Field(..., min_length=1)
    status: ReceiptStatus
    vendorId: Optional[str] = None
    reason: Optional[str] = None
    receivedAt: datetime = Field(default_factory=agora_utc)


class ReconcileOutcome(str, Enum):
    APPLIED = "applied"
    NOT_FOUND = "not_found"
    DUPLICATE = "duplicate"


@dataclass
class ReconcileResult:
    """Resultado da aplicacao de um recibo."""

    outcome: ReconcileOutcome
    communication_log_id: str
    status: Optional[ReceiptStatus] = None
    campaign_id: Optional[str] = None

    @property
    def applied(self) -> bool:
        return self.outcome == ReconcileOutcome.APPLIED

    def to_dict(self) -> dict:
        return {
            "outcome": self.outcome.value,
            "communication_log_id": self.communication_log_id,
            "status": self.status.value if self.status else None,
            "campaign_id": self.campaign_id,
        }

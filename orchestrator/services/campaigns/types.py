"""
Tipos e enums para campanhas e logs de comunicacao.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

from orchestrator.core.timezone import iso, parse_datetime
from orchestrator.services.personalization import CustomerSnapshot, PersonalizationMode


class CampaignStatus(str, Enum):
    """Status possiveis de uma campanha."""

    DRAFT = "draft"
    SCHEDULED = "scheduled"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class LogStatus(str, Enum):
    """Status de um CommunicationLog. Qualquer valor diferente de PENDING e terminal."""

    PENDING = "PENDING"
    SENT = "SENT"
    DELIVERED = "DELIVERED"
    FAILED = "FAILED"
    BOUNCED = "BOUNCED"

    @property
    def is_terminal(self) -> bool:
        return self != LogStatus.PENDING


# Coluna do contador em campaigns para cada status terminal
STATS_COLUMNS = {
    LogStatus.SENT: "stats_sent",
    LogStatus.DELIVERED: "stats_delivered",
    LogStatus.FAILED: "stats_failed",
    LogStatus.BOUNCED: "stats_bounced",
}


@dataclass
class CampaignStats:
    """Contadores agregados da campanha."""

    total_recipients: int = 0
    sent: int = 0
    delivered: int = 0
    failed: int = 0
    bounced: int = 0

    @property
    def processed(self) -> int:
        """Logs que ja chegaram a um estado terminal."""
        return self.sent + self.delivered + self.failed + self.bounced

    @property
    def pending(self) -> int:
        return max(self.total_recipients - self.processed, 0)

    @property
    def delivery_rate(self) -> float:
        """Taxa canonica: delivered / total_recipients (0 sem destinatarios)."""
        if not self.total_recipients:
            return 0.0
        return self.delivered / self.total_recipients

    @classmethod
    def from_db_row(cls, row: dict) -> "CampaignStats":
        return cls(
            total_recipients=row.get("stats_total_recipients") or 0,
            sent=row.get("stats_sent") or 0,
            delivered=row.get("stats_delivered") or 0,
            failed=row.get("stats_failed") or 0,
            bounced=row.get("stats_bounced") or 0,
        )

    def to_db_columns(self) -> dict:
        return {
            "stats_total_recipients": self.total_recipients,
            "stats_sent": self.sent,
            "stats_delivered": self.delivered,
            "stats_failed": self.failed,
            "stats_bounced": self.bounced,
        }

    def to_dict(self) -> dict:
        return {
            "total_recipients": self.total_recipients,
            "sent": self.sent,
            "delivered": self.delivered,
            "failed": self.failed,
            "bounced": self.bounced,
            "pending": self.pending,
            "delivery_rate": round(self.delivery_rate, 4),
        }


@dataclass
class CampaignData:
    """Dados de uma campanha."""

    id: str
    name: str
    message: str
    segment_id: str
    description: str = ""
    status: CampaignStatus = CampaignStatus.DRAFT
    personalization: PersonalizationMode = PersonalizationMode.SMART
    stats: CampaignStats = field(default_factory=CampaignStats)
    scheduled_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_db_row(cls, row: dict) -> "CampaignData":
        """Cria a partir de linha do banco."""
        try:
            status = CampaignStatus(row.get("status", "draft"))
        except ValueError:
            status = CampaignStatus.DRAFT

        try:
            personalization = PersonalizationMode(row.get("personalization") or "smart")
        except ValueError:
            personalization = PersonalizationMode.SMART

        return cls(
            id=row["id"],
            name=row.get("name", ""),
            message=row.get("message", ""),
            segment_id=row.get("segment_id", ""),
            description=row.get("description") or "",
            status=status,
            personalization=personalization,
            stats=CampaignStats.from_db_row(row),
            scheduled_at=parse_datetime(row.get("scheduled_at")),
            started_at=parse_datetime(row.get("started_at")),
            created_at=parse_datetime(row.get("created_at")),
            updated_at=parse_datetime(row.get("updated_at")),
        )

    def to_dict(self) -> dict:
        """Converte para resposta da API."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "message": self.message,
            "segment_id": self.segment_id,
            "status": self.status.value,
            "personalization": self.personalization.value,
            "stats": self.stats.to_dict(),
            "scheduled_at": iso(self.scheduled_at),
            "started_at": iso(self.started_at),
            "created_at": iso(self.created_at),
            "updated_at": iso(self.updated_at),
        }


@dataclass
class CommunicationLog:
    """Registro de entrega para um destinatario de uma campanha."""

    id: str
    campaign_id: str
    customer_id: str
    message: str
    subject: str
    customer_snapshot: CustomerSnapshot
    status: LogStatus = LogStatus.PENDING
    enqueued_at: Optional[datetime] = None
    sent_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    reason: Optional[str] = None
    vendor_id: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_db_row(cls, row: dict) -> "CommunicationLog":
        try:
            status = LogStatus(row.get("status", "PENDING"))
        except ValueError:
            status = LogStatus.PENDING

        return cls(
            id=row["id"],
            campaign_id=row.get("campaign_id", ""),
            customer_id=row.get("customer_id", ""),
            message=row.get("message", ""),
            subject=row.get("subject") or "",
            customer_snapshot=CustomerSnapshot.from_customer(row.get("customer_snapshot") or {}),
            status=status,
            enqueued_at=parse_datetime(row.get("enqueued_at")),
            sent_at=parse_datetime(row.get("sent_at")),
            delivered_at=parse_datetime(row.get("delivered_at")),
            reason=row.get("reason"),
            vendor_id=row.get("vendor_id"),
            created_at=parse_datetime(row.get("created_at")),
        )

    def delivery_payload(self) -> dict:
        """Mensagem publicada em queue.campaign.delivery."""
        return {
            "communicationLogId": self.id,
            "campaignId": self.campaign_id,
            "customerId": self.customer_id,
            "message": self.message,
            "subject": self.subject,
            "email": self.customer_snapshot.email,
            "phone": self.customer_snapshot.phone,
        }


@dataclass
class DispatchSummary:
    """
    Resultado de um envio de campanha.

    failed_recipients lista os clientes cuja mensagem nao foi publicada;
    failed_logs lista os logs correspondentes, que ficaram PENDING sem
    enqueued_at. O envio continua reportando sucesso.
    """

    campaign_id: str
    total_recipients: int
    enqueued: int = 0
    failed_recipients: List[str] = field(default_factory=list)
    failed_logs: List[str] = field(default_factory=list)
    background: bool = False

    def to_dict(self) -> dict:
        return {
            "campaign_id": self.campaign_id,
            "total_recipients": self.total_recipients,
            "enqueued": self.enqueued,
            "failed_recipients": list(self.failed_recipients),
            "failed_logs": list(self.failed_logs),
            "background": self.background,
        }

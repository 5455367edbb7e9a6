"""
Campanhas: envio, agendamento e estatisticas.
"""
from .types import (
    STATS_COLUMNS,
    CampaignData,
    CampaignStats,
    CampaignStatus,
    CommunicationLog,
    DispatchSummary,
    LogStatus,
)
from .repository import CampaignRepository, CommunicationLogRepository
from .worker_pool import DispatchWorkerPool
from .dispatcher import CampaignDispatcher
from .scheduled import ResultadoAgendadas, dispatch_due_campaigns
from .service import CampaignService

__all__ = [
    "STATS_COLUMNS",
    "CampaignData",
    "CampaignStats",
    "CampaignStatus",
    "CommunicationLog",
    "DispatchSummary",
    "LogStatus",
    "CampaignRepository",
    "CommunicationLogRepository",
    "DispatchWorkerPool",
    "CampaignDispatcher",
    "ResultadoAgendadas",
    "dispatch_due_campaigns",
    "CampaignService",
]

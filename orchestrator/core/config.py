"""
Configuracoes da aplicacao.
Carrega variaveis de ambiente.
"""
from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Configuracoes carregadas do .env"""

    # App
    APP_NAME: str = "Campaign Orchestrator"
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Document store: "supabase" em producao, "memory" para rodar local sem banco
    STORE_BACKEND: str = "supabase"

    # Supabase
    SUPABASE_URL: str = ""
    SUPABASE_SERVICE_KEY: str = ""
    # Tamanho da pagina em find(); nao deve passar do max-rows do PostgREST
    SUPABASE_PAGE_SIZE: int = 1000

    # Redis (filas duraveis)
    REDIS_URL: str = "redis://localhost:6379/0"
    QUEUE_CAMPAIGN_DELIVERY: str = "queue.campaign.delivery"
    QUEUE_DELIVERY_RECEIPT: str = "queue.delivery.receipt"
    RECEIPT_POLL_TIMEOUT_SECONDS: int = 5
    RECEIPT_MAX_ATTEMPTS: int = 5
    QUEUE_DELIVERY_RECEIPT_DEAD: str = "queue.delivery.receipt.dead"

    # Intervalo do loop que inicia campanhas agendadas
    SCHEDULER_INTERVAL_SECONDS: int = 60

    # Anthropic
    ANTHROPIC_API_KEY: str = ""
    LLM_MODEL: str = "claude-3-5-haiku-20241022"
    LLM_MAX_TOKENS: int = 800

    # Resiliencia das chamadas de IA
    AI_FAILURE_THRESHOLD: int = 5
    AI_COOLDOWN_SECONDS: float = 60.0
    AI_MAX_RETRIES: int = 3
    AI_BACKOFF_SECONDS: float = 1.0
    AI_CALL_TIMEOUT_SECONDS: float = 30.0

    # Dispatch em background
    DISPATCH_WORKERS: int = 4
    DISPATCH_QUEUE_SIZE: int = 100

    @property
    def is_production(self) -> bool:
        """Retorna True se esta em producao."""
        return self.ENVIRONMENT.lower() == "production"

    @property
    def log_level_upper(self) -> str:
        """Retorna log level em maiusculo para logging module."""
        return self.LOG_LEVEL.upper()

    @property
    def ai_available(self) -> bool:
        """Existe chave configurada para o provider externo."""
        return bool(self.ANTHROPIC_API_KEY)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


class AIConfig:
    """
    Constantes das operacoes de IA.

    Thresholds de confianca usados pelos fallbacks.
    """

    CONFIDENCE_STATIC_SEGMENT: float = 0.6
    CONFIDENCE_STATIC_VARIANTS: float = 0.5
    CONFIDENCE_STATIC_INSIGHTS: float = 0.5
    CONFIDENCE_HEURISTIC_VARIANTS: float = 0.85
    CONFIDENCE_HEURISTIC_INSIGHTS: float = 0.75
    CONFIDENCE_HEURISTIC_SUMMARY: float = 0.7
    CONFIDENCE_STATIC_SUMMARY: float = 0.5

    # Janela padrao (dias) para "inativo" sem numero explicito
    INACTIVE_DAYS_DEFAULT: int = 90

    # Janela de medicoes de tempo de resposta mantida pelo monitor
    RESPONSE_TIME_WINDOW: int = 100

    MAX_VARIANTS: int = 5


class DispatchConfig:
    """Constantes de personalizacao por tier de gasto."""

    # Abaixo de TIER_LOYAL o tier e "valued"
    TIER_VIP: float = 1000
    TIER_PREMIUM: float = 500
    TIER_LOYAL: float = 100


@lru_cache()
def get_settings() -> Settings:
    """Retorna instancia cacheada das configuracoes."""
    return Settings()


settings = get_settings()

"""
Exceptions customizadas do orquestrador de campanhas.
"""
from typing import Optional


class OrchestratorError(Exception):
    """Base exception para todos os erros do sistema."""

    def __init__(
        self,
        message: str,
        details: Optional[dict] = None,
        original_error: Optional[Exception] = None
    ):
        self.message = message
        self.details = details or {}
        self.original_error = original_error
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message


class DatabaseError(OrchestratorError):
    """Erro do document store (Supabase)."""
    pass


class ExternalServiceError(OrchestratorError):
    """Erro de servico externo (broker, provider de IA)."""

    def __init__(
        self,
        message: str,
        service: str,
        details: Optional[dict] = None,
        original_error: Optional[Exception] = None
    ):
        self.service = service
        super().__init__(message, details, original_error)


class ValidationError(OrchestratorError):
    """Erro de validacao de dados de entrada. Nunca e retentado."""
    pass


class NoRecipientsError(ValidationError):
    """Segmento resolveu para zero destinatarios."""

    def __init__(self, campaign_id: str, segment_id: str):
        super().__init__(
            "Nenhum cliente encontrado para o segmento",
            details={"campaign_id": campaign_id, "segment_id": segment_id},
        )


class NotFoundError(OrchestratorError):
    """Recurso nao encontrado."""

    def __init__(
        self,
        resource: str,
        identifier: Optional[str] = None
    ):
        message = f"{resource} nao encontrado"
        details = {}
        if identifier:
            details["id"] = identifier
        super().__init__(message, details)


class InvalidCampaignStateError(OrchestratorError):
    """Campanha nao esta em um status que permita a operacao."""

    def __init__(self, campaign_id: str, status: str, expected: tuple, acao: str = "enviada"):
        super().__init__(
            f"Campanha com status '{status}' nao pode ser {acao}",
            details={"id": campaign_id, "status": status, "expected": list(expected)},
        )


class ConfigurationError(OrchestratorError):
    """Erro de configuracao do sistema."""
    pass

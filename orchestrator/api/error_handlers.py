"""
Exception handlers para FastAPI.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from orchestrator.core.exceptions import (
    ConfigurationError,
    DatabaseError,
    ExternalServiceError,
    InvalidCampaignStateError,
    NoRecipientsError,
    NotFoundError,
    OrchestratorError,
    ValidationError,
)

logger = logging.getLogger(__name__)


def _status_code(exc: OrchestratorError) -> int:
    # NoRecipientsError herda de ValidationError, entao vem antes
    if isinstance(exc, NoRecipientsError):
        return 422
    if isinstance(exc, ValidationError):
        return 400
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, InvalidCampaignStateError):
        return 409
    if isinstance(exc, ExternalServiceError):
        return 502
    if isinstance(exc, DatabaseError):
        return 503
    if isinstance(exc, ConfigurationError):
        return 500
    return 500


async def orchestrator_exception_handler(request: Request, exc: OrchestratorError) -> JSONResponse:
    """Handler para todas as exceptions customizadas."""
    status_code = _status_code(exc)
    error_type = exc.__class__.__name__

    log = logger.error if status_code >= 500 else logger.warning
    log(
        f"{error_type}: {exc.message}",
        extra={"error_type": error_type, "details": exc.details, "path": request.url.path},
    )

    return JSONResponse(
        status_code=status_code,
        content={"error": error_type, "message": exc.message, "details": exc.details},
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handler para exceptions nao tratadas."""
    logger.exception(f"Erro nao tratado: {exc}", extra={"path": request.url.path})

    return JSONResponse(
        status_code=500,
        content={
            "error": "InternalServerError",
            "message": "Erro interno do servidor",
            "details": {},
        },
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Registra os exception handlers no app FastAPI.

    Usage:
        app = FastAPI()
        register_exception_handlers(app)
    """
    app.add_exception_handler(OrchestratorError, orchestrator_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

"""
Campaign Orchestrator - API Principal
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from orchestrator.api.error_handlers import register_exception_handlers
from orchestrator.api.routes import ai, campaigns, delivery, health, segments
from orchestrator.core.config import settings
from orchestrator.core.logging import setup_logging
from orchestrator.services.resources import Resources

logger = logging.getLogger(__name__)


def create_app(resources: Optional[Resources] = None) -> FastAPI:
    """
    Cria app FastAPI.

    Args:
        resources: Recursos prontos (testes). Sem eles, o lifespan conecta
            store/broker/provider a partir das settings.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Gerencia startup e shutdown da aplicacao."""
        logger.info(f"Iniciando {settings.APP_NAME}...")
        proprios = resources is None
        app.state.resources = Resources.connect() if proprios else resources
        app.state.resources.pool.start()
        yield
        logger.info(f"Encerrando {settings.APP_NAME}...")
        if proprios:
            await app.state.resources.close()
        else:
            await app.state.resources.pool.stop(drain=True)

    app = FastAPI(
        title=settings.APP_NAME,
        description="Orquestracao de campanhas de CRM",
        version="0.1.0",
        lifespan=lifespan,
    )
    if resources is not None:
        app.state.resources = resources

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # Rotas
    app.include_router(health.router, tags=["Health"])
    app.include_router(segments.router)
    app.include_router(campaigns.router)
    app.include_router(delivery.router)
    app.include_router(ai.router)

    @app.get("/")
    async def root():
        """Endpoint raiz."""
        return {
            "app": settings.APP_NAME,
            "status": "running",
            "docs": "/docs",
        }

    return app


setup_logging()
app = create_app()

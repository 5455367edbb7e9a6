"""
Entry point para executar workers.

Uso: python -m orchestrator.workers <receipts|scheduler>
"""
import asyncio
import logging
import sys

from orchestrator.core.logging import setup_logging

logger = logging.getLogger(__name__)


def main():
    """Executa worker baseado no argumento."""
    setup_logging()

    if len(sys.argv) < 2:
        print("Uso: python -m orchestrator.workers <worker_name>")
        print("Workers disponiveis: receipts, scheduler")
        sys.exit(1)

    worker_name = sys.argv[1]

    if worker_name == "receipts":
        from orchestrator.workers.receipt_worker import processar_recibos
        logger.info("Iniciando worker de recibos...")
        asyncio.run(processar_recibos())
    elif worker_name == "scheduler":
        from orchestrator.workers.scheduler import scheduler_loop
        logger.info("Iniciando scheduler...")
        asyncio.run(scheduler_loop())
    else:
        logger.error(f"Worker desconhecido: {worker_name}")
        sys.exit(1)


if __name__ == "__main__":
    main()

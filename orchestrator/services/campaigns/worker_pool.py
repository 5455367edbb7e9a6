"""
Pool de workers para o loop de publicacao das campanhas.

Fila asyncio limitada + N tasks. Quando a fila esta cheia, submit()
espera (backpressure no request que criou a campanha).
"""
import asyncio
import logging
from typing import Awaitable, Callable, List, Optional

logger = logging.getLogger(__name__)

Job = Callable[[], Awaitable[object]]


class DispatchWorkerPool:
    """
    Executa jobs de dispatch em background.

    Exemplo:
        pool = DispatchWorkerPool(workers=4, queue_size=100)
        pool.start()
        await pool.submit(lambda: dispatcher.publish_logs(campaign_id, logs))
        await pool.stop()
    """

    def __init__(self, workers: int = 4, queue_size: int = 100):
        self.workers = max(workers, 1)
        self.queue_size = queue_size
        self._queue: Optional[asyncio.Queue] = None
        self._tasks: List[asyncio.Task] = []

    @property
    def running(self) -> bool:
        return bool(self._tasks)

    def start(self):
        """Cria as tasks dos workers (idempotente)."""
        if self.running:
            return
        self._queue = asyncio.Queue(maxsize=self.queue_size)
        self._tasks = [
            asyncio.create_task(self._worker(i), name=f"dispatch-worker-{i}")
            for i in range(self.workers)
        ]
        logger.info(f"Pool de dispatch iniciado com {self.workers} workers")

    async def submit(self, job: Job):
        """Enfileira um job. Inicia o pool se ainda nao estiver rodando."""
        if not self.running:
            self.start()
        await self._queue.put(job)

    async def join(self):
        """Espera todos os jobs enfileirados terminarem."""
        if self._queue is not None:
            await self._queue.join()

    async def stop(self, drain: bool = True):
        """
        Para os workers.

        Args:
            drain: Se True, espera a fila esvaziar antes de cancelar
        """
        if not self.running:
            return
        if drain:
            await self.join()
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        self._queue = None
        logger.info("Pool de dispatch parado")

    async def _worker(self, numero: int):
        while True:
            job = await self._queue.get()
            try:
                await job()
            except Exception as e:
                logger.error(f"Worker de dispatch {numero}: erro no job: {e}", exc_info=True)
            finally:
                self._queue.task_done()

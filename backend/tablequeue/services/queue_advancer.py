"""Background advancer that serves the front of each queue.

Every interval, each non-empty queue gets one chance (``probability``) to have
its head party served. There is no notion of service duration; it only models
throughput so that polling clients see the line move. Ticks run in a worker
thread since the queue locks are shared with threadpool route handlers.
"""

import asyncio
import logging
import random
from typing import List, Optional, Tuple

from tablequeue.services.queue_store import QueueEntry, QueueStore

logger = logging.getLogger(__name__)


class QueueAdvancer:
    """Periodic asyncio task that pops queue heads at random."""

    def __init__(
        self,
        store: QueueStore,
        interval_seconds: float = 3.0,
        probability: float = 0.2,
        rng: Optional[random.Random] = None,
    ):
        self.store = store
        self.interval_seconds = interval_seconds
        self.probability = probability
        self._rng = rng or random.Random()
        self._task: Optional[asyncio.Task] = None
        self.tick_count = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def tick(self) -> List[Tuple[str, QueueEntry]]:
        """Run one advancement round. Returns (establishment_id, served entry) pairs."""
        served: List[Tuple[str, QueueEntry]] = []
        for establishment_id in self.store.establishment_ids():
            with self.store.exclusive(establishment_id) as queue:
                if not queue.items:
                    continue
                if self._rng.random() < self.probability:
                    entry = queue.pop_front()
                    served.append((establishment_id, entry))
        self.tick_count += 1
        for establishment_id, entry in served:
            logger.debug(f"Served ticket #{entry.queue_number} at {establishment_id}")
        return served

    async def _run(self):
        logger.info(
            f"Queue advancer running every {self.interval_seconds}s "
            f"(p={self.probability})"
        )
        while True:
            try:
                await asyncio.sleep(self.interval_seconds)
                await asyncio.to_thread(self.tick)
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.warning(f"Queue advancer tick failed: {e}")

    def start(self) -> asyncio.Task:
        """Start the loop on the running event loop."""
        if not self.running:
            self._task = asyncio.create_task(self._run())
        return self._task

    async def stop(self):
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Queue advancer stopped")

"""Client-side reconciliation of queue state.

`ClientReconciler` keeps one participant's view of one establishment's queue.
Each tick it asks the server; an authoritative answer replaces the local view
(mode LIVE), otherwise the last view is evolved locally (mode SIMULATED) and
the caller can show a degraded-mode indicator.
"""

import asyncio
import logging
import random
from enum import Enum
from typing import Callable, Optional

from tablequeue.client.api_client import Authoritative, QueueApiClient
from tablequeue.client.simulation import derive_view, initial_view, simulate_tick
from tablequeue.schemas.queue import QueueStatusView

logger = logging.getLogger(__name__)

LOCAL_TICKET_RANGE = (100, 199)


class SyncMode(str, Enum):
    LIVE = "live"
    SIMULATED = "simulated"


class ClientReconciler:
    """Polls the queue API and falls back to simulation when it is unreachable."""

    def __init__(
        self,
        api: QueueApiClient,
        restaurant_id: str,
        participant_id: str,
        poll_interval_seconds: float = 3.0,
        rng: Optional[random.Random] = None,
    ):
        self.api = api
        self.restaurant_id = restaurant_id
        self.participant_id = participant_id
        self.poll_interval_seconds = poll_interval_seconds
        self.emergency_stop = False
        self.view: QueueStatusView = initial_view(restaurant_id)
        self.mode = SyncMode.SIMULATED
        self.last_error: Optional[str] = None
        self._rng = rng or random.Random()

    @property
    def is_live(self) -> bool:
        return self.mode is SyncMode.LIVE

    async def poll_once(self) -> QueueStatusView:
        result = await self.api.get_status(self.restaurant_id, self.participant_id)
        if isinstance(result, Authoritative):
            if not self.is_live:
                logger.info(f"Queue API reachable again for {self.restaurant_id}")
            self.view = result.value
            self.mode = SyncMode.LIVE
            self.last_error = None
        else:
            if self.is_live:
                logger.warning(f"Queue API unavailable ({result.reason}); simulating locally")
            self.view = simulate_tick(self.view, emergency_stop=self.emergency_stop, rng=self._rng)
            self.mode = SyncMode.SIMULATED
            self.last_error = result.reason
        return self.view

    async def join(self, party_size: int = 1) -> int:
        """Join the line. Returns the (possibly local) ticket number."""
        result = await self.api.join(self.restaurant_id, self.participant_id, party_size)
        if isinstance(result, Authoritative):
            queue_number = result.value
        else:
            if self.view.in_queue:
                queue_number = self.view.my_queue_number
            else:
                queue_number = self._rng.randint(*LOCAL_TICKET_RANGE)
            logger.warning(
                f"Join failed ({result.reason}); holding local ticket #{queue_number}"
            )
            self.mode = SyncMode.SIMULATED
            self.last_error = result.reason

        # Assume we are last until the next poll says otherwise.
        if not self.view.in_queue:
            total = self.view.total_queue_size
            self.view = derive_view(
                self.view,
                people_ahead=total,
                total_queue_size=total + 1,
                my_queue_number=queue_number,
            )
        return queue_number

    async def leave(self) -> bool:
        """Leave the line. The local view is cleared whatever the server says."""
        result = await self.api.leave(self.restaurant_id, self.participant_id)
        if self.view.in_queue:
            total = max(self.view.total_queue_size - 1, 0)
            self.view = derive_view(self.view, people_ahead=total, total_queue_size=total)
        return isinstance(result, Authoritative)

    async def run(
        self,
        stop_event: Optional[asyncio.Event] = None,
        max_ticks: Optional[int] = None,
        on_tick: Optional[Callable[["ClientReconciler"], None]] = None,
    ):
        """Poll until `stop_event` is set (or `max_ticks` polls have run)."""
        stop_event = stop_event or asyncio.Event()
        ticks = 0
        while not stop_event.is_set():
            await self.poll_once()
            if on_tick is not None:
                on_tick(self)
            ticks += 1
            if max_ticks is not None and ticks >= max_ticks:
                break
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self.poll_interval_seconds)
            except asyncio.TimeoutError:
                pass

"""
In-memory queue store.

One `EstablishmentQueue` per establishment id, created lazily and seeded with
a handful of synthetic parties so a fresh venue never looks empty. State lives
for the process lifetime only.

Route handlers run in FastAPI's threadpool while the advancer runs on the
event loop, so every read-modify-write on a queue happens inside
`QueueStore.exclusive()`. The mutation helpers take the same (re-entrant)
lock themselves, which keeps them safe when called on their own.
"""

import logging
import random
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, Iterator, List, Optional, Tuple

from tablequeue.core.exceptions import DuplicateParticipantError

logger = logging.getLogger(__name__)

INITIAL_CURRENT_NUMBER = 100
FIRST_TICKET_NUMBER = 101
SEED_PARTY_SIZE_RANGE = (1, 3)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class QueueEntry:
    """A waiting party. Immutable once created."""
    participant_id: str
    party_size: int
    joined_at: datetime
    queue_number: int


@dataclass
class EstablishmentQueue:
    """FIFO of waiting parties plus the ticket counters for one venue."""
    establishment_id: str
    items: List[QueueEntry] = field(default_factory=list)
    current_number: int = INITIAL_CURRENT_NUMBER
    next_ticket_number: int = FIRST_TICKET_NUMBER
    served_count: int = 0
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False, compare=False)

    def index_of(self, participant_id: Optional[str]) -> Optional[int]:
        """0-based position of the participant, or None if not queued."""
        if not participant_id:
            return None
        for i, entry in enumerate(self.items):
            if entry.participant_id == participant_id:
                return i
        return None

    def find(self, participant_id: Optional[str]) -> Optional[QueueEntry]:
        index = self.index_of(participant_id)
        return self.items[index] if index is not None else None

    def snapshot(self) -> Tuple[QueueEntry, ...]:
        with self.lock:
            return tuple(self.items)

    def allocate_ticket(self) -> int:
        """Hand out the next ticket number. Numbers are never reused."""
        with self.lock:
            number = self.next_ticket_number
            self.next_ticket_number += 1
            return number

    def append(self, entry: QueueEntry) -> None:
        with self.lock:
            if self.index_of(entry.participant_id) is not None:
                raise DuplicateParticipantError(self.establishment_id, entry.participant_id)
            if entry.queue_number >= self.next_ticket_number:
                raise ValueError(
                    f"ticket {entry.queue_number} was not allocated "
                    f"(next is {self.next_ticket_number})"
                )
            self.items.append(entry)

    def remove_by_participant(self, participant_id: str) -> Optional[QueueEntry]:
        with self.lock:
            index = self.index_of(participant_id)
            if index is None:
                return None
            return self.items.pop(index)

    def pop_front(self) -> Optional[QueueEntry]:
        """Serve the party at the head of the line."""
        with self.lock:
            if not self.items:
                return None
            entry = self.items.pop(0)
            self.current_number = max(self.current_number, entry.queue_number)
            self.served_count += 1
            return entry


class QueueStore:
    """Registry of establishment queues, keyed by establishment id."""

    def __init__(
        self,
        seed_min: int = 3,
        seed_max: int = 7,
        rng: Optional[random.Random] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        if seed_min < 0 or seed_min > seed_max:
            raise ValueError(f"invalid seed range {seed_min}..{seed_max}")
        self.seed_min = seed_min
        self.seed_max = seed_max
        self._rng = rng or random.Random()
        self._clock = clock
        self._queues: Dict[str, EstablishmentQueue] = {}
        self._registry_lock = threading.Lock()

    def __contains__(self, establishment_id: str) -> bool:
        return establishment_id in self._queues

    def __len__(self) -> int:
        return len(self._queues)

    def get(self, establishment_id: str) -> Optional[EstablishmentQueue]:
        return self._queues.get(establishment_id)

    def get_or_create(self, establishment_id: str) -> EstablishmentQueue:
        queue = self._queues.get(establishment_id)
        if queue is not None:
            return queue
        with self._registry_lock:
            queue = self._queues.get(establishment_id)
            if queue is None:
                queue = EstablishmentQueue(establishment_id=establishment_id)
                seeded = self._seed(queue)
                self._queues[establishment_id] = queue
                logger.info(f"Created queue for {establishment_id} with {seeded} seeded parties")
            return queue

    @contextmanager
    def exclusive(self, establishment_id: str) -> Iterator[EstablishmentQueue]:
        """Hold the queue's lock for a check-then-act sequence."""
        queue = self.get_or_create(establishment_id)
        with queue.lock:
            yield queue

    def establishment_ids(self) -> List[str]:
        with self._registry_lock:
            return list(self._queues)

    def _seed(self, queue: EstablishmentQueue) -> int:
        count = self._rng.randint(self.seed_min, self.seed_max)
        stamp = int(time.time() * 1000)
        for i in range(count):
            queue.append(QueueEntry(
                participant_id=f"dummy-{stamp}-{i}",
                party_size=self._rng.randint(*SEED_PARTY_SIZE_RANGE),
                joined_at=self._clock(),
                queue_number=queue.allocate_ticket(),
            ))
        return count

"""
Queue Service
=============
Join / leave / status on top of the in-memory `QueueStore`, plus the derived
metrics shared with the polling client's offline simulation:

- wait estimate: ``ceil(count * 1.5)`` minutes
- crowding: RED above 20 parties, YELLOW above 5, GREEN otherwise
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from tablequeue.core.config import settings
from tablequeue.core.exceptions import InvalidPartySizeError, InvalidRequestError
from tablequeue.schemas.queue import QueueStatus, QueueStatusView
from tablequeue.services.queue_store import QueueEntry, QueueStore

logger = logging.getLogger(__name__)

WAIT_MINUTES_PER_PARTY = 1.5
RED_ABOVE = 20
YELLOW_ABOVE = 5
DEFAULT_PARTY_SIZE = 1


def estimate_wait_minutes(count: int, minutes_per_party: float = WAIT_MINUTES_PER_PARTY) -> int:
    """Minutes until service for a party with `count` parties ahead."""
    return math.ceil(max(count, 0) * minutes_per_party)


def classify_status(total_queue_size: int) -> QueueStatus:
    if total_queue_size > RED_ABOVE:
        return QueueStatus.RED
    if total_queue_size > YELLOW_ABOVE:
        return QueueStatus.YELLOW
    return QueueStatus.GREEN


@dataclass(frozen=True)
class JoinResult:
    queue_number: int
    created: bool


class QueueService:
    """Virtual waiting-list operations for any number of establishments."""

    def __init__(
        self,
        store: QueueStore,
        minutes_per_party: float = WAIT_MINUTES_PER_PARTY,
        max_party_size: int = settings.max_party_size,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self.minutes_per_party = minutes_per_party
        self.max_party_size = max_party_size
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def status(self, establishment_id: str, participant_id: Optional[str] = None) -> QueueStatusView:
        """Queue position and derived metrics for one participant.

        A participant who is not queued (or no participant at all) sees the
        whole line ahead of them and no ticket number.
        """
        self._require_id(establishment_id, "restaurantId")
        with self.store.exclusive(establishment_id) as queue:
            total = len(queue.items)
            index = queue.index_of(participant_id)
            my_number = queue.items[index].queue_number if index is not None else None

        people_ahead = index if index is not None else total
        return QueueStatusView(
            restaurant_id=establishment_id,
            my_queue_number=my_number,
            people_ahead=people_ahead,
            estimated_wait_time_minutes=estimate_wait_minutes(people_ahead, self.minutes_per_party),
            total_queue_size=total,
            current_status=classify_status(total),
        )

    def join(self, establishment_id: str, participant_id: str, party_size: Optional[int] = None) -> JoinResult:
        """Put a participant in line, or return the ticket they already hold."""
        self._require_id(establishment_id, "restaurantId")
        self._require_id(participant_id, "userId")
        party_size = self._validate_party_size(party_size)

        with self.store.exclusive(establishment_id) as queue:
            existing = queue.find(participant_id)
            if existing is not None:
                return JoinResult(queue_number=existing.queue_number, created=False)

            entry = QueueEntry(
                participant_id=participant_id,
                party_size=party_size,
                joined_at=self._clock(),
                queue_number=queue.allocate_ticket(),
            )
            queue.append(entry)
            position = len(queue.items)

        logger.info(
            f"Queue join {establishment_id}: ticket #{entry.queue_number} "
            f"party_size={party_size} position={position}"
        )
        return JoinResult(queue_number=entry.queue_number, created=True)

    def leave(self, establishment_id: str, participant_id: str) -> bool:
        """Remove a participant. Leaving when absent still succeeds."""
        self._require_id(establishment_id, "restaurantId")
        self._require_id(participant_id, "userId")
        with self.store.exclusive(establishment_id) as queue:
            removed = queue.remove_by_participant(participant_id)
        if removed is not None:
            logger.info(f"Queue leave {establishment_id}: ticket #{removed.queue_number}")
        return True

    def _validate_party_size(self, party_size: Optional[int]) -> int:
        if party_size is None:
            return DEFAULT_PARTY_SIZE
        if isinstance(party_size, bool) or not isinstance(party_size, int):
            raise InvalidPartySizeError(party_size, self.max_party_size)
        if not 1 <= party_size <= self.max_party_size:
            raise InvalidPartySizeError(party_size, self.max_party_size)
        return party_size

    @staticmethod
    def _require_id(value: Optional[str], field_name: str) -> None:
        if not isinstance(value, str) or not value.strip():
            raise InvalidRequestError(f"{field_name} is required")

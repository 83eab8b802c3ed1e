"""Local queue simulation used while the server cannot be reached.

Each tick evolves the last known view with the same wait and crowding rules
the server uses, so switching between live and simulated data does not make
the numbers jump.
"""

import random
from typing import Optional

from tablequeue.schemas.queue import QueueStatusView
from tablequeue.services.queue_service import classify_status, estimate_wait_minutes

ADVANCE_PROBABILITY = 0.4
EMERGENCY_DRAIN_PROBABILITY = 0.3
MIN_PARTIES_BEHIND = 5


def derive_view(
    view: QueueStatusView,
    *,
    people_ahead: int,
    total_queue_size: int,
    my_queue_number: Optional[int] = None,
) -> QueueStatusView:
    """Rebuild the derived fields (wait, status) from the counts."""
    count = people_ahead if my_queue_number is not None else total_queue_size
    return view.model_copy(update={
        "my_queue_number": my_queue_number,
        "people_ahead": people_ahead,
        "total_queue_size": total_queue_size,
        "estimated_wait_time_minutes": estimate_wait_minutes(count),
        "current_status": classify_status(total_queue_size),
    })


def initial_view(restaurant_id: str) -> QueueStatusView:
    """View shown before the first poll has answered."""
    total = 5 + 2 * len(restaurant_id)
    return QueueStatusView(
        restaurant_id=restaurant_id,
        my_queue_number=None,
        people_ahead=total,
        estimated_wait_time_minutes=estimate_wait_minutes(total),
        total_queue_size=total,
        current_status=classify_status(total),
    )


def simulate_tick(
    view: QueueStatusView,
    *,
    emergency_stop: bool = False,
    rng: Optional[random.Random] = None,
) -> QueueStatusView:
    """Advance a view by one polling tick."""
    rng = rng or random.Random()
    people_ahead = view.people_ahead
    total = view.total_queue_size

    if emergency_stop:
        # Admission is closed: the line can only drain.
        if total > 0 and rng.random() < EMERGENCY_DRAIN_PROBABILITY:
            total -= 1
        if view.in_queue:
            people_ahead = min(people_ahead, max(total - 1, 0))
        else:
            people_ahead = total
    elif view.in_queue:
        if people_ahead > 0 and rng.random() < ADVANCE_PROBABILITY:
            people_ahead -= 1
        if total < people_ahead + MIN_PARTIES_BEHIND:
            total = people_ahead + MIN_PARTIES_BEHIND
    else:
        total = max(0, total + rng.choice((-1, 0, 1)))
        people_ahead = total

    return derive_view(
        view,
        people_ahead=people_ahead,
        total_queue_size=total,
        my_queue_number=view.my_queue_number,
    )

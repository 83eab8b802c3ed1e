# Services module

from tablequeue.services.queue_store import (
    QueueStore,
    EstablishmentQueue,
    QueueEntry,
)
from tablequeue.services.queue_service import (
    QueueService,
    JoinResult,
    classify_status,
    estimate_wait_minutes,
)
from tablequeue.services.queue_advancer import QueueAdvancer
from tablequeue.services.menu_service import MenuService

__all__ = [
    "QueueStore",
    "EstablishmentQueue",
    "QueueEntry",
    "QueueService",
    "JoinResult",
    "classify_status",
    "estimate_wait_minutes",
    "QueueAdvancer",
    "MenuService",
]

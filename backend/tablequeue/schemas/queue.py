"""Queue request/response schemas.

Python attributes are snake_case; the wire format is camelCase, matching the
web client (`restaurantId`, `myQueueNumber`, ...).
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from tablequeue.core.config import settings


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class QueueStatus(str, Enum):
    """Crowding level shown next to the waiting count."""
    GREEN = "GREEN"
    YELLOW = "YELLOW"
    RED = "RED"


class QueueStatusView(CamelModel):
    """Derived queue state as seen by one participant."""
    restaurant_id: str
    my_queue_number: Optional[int] = None
    people_ahead: int = Field(ge=0)
    estimated_wait_time_minutes: int = Field(ge=0)
    total_queue_size: int = Field(ge=0)
    current_status: QueueStatus

    @property
    def in_queue(self) -> bool:
        return self.my_queue_number is not None


class JoinQueueRequest(CamelModel):
    """Join request. `userId` is the participant identifier."""
    restaurant_id: str = Field(min_length=1)
    user_id: str = Field(min_length=1)
    party_size: Optional[int] = Field(default=None, ge=1, le=settings.max_party_size)


class JoinQueueResponse(CamelModel):
    success: bool = True
    queue_number: int


class LeaveQueueRequest(CamelModel):
    restaurant_id: str = Field(min_length=1)
    user_id: str = Field(min_length=1)


class LeaveQueueResponse(CamelModel):
    success: bool = True

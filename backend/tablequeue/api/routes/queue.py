"""Virtual queue routes - join, leave and poll the waiting list."""

from typing import Optional

from fastapi import APIRouter, Query, Request

from tablequeue.api.deps import QueueServiceDep
from tablequeue.core.rate_limit import limiter
from tablequeue.schemas.queue import (
    JoinQueueRequest,
    JoinQueueResponse,
    LeaveQueueRequest,
    LeaveQueueResponse,
    QueueStatusView,
)

router = APIRouter()


@router.post("/join", response_model=JoinQueueResponse)
@limiter.limit("30/minute")
def join_queue(
    request: Request,
    body: JoinQueueRequest,
    service: QueueServiceDep,
):
    """Take a ticket. Joining again returns the ticket already held."""
    result = service.join(body.restaurant_id, body.user_id, body.party_size)
    return JoinQueueResponse(queue_number=result.queue_number)


@router.post("/leave", response_model=LeaveQueueResponse)
@limiter.limit("30/minute")
def leave_queue(
    request: Request,
    body: LeaveQueueRequest,
    service: QueueServiceDep,
):
    """Give up a place in line. Succeeds even if the user was not queued."""
    service.leave(body.restaurant_id, body.user_id)
    return LeaveQueueResponse()


@router.get("/{restaurant_id}", response_model=QueueStatusView)
@limiter.limit("120/minute")
def get_queue_status(
    request: Request,
    restaurant_id: str,
    service: QueueServiceDep,
    participant_id: Optional[str] = Query(default=None, alias="participantId"),
    user_id: Optional[str] = Query(default=None, alias="userId"),
):
    """Current queue state, as seen by `participantId` (or `userId`) if given."""
    return service.status(restaurant_id, participant_id or user_id)

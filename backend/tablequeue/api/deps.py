"""FastAPI dependencies.

The store, queue service and menu service are created in the application
lifespan and kept on ``app.state``; routes receive them through these
dependencies so tests can swap them with ``app.dependency_overrides``.
"""

from typing import Annotated

from fastapi import Depends, Request

from tablequeue.services.menu_service import MenuService
from tablequeue.services.queue_service import QueueService


def get_queue_service(request: Request) -> QueueService:
    return request.app.state.queue_service


def get_menu_service(request: Request) -> MenuService:
    return request.app.state.menu_service


QueueServiceDep = Annotated[QueueService, Depends(get_queue_service)]
MenuServiceDep = Annotated[MenuService, Depends(get_menu_service)]

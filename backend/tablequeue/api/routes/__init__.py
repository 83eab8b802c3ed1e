"""API routes."""

from fastapi import APIRouter

from tablequeue.api.routes import menus, queue

api_router = APIRouter()

api_router.include_router(queue.router, prefix="/queue", tags=["queue"])
api_router.include_router(menus.router, prefix="/menus", tags=["menus"])

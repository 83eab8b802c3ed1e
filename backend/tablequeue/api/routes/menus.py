"""Menu routes."""

from typing import List

from fastapi import APIRouter

from tablequeue.api.deps import MenuServiceDep
from tablequeue.schemas.menu import MenuItem

router = APIRouter()


@router.get("/{restaurant_id}", response_model=List[MenuItem])
async def get_menu(restaurant_id: str, service: MenuServiceDep):
    """Today's menu for the current meal period."""
    return await service.get_menu(restaurant_id)

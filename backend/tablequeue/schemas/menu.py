"""Menu schemas."""

from tablequeue.schemas.queue import CamelModel


class MenuItem(CamelModel):
    id: str
    restaurant_id: str
    name: str
    price: int
    image_url: str
    is_sold_out: bool = False
    category: str
    kcal: int

"""
Menu Service
============
Best-effort daily menu for a dining hall. The campus food-menu page is
fetched with a short timeout, `name : price` lines are pulled out of its
table, and the result is cached for an hour. Any failure (network, layout
change, empty page) falls back to a fixed simulated menu so the client always
has something to show. Exact scrape fidelity is not a goal.
"""

import html
import logging
import random
import re
from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple

import httpx

from tablequeue.core.cache import SimpleCache
from tablequeue.schemas.menu import MenuItem

logger = logging.getLogger(__name__)

BREAKFAST = "breakfast"
LUNCH = "lunch"
DINNER = "dinner"
GENERAL = "general"

# Column index in the upstream table -> meal category
COLUMN_CATEGORIES = {1: BREAKFAST, 2: LUNCH, 3: DINNER}

# establishment id -> (page number on the menu site, name shown in the first column)
RESTAURANT_SOURCES: Dict[str, Tuple[int, str]] = {
    "student-center": (0, "학생회관"),
    "jahayeon": (1, "자하연"),
    "eng-301": (2, "301동"),
    "eng-302": (2, "302동"),
    "dongwon": (3, "동원관"),
    "gamgol": (3, "감골"),
    "so-dang-gol": (4, "서당골"),
    "third-cafeteria": (4, "제3식당"),
    "dorm-919": (5, "919동"),
    "dorm-901": (5, "901동"),
}

IMAGE_POOL = [
    "https://images.unsplash.com/photo-1546069901-ba9599a7e63c",
    "https://images.unsplash.com/photo-1569718212165-3a8278d5f624",
    "https://images.unsplash.com/photo-1563245372-f21724e3856d",
    "https://images.unsplash.com/photo-1606502973842-f64bc2f6d00a",
    "https://images.unsplash.com/photo-1629856557871-29ae70588661",
]
IMAGE_PARAMS = "?auto=format&fit=crop&w=400"

FALLBACK_MENU = [
    ("[Simulation] Daily rice set", 5500, "korean"),
    ("[Simulation] Pork cutlet & cold noodles", 7000, "western"),
    ("[Simulation] Soybean paste stew", 6000, "korean"),
    ("[Simulation] Ramen with rice", 4000, "snack"),
]
FALLBACK_KCAL = 700

MIN_PRICE = 1000
MAX_PRICE = 100000

_TBODY_RE = re.compile(r"<tbody[^>]*>(.*?)</tbody>", re.S | re.I)
_ROW_RE = re.compile(r"<tr[^>]*>(.*?)</tr>", re.S | re.I)
_CELL_RE = re.compile(r"<td[^>]*>(.*?)</td>", re.S | re.I)
_BR_RE = re.compile(r"<br\s*/?>", re.I)
_TAG_RE = re.compile(r"<[^>]+>")

_PRICED_LINE = re.compile(r"^(.+?)\s*[:：]\s*([0-9,]+)\s*원?$")
_TRAILING_PRICE = re.compile(r"^(.+?)([0-9,]+)\s*원?$")

# Notices printed in the menu cells (opening hours, reservations, ...)
_NOTICE_PATTERNS = [
    re.compile(p, re.I) for p in (
        r"^※\s*", r"운영시간", r"혼잡시간", r"예약문의", r"라스트오더",
        r"브레이크타임", r"위 메뉴외에도", r"다양한 메뉴가", r"준비되어 있습니다",
        r"메\s*뉴", r"사\s*이\s*드", r"^<.*>$",
    )
]


def _cell_text(fragment: str) -> str:
    return html.unescape(_TAG_RE.sub("", fragment)).strip()


def _clean_name(name: str) -> str:
    name = re.sub(r"\[.*?\]", "", name)
    name = re.sub(r"\(.*?\)", "", name)
    name = name.replace("※", "")
    return re.sub(r"\s+", " ", name).strip()


def parse_menu_line(line: str) -> Optional[Tuple[str, int]]:
    """Extract (name, price) from one menu line, or None if it is not a dish."""
    if len(line) < 2 or any(p.search(line) for p in _NOTICE_PATTERNS):
        return None
    match = _PRICED_LINE.match(line) or _TRAILING_PRICE.match(line)
    if not match:
        return None
    price = int(match.group(2).replace(",", ""))
    if price < MIN_PRICE or price > MAX_PRICE:
        return None
    name = _clean_name(match.group(1))
    if not name:
        return None
    return name, price


def parse_menu_html(
    page: str,
    restaurant_id: str,
    restaurant_name: str = "",
    rng: Optional[random.Random] = None,
) -> List[MenuItem]:
    """Pull priced dishes out of the menu table for one restaurant."""
    rng = rng or random.Random()
    body = _TBODY_RE.search(page)
    rows = _ROW_RE.findall(body.group(1) if body else page)

    menus: List[MenuItem] = []
    for row_idx, row in enumerate(rows):
        cells = _CELL_RE.findall(row)
        if not cells:
            continue
        if restaurant_name and restaurant_name not in _cell_text(cells[0]):
            continue

        for col_idx in range(1, len(cells)):
            for raw_line in _BR_RE.split(cells[col_idx]):
                parsed = parse_menu_line(_cell_text(raw_line))
                if parsed is None:
                    continue
                name, price = parsed
                image = IMAGE_POOL[(row_idx + col_idx + len(menus)) % len(IMAGE_POOL)]
                menus.append(MenuItem(
                    id=f"snuco-{restaurant_id}-{row_idx}-{col_idx}-{len(menus)}",
                    restaurant_id=restaurant_id,
                    name=name,
                    price=price,
                    image_url=image + IMAGE_PARAMS,
                    category=COLUMN_CATEGORIES.get(col_idx, GENERAL),
                    is_sold_out=False,
                    kcal=500 + rng.randrange(400),
                ))
    return menus


def fallback_menu(restaurant_id: str) -> List[MenuItem]:
    return [
        MenuItem(
            id=f"fallback-{restaurant_id}-{i}",
            restaurant_id=restaurant_id,
            name=name,
            price=price,
            image_url=IMAGE_POOL[i % len(IMAGE_POOL)] + IMAGE_PARAMS,
            category=category,
            is_sold_out=False,
            kcal=FALLBACK_KCAL,
        )
        for i, (name, price, category) in enumerate(FALLBACK_MENU)
    ]


def meal_categories(hour: int) -> List[str]:
    """Categories served at a given local hour. Lunch outside meal windows."""
    if 7 <= hour < 10:
        return [BREAKFAST, GENERAL]
    if 17 <= hour < 20:
        return [DINNER, GENERAL]
    return [LUNCH, GENERAL]


class MenuService:
    """Cached, fail-soft menu lookup."""

    def __init__(
        self,
        source_url: str,
        cache: Optional[SimpleCache] = None,
        cache_seconds: int = 3600,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.source_url = source_url
        self.cache = cache or SimpleCache()
        self.cache_seconds = cache_seconds
        self.timeout = timeout
        self._transport = transport
        self._clock = clock

    async def get_menu(self, restaurant_id: str) -> List[MenuItem]:
        """Menu for the current meal period, or the full menu if that is empty."""
        all_menus = await self.fetch_menu(restaurant_id)
        allowed = meal_categories(self._clock().hour)
        current = [m for m in all_menus if m.category in allowed]
        return current or all_menus

    async def fetch_menu(self, restaurant_id: str) -> List[MenuItem]:
        cache_key = f"menu:{restaurant_id}"
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        source = RESTAURANT_SOURCES.get(restaurant_id)
        if source is None:
            return fallback_menu(restaurant_id)
        page_number, restaurant_name = source

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(
                    self.source_url,
                    params={"page": page_number},
                    headers={"Accept": "text/html", "Cache-Control": "no-cache"},
                )
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"Menu fetch failed for {restaurant_id}: {e}")
            return fallback_menu(restaurant_id)

        menus = parse_menu_html(response.text, restaurant_id, restaurant_name)
        if not menus:
            logger.warning(
                f"No menus found for {restaurant_id} (page length {len(response.text)}), "
                "using fallback"
            )
            return fallback_menu(restaurant_id)

        self.cache.set(cache_key, menus, ttl_seconds=self.cache_seconds)
        return menus

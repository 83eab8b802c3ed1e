"""Tests for the menu scraper, its cache and the /menus route."""

import random
from datetime import datetime, timedelta

import httpx
import pytest
from fastapi.testclient import TestClient

from tablequeue.api.deps import get_menu_service
from tablequeue.core.cache import SimpleCache
from tablequeue.main import app
from tablequeue.services.menu_service import (
    BREAKFAST,
    DINNER,
    GENERAL,
    LUNCH,
    MenuService,
    fallback_menu,
    meal_categories,
    parse_menu_html,
    parse_menu_line,
)

SOURCE = "https://menu.test/foodmenu"

MENU_PAGE = """
<html><body>
<table class="menu-table">
  <thead><tr><th>식당</th><th>아침</th><th>점심</th><th>저녁</th></tr></thead>
  <tbody>
    <tr>
      <td class="title">학생회관식당</td>
      <td>토스트 : 2,500원</td>
      <td>돈까스 : 6,000원<br/>※ 운영시간 11:00~14:00</td>
      <td>[New] 제육볶음(매운맛) : 5,000원</td>
    </tr>
    <tr>
      <td class="title">자하연식당</td>
      <td>&nbsp;</td>
      <td>비빔밥 : 4,500원</td>
      <td></td>
    </tr>
  </tbody>
</table>
</body></html>
"""


def _clock(hour: int):
    return lambda: datetime(2026, 3, 4, hour, 30)


class TestParsing:

    @pytest.mark.parametrize("line,expected", [
        ("토스트 : 2,500원", ("토스트", 2500)),
        ("돈까스：6000", ("돈까스", 6000)),
        ("김치찌개 5,000원", ("김치찌개", 5000)),
        ("[New] 비빔밥(소) : 4,000원", ("비빔밥", 4000)),
    ])
    def test_priced_lines(self, line, expected):
        assert parse_menu_line(line) == expected

    @pytest.mark.parametrize("line", [
        "",
        "x",
        "※ 운영시간 11:00~14:00",
        "라스트오더 : 1,900",
        "우유 : 500원",
        "코스요리 : 150,000원",
        "오늘의 메뉴",
        "국수",
    ])
    def test_rejected_lines(self, line):
        assert parse_menu_line(line) is None

    def test_parse_page_for_one_restaurant(self):
        menus = parse_menu_html(MENU_PAGE, "student-center", "학생회관", rng=random.Random(1))
        assert [(m.name, m.price, m.category) for m in menus] == [
            ("토스트", 2500, BREAKFAST),
            ("돈까스", 6000, LUNCH),
            ("제육볶음", 5000, DINNER),
        ]
        assert all(m.restaurant_id == "student-center" for m in menus)
        assert all(500 <= m.kcal < 900 for m in menus)
        assert len({m.id for m in menus}) == 3

    def test_parse_page_other_restaurant(self):
        menus = parse_menu_html(MENU_PAGE, "jahayeon", "자하연")
        assert [m.name for m in menus] == ["비빔밥"]

    def test_parse_page_without_table(self):
        assert parse_menu_html("<html>maintenance</html>", "jahayeon", "자하연") == []

    def test_fallback_menu(self):
        menus = fallback_menu("cafe-a")
        assert len(menus) == 4
        assert all(m.name.startswith("[Simulation]") for m in menus)
        assert all(m.restaurant_id == "cafe-a" and not m.is_sold_out for m in menus)


class TestMealCategories:

    @pytest.mark.parametrize("hour,expected", [
        (7, BREAKFAST), (9, BREAKFAST),
        (10, LUNCH), (13, LUNCH), (16, LUNCH),
        (17, DINNER), (19, DINNER),
        (20, LUNCH), (2, LUNCH),
    ])
    def test_windows(self, hour, expected):
        assert meal_categories(hour) == [expected, GENERAL]


class TestMenuService:

    def _service(self, handler, hour=12, cache=None) -> MenuService:
        return MenuService(
            SOURCE,
            cache=cache,
            transport=httpx.MockTransport(handler),
            clock=_clock(hour),
        )

    @pytest.mark.asyncio
    async def test_filters_by_meal_period(self):
        service = self._service(lambda request: httpx.Response(200, text=MENU_PAGE), hour=8)
        menus = await service.get_menu("student-center")
        assert [m.name for m in menus] == ["토스트"]

    @pytest.mark.asyncio
    async def test_empty_period_returns_whole_menu(self):
        service = self._service(lambda request: httpx.Response(200, text=MENU_PAGE), hour=18)
        menus = await service.get_menu("jahayeon")
        assert [m.name for m in menus] == ["비빔밥"]

    @pytest.mark.asyncio
    async def test_requests_configured_page(self):
        pages = []

        def handler(request: httpx.Request) -> httpx.Response:
            pages.append(request.url.params["page"])
            return httpx.Response(200, text=MENU_PAGE)

        await self._service(handler).fetch_menu("jahayeon")
        assert pages == ["1"]

    @pytest.mark.asyncio
    async def test_successful_fetch_is_cached(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, text=MENU_PAGE)

        service = self._service(handler)
        first = await service.fetch_menu("student-center")
        second = await service.fetch_menu("student-center")
        assert first == second
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_cache_expires(self):
        now = {"t": datetime(2026, 3, 4, 12, 0)}
        cache = SimpleCache(clock=lambda: now["t"])
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, text=MENU_PAGE)

        service = self._service(handler, cache=cache)
        await service.fetch_menu("student-center")
        now["t"] += timedelta(hours=1, seconds=1)
        await service.fetch_menu("student-center")
        assert len(calls) == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize("handler", [
        lambda request: httpx.Response(500),
        lambda request: httpx.Response(200, text="<html>no table</html>"),
    ])
    async def test_failures_fall_back_and_are_not_cached(self, handler):
        service = self._service(handler)
        menus = await service.fetch_menu("student-center")
        assert menus == fallback_menu("student-center")
        assert service.cache.get("menu:student-center") is None

    @pytest.mark.asyncio
    async def test_network_error_falls_back(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectTimeout("slow", request=request)

        menus = await self._service(handler).fetch_menu("dongwon")
        assert menus == fallback_menu("dongwon")

    @pytest.mark.asyncio
    async def test_unknown_restaurant_skips_fetch(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, text=MENU_PAGE)

        menus = await self._service(handler).get_menu("cafe-a")
        assert menus == fallback_menu("cafe-a")
        assert calls == []


class TestSimpleCache:

    def test_set_get_and_expire(self):
        now = {"t": datetime(2026, 1, 1)}
        cache = SimpleCache(clock=lambda: now["t"])
        cache.set("k", [1, 2], ttl_seconds=60)
        assert cache.get("k") == [1, 2]
        now["t"] += timedelta(seconds=61)
        assert cache.get("k") is None
        assert cache.stats()["total_keys"] == 0

    def test_stats_count_expired(self):
        now = {"t": datetime(2026, 1, 1)}
        cache = SimpleCache(clock=lambda: now["t"])
        cache.set("short", 1, ttl_seconds=1)
        cache.set("long", 2, ttl_seconds=60)
        now["t"] += timedelta(seconds=5)
        assert cache.stats() == {"total_keys": 2, "valid_keys": 1, "expired_keys": 1}

    def test_evicts_when_full(self, monkeypatch):
        monkeypatch.setattr(SimpleCache, "MAX_ENTRIES", 2)
        cache = SimpleCache()
        cache.set("a", 1, ttl_seconds=10)
        cache.set("b", 2, ttl_seconds=60)
        cache.set("c", 3, ttl_seconds=60)
        assert cache.get("a") is None
        assert cache.get("c") == 3


class TestMenuRoute:

    def test_route_returns_camel_case_items(self, client: TestClient):
        service = MenuService(
            SOURCE,
            transport=httpx.MockTransport(lambda request: httpx.Response(200, text=MENU_PAGE)),
            clock=_clock(12),
        )
        app.dependency_overrides[get_menu_service] = lambda: service

        response = client.get("/api/menus/student-center")

        assert response.status_code == 200
        data = response.json()
        assert [item["name"] for item in data] == ["돈까스"]
        assert set(data[0]) == {
            "id", "restaurantId", "name", "price", "imageUrl", "isSoldOut", "category", "kcal",
        }
        assert data[0]["restaurantId"] == "student-center"

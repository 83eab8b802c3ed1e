"""Tests for the queue HTTP API."""

from fastapi.testclient import TestClient

from tablequeue.core.config import settings
from tablequeue.core.metrics import MetricsCollector

API = "/api"


def _join(client: TestClient, restaurant_id: str, user_id: str, party_size=2):
    body = {"restaurantId": restaurant_id, "userId": user_id}
    if party_size is not None:
        body["partySize"] = party_size
    return client.post(f"{API}/queue/join", json=body)


class TestQueueRoutes:
    """Wire contract for /queue."""

    def test_status_shape(self, client: TestClient):
        response = client.get(f"{API}/queue/cafe-a")
        assert response.status_code == 200
        assert response.json() == {
            "restaurantId": "cafe-a",
            "myQueueNumber": None,
            "peopleAhead": 0,
            "estimatedWaitTimeMinutes": 0,
            "totalQueueSize": 0,
            "currentStatus": "GREEN",
        }

    def test_join_returns_ticket(self, client: TestClient):
        response = _join(client, "cafe-a", "u1")
        assert response.status_code == 200
        assert response.json() == {"success": True, "queueNumber": 101}

    def test_scenario_over_http(self, client: TestClient):
        assert _join(client, "cafe-a", "u1").json()["queueNumber"] == 101
        data = client.get(f"{API}/queue/cafe-a", params={"participantId": "u1"}).json()
        assert data["myQueueNumber"] == 101
        assert data["peopleAhead"] == 0
        assert data["totalQueueSize"] == 1
        assert data["currentStatus"] == "GREEN"

        assert _join(client, "cafe-a", "u2").json()["queueNumber"] == 102
        assert client.get(f"{API}/queue/cafe-a", params={"participantId": "u2"}).json()["peopleAhead"] == 1

        response = client.post(f"{API}/queue/leave", json={"restaurantId": "cafe-a", "userId": "u1"})
        assert response.status_code == 200
        assert response.json() == {"success": True}
        assert client.get(f"{API}/queue/cafe-a", params={"participantId": "u2"}).json()["peopleAhead"] == 0

    def test_user_id_query_alias(self, client: TestClient):
        _join(client, "cafe-a", "u1")
        _join(client, "cafe-a", "u2")
        data = client.get(f"{API}/queue/cafe-a", params={"userId": "u2"}).json()
        assert data["myQueueNumber"] == 102
        assert data["peopleAhead"] == 1

    def test_duplicate_join(self, client: TestClient):
        first = _join(client, "cafe-a", "u1").json()
        second = _join(client, "cafe-a", "u1").json()
        assert first == second
        assert client.get(f"{API}/queue/cafe-a").json()["totalQueueSize"] == 1

    def test_join_without_party_size(self, client: TestClient, queue_store):
        response = _join(client, "cafe-a", "u1", party_size=None)
        assert response.status_code == 200
        assert queue_store.get("cafe-a").items[0].party_size == 1

    def test_join_rejects_party_size_out_of_range(self, client: TestClient):
        for size in (0, -2, 9):
            response = _join(client, "cafe-a", "u1", party_size=size)
            assert response.status_code == 422
        assert client.get(f"{API}/queue/cafe-a").json()["totalQueueSize"] == 0

    def test_party_size_limit_matches_service(self, client: TestClient, queue_service):
        limit = settings.max_party_size
        assert queue_service.max_party_size == limit
        assert _join(client, "cafe-a", "u1", party_size=limit).status_code == 200
        assert _join(client, "cafe-a", "u2", party_size=limit + 1).status_code == 422

    def test_join_rejects_missing_identifiers(self, client: TestClient, queue_store):
        assert client.post(f"{API}/queue/join", json={"restaurantId": "cafe-a"}).status_code == 422
        assert client.post(f"{API}/queue/join", json={"userId": "u1"}).status_code == 422
        assert client.post(f"{API}/queue/join", json={"restaurantId": "", "userId": "u1"}).status_code == 422
        assert len(queue_store) == 0

    def test_blank_identifier_is_bad_request(self, client: TestClient, queue_store):
        response = client.post(f"{API}/queue/join", json={"restaurantId": "cafe-a", "userId": "  "})
        assert response.status_code == 400
        assert "userId" in response.json()["detail"]
        assert len(queue_store) == 0

    def test_leave_absent_participant(self, client: TestClient):
        response = client.post(f"{API}/queue/leave", json={"restaurantId": "cafe-a", "userId": "ghost"})
        assert response.status_code == 200
        assert response.json() == {"success": True}

    def test_yellow_after_six_joins(self, client: TestClient):
        for i in range(6):
            _join(client, "jahayeon", f"u{i}")
        data = client.get(f"{API}/queue/jahayeon").json()
        assert data["totalQueueSize"] == 6
        assert data["currentStatus"] == "YELLOW"
        assert data["estimatedWaitTimeMinutes"] == 9


class TestServiceEndpoints:

    def test_health(self, client: TestClient):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_metrics_include_queue_gauges(self, client: TestClient):
        _join(client, "cafe-a", "u1")
        client.get(f"{API}/queue/cafe-a")
        body = client.get("/metrics").text
        assert 'queue_size{establishment="cafe-a"} 1' in body
        assert 'queue_current_number{establishment="cafe-a"} 100' in body
        assert 'http_requests_total{method="GET",path="/api/queue/:id"} 1' in body
        assert 'http_requests_total{method="POST",path="/api/queue/join"} 1' in body

    def test_metrics_report_menu_cache(self, client: TestClient):
        body = client.get("/metrics").text
        assert 'menu_cache_keys{state="valid"} 0' in body
        assert 'menu_cache_keys{state="expired"} 0' in body

    def test_establishment_ids_cannot_forge_metric_lines(self, client: TestClient):
        assert client.get(f"{API}/queue/a%22%7D%0Ax").status_code == 200
        client.get(f"{API}/queue/evil%22%7D%20999%0Afake_metric%7Bx%3D%221")

        body = client.get("/metrics").text

        assert 'queue_size{establishment="a\\"}\\nx"} 0' in body
        assert "\nfake_metric" not in body
        for line in body.splitlines():
            assert line.startswith(("#", "http_", "queue_", "menu_cache_")), line
        assert sum(1 for line in body.splitlines() if line.startswith("queue_size{")) == 2


class TestMetricsCollector:

    def test_escape_label(self):
        assert MetricsCollector.escape_label('a"b') == 'a\\"b'
        assert MetricsCollector.escape_label("a\\b") == "a\\\\b"
        assert MetricsCollector.escape_label("a\nb") == "a\\nb"
        assert MetricsCollector.escape_label("cafe-a") == "cafe-a"

    def test_unrouted_paths_are_escaped(self):
        collector = MetricsCollector()
        collector.record_request("GET", '/x"/y\n', 404, 0.01)
        body = collector.get_prometheus_metrics()
        assert 'http_requests_total{method="GET",path="/x\\"/y\\n"} 1' in body

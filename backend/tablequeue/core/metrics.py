"""Prometheus-compatible metrics for application monitoring."""

import re
import time
import logging
from typing import TYPE_CHECKING, Dict, List, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

if TYPE_CHECKING:
    from tablequeue.core.cache import SimpleCache
    from tablequeue.services.queue_store import QueueStore

logger = logging.getLogger(__name__)

# Establishment ids are free-form slugs, so collapse them the way numeric ids
# would be collapsed. /queue/join and /queue/leave keep their names.
_ID_SEGMENTS = [
    (re.compile(r"/queue/(?!join$|leave$)[^/]+$"), "/queue/:id"),
    (re.compile(r"/menus/[^/]+$"), "/menus/:id"),
]


class MetricsCollector:
    """Collects HTTP request metrics in Prometheus exposition format."""

    def __init__(self):
        self.request_count: Dict[str, int] = {}
        self.request_duration: Dict[str, List[float]] = {}
        self.error_count: Dict[int, int] = {}
        self.active_requests: int = 0

    def record_request(self, method: str, path: str, status: int, duration: float):
        normalized = self._normalize_path(path)
        key = f"{method} {normalized}"
        self.request_count[key] = self.request_count.get(key, 0) + 1
        durations = self.request_duration.setdefault(key, [])
        durations.append(duration)
        if len(durations) > 1000:
            self.request_duration[key] = durations[-1000:]
        if status >= 400:
            self.error_count[status] = self.error_count.get(status, 0) + 1

    @staticmethod
    def _normalize_path(path: str) -> str:
        for pattern, replacement in _ID_SEGMENTS:
            path = pattern.sub(replacement, path)
        return path

    @staticmethod
    def escape_label(value: str) -> str:
        """Escape a label value for the Prometheus text format."""
        return value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")

    def reset(self):
        self.request_count.clear()
        self.request_duration.clear()
        self.error_count.clear()
        self.active_requests = 0

    def get_prometheus_metrics(
        self,
        store: Optional["QueueStore"] = None,
        menu_cache: Optional["SimpleCache"] = None,
    ) -> str:
        lines: List[str] = []
        lines.append("# HELP http_requests_total Total HTTP requests")
        lines.append("# TYPE http_requests_total counter")
        for key, count in sorted(self.request_count.items()):
            method, path = key.split(" ", 1)
            path = self.escape_label(path)
            lines.append(f'http_requests_total{{method="{method}",path="{path}"}} {count}')

        lines.append("# HELP http_errors_total Total HTTP errors by status code")
        lines.append("# TYPE http_errors_total counter")
        for code, count in sorted(self.error_count.items()):
            lines.append(f'http_errors_total{{status="{code}"}} {count}')

        lines.append("# HELP http_active_requests Current active requests")
        lines.append("# TYPE http_active_requests gauge")
        lines.append(f"http_active_requests {self.active_requests}")

        lines.append("# HELP http_request_duration_seconds Request duration summary")
        lines.append("# TYPE http_request_duration_seconds summary")
        for key, durations in sorted(self.request_duration.items()):
            if durations:
                method, path = key.split(" ", 1)
                path = self.escape_label(path)
                avg = sum(durations) / len(durations)
                p99 = sorted(durations)[int(len(durations) * 0.99)] if len(durations) > 1 else durations[0]
                lines.append(f'http_request_duration_seconds{{method="{method}",path="{path}",quantile="0.99"}} {p99:.4f}')
                lines.append(f'http_request_duration_seconds{{method="{method}",path="{path}",quantile="0.5"}} {avg:.4f}')

        if store is not None:
            lines.extend(self._queue_lines(store))

        if menu_cache is not None:
            stats = menu_cache.stats()
            lines.append("# HELP menu_cache_keys Scraped menus held in the cache")
            lines.append("# TYPE menu_cache_keys gauge")
            lines.append(f'menu_cache_keys{{state="valid"}} {stats["valid_keys"]}')
            lines.append(f'menu_cache_keys{{state="expired"}} {stats["expired_keys"]}')

        return "\n".join(lines) + "\n"

    @staticmethod
    def _queue_lines(store: "QueueStore") -> List[str]:
        sizes, current, served = [], [], []
        for establishment_id in store.establishment_ids():
            with store.exclusive(establishment_id) as queue:
                label = f'establishment="{MetricsCollector.escape_label(establishment_id)}"'
                sizes.append(f"queue_size{{{label}}} {len(queue.items)}")
                current.append(f"queue_current_number{{{label}}} {queue.current_number}")
                served.append(f"queue_served_total{{{label}}} {queue.served_count}")

        lines = ["# HELP queue_size Parties currently waiting", "# TYPE queue_size gauge"]
        lines.extend(sizes)
        lines += ["# HELP queue_current_number Last ticket number served", "# TYPE queue_current_number gauge"]
        lines.extend(current)
        lines += ["# HELP queue_served_total Parties served by the advancer", "# TYPE queue_served_total counter"]
        lines.extend(served)
        return lines


metrics = MetricsCollector()


class MetricsMiddleware(BaseHTTPMiddleware):
    """Middleware that records request metrics."""

    async def dispatch(self, request: Request, call_next):
        if request.url.path == "/metrics":
            return await call_next(request)

        metrics.active_requests += 1
        start = time.time()
        try:
            response = await call_next(request)
            metrics.record_request(
                request.method,
                request.url.path,
                response.status_code,
                time.time() - start,
            )
            return response
        except Exception:
            metrics.record_request(request.method, request.url.path, 500, time.time() - start)
            raise
        finally:
            metrics.active_requests -= 1

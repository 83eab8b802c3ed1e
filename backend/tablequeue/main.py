"""FastAPI application entry point."""

import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.middleware.base import BaseHTTPMiddleware

from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from tablequeue import __version__
from tablequeue.api.routes import api_router
from tablequeue.core.config import settings
from tablequeue.core.exceptions import InvalidRequestError
from tablequeue.core.metrics import MetricsMiddleware, metrics
from tablequeue.core.rate_limit import limiter
from tablequeue.services.menu_service import MenuService
from tablequeue.services.queue_advancer import QueueAdvancer
from tablequeue.services.queue_service import QueueService
from tablequeue.services.queue_store import QueueStore

# Configure logging - use JSON format in production, human-readable in dev
root_logger = logging.getLogger()
root_logger.setLevel(getattr(logging, settings.log_level))
root_logger.handlers.clear()

if settings.debug:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
else:
    import json as _json

    class JSONFormatter(logging.Formatter):
        def format(self, record):
            return _json.dumps({
                "ts": self.formatTime(record, self.datefmt),
                "level": record.levelname,
                "logger": record.name,
                "msg": record.getMessage(),
                "module": record.module,
                "line": record.lineno,
            })

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())

root_logger.addHandler(handler)
logger = logging.getLogger(__name__)
request_logger = logging.getLogger("requests")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for logging all HTTP requests and responses."""

    async def dispatch(self, request: Request, call_next):
        import time

        # Skip health checks and scrapes
        if request.url.path in ["/health", "/metrics", "/", "/docs", "/openapi.json"]:
            return await call_next(request)

        start_time = time.time()
        client_ip = request.client.host if request.client else "unknown"

        try:
            response = await call_next(request)
        except Exception as e:
            request_logger.error(
                f"Error: {request.method} {request.url.path} - "
                f"Exception: {str(e)} - Time: {time.time() - start_time:.3f}s - Client: {client_ip}"
            )
            raise

        # Clients poll every few seconds; successful polls stay at DEBUG
        if response.status_code >= 400:
            log_level = logging.WARNING
        elif request.method == "GET":
            log_level = logging.DEBUG
        else:
            log_level = logging.INFO
        request_logger.log(
            log_level,
            f"{request.method} {request.url.path} - "
            f"Status: {response.status_code} - Time: {time.time() - start_time:.3f}s - Client: {client_ip}"
        )
        return response


def build_queue_store() -> QueueStore:
    return QueueStore(seed_min=settings.queue_seed_min, seed_max=settings.queue_seed_max)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("Starting Table Queue service")

    store = build_queue_store()
    app.state.queue_store = store
    app.state.queue_service = QueueService(
        store,
        minutes_per_party=settings.wait_minutes_per_party,
        max_party_size=settings.max_party_size,
    )
    app.state.menu_service = MenuService(
        settings.menu_source_url,
        cache_seconds=settings.menu_cache_seconds,
        timeout=settings.menu_fetch_timeout,
    )

    advancer = QueueAdvancer(
        store,
        interval_seconds=settings.advance_interval_seconds,
        probability=settings.advance_probability,
    )
    app.state.queue_advancer = advancer
    if settings.advancer_enabled:
        advancer.start()
    else:
        logger.info("Queue advancer disabled")

    yield

    await advancer.stop()
    logger.info("Shutting down Table Queue service")


app = FastAPI(
    title="Table Queue",
    description="Virtual waiting-list service for campus dining halls",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

# Rate limiting setup
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(InvalidRequestError)
async def invalid_request_handler(request: Request, exc: InvalidRequestError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


# Metrics middleware (Prometheus-compatible)
app.add_middleware(MetricsMiddleware)

# Request logging middleware
app.add_middleware(RequestLoggingMiddleware)

# CORS middleware - added last so it runs first (Starlette LIFO order)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Accept", "Origin", "X-Requested-With"],
    max_age=600,
)

app.include_router(api_router, prefix=settings.api_prefix)


@app.get("/health")
def health_check():
    """Basic liveness check endpoint."""
    return {"status": "healthy", "version": __version__}


@app.get("/metrics")
def prometheus_metrics(request: Request):
    """Prometheus-compatible metrics endpoint."""
    store = getattr(request.app.state, "queue_store", None)
    menu_service = getattr(request.app.state, "menu_service", None)
    menu_cache = menu_service.cache if menu_service is not None else None
    return PlainTextResponse(metrics.get_prometheus_metrics(store, menu_cache), media_type="text/plain")


def run():
    """Console entry point: serve the API with uvicorn."""
    import uvicorn

    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    run()

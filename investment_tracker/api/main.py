"""FastAPI application factory"""

import asyncio
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from investment_tracker.api.middleware import RequestIDMiddleware, MetricsMiddleware
from investment_tracker.api.v1 import investments, objective, prediction, rates
from investment_tracker.infrastructure.clients.ollama import OllamaClient
from investment_tracker.infrastructure.clients.rates import RateClient
from investment_tracker.infrastructure.database.repositories import StateRepository
from investment_tracker.infrastructure.database.session import make_session_factory
from investment_tracker.infrastructure.observability.logging import setup_logging
from investment_tracker.services.tracker import PortfolioTracker
from investment_tracker.config import settings

# Setup structured logging
setup_logging(settings.log_level)

logger = logging.getLogger(__name__)


def build_tracker() -> PortfolioTracker:
    """Wire the tracker to the configured database, rate source and model"""
    repository = StateRepository(make_session_factory(settings.database_url))
    tracker = PortfolioTracker(
        forecast_client=OllamaClient(),
        repository=repository,
        rate_client=RateClient(),
    )
    tracker.load()
    return tracker


async def refresh_rates_periodically(tracker: PortfolioTracker, interval_seconds: float) -> None:
    """Refresh exchange rates now and then on a fixed interval"""
    while True:
        try:
            await tracker.refresh_rates()
        except Exception:
            logger.exception("Exchange rate refresh crashed")
        await asyncio.sleep(interval_seconds)


@asynccontextmanager
async def lifespan(app: FastAPI):
    task = None
    if settings.rates_refresh_enabled:
        task = asyncio.create_task(
            refresh_rates_periodically(app.state.tracker, settings.rates_refresh_interval_seconds)
        )
    yield
    if task is not None:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass


def create_app(tracker: PortfolioTracker | None = None) -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Investment Tracker",
        description="Multi-currency investment ledger with goal progress and time-to-goal forecasts",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.tracker = tracker if tracker is not None else build_tracker()

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # Malformed payloads are client errors, reported like domain validation failures
    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"detail": "Invalid payload", "errors": jsonable_encoder(exc.errors())})

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(investments.router, prefix="/api", tags=["investments"])
    app.include_router(objective.router, prefix="/api", tags=["objective"])
    app.include_router(rates.router, prefix="/api", tags=["rates"])
    app.include_router(prediction.router, prefix="/api", tags=["prediction"])

    return app


app = create_app()

"""Lunax API — FastAPI application entry point.

Run locally:
    uvicorn src.main:app --reload --port 8000
"""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.config import get_settings
from src.cycles.config_loader import get_prediction_config
from src.cycles.engine import CycleEngine
from src.cycles.ports import CycleEngineError
from src.cycles.stores import PgObservationStore, PgPredictionLog, PgStatsRepository
from src.middleware.clerk_auth import ClerkAuthMiddleware
from src.middleware.security import SecurityHeadersMiddleware
from src.routers import dashboard, health, periods, predictions
from src.services.database import close_pool, init_pool

# ---------- Logging ----------

logging.basicConfig(
    level=get_settings().log_level.upper(),
    format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    stream=sys.stdout,
)
logger = logging.getLogger("lunax")


# ---------- Lifespan ----------

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup / shutdown hooks."""
    settings = get_settings()
    logger.info(
        "Starting Lunax API v%s [%s]",
        settings.app_version,
        settings.environment,
    )
    await init_pool(settings)
    app.state.cycle_engine = CycleEngine(
        observations=PgObservationStore(),
        stats=PgStatsRepository(),
        prediction_log=PgPredictionLog(),
        config=get_prediction_config(),
    )
    yield
    await close_pool()
    logger.info("Lunax API shut down")


# ---------- Error handlers ----------

async def cycle_engine_error_handler(request: Request, exc: CycleEngineError) -> JSONResponse:
    """Storage failures behind the cycle engine surface as 503."""
    logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=503,
        content={"detail": "Cycle data is temporarily unavailable"},
    )


# ---------- App factory ----------

def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title="Lunax API",
        description=(
            "Menstrual cycle logging, cycle statistics, and next-period "
            "forecasts with accuracy estimates."
        ),
        version=settings.app_version,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.add_exception_handler(CycleEngineError, cycle_engine_error_handler)

    # ---------- Middleware (the last one added runs outermost) ----------

    # Security headers on every response
    app.add_middleware(SecurityHeadersMiddleware)

    # Clerk JWT authentication
    app.add_middleware(ClerkAuthMiddleware, settings=settings)

    # CORS wraps auth so preflight requests and 401s carry CORS headers
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ---------- Health check (outside v1 prefix, always at /health) ----------
    app.include_router(health.router)

    # ---------- API v1 routes ----------
    v1_prefix = "/api/v1"

    app.include_router(periods.router, prefix=v1_prefix)
    app.include_router(predictions.router, prefix=v1_prefix)
    app.include_router(dashboard.router, prefix=v1_prefix)

    return app


app = create_app()

"""
FastAPI application entry point.

Run with any ASGI server, e.g. ``uvicorn greenhouse_irrigation.main:app``.
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from greenhouse_irrigation.config import settings
from greenhouse_irrigation.middleware.error_handler import ErrorHandlerMiddleware
from greenhouse_irrigation.api.dependencies import limiter
from greenhouse_irrigation.api.v1.routers import networks
from greenhouse_irrigation.infrastructure.water_engine_client import close_water_client

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

API_DESCRIPTION = """
Irrigation Network Geometry & Flow Analysis API

Send the shapes and irrigation elements drawn on a greenhouse canvas and get
back the quantities needed to build and size the network.

## Features

- **Plot Association**: which plot each pipe, sprinkler and drip line serves
- **Flow Aggregation**: emitter flow propagated through sub-pipes to main pipes
- **Critical Runs**: longest main and sub runs for pipe sizing
- **Fitting Counts**: 2-/3-/4-way fittings on main pipes and sub-pipes
- **Water Requirements**: optional per-plot figures from the Water Requirement Engine

## Canvas Scale

Coordinates are canvas pixels with 25 px = 1 m. Lengths are reported in
meters, areas in square meters and flows in liters per minute.
"""


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Log the effective configuration on startup and release the engine client on shutdown."""
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Emitter flow: sprinkler={settings.sprinkler_flow_rate} L/min, "
                f"drip={settings.drip_emitter_flow_rate} L/min")
    logger.info(f"Tolerances: attach={settings.attach_tolerance_px}px, "
                f"main connection={settings.main_connection_tolerance_px}px, "
                f"cluster={settings.station_cluster_tolerance_px}px")
    logger.info(f"Water Requirement Engine at {settings.water_engine_base_url}")

    yield

    await close_water_client()
    logger.info("Water Requirement Engine client closed")


def create_app() -> FastAPI:
    """
    Build the FastAPI application.

    Returns:
        App with rate limiting, CORS, error handling and the v1 routers
    """
    application = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description=API_DESCRIPTION,
        debug=settings.debug,
        lifespan=lifespan,
    )

    application.state.limiter = limiter
    application.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    application.add_middleware(ErrorHandlerMiddleware)

    application.include_router(networks.router, prefix="/api/v1")

    @application.get("/", tags=["health"])
    async def root():
        return {
            "status": "healthy",
            "service": settings.app_name,
            "version": settings.app_version,
        }

    @application.get("/health", tags=["health"])
    async def health_check():
        return {
            "status": "healthy",
            "service": settings.app_name,
        }

    return application


app = create_app()

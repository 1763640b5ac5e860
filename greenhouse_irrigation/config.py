"""
Application configuration using Pydantic settings.

Every field can be overridden from the environment (or a .env file) with
the ``GREENHOUSE_`` prefix, e.g. ``GREENHOUSE_ATTACH_TOLERANCE_PX=15``.
"""
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Analysis defaults, Water Requirement Engine access and service options."""

    # Emitter flow rates (L/min)
    sprinkler_flow_rate: float = Field(
        default=10.0,
        ge=0,
        description="Flow rate of a single sprinkler in liters per minute"
    )
    drip_emitter_flow_rate: float = Field(
        default=0.24,
        ge=0,
        description="Flow rate of a single drip emitter in liters per minute"
    )

    # Proximity tolerances (canvas pixels, 25 px = 1 m)
    plot_edge_tolerance_px: float = Field(
        default=20.0,
        ge=0,
        description="Distance from a plot boundary at which a sub-pipe still serves the plot"
    )
    sprinkler_reach_px: float = Field(
        default=30.0,
        ge=0,
        description="Distance from a serving sub-pipe at which a sprinkler belongs to the plot"
    )
    main_connection_tolerance_px: float = Field(
        default=50.0,
        ge=0,
        description="Maximum gap between a sub-pipe start and the main pipe it connects to"
    )
    attach_tolerance_px: float = Field(
        default=12.0,
        ge=0,
        description="Distance at which an emitter or pipe end is attached to a pipe"
    )
    longest_tie_tolerance_px: float = Field(
        default=20.0,
        ge=0,
        description="Sub-pipes within this length of the longest one are treated as tied"
    )
    station_cluster_tolerance_px: float = Field(
        default=8.0,
        ge=0,
        description="Stations closer than this along a sub-pipe share one fitting"
    )
    elbow_angle_threshold_deg: float = Field(
        default=18.0,
        ge=0,
        le=180,
        description="Minimum bend away from straight for a main-pipe vertex to need an elbow"
    )
    plot_row_band_px: float = Field(
        default=50.0,
        ge=0,
        description="Plots whose centroid Y differs by less than this are ordered by X"
    )

    # Water Requirement Engine
    water_engine_base_url: str = Field(
        default="http://localhost:8100",
        description="Base URL of the external Water Requirement Engine"
    )
    water_engine_api_key: str = Field(
        default="",
        description="Bearer token for the Water Requirement Engine (sent only when set)"
    )
    water_engine_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Request timeout in seconds for the Water Requirement Engine"
    )

    # Water engine retries (5xx and transport errors)
    max_retry_attempts: int = Field(
        default=3,
        ge=1,
        description="Total attempts per Water Requirement Engine call, including the first"
    )
    retry_backoff_multiplier: int = Field(
        default=1,
        description="Exponential backoff multiplier between water engine attempts"
    )
    retry_min_wait: int = Field(
        default=4,
        description="Shortest wait in seconds before retrying the water engine"
    )
    retry_max_wait: int = Field(
        default=10,
        description="Longest wait in seconds before retrying the water engine"
    )

    # Service
    log_level: str = Field(
        default="INFO",
        description="Root log level for the service"
    )
    cors_origins: list[str] = Field(
        default=["*"],
        description="Origins allowed to call the API from a browser canvas"
    )
    rate_limit_requests: int = Field(
        default=100,
        description="Analysis requests allowed per client per minute"
    )
    app_name: str = Field(
        default="Greenhouse Irrigation Network Analysis",
        description="Service name reported by the health endpoints"
    )
    app_version: str = Field(
        default="1.0.0",
        description="Service version reported by the health endpoints"
    )
    debug: bool = Field(
        default=False,
        description="Enable FastAPI debug mode"
    )

    class Config:
        env_prefix = "GREENHOUSE_"
        env_file = ".env"
        case_sensitive = False


# Global settings instance
settings = Settings()

"""Application configuration and settings management."""

from typing import Any, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="PLANNER_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Incremental Route Planner API"
    api_prefix: str = "/api"
    log_level: str = Field(default="INFO", description="Root logging level.")
    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    # PTV Developer services
    ptv_api_key: Optional[str] = Field(
        default=None,
        description="API key sent in the apiKey header to the optimization and geocoding services.",
    )
    optimization_base_url: str = Field(
        default="https://api.myptv.com/routeoptimization/optiflow/v1",
        description="Base URL of the route optimization service.",
    )
    geocoding_base_url: str = Field(
        default="https://api.myptv.com/geocoding/v1",
        description="Base URL of the reverse geocoding service.",
    )
    request_timeout_seconds: float = Field(default=30.0, gt=0.0)

    # Stop catalog
    max_stops: int = Field(default=20, ge=1, description="Maximum number of stops, depot included.")

    # Fleet and cost parameters
    vehicles_per_depot: int = Field(default=1, ge=1)
    vehicle_cost_per_hour: float = Field(default=2.0, ge=0.0)
    vehicle_cost_per_kilometer: float = Field(default=20.0, ge=0.0)
    vehicle_fixed_cost: float = Field(default=0.0, ge=0.0)
    service_duration_seconds: int = Field(default=300, ge=0)
    optimization_duration_seconds: int = Field(default=30, ge=1)
    operating_days: int = Field(default=3, ge=1, description="Length of the vehicles' operating window.")
    routing_profile: str = Field(default="EUR_CAR")

    # Job polling
    poll_interval_seconds: float = Field(default=1.0, gt=0.0)
    poll_timeout_seconds: Optional[float] = Field(
        default=None,
        gt=0.0,
        description="Give up polling after this many seconds. Unset means poll until a terminal status.",
    )
    stop_when_fully_scheduled: bool = Field(
        default=False,
        description="Ask the service to stop early once no stop is left unscheduled.",
    )

    @field_validator("frontend_allowed_origins", mode="before")
    @classmethod
    def _parse_str_tuple_from_env(cls, value: Any) -> tuple[str, ...]:
        """Parse string tuple from environment variable (comma-separated or JSON array)."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(str(item) for item in value)
        if isinstance(value, str):
            # Try JSON first
            try:
                parsed = json.loads(value)
                if isinstance(parsed, list):
                    return tuple(str(item) for item in parsed)
            except (json.JSONDecodeError, TypeError):
                pass
            if "," in value:
                return tuple(item.strip() for item in value.split(",") if item.strip())
            if value.strip():
                return (value.strip(),)
        return tuple()


settings = Settings()

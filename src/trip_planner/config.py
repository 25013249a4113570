"""Application configuration and settings management."""

from typing import Any, Literal, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="TRIP_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Cycling Trip Planner API"
    api_prefix: str = "/api"
    log_level: str = Field(default="INFO", description="Root log level for the API process.")
    osrm_base_url: Optional[str] = Field(
        default=None,
        description="Base URL for the OSRM routing service (e.g., http://localhost:5000).",
    )
    osrm_profile: Literal["cycling", "bike", "foot", "driving"] = Field(
        default="cycling",
        description="OSRM profile used for connector distances and geometry.",
    )
    osrm_max_retries: int = Field(default=3, ge=0)
    osrm_backoff_seconds: float = Field(default=1.0, ge=0.0)
    strava_api_url: str = Field(default="https://www.strava.com/api/v3")
    strava_access_token: Optional[str] = Field(
        default=None,
        description="Bearer token used to read segment metadata from Strava.",
    )
    strava_max_retries: int = Field(default=2, ge=0)
    max_segments: int = Field(default=10, ge=1)
    bruteforce_max_segments: int = Field(default=8, ge=1)
    max_matrix_waypoints: int = Field(default=25, ge=2)
    max_trip_days: int = Field(default=14, ge=1)
    average_speed_kmh: float = Field(default=25.0, gt=0.0)
    solver_use_ortools: bool = Field(default=True)
    solver_first_solution_strategy: str = Field(default="PATH_CHEAPEST_ARC")
    solver_local_search_metaheuristic: str = Field(default="GUIDED_LOCAL_SEARCH")
    solver_time_limit_seconds: int = Field(default=30, ge=1)
    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ),
        description="Permitted web origins for browser clients (CORS).",
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

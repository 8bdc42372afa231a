"""Application configuration and settings management."""

from pathlib import Path
from typing import Any, Literal, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _resolve_path(value: Any) -> Path:
    path_value = value if isinstance(value, Path) else Path(str(value))
    return path_value.expanduser().resolve()


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="AQUAROUTE_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "AquaRoute Optimization API"
    api_prefix: str = "/api"
    data_root: Path = Field(default=Path("data"), description="Root directory for stored routes and candidate files.")
    candidate_file: Optional[Path] = Field(
        default=None,
        description="JSON or CSV file with reportable water points (used when Supabase is not configured).",
    )
    optimizer_base_url: Optional[str] = Field(
        default=None,
        description="Base URL for the route optimization service (e.g., http://localhost:8000).",
    )
    optimizer_endpoint: str = Field(default="/optimize-route-genetic")
    optimizer_fallback_endpoints: tuple[str, ...] = Field(
        default=("/optimize-route-advanced", "/find-nearest-points"),
        description="Endpoints tried in order when the primary optimizer endpoint fails.",
    )
    optimizer_health_endpoint: str = Field(default="/health")
    # Network budget for one optimize call; kept above the algorithm-side time limit.
    optimizer_timeout_seconds: float = Field(default=90.0, gt=0.0)
    # Added to the algorithm time limit when that limit exceeds the network budget.
    optimizer_timeout_margin_seconds: float = Field(default=30.0, ge=0.0)
    optimizer_connect_timeout_seconds: float = Field(default=10.0, gt=0.0)
    health_timeout_seconds: float = Field(default=10.0, gt=0.0)
    optimizer_max_retries: int = Field(default=1, ge=0)
    optimizer_backoff_seconds: float = Field(default=1.0, ge=0.0)
    default_time_limit_seconds: float = Field(default=60.0, gt=0.0)
    default_convergence_threshold: int = Field(default=15, ge=1)
    default_preset: Literal["fast", "balanced", "quality"] = Field(default="balanced")
    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    # Supabase configuration
    supabase_url: Optional[str] = Field(
        default=None,
        description="Supabase project URL (e.g., https://xxx.supabase.co).",
    )
    supabase_key: Optional[str] = Field(
        default=None,
        description="Supabase service role key for backend operations.",
    )
    routes_table: str = Field(default="routes")
    reports_table: str = Field(default="reports")

    @field_validator("data_root", mode="before")
    @classmethod
    def _expand_data_root(cls, value: Any) -> Path:
        if value is None or value == "":
            return _resolve_path(Path("data"))
        return _resolve_path(value)

    @field_validator("candidate_file", mode="before")
    @classmethod
    def _expand_path(cls, value: Any) -> Optional[Path]:
        if value is None or value == "":
            return None
        return _resolve_path(value)

    @field_validator("frontend_allowed_origins", "optimizer_fallback_endpoints", mode="before")
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

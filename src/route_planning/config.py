"""Application configuration and settings management."""

from datetime import time
from typing import Any, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="ROUTE_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Route Schedule Engine"
    api_prefix: str = "/api"
    day_start: time = Field(
        default=time(9, 0),
        description="Clock time at which the first visit of the day starts.",
    )
    default_visit_minutes: int = Field(default=120, ge=1)
    average_speed_mph: float = Field(
        default=31.0,
        gt=0.0,
        description="Assumed average driving speed used by the straight-line travel estimate.",
    )
    travel_buffer_minutes: int = Field(
        default=10,
        ge=0,
        description="Fixed minutes added to every travel estimate (parking, walking, traffic lights).",
    )
    arrive_home_event_minutes: int = Field(default=5, ge=0)
    first_stop_uses_day_start: bool = Field(
        default=True,
        description="When enabled the first stop always starts at day_start and ignores a saved visit time.",
    )
    validate_time_ranges: bool = Field(
        default=False,
        description="Reject edits whose end precedes their start.",
    )
    frontend_allowed_origins: tuple[str, ...] = Field(
        default=("http://localhost:3000", "http://127.0.0.1:3000"),
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
    visit_times_table: str = "fa_route_visit_times"
    operational_items_table: str = "fa_route_operational_items"

    # Calendar export
    ics_product_id: str = "-//Route Planning//Schedule Export//EN"
    ics_uid_domain: str = "route-planning.local"

    @field_validator("day_start", mode="before")
    @classmethod
    def _parse_clock(cls, value: Any) -> time:
        if isinstance(value, time):
            return value
        return time.fromisoformat(str(value).strip())

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

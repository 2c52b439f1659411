"""Application configuration and settings management."""

from typing import Any, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="NEARBY_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Nearby Order Batching API"
    api_prefix: str = "/api"

    # Merchant backend endpoints. Templates may carry a {business_id},
    # {businessId}, :business_id or :businessId placeholder.
    order_endpoint: Optional[str] = Field(
        default=None,
        description="Grouped orders endpoint template (e.g., https://host/orders/business/{business_id}/grouped).",
    )
    business_details_endpoint: Optional[str] = Field(
        default=None,
        description="Merchant business details endpoint template.",
    )
    group_nearby_order_endpoint: Optional[str] = Field(
        default=None,
        description="Endpoint that creates a delivery batch from grouped orders.",
    )
    backend_token: Optional[str] = Field(
        default=None,
        description="Bearer token forwarded to the merchant backend.",
    )
    backend_timeout_seconds: float = Field(default=15.0, gt=0.0)
    backend_max_retries: int = Field(default=2, ge=0)
    backend_backoff_seconds: float = Field(default=0.5, ge=0.0)

    default_radius_km: float = Field(
        default=5.0,
        gt=0.0,
        description="Clustering radius used when a request does not supply a positive one.",
    )
    cluster_workers: int = Field(
        default=1,
        ge=1,
        description="Threads used to link grid buckets; 1 keeps bucket processing sequential.",
    )
    default_owner_type: str = Field(default="mart")
    label_ban_words: tuple[str, ...] = Field(
        default=("bhutan",),
        description="Address tokens never used as cluster labels (country names and similar).",
    )
    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:8081",
            "http://127.0.0.1:8081",
            "http://localhost:19006",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    @field_validator("frontend_allowed_origins", "label_ban_words", mode="before")
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
            # Try comma-separated
            if "," in value:
                return tuple(item.strip() for item in value.split(",") if item.strip())
            # Single value
            if value.strip():
                return (value.strip(),)
        # Return empty tuple if value is None or empty
        return tuple()


settings = Settings()

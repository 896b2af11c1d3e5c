"""
Configuration for the marketplace API.

Uses pydantic-settings for environment variable loading (MARKETPLACE_ prefix).
"""

from decimal import Decimal
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """API configuration loaded from environment."""

    # Store backend
    store_backend: Literal["memory", "rest"] = Field(default="memory", description="Data store backend")
    store_url: Optional[str] = Field(default=None, description="Hosted database / auth base URL")
    store_service_key: Optional[str] = Field(default=None, description="Service-role key for the hosted backend")
    store_timeout: float = Field(default=10.0, description="Per-request timeout in seconds")

    # Provisioning defaults
    commission_bps: int = Field(default=1500, description="Restaurant commission in basis points")
    default_vehicle_type: str = Field(default="motocicleta", description="Vehicle type when none is given")

    # Ledger
    default_page_size: int = Field(default=20, description="Default transactions per page")
    max_page_size: int = Field(default=100, description="Maximum transactions per page")
    zero_sum_tolerance: Decimal = Field(default=Decimal("1"), description="Allowed drift of the system total")
    transaction_tie_break: Optional[str] = Field(
        default=None,
        description="Secondary sort field for transactions sharing a timestamp; store order when unset",
    )

    root_path: str = Field(default="", description="Mount prefix behind a serverless proxy, e.g. /api")
    log_level: str = Field(default="INFO", description="Root log level")
    cors_origins: list[str] = Field(default=["http://localhost:3000"], description="Allowed CORS origins")

    model_config = {"env_prefix": "MARKETPLACE_"}

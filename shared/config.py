"""
Shared configuration management for the PS Validation service.
"""

from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="VALIDATION_",
        case_sensitive=False,
        extra="ignore"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Rule enablement snapshot used when a request does not carry its own list;
    # unset means the catalog's enabled descriptors
    enabled_rule_ids: Optional[List[str]] = Field(default=None)

    # Rule parameters
    model_count_limit: int = Field(default=100, ge=0)
    app_quantity_exempt_codes: List[str] = Field(
        default_factory=lambda: ["IC-DATABRIDGE", "RI-RISKMODELER-EXPANSION"]
    )
    package_name_exempt_codes: List[str] = Field(default_factory=list)
    gap_tolerance_days: int = Field(default=1, ge=1)

    # Batch validation
    max_batch_size: int = Field(default=1000, ge=1)


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int
    host: str = "0.0.0.0"

    def __init__(self, service_name: str, port: int, **kwargs):
        super().__init__(service_name=service_name, port=port, **kwargs)


def get_config(service_name: str, port: int, **overrides) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, port=port, **overrides)

"""Configuration management for the MenuTrail delivery sandbox.

This module provides centralized configuration using Pydantic Settings,
supporting environment-based configuration (dev, staging, production) and
the tunable constants of the DoorDash sandbox simulator.

All configuration is loaded from environment variables with the MENUTRAIL_
prefix. Nested settings use double underscore as delimiter
(e.g., MENUTRAIL_SANDBOX__BASE_FEE).

Example:
    export MENUTRAIL_ENVIRONMENT=dev
    export MENUTRAIL_SANDBOX__DASHER_NAME="Sam (Sandbox)"
"""

from __future__ import annotations

import hashlib
import json
import logging
from enum import Enum
from functools import cached_property
from typing import Annotated, Any, Self

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Environment(str, Enum):
    """Deployment environment.

    Affects default behaviors and validation strictness.
    Production environment has additional constraints.
    """

    DEV = "dev"
    STAGING = "staging"
    PRODUCTION = "production"


class SandboxSettings(BaseSettings):
    """Constants of the sandbox delivery simulator.

    The defaults mirror the values restaurant owners see in the dashboard's
    delivery test page, so changing them changes what the tracking UI shows.
    """

    model_config = SettingsConfigDict(
        env_prefix="MENUTRAIL_SANDBOX__",
        extra="ignore",
    )

    id_prefix: str = Field(
        default="sandbox",
        min_length=1,
        description="Prefix of generated delivery ids (sandbox-{orderId}-{ms})",
    )
    base_fee: Annotated[float, Field(ge=0)] = Field(
        default=5.99,
        description="Flat delivery fee charged for every simulated delivery",
    )
    distance_fee: Annotated[float, Field(ge=0)] = Field(
        default=2.50,
        description="Fixed distance surcharge added to the base fee",
    )
    currency: str = Field(
        default="USD",
        min_length=3,
        max_length=3,
        description="ISO 4217 currency code reported with quotes",
    )
    pickup_eta_minutes: Annotated[int, Field(ge=0)] = Field(
        default=15,
        description="Estimated pickup time, in minutes after creation",
    )
    delivery_eta_minutes: Annotated[int, Field(ge=0)] = Field(
        default=45,
        description="Estimated delivery time, in minutes after creation",
    )
    unparseable_id_age_minutes: Annotated[int, Field(ge=0)] = Field(
        default=10,
        description="Assumed age of a synthesized delivery whose id has no usable timestamp",
    )
    dasher_name: str = Field(
        default="Alex (Sandbox)",
        description="Courier name reported once a dasher is assigned",
    )
    dasher_phone: str = Field(
        default="+1 (555) 000-0000",
        description="Courier phone number reported once a dasher is assigned",
    )
    tracking_path: str = Field(
        default="/track",
        description="Path of the customer tracking page",
    )

    @field_validator("currency")
    @classmethod
    def normalize_currency(cls, v: str) -> str:
        """Currency codes are reported upper-case."""
        return v.upper()

    @field_validator("tracking_path")
    @classmethod
    def validate_tracking_path(cls, v: str) -> str:
        """Tracking URLs are site-relative paths, never external URLs."""
        if not v.startswith("/"):
            msg = "Tracking path must start with '/'"
            raise ValueError(msg)
        return v.rstrip("/") or "/"

    @model_validator(mode="after")
    def validate_eta_order(self) -> Self:
        """Delivery cannot be estimated before pickup."""
        if self.delivery_eta_minutes < self.pickup_eta_minutes:
            msg = (
                "delivery_eta_minutes must not be earlier than pickup_eta_minutes "
                f"(got {self.delivery_eta_minutes} < {self.pickup_eta_minutes})"
            )
            raise ValueError(msg)
        return self

    @property
    def total_fee(self) -> float:
        """Deterministic fee of every simulated delivery, rounded to cents."""
        return round(self.base_fee + self.distance_fee, 2)


class Settings(BaseSettings):
    """Main MenuTrail configuration container.

    Loads all configuration from environment variables with MENUTRAIL_ prefix.
    Nested settings use double underscore delimiter.

    Example environment variables:
        MENUTRAIL_ENVIRONMENT=staging
        MENUTRAIL_LOG_LEVEL=DEBUG
        MENUTRAIL_SANDBOX__BASE_FEE=4.99
    """

    model_config = SettingsConfigDict(
        env_prefix="MENUTRAIL_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        validate_default=True,
    )

    # Core settings
    environment: Environment = Field(
        default=Environment.DEV,
        description="Deployment environment (dev, staging, production)",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode (never in production)",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    sandbox: SandboxSettings = Field(default_factory=SandboxSettings)

    # API settings
    api_host: str = Field(
        default="127.0.0.1",
        description="API server bind address",
    )
    api_port: Annotated[int, Field(ge=1, le=65535)] = Field(
        default=8000,
        description="API server port",
    )

    # Application metadata
    app_name: str = Field(
        default="MenuTrail Delivery Sandbox",
        description="Application name for logging and API docs",
    )
    app_version: str = Field(
        default="0.1.0",
        description="Application version",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure the log level is one the logging module understands."""
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed:
            msg = f"Log level must be one of: {', '.join(sorted(allowed))}"
            raise ValueError(msg)
        return v.upper()

    @model_validator(mode="after")
    def validate_production_constraints(self) -> Self:
        """Enforce production environment constraints."""
        if self.environment == Environment.PRODUCTION and self.debug:
            msg = "Debug mode is not allowed in production environment"
            raise ValueError(msg)
        return self

    @cached_property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == Environment.DEV

    @cached_property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == Environment.PRODUCTION

    def get_config_snapshot(self) -> dict[str, Any]:
        """Generate a snapshot of the effective configuration for logging.

        Returns:
            Dictionary containing non-sensitive configuration values.
        """
        return {
            "environment": self.environment.value,
            "sandbox": {
                "id_prefix": self.sandbox.id_prefix,
                "fee": self.sandbox.total_fee,
                "currency": self.sandbox.currency,
                "pickup_eta_minutes": self.sandbox.pickup_eta_minutes,
                "delivery_eta_minutes": self.sandbox.delivery_eta_minutes,
            },
            "api": {
                "host": self.api_host,
                "port": self.api_port,
            },
            "app_version": self.app_version,
        }

    def get_config_hash(self) -> str:
        """Compute a hash of the configuration snapshot.

        Useful for detecting configuration changes between deployments.

        Returns:
            SHA-256 hex digest of the configuration snapshot.
        """
        snapshot = self.get_config_snapshot()
        # Sort keys for deterministic serialization
        snapshot_json = json.dumps(snapshot, sort_keys=True)
        return hashlib.sha256(snapshot_json.encode()).hexdigest()


class ConfigValidationError(Exception):
    """Raised when configuration validation fails.

    This exception should cause fast failure at startup to prevent
    running with invalid configuration.
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        """Initialize with error details.

        Args:
            message: Human-readable error description.
            field: Optional field name that failed validation.
        """
        self.message = message
        self.field = field
        super().__init__(message)


def validate_settings(settings: Settings) -> None:
    """Perform additional runtime validation of settings.

    This function performs validations that cannot be expressed
    declaratively in Pydantic models.

    Args:
        settings: Settings instance to validate.

    Raises:
        ConfigValidationError: If validation fails.
    """
    if not settings.sandbox.dasher_name.strip():
        raise ConfigValidationError(
            "Dasher name cannot be blank. Set MENUTRAIL_SANDBOX__DASHER_NAME.",
            field="sandbox.dasher_name",
        )

    logger.info(
        "Configuration validated. Config hash: %s",
        settings.get_config_hash(),
    )

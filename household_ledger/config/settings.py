"""
Configuration Management for Household Ledger

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see which knobs exist and ensures all
configuration is validated at startup.
"""

from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LedgerSettings(BaseSettings):
    """Ledger and balance engine configuration."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        extra="ignore"
    )

    low_money_warning_amount: Decimal = Field(
        default=Decimal("100"),
        gt=0,
        description="Balance under which the day is flagged as low on money"
    )
    adjustment_title: str = Field(
        default="Balance adjustment",
        min_length=1,
        max_length=200,
        description="Title given to the synthetic entry created by a balance adjustment"
    )
    max_adjustment_amount: Decimal = Field(
        default=Decimal("1000000000"),
        gt=0,
        description="Largest absolute target balance accepted by an adjustment"
    )
    amount_places: int = Field(
        default=2,
        ge=0,
        le=6,
        description="Decimal places amounts are rounded to"
    )


class EntitlementSettings(BaseSettings):
    """Premium entitlement and purchase provider configuration."""

    model_config = SettingsConfigDict(
        env_prefix="ENTITLEMENT_",
        extra="ignore"
    )

    premium_product_id: str = Field(
        default="premium",
        min_length=1,
        description="Product id that unlocks premium features"
    )
    product_type: str = Field(
        default="inapp",
        description="Provider product type queried for purchase history"
    )

    # Connection retry
    connect_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="How many times to try connecting to the provider before giving up"
    )
    connect_backoff_min: float = Field(
        default=0.5,
        ge=0.0,
        description="Minimum wait between connection attempts (seconds)"
    )
    connect_backoff_max: float = Field(
        default=8.0,
        ge=0.0,
        description="Maximum wait between connection attempts (seconds)"
    )
    provider_timeout_seconds: Optional[float] = Field(
        default=None,
        gt=0,
        description="Timeout for a single provider call. None waits forever"
    )

    # Where the last known status is kept
    preferences_path: Optional[str] = Field(
        default=None,
        description="JSON file holding persisted preferences. None keeps them in memory"
    )

    @field_validator('preferences_path')
    @classmethod
    def validate_preferences_path(cls, v: Optional[str]) -> Optional[str]:
        """Warn if the parent directory doesn't exist (it may be created later)."""
        if v is not None and not Path(v).parent.exists():
            import warnings
            warnings.warn(
                f"Preferences directory not found for {v}. "
                "It will be created on first write."
            )
        return v

    @model_validator(mode='after')
    def validate_backoff(self) -> 'EntitlementSettings':
        """Validate backoff bounds."""
        if self.connect_backoff_max < self.connect_backoff_min:
            raise ValueError("connect_backoff_max cannot be lower than connect_backoff_min")
        return self


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Minimum level written to the structured log"
    )


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()

    @property
    def entitlement(self) -> EntitlementSettings:
        return EntitlementSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    for name in ("ledger", "entitlement", "app"):
        try:
            _ = getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results

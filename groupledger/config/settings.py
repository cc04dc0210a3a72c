"""
Configuration Management for Group Ledger

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
The engine itself takes its tolerance as an argument; the flows read it
from these settings and pass it in, so the engine stays a pure function.
"""

from decimal import Decimal
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class EngineSettings(BaseSettings):
    """Balance and settlement engine parameters."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        extra="ignore"
    )

    settlement_tolerance: Decimal = Field(
        default=Decimal("0.01"),
        ge=0,
        description="Transfers at or below this amount are treated as settled"
    )
    zero_sum_tolerance: Decimal = Field(
        default=Decimal("1e-9"),
        ge=0,
        description="Allowed drift of the sum of all balances"
    )
    currency_symbol: str = Field(
        default="₹",
        description="Symbol used when formatting amounts for display"
    )
    display_decimals: int = Field(
        default=2,
        ge=0,
        le=6,
        description="Decimal places shown for amounts"
    )


class StorageSettings(BaseSettings):
    """Document store configuration."""

    model_config = SettingsConfigDict(
        env_prefix="STORAGE_",
        extra="ignore"
    )

    backend: str = Field(
        default="memory",
        pattern="^(memory|json)$",
        description="Which document store to use"
    )
    data_path: str = Field(
        default="group_ledger_data.json",
        description="File used by the json backend"
    )

    # Keys within the document store
    events_key: str = Field(default="group-events")
    transactions_key: str = Field(default="personal-expenses")
    audit_key: str = Field(default="audit-log")
    audit_max_entries: int = Field(
        default=1000,
        ge=1,
        description="Oldest audit entries are rotated out beyond this count"
    )

    @field_validator('data_path')
    @classmethod
    def validate_data_path(cls, v: str) -> str:
        """Warn if the data directory doesn't exist (it is not created for you)."""
        parent = Path(v).expanduser().parent
        if not parent.exists():
            import warnings
            warnings.warn(
                f"Directory for ledger data not found at {parent}. "
                "Make sure it exists before using the json backend."
            )
        return v


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

    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    # Personal tracker views
    recent_transactions_limit: int = Field(
        default=10,
        ge=1,
        le=100,
        description="How many transactions the recent list shows"
    )
    chart_months: int = Field(
        default=6,
        ge=1,
        le=24,
        description="How many months the monthly breakdown covers"
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
    def engine(self) -> EngineSettings:
        return EngineSettings()

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

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

    for name in ("engine", "storage", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results

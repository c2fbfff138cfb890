"""
Configuration Management for Casa Ink Ledger

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
The artist roster, the service and payment catalogs defaults and the
collection path are read once at startup and never edited at runtime.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from inkledger.models.transaction import PaymentMethod, ServiceType


class LedgerSettings(BaseSettings):
    """Ledger catalogs, defaults and collection scoping."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Tenant path: artifacts/<app_id>/<segments...>
    app_id: str = Field(
        default="casa-ink-prod",
        min_length=1,
        description="Application identifier the collection is scoped under"
    )
    collection_segments: str = Field(
        default="public,data,transactions",
        description="Comma-separated fixed path segments below the app id"
    )

    artists: str = Field(
        default="Jhully,Aryan,Salomão,Lih,Guest 1",
        description="Comma-separated artist roster"
    )
    default_service: ServiceType = Field(
        default=ServiceType.TATUAGEM,
        description="Service preselected on a fresh draft"
    )
    default_payment_method: PaymentMethod = Field(
        default=PaymentMethod.PIX,
        description="Payment method preselected on a fresh draft"
    )

    viewer_timezone: Optional[str] = Field(
        default=None,
        description="IANA timezone used for 'today'. None means the system local zone"
    )
    studio_passcode: Optional[str] = Field(
        default=None,
        description="Shared passcode required to sign in. None allows anonymous sign-in"
    )

    @field_validator('viewer_timezone')
    @classmethod
    def validate_timezone(cls, v: Optional[str]) -> Optional[str]:
        """Reject unknown timezone names at startup rather than at the first snapshot."""
        if v:
            try:
                ZoneInfo(v)
            except ZoneInfoNotFoundError:
                raise ValueError(f"Unknown timezone: {v}")
        return v or None

    @property
    def artist_roster(self) -> list[str]:
        """Get the artist roster as a list."""
        return [name.strip() for name in self.artists.split(",") if name.strip()]

    @property
    def segments_list(self) -> list[str]:
        """Get the collection path segments as a list."""
        return [seg.strip() for seg in self.collection_segments.split(",") if seg.strip()]

    @property
    def timezone(self) -> Optional[ZoneInfo]:
        return ZoneInfo(self.viewer_timezone) if self.viewer_timezone else None


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        ...,
        min_length=1,
        description="ID of the Google Sheets spreadsheet to use"
    )
    poll_interval_seconds: float = Field(
        default=5.0,
        ge=1.0,
        le=60.0,
        description="How often live subscriptions re-read the worksheet"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running the application."
            )
        return v


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

    # Note: These are loaded lazily to allow partial configuration

    @property
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()


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

    try:
        _ = settings.ledger
        results["ledger"] = True
    except Exception as e:
        results["ledger"] = False
        results["ledger_error"] = str(e)

    try:
        _ = settings.google_sheets
        results["google_sheets"] = True
    except Exception as e:
        results["google_sheets"] = False
        results["google_sheets_error"] = str(e)

    return results

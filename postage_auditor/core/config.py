"""Configuration management for Postage Auditor."""

from __future__ import annotations

import json
from datetime import timedelta
from decimal import Decimal
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def get_config_dir() -> Path:
    """Get the configuration directory path."""
    config_dir = Path.home() / ".postage-auditor"
    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir


def get_data_dir() -> Path:
    """Get the data directory path."""
    data_dir = get_config_dir() / "data"
    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir


def get_db_path() -> Path:
    """Get the SQLite database file path."""
    return get_data_dir() / "auditor.db"


class EbayApiConfig(BaseModel):
    """eBay API configuration.

    The user token is obtained and refreshed outside this service; we only
    consume it.
    """

    user_token: str = ""
    app_id: str = ""
    marketplace_id: str = "EBAY_AU"
    site_id: int = 15  # Australia
    compatibility_level: int = 967
    destination_market: str = "US"
    sandbox: bool = False
    mock_mode: bool = False

    @property
    def trading_api_url(self) -> str:
        if self.sandbox:
            return "https://api.sandbox.ebay.com/ws/api.dll"
        return "https://api.ebay.com/ws/api.dll"

    @property
    def browse_api_url(self) -> str:
        if self.sandbox:
            return "https://api.sandbox.ebay.com/buy/browse/v1"
        return "https://api.ebay.com/buy/browse/v1"


class EnrichmentConfig(BaseModel):
    """Item enrichment configuration."""

    # eBay Trading API allows ~5000 calls/day; this ceiling keeps us under the
    # per-second burst limits, it is not a throughput knob.
    max_concurrent_requests: int = 30
    request_timeout_seconds: int = 15
    enrichment_ttl_hours: int = 24
    display_ttl_minutes: int = 60
    daily_call_budget: int = 5000

    @property
    def enrichment_ttl(self) -> timedelta:
        return timedelta(hours=self.enrichment_ttl_hours)

    @property
    def display_ttl(self) -> timedelta:
        return timedelta(minutes=self.display_ttl_minutes)


class BatchConfig(BaseModel):
    """Reference assumptions for listing-level postage estimates (USA zone)."""

    weight_band: str = "Medium"
    discount_band: int = 3
    tolerance: Decimal = Decimal("0.05")
    extra_cover_value_threshold: Decimal = Decimal("100")
    extra_cover_ceiling_units: bool = True


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=str(get_config_dir() / ".env"),
        env_file_encoding="utf-8",
        env_prefix="PA_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    ebay: EbayApiConfig = Field(default_factory=EbayApiConfig)
    enrichment: EnrichmentConfig = Field(default_factory=EnrichmentConfig)
    batch: BatchConfig = Field(default_factory=BatchConfig)

    # Web server
    host: str = "127.0.0.1"
    port: int = 5050

    log_level: str = "INFO"
    debug_mode: bool = False

    def save(self) -> None:
        """Save settings to the config file."""
        config_path = get_config_dir() / "settings.json"
        data = self.model_dump(mode="json")
        # Never persist the token alongside regular settings
        data["ebay"].pop("user_token", None)
        data = self._convert_decimals(data)
        with open(config_path, "w") as f:
            json.dump(data, f, indent=2)

    def _convert_decimals(self, obj: Any) -> Any:
        """Recursively convert Decimal to string for JSON serialization."""
        if isinstance(obj, Decimal):
            return str(obj)
        elif isinstance(obj, dict):
            return {k: self._convert_decimals(v) for k, v in obj.items()}
        elif isinstance(obj, list):
            return [self._convert_decimals(item) for item in obj]
        return obj

    @classmethod
    def load(cls) -> "Settings":
        """Load settings from the config file or create defaults."""
        config_path = get_config_dir() / "settings.json"
        env_path = get_config_dir() / ".env"

        settings = cls()

        if config_path.exists():
            try:
                with open(config_path) as f:
                    data = json.load(f)
                settings = cls.model_validate(data)
            except (OSError, ValueError):
                pass  # Use defaults on error

        # Override API settings from .env if present
        if env_path.exists():
            from dotenv import dotenv_values

            env_vars = dotenv_values(env_path)
            if env_vars.get("PA_EBAY_USER_TOKEN"):
                settings.ebay.user_token = env_vars["PA_EBAY_USER_TOKEN"]
            if env_vars.get("PA_EBAY_APP_ID"):
                settings.ebay.app_id = env_vars["PA_EBAY_APP_ID"]
            if env_vars.get("PA_EBAY_SANDBOX"):
                settings.ebay.sandbox = env_vars["PA_EBAY_SANDBOX"].lower() in ("true", "1", "yes")
            if env_vars.get("PA_MOCK_MODE"):
                settings.ebay.mock_mode = env_vars["PA_MOCK_MODE"].lower() in (
                    "true",
                    "1",
                    "yes",
                )

        return settings


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings

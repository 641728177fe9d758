"""Application configuration loaded from config.yaml + environment variables."""

from __future__ import annotations

import os

import yaml
from pathlib import Path
from pydantic import Field
from pydantic_settings import BaseSettings

_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config.yaml"
_DEFAULT_DB_URL = "sqlite+aiosqlite:///data/marketplace.db"


def _load_yaml() -> dict:
    if _CONFIG_PATH.exists():
        with open(_CONFIG_PATH) as f:
            return yaml.safe_load(f) or {}
    return {}


_yaml = _load_yaml()


class BiddingConfig(BaseSettings):
    window_minutes: int = 30
    min_eta_minutes: int = 15
    max_eta_minutes: int = 480
    max_note_length: int = 500
    default_warranty_days: int = 30
    default_payment_terms: str = "upon_completion"
    sweep_interval_seconds: float = 60.0


class MarketplaceConfig(BaseSettings):
    service_types: list[str] = Field(default_factory=lambda: [
        "aircon", "plumbing", "electrical", "cleaning", "painting",
    ])
    payment_methods: list[str] = Field(default_factory=lambda: [
        "wallet", "card", "paynow", "cash",
    ])


class DraftsConfig(BaseSettings):
    base_dir: str = "data/drafts"


class Settings(BaseSettings):
    database_url: str = _DEFAULT_DB_URL
    log_level: str = "INFO"
    bidding: BiddingConfig = Field(default_factory=BiddingConfig)
    marketplace: MarketplaceConfig = Field(default_factory=MarketplaceConfig)
    drafts: DraftsConfig = Field(default_factory=DraftsConfig)

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


def get_settings() -> Settings:
    """Build Settings by merging YAML defaults with env overrides."""
    y = _yaml
    bidding = BiddingConfig(**y.get("bidding", {}))
    market = MarketplaceConfig(**y.get("marketplace", {}))
    drafts = DraftsConfig(**y.get("drafts", {}))
    db_url = os.environ.get("DATABASE_URL") or y.get("database", {}).get("url", _DEFAULT_DB_URL)
    log_level = os.environ.get("LOG_LEVEL") or y.get("log_level", "INFO")
    return Settings(
        database_url=db_url,
        log_level=log_level,
        bidding=bidding,
        marketplace=market,
        drafts=drafts,
    )

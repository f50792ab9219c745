from __future__ import annotations

from decimal import Decimal
from functools import cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    database_path: Path = Path("data/crypto_taxes.db")
    price_cache_dir: Path = Path(".cache/fx_rates")
    open_exchange_rates_app_id: str | None = None
    reporting_currency: str = "KRW"
    secondary_currency: str = "USD"
    lookback_years: int = 5
    # Offline USD->KRW rate used when no Open Exchange Rates app id is set.
    fallback_usd_rate: Decimal | None = None

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


@cache
def config() -> AppSettings:
    return AppSettings()

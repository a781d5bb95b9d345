from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from wms.domain.model.store import MarketplaceProvider


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="WMS_", env_file=".env", extra="ignore")

    # ==============================
    # Database
    # ==============================
    DATABASE_URL: str = "sqlite:///data/wms.db"
    DATABASE_ECHO: bool = False

    # ==============================
    # Logging
    # ==============================
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    # ==============================
    # Reservation
    # ==============================
    SHELF_SELECTION_STRATEGY: str = "sort_order"

    # ==============================
    # Stock sync
    # ==============================
    QUEUE_FETCH_LIMIT: int = 500
    QUEUE_CLAIM_TTL_SECONDS: int = 300
    PROVIDER_BATCH_SIZES: dict[MarketplaceProvider, int] = {
        MarketplaceProvider.TRENDYOL: 1000,
        MarketplaceProvider.HEPSIBURADA: 1000,
        MarketplaceProvider.IKAS: 100,
    }
    PROVIDER_MIN_PUSH_INTERVAL_SECONDS: dict[MarketplaceProvider, int] = {
        MarketplaceProvider.TRENDYOL: 15 * 60,
    }
    MAX_PUSH_QUANTITY: int = 20000
    PUSH_TIMEOUT_SECONDS: float = 30.0
    RATE_LIMIT_BACKOFF_SECONDS: int = 60
    MAX_SYNC_ATTEMPTS: int = 5
    STOCK_SYNC_INTERVAL_SECONDS: int = 60

    # ==============================
    # Marketplace endpoints
    # ==============================
    TRENDYOL_BASE_URL: str = "https://apigw.trendyol.com/integration"
    TRENDYOL_BATCH_POLL_ATTEMPTS: int = 3
    TRENDYOL_BATCH_POLL_SECONDS: float = 2.0
    HEPSIBURADA_BASE_URL: str = "https://listing-external.hepsiburada.com"
    HTTP_USER_AGENT: Optional[str] = None


@lru_cache
def get_settings() -> Settings:
    """Cached settings loader (once per process)."""
    return Settings()


__all__ = ["Settings", "get_settings"]

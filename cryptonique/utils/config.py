"""Configuration management for the application."""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


@dataclass
class APIConfig:
    """Upstream market-data API configuration."""

    environment: str = "development"
    request_timeout: float | None = None  # Seconds, derived from environment if unset
    probe_timeout: float = 5.0
    binance_base_url: str = "https://api.binance.com/api/v3"
    coingecko_base_url: str = "https://api.coingecko.com/api/v3"
    coincap_base_url: str = "https://api.coincap.io/v2"
    coinpaprika_base_url: str = "https://api.coinpaprika.com/v1"
    coingecko_api_key: str | None = None
    cache_ttl: int = 30  # Response cache time-to-live in seconds
    user_agent: str = "Cryptonique/1.0"

    def __post_init__(self):
        if self.request_timeout is None:
            self.request_timeout = 8.0 if self.is_production else 10.0

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


@dataclass
class DashboardConfig:
    """Market series pipeline configuration."""

    default_asset_count: int = 10
    batch_size: int = 4
    predicted_steps: int = 6
    asset_timeout: float = 15.0


@dataclass
class LoggingConfig:
    """Structured logging configuration."""

    log_file: str | None = None


def _optional_float(name: str) -> float | None:
    value = os.getenv(name)
    return float(value) if value else None


class Config:
    """Main application configuration."""

    def __init__(self):
        self.api = APIConfig(
            environment=os.getenv("APP_ENV", "development").lower(),
            request_timeout=_optional_float("REQUEST_TIMEOUT"),
            probe_timeout=float(os.getenv("PROBE_TIMEOUT", "5")),
            binance_base_url=os.getenv("BINANCE_API_URL", "https://api.binance.com/api/v3"),
            coingecko_api_key=os.getenv("COINGECKO_API_KEY") or None,
            cache_ttl=int(os.getenv("CACHE_TTL", "30")),
        )

        self.dashboard = DashboardConfig(
            default_asset_count=int(os.getenv("DEFAULT_CRYPTO_COUNT", "10")),
            batch_size=int(os.getenv("BATCH_SIZE", "4")),
            predicted_steps=int(os.getenv("PREDICTED_STEPS", "6")),
            asset_timeout=float(os.getenv("ASSET_TIMEOUT", "15")),
        )

        self.logging = LoggingConfig(log_file=os.getenv("LOG_FILE") or None)

    def validate(self) -> bool:
        """
        Validate configuration.

        Returns:
            True if configuration is valid

        Raises:
            ValueError if configuration is invalid
        """
        if self.api.environment not in ("development", "production", "test"):
            raise ValueError(f"Invalid APP_ENV: {self.api.environment}")
        if self.api.request_timeout <= 0 or self.api.probe_timeout <= 0:
            raise ValueError("Request and probe timeouts must be positive")
        if self.api.cache_ttl < 0:
            raise ValueError("CACHE_TTL must not be negative")
        if self.dashboard.batch_size < 1:
            raise ValueError("BATCH_SIZE must be at least 1")
        if self.dashboard.predicted_steps < 0:
            raise ValueError("PREDICTED_STEPS must not be negative")
        if self.dashboard.default_asset_count < 1:
            raise ValueError("DEFAULT_CRYPTO_COUNT must be at least 1")
        if self.dashboard.asset_timeout <= 0:
            raise ValueError("ASSET_TIMEOUT must be positive")
        if self.dashboard.asset_timeout <= self.api.request_timeout:
            raise ValueError("ASSET_TIMEOUT must exceed REQUEST_TIMEOUT")

        return True


# Global config instance
config = Config()

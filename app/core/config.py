"""
Application configuration.

Loads settings from environment variables and .env file.
All configuration is centralized here: trading policy values
(fees, minimums, precision, timeouts) are settings, not constants.
"""

from decimal import Decimal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment.

    Attributes:
        project_name: Display name for the API.
        version: Current API version string.
        debug: Enable debug mode. Must be False in production.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).
        sql_echo: Log every SQL statement (development only).
        rate_limit_default: Default rate limit for all endpoints.
        rate_limit_trade: Rate limit for the trade execution endpoint.
        fiat_currency: Balance key of the fiat currency.
        tradable_assets: Crypto symbols that may currently be traded.
        fee_rate: Trading fee charged on the gross trade value.
        min_trade_quantity: Smallest asset quantity accepted for a trade.
        min_trade_value: Smallest gross trade value (in fiat) accepted.
        fiat_decimal_places: Rounding precision for fiat amounts.
        asset_decimal_places: Rounding precision for asset quantities.
        signup_bonus: Bonus balance credited to a lazily created wallet.
        price_source: Which price source adapter to use (coingecko, fixed).
        fixed_prices: Unit prices served by the fixed price source.
        coingecko_base_url: Base URL of the public market-data API.
        coingecko_ids: Mapping from trading symbol to upstream coin id.
        usd_to_fiat_rate: Conversion applied to upstream USD quotes.
        price_max_age_seconds: Quotes older than this are rejected as stale.
        price_timeout_seconds: Upper bound on a price lookup.
        store_timeout_seconds: Upper bound on a wallet settlement.
        max_settlement_attempts: Bounded retries on optimistic-lock conflicts.
        wallet_backend: Which wallet/ledger adapter to use (sql, memory).
        database_url: SQLAlchemy async DSN for the sql backend.
    """

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    project_name: str = "CryptoExchange"
    version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"
    sql_echo: bool = False
    rate_limit_default: str = "60/minute"
    rate_limit_trade: str = "30/minute"

    # --- Trading policy ---
    fiat_currency: str = "EGP"
    tradable_assets: list[str] = ["BTC", "ETH", "USDT"]
    fee_rate: Decimal = Decimal("0.001")  # 0.1%
    min_trade_quantity: Decimal = Decimal("0.0001")
    min_trade_value: Decimal = Decimal("50")
    fiat_decimal_places: int = 2
    asset_decimal_places: int = 8
    signup_bonus: Decimal = Decimal("0")

    # --- Market data ---
    price_source: str = "coingecko"
    fixed_prices: dict[str, Decimal] = {
        "BTC": Decimal("2150000"),
        "ETH": Decimal("83250"),
        "USDT": Decimal("49.5"),
    }
    coingecko_base_url: str = "https://api.coingecko.com/api/v3"
    coingecko_ids: dict[str, str] = {
        "BTC": "bitcoin",
        "ETH": "ethereum",
        "USDT": "tether",
    }
    usd_to_fiat_rate: Decimal = Decimal("49.5")
    price_max_age_seconds: float = 120.0

    # --- Settlement ---
    price_timeout_seconds: float = 5.0
    store_timeout_seconds: float = 5.0
    max_settlement_attempts: int = 3

    # --- Persistence ---
    wallet_backend: str = "sql"
    database_url: str = "sqlite+aiosqlite:///./exchange.db"


settings = Settings()

"""Application configuration using pydantic-settings.

All endpoints, fee policy and timing constants of the swap pipeline live here so
they can be overridden from the environment or a local .env file.
"""

from decimal import Decimal
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

WRAPPED_SOL_MINT = "So11111111111111111111111111111111111111112"

# Platform fee collection accounts, keyed by token mint
DEFAULT_FEE_ACCOUNTS = {
    "So11111111111111111111111111111111111111112": "8Bs1aHeo2aje8MqXBEK6JPwVp6qMo5STGQbiYfGQ4Vf8",  # SOL
    "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB": "C7MPZc9VbMo5EhBaXTLZtQrwCLmVg3McHGbVPuAEvbsK",  # USDT
    "JUPyiwrYJFskUPiHa7hkeR8VUtAeFoSYbKedZNsDvCN": "D7R576QacfN4hSnZbqikyp6rDum6LmhWBcz6UqskmA5f",  # JUP
    "DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263": "Bi5hqaKCbaoZvh2BSTawyxC2g5bCadqFgaVXQ2cxATJM",  # BONK
    "EKpQGSJtjMFqKZ9KQanSqYXRcF8fBopzLHYxdM65zcjm": "8cBMbQc3Sxe8SoUwyFWe9Kp596sX78jSUeJpZ3u8FtcD",  # WIF
    "J1toso1uCk3RLmjorhTtrVwY9HJ7X8V9yYac6Y7kGCPn": "878UfhL2rQqQsKeYsMdWkqH5xYJ1pASjbKjFr5H89Uxd",  # JitoSOL
    "4k3Dyjzvzp8eMZWUXbBCjEvwSkkk59S5iCNLY3QrkX6R": "DYr38CN5mrWk4MgnufogniyRK9xKVWnVzrKRMGYbzx4h",  # RAY
}


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ======================
    # Environment
    # ======================
    environment: str = Field(default="development", description="Runtime environment")
    debug: bool = Field(default=True, description="Enable debug mode")

    # ======================
    # Local state
    # ======================
    database_url: str = Field(
        default="sqlite+aiosqlite:///./data/solswap.db",
        description="Local persisted state (custom tokens, analytics)",
    )

    # ======================
    # API
    # ======================
    api_host: str = Field(default="127.0.0.1", description="API server host")
    api_port: int = Field(default=8000, description="API server port")

    # ======================
    # Solana
    # ======================
    solana_rpc_url: str = Field(
        default="https://api.mainnet-beta.solana.com", description="Solana RPC URL"
    )
    explorer_tx_url: str = Field(
        default="https://solscan.io/tx", description="Explorer base URL for transactions"
    )
    wallet_seed_phrase: Optional[str] = Field(
        default=None, description="Optional seed phrase for the local keypair wallet"
    )

    # ======================
    # Jupiter / data providers
    # ======================
    jupiter_quote_api: str = Field(
        default="https://quote-api.jup.ag/v6", description="Jupiter quote/swap API"
    )
    jupiter_price_api: str = Field(
        default="https://api.jup.ag/price/v2", description="Jupiter price API"
    )
    jupiter_limit_api: str = Field(
        default="https://api.jup.ag/limit/v2", description="Jupiter limit order API"
    )
    jupiter_tokens_api: str = Field(
        default="https://api.jup.ag/tokens/v1", description="Jupiter tagged/new token lists"
    )
    jupiter_strict_list_url: str = Field(
        default="https://token.jup.ag/strict", description="Base token list"
    )
    jupiter_all_tokens_url: str = Field(
        default="https://token.jup.ag/all", description="Full token list used for metadata"
    )
    geckoterminal_api: str = Field(
        default="https://api.geckoterminal.com/api/v2", description="GeckoTerminal API"
    )
    coingecko_api: str = Field(
        default="https://api.coingecko.com/api/v3", description="CoinGecko API"
    )
    coingecko_api_key: str = Field(default="", description="CoinGecko API key")
    coinpaprika_api: str = Field(
        default="https://api.coinpaprika.com/v1", description="Coinpaprika API (portfolio prices)"
    )
    http_timeout: float = Field(default=30.0, description="HTTP timeout in seconds")

    # ======================
    # Fees
    # ======================
    platform_fee_bps: int = Field(default=40, description="Platform fee (0.4%)")
    default_fee_account: str = Field(
        default="J3mmyrV6bFSbejBHC3kBzhdY17Y7gJSx1bR53Lx8oQ2V",
        description="Fee account used when neither token has its own",
    )
    fee_accounts: dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_FEE_ACCOUNTS),
        description="Fee account per token mint",
    )
    compute_unit_price_micro_lamports: int = Field(
        default=10000, description="Priority fee for swap transactions"
    )

    # ======================
    # Swap policy
    # ======================
    default_slippage_bps: int = Field(default=50, description="Default slippage (0.5%)")
    sol_fee_reserve: Decimal = Field(
        default=Decimal("0.01"), description="SOL kept back for transaction fees"
    )
    quote_refresh_seconds: float = Field(default=7.0, description="Quote refresh interval")
    confirmation_timeout_seconds: float = Field(
        default=90.0, description="Bounded wait for swap confirmation"
    )
    confirmation_poll_seconds: float = Field(
        default=2.0, description="Interval between signature status polls"
    )

    # ======================
    # Limit orders
    # ======================
    min_order_usd: Decimal = Field(default=Decimal("5"), description="Minimum order size")
    order_expiry_days: int = Field(default=7, description="Display-only order expiry")
    order_refresh_seconds: float = Field(default=30.0, description="Order list refresh")
    order_history_max_pages: int = Field(default=10, description="History pages per refresh")

    # ======================
    # Caching / analytics
    # ======================
    price_cache_ttl_seconds: float = Field(default=60.0, description="Price cache TTL")
    token_cache_ttl_seconds: float = Field(default=3600.0, description="Token info cache TTL")
    analytics_retention_days: int = Field(default=30, description="Daily volume retention")

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    @property
    def has_wallet(self) -> bool:
        """Check if a local wallet seed phrase is configured."""
        return bool(self.wallet_seed_phrase and len(self.wallet_seed_phrase.split()) >= 12)

    def get_fee_account(self, input_mint: str, output_mint: str) -> str:
        """Pick the fee account: input token, then output token, then default."""
        if input_mint in self.fee_accounts:
            return self.fee_accounts[input_mint]
        if output_mint in self.fee_accounts:
            return self.fee_accounts[output_mint]
        return self.default_fee_account

    def explorer_url(self, signature: str) -> str:
        """Build the manual verification link for a transaction."""
        return f"{self.explorer_tx_url.rstrip('/')}/{signature}"

    def get_safe_dict(self) -> dict:
        """Return settings dict with secrets redacted."""
        return {
            "environment": self.environment,
            "debug": self.debug,
            "api_host": self.api_host,
            "api_port": self.api_port,
            "database_url": self._redact_url(self.database_url),
            "solana_rpc_url": self.solana_rpc_url,
            "wallet_configured": self.has_wallet,
            "coingecko_api_key": "***" if self.coingecko_api_key else "(not set)",
            "fees": {
                "platform_fee_bps": self.platform_fee_bps,
                "fee_accounts": len(self.fee_accounts),
            },
            "swap": {
                "default_slippage_bps": self.default_slippage_bps,
                "quote_refresh_seconds": self.quote_refresh_seconds,
                "confirmation_timeout_seconds": self.confirmation_timeout_seconds,
            },
            "orders": {
                "min_order_usd": str(self.min_order_usd),
                "order_refresh_seconds": self.order_refresh_seconds,
            },
        }

    @staticmethod
    def _redact_url(url: str) -> str:
        """Redact sensitive parts of database URL."""
        if "://" in url and "@" in url:
            proto, rest = url.split("://", 1)
            if "@" in rest:
                creds, host = rest.rsplit("@", 1)
                if ":" in creds:
                    user, _ = creds.split(":", 1)
                    return f"{proto}://{user}:***@{host}"
        return url


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

"""Request and response contracts for the HTTP API."""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class TokenResponse(BaseModel):
    """A token from the registry."""

    address: str
    symbol: str
    name: str
    decimals: int
    image_url: str
    is_custom: bool = False


class TokenImportRequest(BaseModel):
    """Request to import a token by mint address."""

    address: str = Field(..., min_length=32, max_length=44, description="Token mint address")


class QuoteRequest(BaseModel):
    """Request for a swap quote."""

    from_token: str = Field(..., description="Source token mint address")
    to_token: str = Field(..., description="Destination token mint address")
    amount: Decimal = Field(..., gt=0, description="Amount to swap, in human units")
    slippage_bps: Optional[int] = Field(
        default=None, ge=0, le=5000, description="Slippage tolerance in basis points"
    )


class QuoteResponse(BaseModel):
    """Quote details. Amounts are decimal strings."""

    from_token: str
    to_token: str
    from_symbol: str
    to_symbol: str
    input_amount: str
    input_base_units: str
    to_amount: str = Field(..., description="Output amount with 6 fractional digits")
    output_base_units: str
    exchange_rate: Optional[str] = None
    from_usd_value: str = Field(..., description='USD value or "N/A"')
    to_usd_value: str = Field(..., description='USD value or "N/A"')
    price_impact_percent: Optional[str] = None
    route_hops: list[str] = Field(default_factory=list)
    slippage_bps: int
    timestamp: float


class BalanceEntry(BaseModel):
    address: str
    symbol: str
    balance: Optional[str] = Field(None, description="Human-unit balance, None if unavailable")
    error: Optional[str] = None


class BalancesResponse(BaseModel):
    wallet: str
    balances: list[BalanceEntry] = Field(default_factory=list)


class OrdersResponse(BaseModel):
    wallet: str
    orders: list[dict] = Field(default_factory=list)


class MarketFeedResponse(BaseModel):
    feed: str
    tokens: list[dict] = Field(default_factory=list)


class HoldingEntry(BaseModel):
    """One portfolio position. Amounts and USD figures are decimal strings."""

    address: str
    symbol: str
    name: str
    image_url: str
    amount: str
    price_usd: Optional[str] = None
    value_usd: Optional[str] = None
    change_24h: Optional[str] = Field(None, description="24h price change in percent")


class PortfolioResponse(BaseModel):
    wallet: str
    total_value_usd: str
    holdings: list[HoldingEntry] = Field(default_factory=list)
    fetched_at: float

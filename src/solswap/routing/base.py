"""Quote model and base-unit conversion."""

import time
from dataclasses import dataclass, field
from decimal import ROUND_FLOOR, Decimal
from typing import Optional, Union

from solswap.tokens.models import Token

Amount = Union[Decimal, str, int, float]


def to_decimal(amount: Amount) -> Decimal:
    """Convert a user-entered amount to Decimal without float drift."""
    if isinstance(amount, Decimal):
        return amount
    return Decimal(str(amount).strip())


def to_base_units(amount: Amount, decimals: int) -> int:
    """Convert a human amount to integer base units, always rounding down.

    Flooring never requests more than the user typed: 1.5 with 6 decimals is
    exactly 1500000.
    """
    value = to_decimal(amount)
    if value < 0:
        raise ValueError(f"Amount must not be negative: {value}")
    return int(value.scaleb(decimals).to_integral_value(rounding=ROUND_FLOOR))


def from_base_units(raw: Union[int, str], decimals: int) -> Decimal:
    """Convert integer base units to a human amount."""
    return Decimal(int(raw)).scaleb(-decimals)


@dataclass
class Quote:
    """A conversion quote with derived pricing data.

    Quotes are ephemeral: recomputed on input changes and timer ticks, never
    persisted. timestamp is the moment the request was started.
    """

    from_token: Token
    to_token: Token
    input_amount: Decimal
    input_base_units: int
    output_amount: Decimal
    output_base_units: int
    slippage_bps: int
    exchange_rate: Optional[Decimal] = None
    from_price: Optional[Decimal] = None
    to_price: Optional[Decimal] = None
    from_usd_value: Optional[Decimal] = None
    to_usd_value: Optional[Decimal] = None
    price_impact_percent: Optional[Decimal] = None
    route_hops: list[str] = field(default_factory=list)
    platform_fee_bps: Optional[int] = None
    timestamp: float = field(default_factory=time.time)
    quote_response: dict = field(default_factory=dict, repr=False)

    @property
    def to_amount_display(self) -> str:
        """Output amount with 6 fractional digits, e.g. "310.000000"."""
        return f"{self.output_amount:.6f}"

    @property
    def has_prices(self) -> bool:
        return self.exchange_rate is not None

    @property
    def pair_label(self) -> str:
        return f"{self.from_token.symbol}/{self.to_token.symbol}"

    def usd_display(self, value: Optional[Decimal]) -> str:
        """Format a USD value, or "N/A" when the price feed was unavailable."""
        if value is None:
            return "N/A"
        return f"${value:,.2f}"

    def to_dict(self) -> dict:
        return {
            "from_token": self.from_token.address,
            "to_token": self.to_token.address,
            "from_symbol": self.from_token.symbol,
            "to_symbol": self.to_token.symbol,
            "input_amount": str(self.input_amount),
            "input_base_units": str(self.input_base_units),
            "to_amount": self.to_amount_display,
            "output_base_units": str(self.output_base_units),
            "exchange_rate": str(self.exchange_rate) if self.exchange_rate is not None else None,
            "from_usd_value": self.usd_display(self.from_usd_value),
            "to_usd_value": self.usd_display(self.to_usd_value),
            "price_impact_percent": (
                str(self.price_impact_percent) if self.price_impact_percent is not None else None
            ),
            "route_hops": list(self.route_hops),
            "slippage_bps": self.slippage_bps,
            "timestamp": self.timestamp,
        }

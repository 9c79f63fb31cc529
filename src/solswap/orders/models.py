"""Limit order model and amount helpers."""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import ROUND_FLOOR, Decimal
from enum import Enum
from typing import Optional, Union

from solswap.tokens.models import Token


class OrderStatus(str, Enum):
    OPEN = "OPEN"
    FILLED = "FILLED"
    CANCELLED = "CANCELLED"


def order_amounts(
    amount: Decimal,
    limit_price: Decimal,
    from_decimals: int,
    to_decimals: int,
) -> tuple[int, int]:
    """Compute the (making, taking) base-unit amounts of a limit order.

    Both are floored: 10 at a limit price of 2.5 into a 6-decimal token takes
    exactly 25000000 base units.
    """
    making = (amount.scaleb(from_decimals)).to_integral_value(rounding=ROUND_FLOOR)
    taking = (amount * limit_price).scaleb(to_decimals).to_integral_value(rounding=ROUND_FLOOR)
    return int(making), int(taking)


def parse_timestamp(value: Union[str, int, float, None]) -> Optional[datetime]:
    """Parse an API timestamp: ISO-8601 string or unix seconds."""
    if value is None or value == "":
        return None
    if isinstance(value, str) and "T" in value:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return datetime.fromtimestamp(int(float(value)), tz=timezone.utc)


def format_time_remaining(remaining: timedelta) -> str:
    """Render remaining time as "Xd Yh", "Xh Ym" or "Expired"."""
    seconds = int(remaining.total_seconds())
    if seconds <= 0:
        return "Expired"

    days, rest = divmod(seconds, 86400)
    hours, rest = divmod(rest, 3600)
    if days > 0:
        return f"{days}d {hours}h"
    return f"{hours}h {rest // 60}m"


@dataclass
class LimitOrder:
    """A limit order as shown to the user.

    making_amount and taking_amount are in human units. Expiration is a
    display-only policy of expiry_days after creation.
    """

    id: str
    maker: str
    input_token: Token
    output_token: Token
    making_amount: Decimal
    taking_amount: Decimal
    status: OrderStatus = OrderStatus.OPEN
    created_at: Optional[datetime] = None
    txid: str = ""
    expiry_days: int = 7

    @property
    def limit_price(self) -> Optional[Decimal]:
        """Output received per unit of input."""
        if not self.making_amount:
            return None
        return self.taking_amount / self.making_amount

    @property
    def expires_at(self) -> Optional[datetime]:
        if self.created_at is None:
            return None
        return self.created_at + timedelta(days=self.expiry_days)

    def time_remaining(self, now: Optional[datetime] = None) -> Optional[str]:
        """Time until display expiry, for open orders with a known creation time."""
        if self.status != OrderStatus.OPEN or self.expires_at is None:
            return None
        now = now or datetime.now(timezone.utc)
        return format_time_remaining(self.expires_at - now)

    def to_dict(self, now: Optional[datetime] = None) -> dict:
        return {
            "id": self.id,
            "maker": self.maker,
            "input_token": self.input_token.to_dict(),
            "output_token": self.output_token.to_dict(),
            "making_amount": str(self.making_amount),
            "taking_amount": str(self.taking_amount),
            "limit_price": str(self.limit_price) if self.limit_price is not None else None,
            "status": self.status.value,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
            "time_remaining": self.time_remaining(now),
            "txid": self.txid,
        }

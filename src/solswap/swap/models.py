"""Swap execution state and transaction records."""

import time
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Optional


class SwapState(str, Enum):
    """Executor state machine."""

    IDLE = "idle"
    PREPARING = "preparing"
    AWAITING_SIGNATURE = "awaiting_signature"
    SUBMITTED = "submitted"
    CONFIRMING = "confirming"
    CONFIRMED = "confirmed"
    FAILED = "failed"
    UNKNOWN = "unknown"


class TransactionStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"
    UNKNOWN = "unknown"


@dataclass
class SwapTransaction:
    """A submitted swap. Created at submission, updated by confirmation."""

    signature: str
    from_token: str  # symbol
    to_token: str  # symbol
    from_amount: Decimal
    to_amount: Decimal
    usd_value: Decimal
    wallet_address: str
    status: TransactionStatus = TransactionStatus.PENDING
    timestamp: float = field(default_factory=time.time)
    error: Optional[str] = None
    explorer_url: Optional[str] = None

    @property
    def is_confirmed(self) -> bool:
        return self.status == TransactionStatus.CONFIRMED

    def to_dict(self) -> dict:
        return {
            "signature": self.signature,
            "from_token": self.from_token,
            "to_token": self.to_token,
            "from_amount": str(self.from_amount),
            "to_amount": str(self.to_amount),
            "usd_value": str(self.usd_value),
            "wallet_address": self.wallet_address,
            "status": self.status.value,
            "timestamp": self.timestamp,
            "error": self.error,
            "explorer_url": self.explorer_url,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SwapTransaction":
        return cls(
            signature=data["signature"],
            from_token=data["from_token"],
            to_token=data["to_token"],
            from_amount=Decimal(str(data["from_amount"])),
            to_amount=Decimal(str(data["to_amount"])),
            usd_value=Decimal(str(data.get("usd_value") or 0)),
            wallet_address=data.get("wallet_address", ""),
            status=TransactionStatus(data.get("status", "pending")),
            timestamp=float(data.get("timestamp") or 0),
            error=data.get("error"),
            explorer_url=data.get("explorer_url"),
        )

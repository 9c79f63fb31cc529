"""Error taxonomy for the swap pipeline.

Every error here is recoverable: callers report it to the user and return to
an idle state.
"""

from typing import Optional


class SolswapError(Exception):
    """Base class for all solswap errors."""

    pass


class InvalidAddress(SolswapError):
    """Malformed token address, or the address is not a token mint."""

    def __init__(self, address: str, reason: str = "not a valid Solana address"):
        self.address = address
        super().__init__(f"Invalid address {address!r}: {reason}")


class QuoteUnavailable(SolswapError):
    """Routing or pricing data could not be fetched."""

    pass


class InsufficientBalance(SolswapError):
    """Requested input exceeds the spendable balance."""

    def __init__(self, symbol: str, requested, available, message: Optional[str] = None):
        self.symbol = symbol
        self.requested = requested
        self.available = available
        super().__init__(
            message
            or f"Insufficient {symbol} balance: have {available}, need {requested}"
        )


class BelowMinimumSize(SolswapError):
    """Limit order value is under the minimum order size."""

    def __init__(self, usd_value, minimum):
        self.usd_value = usd_value
        self.minimum = minimum
        super().__init__(f"Minimum order size is {minimum} USD (order is {usd_value:.2f} USD)")


class SigningFailed(SolswapError):
    """The wallet rejected or failed to sign and send a transaction."""

    pass


class ConfirmationTimeout(SolswapError):
    """Confirmation was not observed within the bounded wait."""

    def __init__(self, signature: str, timeout: float):
        self.signature = signature
        self.timeout = timeout
        super().__init__(f"Transaction {signature} not confirmed after {timeout:.0f}s")


class TransactionFailed(SolswapError):
    """The transaction landed on-chain with an execution error."""

    def __init__(self, signature: str, err):
        self.signature = signature
        self.err = err
        super().__init__(f"Transaction {signature} failed: {err}")


class OrderRequestFailed(SolswapError):
    """The limit order API rejected a request or returned no transaction."""

    pass


class SwapInProgress(SolswapError):
    """Another swap or cancel is already in flight."""

    pass

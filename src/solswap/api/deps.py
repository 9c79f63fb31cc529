"""Shared API dependencies and error mapping."""

from fastapi import HTTPException, status

from solswap.errors import (
    BelowMinimumSize,
    InsufficientBalance,
    InvalidAddress,
    OrderRequestFailed,
    QuoteUnavailable,
    SolswapError,
    SwapInProgress,
)
from solswap.services import Services, get_services

__all__ = ["Services", "get_services", "http_error"]

_STATUS_CODES = {
    InvalidAddress: status.HTTP_400_BAD_REQUEST,
    BelowMinimumSize: status.HTTP_400_BAD_REQUEST,
    InsufficientBalance: status.HTTP_400_BAD_REQUEST,
    SwapInProgress: status.HTTP_409_CONFLICT,
    QuoteUnavailable: status.HTTP_502_BAD_GATEWAY,
    OrderRequestFailed: status.HTTP_502_BAD_GATEWAY,
}


def http_error(error: SolswapError) -> HTTPException:
    """Map a domain error to an HTTPException."""
    for error_type, code in _STATUS_CODES.items():
        if isinstance(error, error_type):
            return HTTPException(status_code=code, detail=str(error))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(error))

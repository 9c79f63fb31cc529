"""Token registry and metadata providers."""

from solswap.tokens.metadata import (
    GeckoTerminalProvider,
    JupiterTokenListProvider,
    MetadataProvider,
    MetadataResolver,
    TokenMetadata,
    create_default_resolver,
)
from solswap.tokens.models import Token
from solswap.tokens.registry import TokenRegistry, is_valid_address

__all__ = [
    "Token",
    "TokenRegistry",
    "is_valid_address",
    # Metadata
    "TokenMetadata",
    "MetadataProvider",
    "MetadataResolver",
    "GeckoTerminalProvider",
    "JupiterTokenListProvider",
    "create_default_resolver",
]

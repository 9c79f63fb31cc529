"""HTTP API."""

from solswap.api.app import create_app

__all__ = ["create_app"]

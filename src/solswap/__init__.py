"""Solana token swap toolkit over the Jupiter aggregator."""

__version__ = "0.1.0"

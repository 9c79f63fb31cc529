"""Solana chain access: JSON-RPC client and balance tracking."""

from solswap.chain.balances import BalanceTracker
from solswap.chain.rpc import LAMPORTS_PER_SOL, RpcError, SignatureStatus, SolanaRpcClient

__all__ = [
    "BalanceTracker",
    "LAMPORTS_PER_SOL",
    "RpcError",
    "SignatureStatus",
    "SolanaRpcClient",
]

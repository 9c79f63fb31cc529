"""Swap execution: wallet signing, confirmation and the executor."""

from solswap.swap.confirmation import ConfirmationWatcher
from solswap.swap.executor import SwapExecutor
from solswap.swap.models import SwapState, SwapTransaction, TransactionStatus
from solswap.swap.signer import KeypairWallet, WalletAdapter, deserialize_transaction, sign_and_send

__all__ = [
    "ConfirmationWatcher",
    "SwapExecutor",
    "SwapState",
    "SwapTransaction",
    "TransactionStatus",
    # Signing
    "WalletAdapter",
    "KeypairWallet",
    "deserialize_transaction",
    "sign_and_send",
]

"""Swap execution engine.

Drives one swap from a confirmed quote to a terminal state:

    idle -> preparing -> awaiting_signature -> submitted -> confirming
         -> confirmed | failed | unknown -> idle

Only one swap runs at a time.
"""

import logging
from decimal import Decimal
from typing import Callable, Optional

from solswap.chain.balances import BalanceTracker, is_native_sol
from solswap.chain.rpc import RpcError
from solswap.config import get_settings
from solswap.errors import (
    ConfirmationTimeout,
    InsufficientBalance,
    SolswapError,
    SwapInProgress,
    TransactionFailed,
)
from solswap.routing.base import Quote
from solswap.routing.jupiter import JupiterClient
from solswap.routing.quote_engine import QuoteEngine
from solswap.swap.confirmation import ConfirmationWatcher
from solswap.swap.models import SwapState, SwapTransaction, TransactionStatus
from solswap.swap.signer import WalletAdapter, deserialize_transaction, sign_and_send

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[SwapState, str], None]


class SwapExecutor:
    """Execute swaps through Jupiter and a connected wallet."""

    def __init__(
        self,
        jupiter: JupiterClient,
        quote_engine: QuoteEngine,
        balances: BalanceTracker,
        watcher: ConfirmationWatcher,
        analytics=None,
        settings=None,
        on_progress: Optional[ProgressCallback] = None,
    ):
        """Initialize executor.

        Args:
            jupiter: Client used to build the swap transaction
            quote_engine: Engine used to re-quote with the platform fee
            balances: Balance tracker for the guard and the post-swap refresh
            watcher: Confirmation watcher
            analytics: Optional AnalyticsAggregator fed with confirmed swaps
            settings: Settings, defaults to get_settings()
            on_progress: Optional callback receiving (state, message)
        """
        self.settings = settings or get_settings()
        self.jupiter = jupiter
        self.quote_engine = quote_engine
        self.balances = balances
        self.watcher = watcher
        self.analytics = analytics
        self.on_progress = on_progress

        self.state = SwapState.IDLE
        self.status_message = ""
        self.last_transaction: Optional[SwapTransaction] = None

    @property
    def busy(self) -> bool:
        return self.state != SwapState.IDLE

    def _set_state(self, state: SwapState, message: str = "") -> None:
        self.state = state
        self.status_message = message
        logger.info(f"Swap state: {state.value}{f' - {message}' if message else ''}")
        if self.on_progress:
            self.on_progress(state, message)

    async def _check_balance(self, quote: Quote, wallet_address: str) -> None:
        """Reject swaps that exceed the spendable balance.

        Native SOL keeps a fixed reserve for transaction fees.
        """
        token = quote.from_token
        try:
            balance = await self.balances.get_balance(token, wallet_address)
        except RpcError as e:
            balance = self.balances.last_known(token, wallet_address)
            if balance is None:
                logger.warning(f"Balance check failed and no {token.symbol} balance is known: {e}")
                balance = Decimal(0)
            else:
                logger.warning(
                    f"Balance check failed, using last known {token.symbol} balance: {e}"
                )

        if is_native_sol(token):
            reserve = self.settings.sol_fee_reserve
            if quote.input_amount > balance - reserve:
                raise InsufficientBalance(
                    token.symbol,
                    quote.input_amount,
                    balance,
                    f"Insufficient SOL balance. Keep at least {reserve} SOL for transaction fees",
                )
        elif quote.input_amount > balance:
            raise InsufficientBalance(token.symbol, quote.input_amount, balance)

    async def _confirm(self, txn: SwapTransaction) -> None:
        """Wait for confirmation, with one manual check after a timeout."""
        try:
            await self.watcher.wait_for_confirmation(
                txn.signature,
                timeout=self.settings.confirmation_timeout_seconds,
                poll_interval=self.settings.confirmation_poll_seconds,
            )
            txn.status = TransactionStatus.CONFIRMED
            return
        except TransactionFailed as e:
            txn.status = TransactionStatus.FAILED
            txn.error = f"Transaction failed: {e.err}"
            return
        except ConfirmationTimeout:
            logger.warning(f"Confirmation timed out for {txn.signature}, checking status once")

        status = await self.watcher.check_status(txn.signature)
        if status is not None and status.is_failed:
            txn.status = TransactionStatus.FAILED
            txn.error = f"Transaction failed: {status.err}"
        elif status is not None and status.is_confirmed:
            txn.status = TransactionStatus.CONFIRMED
        else:
            txn.status = TransactionStatus.UNKNOWN
            txn.error = (
                "Transaction sent but confirmation status unknown. "
                f"Please check {txn.explorer_url}"
            )

    async def execute_swap(self, quote: Quote, wallet: WalletAdapter) -> SwapTransaction:
        """Execute a swap for a previously displayed quote.

        Args:
            quote: The quote the user confirmed
            wallet: Connected wallet adapter

        Returns:
            SwapTransaction in a terminal status (confirmed, failed or unknown)

        Raises:
            SwapInProgress: If another swap is running
            InsufficientBalance: If the input exceeds the spendable balance
            QuoteUnavailable: If re-quoting or building the transaction fails
            SigningFailed: If the wallet cannot sign and send
        """
        if self.busy:
            raise SwapInProgress("A swap is already in progress")

        self._set_state(SwapState.PREPARING, "Preparing transaction...")
        try:
            txn = await self._execute(quote, wallet)
        except SolswapError as e:
            self._set_state(SwapState.FAILED, str(e))
            raise
        finally:
            self.state = SwapState.IDLE

        return txn

    async def _execute(self, quote: Quote, wallet: WalletAdapter) -> SwapTransaction:
        wallet_address = wallet.public_key
        from_token, to_token = quote.from_token, quote.to_token

        await self._check_balance(quote, wallet_address)

        # Re-quote with the platform fee applied
        fresh = await self.quote_engine.fetch_quote(
            from_token,
            to_token,
            quote.input_amount,
            quote.slippage_bps,
            platform_fee_bps=self.settings.platform_fee_bps,
        )
        fee_account = self.settings.get_fee_account(from_token.address, to_token.address)
        logger.info(f"Using fee account {fee_account} for {fresh.pair_label}")

        serialized = await self.jupiter.build_swap_transaction(
            fresh.quote_response,
            wallet_address,
            fee_account=fee_account,
            platform_fee_bps=self.settings.platform_fee_bps,
            compute_unit_price_micro_lamports=self.settings.compute_unit_price_micro_lamports,
        )
        tx = deserialize_transaction(serialized)

        self._set_state(SwapState.AWAITING_SIGNATURE, "Please approve the transaction in your wallet")
        signature = await sign_and_send(wallet, tx)

        txn = SwapTransaction(
            signature=signature,
            from_token=from_token.symbol,
            to_token=to_token.symbol,
            from_amount=fresh.input_amount,
            to_amount=fresh.output_amount,
            usd_value=fresh.from_usd_value or quote.from_usd_value or Decimal(0),
            wallet_address=wallet_address,
            explorer_url=self.settings.explorer_url(signature),
        )
        self.last_transaction = txn
        self._set_state(SwapState.SUBMITTED, f"Transaction sent: {signature}")

        self._set_state(SwapState.CONFIRMING, "Confirming transaction...")
        await self._confirm(txn)

        if txn.status == TransactionStatus.CONFIRMED:
            if self.analytics is not None:
                try:
                    await self.analytics.record(txn)
                except Exception as e:
                    logger.error(f"Failed to record swap {signature} in analytics: {e}")
            await self.balances.refresh(wallet_address, from_token, to_token)
            self._set_state(SwapState.CONFIRMED, "Swap successful!")
        elif txn.status == TransactionStatus.FAILED:
            self._set_state(SwapState.FAILED, txn.error or "Transaction failed")
        else:
            self._set_state(SwapState.UNKNOWN, txn.error or "")

        return txn

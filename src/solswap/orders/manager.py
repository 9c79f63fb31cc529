"""Limit order manager: create, cancel and track a wallet's orders."""

import asyncio
import functools
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from solswap.config import get_settings
from solswap.errors import BelowMinimumSize, QuoteUnavailable, SolswapError, SwapInProgress
from solswap.orders.client import JupiterLimitOrderClient
from solswap.orders.models import LimitOrder, OrderStatus, order_amounts, parse_timestamp
from solswap.routing.base import Amount, to_decimal
from solswap.routing.prices import PriceFeed
from solswap.swap.confirmation import ConfirmationWatcher
from solswap.swap.signer import WalletAdapter, deserialize_transaction, sign_and_send
from solswap.tokens.models import Token
from solswap.tokens.registry import TokenRegistry
from solswap.utils.polling import PeriodicTask

logger = logging.getLogger(__name__)


class LimitOrderManager:
    """Manage limit orders for a connected wallet.

    Token info for order mints is resolved through the registry once per
    distinct mint and kept for the lifetime of the manager.
    """

    def __init__(
        self,
        client: JupiterLimitOrderClient,
        registry: TokenRegistry,
        prices: PriceFeed,
        watcher: ConfirmationWatcher,
        settings=None,
    ):
        self.settings = settings or get_settings()
        self.client = client
        self.registry = registry
        self.prices = prices
        self.watcher = watcher

        self.orders: list[LimitOrder] = []
        self.error: Optional[str] = None
        self._tokens: dict[str, Token] = {}
        self._busy = False
        self._polling: Optional[PeriodicTask] = None
        self._polled_wallet: Optional[str] = None

    async def _submit(self, serialized_tx: str, wallet: WalletAdapter) -> str:
        tx = deserialize_transaction(serialized_tx)
        signature = await sign_and_send(wallet, tx)
        await self.watcher.wait_for_confirmation(
            signature,
            timeout=self.settings.confirmation_timeout_seconds,
            poll_interval=self.settings.confirmation_poll_seconds,
        )
        return signature

    async def create_order(
        self,
        from_token: Token,
        to_token: Token,
        amount: Amount,
        limit_price: Amount,
        wallet: WalletAdapter,
    ) -> LimitOrder:
        """Create a limit order selling amount of from_token at limit_price.

        Args:
            from_token: Token to sell
            to_token: Token to buy
            amount: Human-unit amount of from_token
            limit_price: to_token received per unit of from_token
            wallet: Connected wallet adapter

        Returns:
            The new OPEN order

        Raises:
            BelowMinimumSize: If the order is worth less than the minimum
            QuoteUnavailable: If the input token has no USD price
            OrderRequestFailed: If the API rejects the order
            SigningFailed: If the wallet cannot sign and send
        """
        amount = to_decimal(amount)
        limit_price = to_decimal(limit_price)
        if amount <= 0 or limit_price <= 0:
            raise ValueError("Amount and limit price must be greater than zero")

        price = await self.prices.get_price(from_token.address)
        if price is None:
            raise QuoteUnavailable(f"No USD price for {from_token.symbol}")

        usd_value = amount * price
        if usd_value < self.settings.min_order_usd:
            raise BelowMinimumSize(usd_value, self.settings.min_order_usd)

        making, taking = order_amounts(amount, limit_price, from_token.decimals, to_token.decimals)
        logger.info(
            f"Creating limit order: {amount} {from_token.symbol} ({making} base units) "
            f"for {amount * limit_price} {to_token.symbol} ({taking} base units)"
        )

        data = await self.client.create_order(
            from_token.address, to_token.address, wallet.public_key, making, taking
        )
        signature = await self._submit(data["tx"], wallet)

        order = LimitOrder(
            id=data.get("order", ""),
            maker=wallet.public_key,
            input_token=from_token,
            output_token=to_token,
            making_amount=amount,
            taking_amount=amount * limit_price,
            status=OrderStatus.OPEN,
            created_at=datetime.now(timezone.utc),
            txid=signature,
            expiry_days=self.settings.order_expiry_days,
        )
        logger.info(f"Limit order {order.id} created: {signature}")
        return order

    async def cancel_order(self, order_id: str, wallet: WalletAdapter) -> str:
        """Cancel an open order. Only one cancel runs at a time.

        Returns:
            Signature of the cancel transaction
        """
        if self._busy:
            raise SwapInProgress("A cancel is already in progress")

        self._busy = True
        try:
            txs = await self.client.cancel_orders(wallet.public_key, [order_id])
            signature = await self._submit(txs[0], wallet)
        finally:
            self._busy = False

        logger.info(f"Limit order {order_id} cancelled: {signature}")
        self.orders = [o for o in self.orders if o.id != order_id]
        return signature

    async def _resolve_tokens(self, mints: set[str]) -> None:
        missing = [mint for mint in mints if mint not in self._tokens]
        if not missing:
            return

        results = await asyncio.gather(
            *(self.registry.resolve(mint) for mint in missing), return_exceptions=True
        )
        for mint, result in zip(missing, results):
            if isinstance(result, Exception):
                logger.warning(f"Could not resolve token {mint}: {result}")
            else:
                self._tokens[mint] = result

    async def _fetch_history(self, wallet: str) -> list[dict]:
        orders = []
        page = 1
        while page <= self.settings.order_history_max_pages:
            data = await self.client.get_order_history(wallet, page)
            orders.extend(data.get("orders") or [])
            if not data.get("hasMoreData"):
                break
            page += 1
        return orders

    def _parse_open(self, raw: dict, wallet: str) -> Optional[LimitOrder]:
        account = raw.get("account")
        if not account:
            logger.warning(f"Skipping open order without account data: {raw.get('publicKey')}")
            return None

        input_token = self._tokens.get(account.get("inputMint"))
        output_token = self._tokens.get(account.get("outputMint"))
        if input_token is None or output_token is None:
            logger.warning(f"Skipping open order {raw.get('publicKey')}: unknown token")
            return None

        return LimitOrder(
            id=raw["publicKey"],
            maker=account.get("maker", wallet),
            input_token=input_token,
            output_token=output_token,
            making_amount=Decimal(int(account["makingAmount"])).scaleb(-input_token.decimals),
            taking_amount=Decimal(int(account["takingAmount"])).scaleb(-output_token.decimals),
            status=OrderStatus.OPEN,
            created_at=parse_timestamp(account.get("createdAt")),
            expiry_days=self.settings.order_expiry_days,
        )

    def _parse_history(self, raw: dict, wallet: str) -> Optional[LimitOrder]:
        input_token = self._tokens.get(raw.get("inputMint"))
        output_token = self._tokens.get(raw.get("outputMint"))
        if input_token is None or output_token is None:
            logger.warning(f"Skipping history order {raw.get('orderKey')}: unknown token")
            return None

        # History amounts are already in human units
        return LimitOrder(
            id=raw["orderKey"],
            maker=raw.get("maker", wallet),
            input_token=input_token,
            output_token=output_token,
            making_amount=Decimal(str(raw.get("makingAmount") or 0)),
            taking_amount=Decimal(str(raw.get("takingAmount") or 0)),
            status=OrderStatus.FILLED if raw.get("status") == "Completed" else OrderStatus.CANCELLED,
            created_at=parse_timestamp(raw.get("createdAt")),
            txid=raw.get("openTx") or raw.get("closeTx") or "",
            expiry_days=self.settings.order_expiry_days,
        )

    async def list_orders(self, wallet: str) -> list[LimitOrder]:
        """Get open orders followed by order history.

        Raises:
            OrderRequestFailed: If the order API is unavailable
        """
        open_raw, history_raw = await asyncio.gather(
            self.client.get_open_orders(wallet),
            self._fetch_history(wallet),
        )

        mints = set()
        for raw in open_raw:
            account = raw.get("account") or {}
            mints.update(m for m in (account.get("inputMint"), account.get("outputMint")) if m)
        for raw in history_raw:
            mints.update(m for m in (raw.get("inputMint"), raw.get("outputMint")) if m)
        await self._resolve_tokens(mints)

        orders = [self._safe_parse(self._parse_open, raw, wallet) for raw in open_raw]
        orders += [self._safe_parse(self._parse_history, raw, wallet) for raw in history_raw]
        return [order for order in orders if order is not None]

    @staticmethod
    def _safe_parse(parse, raw: dict, wallet: str) -> Optional[LimitOrder]:
        try:
            return parse(raw, wallet)
        except (KeyError, TypeError, ValueError, ArithmeticError) as e:
            logger.warning(f"Skipping malformed order: {type(e).__name__}: {e}")
            return None

    async def refresh(self, wallet: str) -> list[LimitOrder]:
        """Refresh the held order list, keeping the last good list on failure."""
        try:
            self.orders = await self.list_orders(wallet)
            self.error = None
        except SolswapError as e:
            self.error = f"Failed to fetch orders: {e}"
            logger.warning(self.error)
        return self.orders

    async def start_polling(self, wallet: str) -> None:
        """Refresh the order list now and then on a fixed interval."""
        await self.stop_polling()
        if wallet != self._polled_wallet:
            self.orders = []
        self._polled_wallet = wallet
        self._polling = PeriodicTask(
            functools.partial(self.refresh, wallet),
            self.settings.order_refresh_seconds,
            name="orders",
        )
        self._polling.start()

    async def stop_polling(self) -> None:
        if self._polling is not None:
            await self._polling.stop()
            self._polling = None

    @property
    def polling(self) -> bool:
        return self._polling is not None and self._polling.running

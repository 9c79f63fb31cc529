"""Service wiring.

Builds every component from settings once, sharing the RPC client, state store
and caches between them.
"""

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

import httpx

from solswap.analytics import AnalyticsAggregator
from solswap.chain import BalanceTracker, SolanaRpcClient
from solswap.config import Settings, get_settings
from solswap.market import MarketDataClient
from solswap.orders import JupiterLimitOrderClient, LimitOrderManager
from solswap.portfolio import PortfolioTracker
from solswap.routing import (
    JupiterClient,
    PriceFeed,
    QuoteEngine,
    create_jupiter_client,
    create_portfolio_price_feed,
    create_price_feed,
)
from solswap.storage import StateStore
from solswap.swap import ConfirmationWatcher, KeypairWallet, SwapExecutor
from solswap.tokens import TokenRegistry, create_default_resolver

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """All swap pipeline components for one process."""

    settings: Settings
    store: StateStore
    rpc: SolanaRpcClient
    registry: TokenRegistry
    prices: PriceFeed
    jupiter: JupiterClient
    quote_engine: QuoteEngine
    balances: BalanceTracker
    watcher: ConfirmationWatcher
    analytics: AnalyticsAggregator
    executor: SwapExecutor
    orders: LimitOrderManager
    market: MarketDataClient
    portfolio: PortfolioTracker

    def local_wallet(self, index: int = 0) -> Optional[KeypairWallet]:
        """Keypair wallet from the configured seed phrase, if any."""
        if not self.settings.has_wallet:
            return None
        return KeypairWallet.from_seed_phrase(
            self.settings.wallet_seed_phrase, index=index, rpc_url=self.settings.solana_rpc_url
        )


def create_services(
    settings: Optional[Settings] = None,
    store: Optional[StateStore] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Services:
    """Create all components.

    Args:
        settings: Settings, defaults to get_settings()
        store: State store, defaults to one over the configured database
        transport: Optional httpx transport shared by all HTTP clients
    """
    settings = settings or get_settings()
    store = store or StateStore()

    rpc = SolanaRpcClient(settings.solana_rpc_url, transport=transport)
    registry = TokenRegistry(
        rpc,
        store,
        metadata=create_default_resolver(settings, transport),
        settings=settings,
        transport=transport,
    )
    prices = create_price_feed(settings, transport)
    jupiter = create_jupiter_client(settings, transport)
    quote_engine = QuoteEngine(jupiter, prices, settings=settings)
    balances = BalanceTracker(rpc)
    watcher = ConfirmationWatcher(rpc)
    analytics = AnalyticsAggregator(store, settings=settings)

    executor = SwapExecutor(
        jupiter,
        quote_engine,
        balances,
        watcher,
        analytics=analytics,
        settings=settings,
    )
    orders = LimitOrderManager(
        JupiterLimitOrderClient(
            settings.jupiter_limit_api, timeout=settings.http_timeout, transport=transport
        ),
        registry,
        prices,
        watcher,
        settings=settings,
    )
    market = MarketDataClient(
        settings.jupiter_tokens_api, timeout=settings.http_timeout, transport=transport
    )
    portfolio = PortfolioTracker(rpc, registry, create_portfolio_price_feed(settings, transport))

    logger.debug(f"Services created for {settings.solana_rpc_url}")
    return Services(
        settings=settings,
        store=store,
        rpc=rpc,
        registry=registry,
        prices=prices,
        jupiter=jupiter,
        quote_engine=quote_engine,
        balances=balances,
        watcher=watcher,
        analytics=analytics,
        executor=executor,
        orders=orders,
        market=market,
        portfolio=portfolio,
    )


@lru_cache
def get_services() -> Services:
    """Get cached services instance."""
    return create_services()

"""FastAPI application factory."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from solswap import __version__
from solswap.api.deps import get_services, http_error
from solswap.config import get_settings
from solswap.errors import SolswapError
from solswap.storage.database import close_db, init_db

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the state table and track the local wallet's limit orders."""
    await init_db()

    services = get_services()
    wallet = services.local_wallet()
    if wallet is not None:
        logger.info(f"Tracking limit orders for local wallet {wallet.public_key}")
        await services.orders.start_polling(wallet.public_key)

    yield

    await services.orders.stop_polling()
    await close_db()


async def solswap_error_handler(request: Request, exc: SolswapError) -> JSONResponse:
    """Map domain errors that escape a route to their HTTP status."""
    error = http_error(exc)
    logger.warning(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=error.status_code, content={"detail": error.detail})


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Solswap API",
        description="Solana token swap, limit order and analytics API",
        version=__version__,
        lifespan=lifespan,
        debug=settings.debug,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.debug else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(SolswapError, solswap_error_handler)

    from solswap.api.routes import (
        analytics,
        balances,
        health,
        market,
        orders,
        portfolio,
        quotes,
        tokens,
    )

    app.include_router(health.router, tags=["Health"])
    for module, tag in (
        (tokens, "Tokens"),
        (quotes, "Quotes"),
        (balances, "Balances"),
        (orders, "Orders"),
        (portfolio, "Portfolio"),
        (analytics, "Analytics"),
        (market, "Market"),
    ):
        app.include_router(module.router, prefix="/api/v1", tags=[tag])

    return app

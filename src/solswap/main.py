"""Main entry point - serves the solswap API."""

import asyncio
import logging
import signal
from typing import Optional

import uvicorn

from solswap.api.app import create_app
from solswap.config import get_settings
from solswap.services import get_services

logger = logging.getLogger(__name__)


class Application:
    """Runs the HTTP API until a shutdown signal arrives."""

    def __init__(self):
        self.settings = get_settings()
        self.server: Optional[uvicorn.Server] = None

    def _configure_logging(self) -> None:
        logging.basicConfig(
            level=logging.DEBUG if self.settings.debug else logging.INFO,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )
        logging.getLogger("httpx").setLevel(logging.WARNING)

    async def _warm_up(self) -> None:
        """Load the base token list so the first request does not wait on it."""
        tokens = await get_services().registry.load_base_tokens()
        logger.info(f"Token registry ready with {len(tokens)} base tokens")

    async def start(self):
        self._configure_logging()

        logger.info("Starting Solswap...")
        logger.info(f"Environment: {self.settings.environment}")
        logger.info(f"RPC endpoint: {self.settings.solana_rpc_url}")
        if not self.settings.has_wallet:
            logger.warning("WALLET_SEED_PHRASE not set - local wallet disabled")

        await self._warm_up()

        config = uvicorn.Config(
            create_app(),
            host=self.settings.api_host,
            port=self.settings.api_port,
            log_level="debug" if self.settings.debug else "info",
        )
        self.server = uvicorn.Server(config)
        logger.info(f"Starting API server on {self.settings.api_host}:{self.settings.api_port}")
        try:
            await self.server.serve()
        except Exception as e:
            logger.error(f"API error: {e}")
            raise
        logger.info("Shutdown complete")

    def shutdown(self):
        """Ask the server to exit; uvicorn runs the app's lifespan shutdown."""
        logger.info("Shutdown requested")
        if self.server is not None:
            self.server.should_exit = True


def main():
    """Main entry point."""
    app = Application()

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, app.shutdown)

    try:
        loop.run_until_complete(app.start())
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received")
    finally:
        loop.close()


if __name__ == "__main__":
    main()

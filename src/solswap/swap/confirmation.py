"""Bounded wait for transaction confirmation."""

import asyncio
import logging
from typing import Optional

from solswap.chain.rpc import RpcError, SignatureStatus, SolanaRpcClient
from solswap.errors import ConfirmationTimeout, TransactionFailed

logger = logging.getLogger(__name__)


class ConfirmationWatcher:
    """Polls signature status until confirmed, failed or timed out."""

    def __init__(self, rpc: SolanaRpcClient):
        self.rpc = rpc

    async def wait_for_confirmation(
        self,
        signature: str,
        timeout: float = 90.0,
        poll_interval: float = 2.0,
    ) -> SignatureStatus:
        """Wait for a transaction to reach confirmed commitment.

        Args:
            signature: Transaction signature to wait for
            timeout: Maximum seconds to wait
            poll_interval: Seconds between status checks

        Returns:
            Final signature status

        Raises:
            ConfirmationTimeout: If not confirmed within timeout
            TransactionFailed: If the transaction landed with an error
        """
        loop = asyncio.get_running_loop()
        start_time = loop.time()

        while True:
            try:
                status = await self.rpc.get_signature_status(signature)
            except RpcError as e:
                # Transient RPC errors count against the timeout
                logger.debug(f"Status poll for {signature} failed: {e}")
                status = None

            if status is not None:
                if status.is_failed:
                    raise TransactionFailed(signature, status.err)
                if status.is_confirmed:
                    logger.info(f"Transaction {signature} {status.confirmation_status}")
                    return status

            if loop.time() - start_time >= timeout:
                raise ConfirmationTimeout(signature, timeout)

            await asyncio.sleep(poll_interval)

    async def check_status(self, signature: str) -> Optional[SignatureStatus]:
        """Single manual status check. RPC failures yield None."""
        try:
            return await self.rpc.get_signature_status(signature)
        except RpcError as e:
            logger.warning(f"Manual status check for {signature} failed: {e}")
            return None

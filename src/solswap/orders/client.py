"""Jupiter limit order API client."""

import logging
from typing import Optional, Union

import httpx

from solswap.errors import OrderRequestFailed

logger = logging.getLogger(__name__)

JUPITER_LIMIT_API_V2 = "https://api.jup.ag/limit/v2"


class JupiterLimitOrderClient:
    """Create, list and cancel limit orders through the Jupiter API."""

    def __init__(
        self,
        base_url: str = JUPITER_LIMIT_API_V2,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def _request(self, method: str, path: str, **kwargs) -> Union[dict, list]:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.request(
                    method,
                    f"{self.base_url}/{path}",
                    headers={"Accept": "application/json"},
                    **kwargs,
                )
        except httpx.HTTPError as e:
            raise OrderRequestFailed(f"{path} request failed: {e}") from e

        if response.status_code != 200:
            try:
                data = response.json()
                detail = data.get("message") or data.get("error") or str(data)
            except (ValueError, AttributeError):
                detail = response.text[:200]
            logger.warning(f"Limit order API error on {path}: {response.status_code} - {detail}")
            raise OrderRequestFailed(f"{path} failed: {detail}")

        return response.json()

    async def create_order(
        self,
        input_mint: str,
        output_mint: str,
        maker: str,
        making_amount: int,
        taking_amount: int,
    ) -> dict:
        """Request a create-order transaction.

        Returns:
            {"order": <order public key>, "tx": <base64 transaction>}
        """
        data = await self._request(
            "POST",
            "createOrder",
            json={
                "inputMint": input_mint,
                "outputMint": output_mint,
                "maker": maker,
                "payer": maker,
                "params": {
                    "makingAmount": str(making_amount),
                    "takingAmount": str(taking_amount),
                },
                "computeUnitPrice": "auto",
                "wrapAndUnwrapSol": True,
            },
        )
        if not isinstance(data, dict) or not data.get("tx"):
            raise OrderRequestFailed("No transaction data received from API")
        return data

    async def get_open_orders(self, wallet: str) -> list[dict]:
        data = await self._request("GET", "openOrders", params={"wallet": wallet})
        # The endpoint returns either a bare list or {"orders": [...]}
        if isinstance(data, list):
            return data
        return data.get("orders") or []

    async def get_order_history(self, wallet: str, page: int = 1) -> dict:
        """Get one page of order history.

        Returns:
            {"orders": [...], "hasMoreData": bool, "page": int}
        """
        data = await self._request(
            "GET", "orderHistory", params={"wallet": wallet, "page": str(page)}
        )
        if not isinstance(data, dict):
            return {"orders": [], "hasMoreData": False, "page": page}
        return data

    async def cancel_orders(self, maker: str, order_ids: list[str]) -> list[str]:
        """Request cancel transactions for the given orders.

        Returns:
            Base64 transactions, in API order
        """
        data = await self._request(
            "POST",
            "cancelOrders",
            json={"maker": maker, "orders": order_ids, "computeUnitPrice": "auto"},
        )
        txs = data.get("txs") if isinstance(data, dict) else None
        if not txs:
            raise OrderRequestFailed("No transaction data received from API")
        return txs

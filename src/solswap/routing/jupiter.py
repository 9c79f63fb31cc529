"""Jupiter DEX aggregator integration for Solana.

Uses Jupiter Aggregator API for quotes and prebuilt swap transactions.
API docs: https://station.jup.ag/docs/apis/swap-api
"""

import logging
from typing import Optional

import httpx

from solswap.errors import QuoteUnavailable

logger = logging.getLogger(__name__)

# Jupiter API endpoints
JUPITER_API_V6 = "https://quote-api.jup.ag/v6"


def parse_route_hops(quote_response: dict, from_symbol: str, to_symbol: str) -> list[str]:
    """Get the ordered market labels of the route plan.

    Without route metadata the swap is shown as a direct hop between the two
    symbols.
    """
    route_plan = quote_response.get("routePlan") or []
    hops = []
    for step in route_plan:
        label = (step.get("swapInfo") or {}).get("label")
        if label:
            hops.append(label)
    return hops or [from_symbol, to_symbol]


def _error_detail(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text[:200] or f"HTTP {response.status_code}"
    if isinstance(data, dict):
        return str(data.get("error") or data.get("message") or data)
    return str(data)


class JupiterClient:
    """Client for the Jupiter quote and swap-build endpoints."""

    def __init__(
        self,
        base_url: str = JUPITER_API_V6,
        api_key: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize Jupiter client.

        Args:
            base_url: Quote/swap API base URL
            api_key: Optional API key for higher rate limits
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport

    @property
    def name(self) -> str:
        return "Jupiter"

    def _get_headers(self) -> dict:
        """Get API headers."""
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def get_quote(
        self,
        input_mint: str,
        output_mint: str,
        amount: int,
        slippage_bps: int,
        platform_fee_bps: Optional[int] = None,
    ) -> dict:
        """Get a raw quote response.

        Args:
            input_mint: Source token mint
            output_mint: Destination token mint
            amount: Input amount in base units
            slippage_bps: Max slippage in basis points
            platform_fee_bps: Optional platform fee in basis points

        Returns:
            Jupiter quote response (outAmount, priceImpactPct, routePlan, ...)

        Raises:
            QuoteUnavailable: On network or API failure
        """
        params = {
            "inputMint": input_mint,
            "outputMint": output_mint,
            "amount": str(amount),
            "slippageBps": str(slippage_bps),
        }
        if platform_fee_bps:
            params["platformFeeBps"] = str(platform_fee_bps)

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(
                    f"{self.base_url}/quote",
                    headers=self._get_headers(),
                    params=params,
                )
        except httpx.HTTPError as e:
            raise QuoteUnavailable(f"Jupiter quote request failed: {e}") from e

        if response.status_code != 200:
            detail = _error_detail(response)
            logger.warning(f"Jupiter API error: {response.status_code} - {detail}")
            raise QuoteUnavailable(f"Jupiter API error: {detail}")

        data = response.json()
        if "outAmount" not in data:
            raise QuoteUnavailable("Jupiter quote response has no outAmount")
        return data

    async def build_swap_transaction(
        self,
        quote_response: dict,
        user_public_key: str,
        fee_account: Optional[str] = None,
        platform_fee_bps: Optional[int] = None,
        compute_unit_price_micro_lamports: Optional[int] = None,
    ) -> str:
        """Request a prebuilt, serialized swap transaction for a quote.

        Returns:
            Base64-encoded versioned transaction

        Raises:
            QuoteUnavailable: On network or API failure
        """
        body = {
            "quoteResponse": quote_response,
            "userPublicKey": user_public_key,
            "wrapAndUnwrapSol": True,
            "asLegacyTransaction": False,
            "skipUserAccountsCheck": True,
        }
        if fee_account:
            body["feeAccount"] = fee_account
        if platform_fee_bps:
            body["platformFeeBps"] = platform_fee_bps
        if compute_unit_price_micro_lamports:
            body["computeUnitPriceMicroLamports"] = compute_unit_price_micro_lamports

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    f"{self.base_url}/swap",
                    headers=self._get_headers(),
                    json=body,
                )
        except httpx.HTTPError as e:
            raise QuoteUnavailable(f"Jupiter swap request failed: {e}") from e

        if response.status_code != 200:
            raise QuoteUnavailable(
                f"Failed to create swap transaction: {_error_detail(response)}"
            )

        swap_transaction = response.json().get("swapTransaction")
        if not swap_transaction:
            raise QuoteUnavailable("No swap transaction received")
        return swap_transaction


def create_jupiter_client(settings=None, transport=None) -> JupiterClient:
    """Create a Jupiter client from settings."""
    from solswap.config import get_settings

    settings = settings or get_settings()
    return JupiterClient(
        base_url=settings.jupiter_quote_api,
        timeout=settings.http_timeout,
        transport=transport,
    )

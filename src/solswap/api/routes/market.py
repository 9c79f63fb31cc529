"""Market token list endpoint."""

from fastapi import APIRouter, Depends, HTTPException, Query, status

from solswap.api.contracts import MarketFeedResponse
from solswap.api.deps import Services, get_services
from solswap.market import FEEDS, new_tokens

router = APIRouter()


@router.get("/market/{feed}", response_model=MarketFeedResponse)
async def market_feed(
    feed: str,
    page: int = Query(0, ge=0, description="Page, for the new token feed"),
    limit: int = Query(5, ge=1, le=50, description="Page size, for the new token feed"),
    services: Services = Depends(get_services),
):
    """Get trending, verified or newly created tokens."""
    if feed == "new":
        selected = new_tokens(page, limit)
    elif feed in FEEDS:
        selected = FEEDS[feed]
    else:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown feed {feed!r}. Available: {', '.join(sorted([*FEEDS, 'new']))}",
        )

    tokens = await services.market.fetch(selected)
    return MarketFeedResponse(feed=feed, tokens=[token.to_dict() for token in tokens])

"""
Published feed endpoint.
"""

from fastapi import APIRouter, Depends, Query

from sintillio.api.auth import get_caller
from sintillio.api.dependencies import get_feed_reader
from sintillio.api.models import FeedItem, FeedResponse
from sintillio.auth.schemas import Caller
from sintillio.results.feed import MAX_FEED_LIMIT, FeedReader

router = APIRouter()


@router.get(
    "/feed",
    response_model=FeedResponse,
    summary="Published content, newest first",
)
async def feed(
    limit: int = Query(default=20, ge=1, le=MAX_FEED_LIMIT),
    offset: int = Query(default=0, ge=0),
    caller: Caller = Depends(get_caller),
    reader: FeedReader = Depends(get_feed_reader),
) -> FeedResponse:
    page = await reader.list_published(limit=limit, offset=offset)
    return FeedResponse(
        items=[FeedItem(**item.to_feed_item()) for item in page.items],
        total=page.total,
        limit=page.limit,
        offset=page.offset,
    )

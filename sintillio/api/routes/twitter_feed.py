"""
Tweet list endpoint (read-through, nothing is stored).
"""

from fastapi import APIRouter, Depends, Query

from sintillio.api.auth import get_caller
from sintillio.api.dependencies import get_secret_resolver, get_timeline_connector_factory
from sintillio.api.models import ErrorResponse, TwitterFeedResponse, UpstreamErrorResponse
from sintillio.apikeys.resolver import SecretResolver
from sintillio.auth.schemas import Caller
from sintillio.config.settings import get_settings
from sintillio.ingestion.schemas import Source, TimelineParams

router = APIRouter()


@router.get(
    "/twitter-feed",
    response_model=TwitterFeedResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Missing or invalid token"},
        500: {"model": ErrorResponse, "description": "RapidAPI key not configured"},
        502: {"model": UpstreamErrorResponse, "description": "Twitter API request failed"},
    },
    summary="Latest tweets of a curated list",
)
async def twitter_feed(
    list_id: str | None = Query(default=None, alias="listId"),
    limit: int = Query(default=5, ge=1, le=100),
    caller: Caller = Depends(get_caller),
    resolver: SecretResolver = Depends(get_secret_resolver),
    connector_factory=Depends(get_timeline_connector_factory),
) -> TwitterFeedResponse:
    params = TimelineParams(list_id=list_id or get_settings().twitter_default_list_id, limit=limit)
    api_key = await resolver.resolve(Source.TWITTER)
    tweets = await connector_factory(api_key).fetch(params)
    return TwitterFeedResponse(tweets=tweets[: params.limit])

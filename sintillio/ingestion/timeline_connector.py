"""
Social timeline connector backed by the RapidAPI twitter241 list timeline.

Read-through only: tweets are mapped for display and never written to
the ledger or result store.
"""

import logging
from datetime import datetime, timezone
from typing import Any

from sintillio.config.settings import get_settings
from sintillio.ingestion.base_connector import BaseConnector
from sintillio.ingestion.http_client import HTTPClient, RetryConfig
from sintillio.ingestion.schemas import Source, TimelineParams, Tweet, TweetMetrics, TweetUser

logger = logging.getLogger(__name__)

# Classic Twitter timestamp, e.g. "Wed Oct 10 20:19:24 +0000 2018"
TWITTER_TIME_FORMAT = "%a %b %d %H:%M:%S %z %Y"


def parse_tweet_time(value: Any) -> datetime | None:
    if not value or not isinstance(value, str):
        return None
    try:
        return datetime.strptime(value, TWITTER_TIME_FORMAT)
    except ValueError:
        pass
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.debug(f"Unparseable tweet timestamp: {value}")
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def _extract_tweets(payload: Any) -> list[dict[str, Any]]:
    """Tweets live under ``data`` as a list; anything else means none."""
    if isinstance(payload, dict):
        data = payload.get("data")
        if isinstance(data, list):
            return data
    return []


class TimelineConnector(BaseConnector):
    """RapidAPI twitter241 ``/list-timeline`` integration."""

    source = Source.TWITTER
    display_name = "RapidAPI"
    credential_env_var = "RAPIDAPI_KEY"
    failure_message = "Twitter API request failed"

    def __init__(
        self,
        api_key: str | None,
        host: str | None = None,
        retry_config: RetryConfig | None = None,
        timeout: float | None = None,
    ):
        settings = get_settings()
        super().__init__(
            api_key,
            retry_config=retry_config or RetryConfig(
                max_retries=settings.max_http_retries,
                max_backoff_seconds=settings.max_backoff_seconds,
            ),
            timeout=timeout or settings.timeline_timeout_seconds,
        )
        self._host = host or settings.rapidapi_twitter_host

    async def _fetch_raw(self, params: TimelineParams, api_key: str) -> list[dict[str, Any]]:
        logger.info(
            f"Fetching Twitter list timeline with list ID: {params.list_id}, limit: {params.limit}"
        )
        async with HTTPClient(self._retry_config, timeout=self._timeout) as client:
            response = await client.get(
                f"https://{self._host}/list-timeline",
                params={"listId": params.list_id},
                headers={
                    "x-rapidapi-host": self._host,
                    "x-rapidapi-key": api_key,
                },
            )

        try:
            payload = response.json()
        except ValueError:
            logger.warning("Timeline response is not JSON; treating as empty")
            return []

        return _extract_tweets(payload)[: params.limit]

    async def _transform(self, raw: dict[str, Any], params: TimelineParams) -> Tweet | None:
        tweet_id = raw.get("id_str") or (str(raw["id"]) if raw.get("id") is not None else None)
        if not tweet_id:
            return None

        user = raw.get("user") or {}
        return Tweet(
            id=tweet_id,
            text=raw.get("full_text") or raw.get("text") or "",
            created_at=parse_tweet_time(raw.get("created_at")),
            user=TweetUser(
                name=user.get("name"),
                screen_name=user.get("screen_name"),
                profile_image_url_https=user.get("profile_image_url_https"),
                verified=bool(user.get("verified")),
            ),
            metrics=TweetMetrics(
                retweet_count=raw.get("retweet_count") or 0,
                favorite_count=raw.get("favorite_count") or 0,
                reply_count=raw.get("reply_count") or 0,
            ),
            entities=raw.get("entities"),
        )

"""Feed reader: the published, embedded slice of the result store."""

from dataclasses import dataclass, field

from sintillio.results.repository import ResultRepository
from sintillio.results.schemas import ContentResult

MAX_FEED_LIMIT = 100


@dataclass
class FeedPage:
    items: list[ContentResult] = field(default_factory=list)
    total: int = 0
    limit: int = 20
    offset: int = 0


class FeedReader:
    """Read-only view for end users; never triggers state transitions."""

    def __init__(self, repository: ResultRepository) -> None:
        self._repository = repository

    async def list_published(self, limit: int = 20, offset: int = 0) -> FeedPage:
        limit = max(1, min(limit, MAX_FEED_LIMIT))
        offset = max(0, offset)
        items = await self._repository.list_published(limit, offset)
        total = await self._repository.count_published()
        return FeedPage(items=items, total=total, limit=limit, offset=offset)

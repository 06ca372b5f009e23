"""Result store - writer for connector output and the published feed reader."""

from sintillio.results.feed import FeedPage, FeedReader
from sintillio.results.repository import ResultRepository, format_vector
from sintillio.results.schemas import ContentResult, WriteOutcome, compose_embedding_text

__all__ = [
    "ContentResult",
    "FeedPage",
    "FeedReader",
    "ResultRepository",
    "WriteOutcome",
    "compose_embedding_text",
    "format_vector",
]

"""Content result models."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass
class ContentResult:
    """
    One stored document.

    Visible in the feed only when ``is_published`` and ``has_embedding``;
    every write path in this package publishes a row only together with
    its embedding.
    """

    id: str
    query_id: str
    title: str = ""
    description: str = ""
    url: str = ""
    content: str = ""
    content_type: str = "markdown"
    metadata: dict[str, Any] = field(default_factory=dict)
    source: str | None = None
    is_published: bool = False
    published_at: datetime | None = None
    has_embedding: bool = False
    created_at: datetime | None = None

    def embedding_text(self) -> str:
        """Text the embedding is computed from."""
        return compose_embedding_text(self.title, self.description, self.content)

    def to_feed_item(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "url": self.url,
            "content": self.content,
            "published_at": self.published_at.isoformat() if self.published_at else None,
            "metadata": self.metadata,
        }


def compose_embedding_text(title: str | None, description: str | None, content: str | None) -> str:
    """``title description content``, trimmed; blank when all parts are empty."""
    return f"{title or ''} {description or ''} {content or ''}".strip()


@dataclass
class WriteOutcome:
    """Result of a per-row write loop."""

    inserted: list[ContentResult] = field(default_factory=list)
    failed: int = 0

    @property
    def total(self) -> int:
        return len(self.inserted) + self.failed

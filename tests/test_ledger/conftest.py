"""Fixtures for ledger tests."""

import json
from datetime import datetime, timezone

import pytest


@pytest.fixture
def ledger_row(query_id):
    """Factory for a search_queries record as asyncpg returns it."""

    def _make(status: str = "processing", metadata: dict | None = None) -> dict:
        now = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)
        return {
            "id": query_id,
            "query": "blockchain regulation",
            "user_id": "0b7e1d8c-1111-4e2a-8c3e-7a9f5d2c4b61",
            "metadata": json.dumps(metadata or {"source": "firecrawl", "limit": 5}),
            "status": status,
            "created_at": now,
            "updated_at": now,
        }

    return _make

"""Storage layer - asyncpg pool and shared helpers."""

from sintillio.storage.database import Database, parse_jsonb, parse_status_count

__all__ = ["Database", "parse_jsonb", "parse_status_count"]

"""
FastAPI pipeline service.

Provides REST API for content acquisition and publication:
- POST /search, GET /crypto-news - acquisition
- POST /embeddings - embed and publish a query's results
- GET /feed, GET /twitter-feed - reading
- /admin/* - administrator tools
- GET /health - service health check
"""

from sintillio.api.app import create_app

__all__ = ["create_app"]

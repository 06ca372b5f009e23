"""
Embedding generation endpoint.

Embeds the still-unembedded results of one query and publishes them.
Safe to call repeatedly; a second run reports processed=0.
"""

from fastapi import APIRouter, Depends
from starlette.requests import Request

from sintillio.api.auth import require_admin
from sintillio.api.dependencies import get_embedding_generator
from sintillio.api.models import EmbeddingsRequest, EmbeddingsResponse, ErrorResponse
from sintillio.api.rate_limit import limiter
from sintillio.auth.schemas import Caller
from sintillio.config.settings import get_settings
from sintillio.embedding.generator import EmbeddingGenerator

router = APIRouter()


@router.post(
    "/embeddings",
    response_model=EmbeddingsResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Query ID is required"},
        401: {"model": ErrorResponse, "description": "Missing or invalid token"},
        403: {"model": ErrorResponse, "description": "Caller is not an admin"},
    },
    summary="Embed and publish the results of a query",
)
@limiter.limit(lambda: get_settings().rate_limit_embeddings)
async def generate_embeddings(
    request: Request,
    body: EmbeddingsRequest,
    caller: Caller = Depends(require_admin),
    generator: EmbeddingGenerator = Depends(get_embedding_generator),
) -> EmbeddingsResponse:
    outcome = await generator.embed(body.query_id)
    if outcome.total == 0:
        message = "No results found that need embeddings"
    else:
        message = outcome.message
    return EmbeddingsResponse(message=message, processed=outcome.processed, total=outcome.total)

"""
Crypto news acquisition endpoint.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from starlette.requests import Request

from sintillio.api.auth import require_admin
from sintillio.api.dependencies import get_acquisition_service
from sintillio.api.models import CryptoNewsResponse, ErrorResponse, ProcessedPost, UpstreamErrorResponse
from sintillio.api.rate_limit import limiter
from sintillio.auth.schemas import Caller
from sintillio.config.settings import get_settings
from sintillio.ingestion.schemas import CryptoNewsParams
from sintillio.services.acquisition import AcquisitionService

router = APIRouter()


@router.get(
    "/crypto-news",
    response_model=CryptoNewsResponse,
    response_model_exclude_none=True,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid query parameters"},
        401: {"model": ErrorResponse, "description": "Missing or invalid token"},
        403: {"model": ErrorResponse, "description": "Caller is not an admin"},
        500: {"model": ErrorResponse, "description": "Configuration or storage failure"},
        502: {"model": UpstreamErrorResponse, "description": "News aggregator failure"},
    },
    summary="Fetch, enrich and store crypto news headlines",
)
@limiter.limit(lambda: get_settings().rate_limit_acquisition)
async def crypto_news(
    request: Request,
    params: Annotated[CryptoNewsParams, Query()],
    caller: Caller = Depends(require_admin),
    service: AcquisitionService = Depends(get_acquisition_service),
) -> CryptoNewsResponse:
    outcome = await service.run_crypto(caller, params)
    if outcome.total == 0:
        return CryptoNewsResponse(message=outcome.message, query_id=outcome.query_id)

    return CryptoNewsResponse(
        message=outcome.message,
        query_id=outcome.query_id,
        processed_posts=[ProcessedPost(**post) for post in outcome.processed_posts],
    )

"""
Web search/scrape acquisition endpoint.
"""

from fastapi import APIRouter, Depends
from starlette.requests import Request

from sintillio.api.auth import require_admin_or_flag
from sintillio.api.dependencies import get_acquisition_service
from sintillio.api.models import ErrorResponse, SearchResponse, UpstreamErrorResponse
from sintillio.api.rate_limit import limiter
from sintillio.auth.schemas import Caller
from sintillio.config.settings import get_settings
from sintillio.ingestion.schemas import SearchParams
from sintillio.services.acquisition import AcquisitionService

router = APIRouter()


@router.post(
    "/search",
    response_model=SearchResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid request body"},
        401: {"model": ErrorResponse, "description": "Missing or invalid token"},
        403: {"model": ErrorResponse, "description": "Caller is not an admin"},
        500: {"model": ErrorResponse, "description": "Configuration or storage failure"},
        502: {"model": UpstreamErrorResponse, "description": "Search provider failure"},
    },
    summary="Search the web and store the results",
    description="""
    Forward the query to the search/scrape provider, record the attempt in
    the query ledger and store every result unpublished. Results become
    visible in the feed after an embedding run for the returned query_id.
    """,
)
@limiter.limit(lambda: get_settings().rate_limit_acquisition)
async def search(
    request: Request,
    body: SearchParams,
    caller: Caller = Depends(require_admin_or_flag),
    service: AcquisitionService = Depends(get_acquisition_service),
) -> SearchResponse:
    outcome = await service.run_search(caller, body)
    return SearchResponse(
        message=outcome.message,
        query_id=outcome.query_id,
        results=outcome.results,
    )

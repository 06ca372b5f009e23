"""
Administrator endpoints: privilege marker repair and stored API keys.
"""

import structlog
from fastapi import APIRouter, Depends

from sintillio.api.auth import require_admin
from sintillio.api.dependencies import get_admin_repair_service, get_api_key_repository
from sintillio.api.models import (
    AdminVerificationItem,
    APIKeyItem,
    APIKeysResponse,
    APIKeyUpdateRequest,
    APIKeyUpdateResponse,
    ErrorResponse,
    VerifyRolesResponse,
)
from sintillio.apikeys.repository import APIKey, APIKeyRepository
from sintillio.auth.repair import AdminRepairService
from sintillio.auth.schemas import Caller
from sintillio.errors import PipelineError

router = APIRouter(prefix="/admin")
logger = structlog.get_logger(__name__)


class APIKeyNotFound(PipelineError):
    status_code = 404


def _to_item(key: APIKey) -> APIKeyItem:
    return APIKeyItem(
        id=key.id,
        service=key.service,
        key=key.masked_key,
        description=key.description,
        configured=not key.is_placeholder,
        updated_at=key.updated_at,
    )


@router.post(
    "/verify-roles",
    response_model=VerifyRolesResponse,
    responses={403: {"model": ErrorResponse, "description": "Caller is not an admin"}},
    summary="Verify and repair admin markers of trusted-domain users",
)
async def verify_roles(
    caller: Caller = Depends(require_admin),
    service: AdminRepairService = Depends(get_admin_repair_service),
) -> VerifyRolesResponse:
    report = await service.verify(repair=True)
    logger.info("admin_roles_verified", by=caller.id, users=len(report.users), fixed=report.fixed)
    return VerifyRolesResponse(
        message=report.message,
        users=[AdminVerificationItem(**user.to_dict()) for user in report.users],
        fixed=report.fixed,
    )


@router.get(
    "/api-keys",
    response_model=APIKeysResponse,
    responses={403: {"model": ErrorResponse, "description": "Caller is not an admin"}},
    summary="List stored provider credentials (masked)",
)
async def list_api_keys(
    caller: Caller = Depends(require_admin),
    repository: APIKeyRepository = Depends(get_api_key_repository),
) -> APIKeysResponse:
    keys = await repository.list_keys()
    return APIKeysResponse(keys=[_to_item(key) for key in keys])


@router.put(
    "/api-keys/{key_id}",
    response_model=APIKeyUpdateResponse,
    responses={
        403: {"model": ErrorResponse, "description": "Caller is not an admin"},
        404: {"model": ErrorResponse, "description": "Unknown key id"},
    },
    summary="Replace a stored provider credential",
)
async def update_api_key(
    key_id: str,
    body: APIKeyUpdateRequest,
    caller: Caller = Depends(require_admin),
    repository: APIKeyRepository = Depends(get_api_key_repository),
) -> APIKeyUpdateResponse:
    updated = await repository.update(key_id, body.key.strip(), body.description)
    if updated is None:
        raise APIKeyNotFound("API key not found", f"No api key with id {key_id}")
    logger.info("api_key_updated", key_id=key_id, by=caller.id)
    return APIKeyUpdateResponse(key=_to_item(updated))

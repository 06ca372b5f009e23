"""
API authentication using the caller's bearer token.

``get_caller`` only establishes identity; the admin dependencies add the
privilege check on top of it.
"""

from fastapi import Depends, Header

from sintillio.api.dependencies import get_authorization_gate, get_identity_client
from sintillio.auth.gate import AuthorizationGate
from sintillio.auth.identity import IdentityClient, extract_bearer_token
from sintillio.auth.schemas import Caller
from sintillio.observability.logging import bind_caller


async def get_caller(
    authorization: str | None = Header(default=None),
    identity: IdentityClient = Depends(get_identity_client),
) -> Caller:
    """
    Resolve the caller from the Authorization header.

    Raises:
        Unauthenticated: header missing or token rejected
    """
    caller = await identity.get_user(extract_bearer_token(authorization))
    bind_caller(caller.id)
    return caller


async def require_admin(
    caller: Caller = Depends(get_caller),
    gate: AuthorizationGate = Depends(get_authorization_gate),
) -> Caller:
    """Email domain or role assignment."""
    await gate.require_admin(caller)
    return caller


async def require_admin_or_flag(
    caller: Caller = Depends(get_caller),
    gate: AuthorizationGate = Depends(get_authorization_gate),
) -> Caller:
    """Email domain, role assignment, or the profile admin flag."""
    await gate.require_admin(caller, check_profile_flag=True)
    return caller

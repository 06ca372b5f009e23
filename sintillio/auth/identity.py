"""
Bearer token validation against the identity provider.

The provider is a GoTrue-compatible auth service: ``GET /auth/v1/user``
with the caller's token returns the user, anything else rejects it.
"""

import logging

import httpx

from sintillio.auth.schemas import Caller
from sintillio.config.settings import get_settings
from sintillio.errors import ConfigurationError, Unauthenticated

logger = logging.getLogger(__name__)


def extract_bearer_token(authorization: str | None) -> str | None:
    """Return the token from an ``Authorization: Bearer <token>`` header value."""
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None


class IdentityClient:
    """
    Resolves callers from bearer tokens.

    Usage:
        async with IdentityClient() as identity:
            caller = await identity.get_user(token)
    """

    def __init__(
        self,
        base_url: str | None = None,
        service_key: str | None = None,
        timeout: float | None = None,
    ):
        settings = get_settings()
        self._base_url = (base_url or settings.supabase_url or "").rstrip("/")
        self._service_key = service_key or settings.supabase_service_role_key
        self._timeout = timeout or settings.identity_timeout_seconds
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "IdentityClient":
        self._client = httpx.AsyncClient(timeout=self._timeout)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    def _ensure_configured(self) -> None:
        if not self._base_url or not self._service_key:
            raise ConfigurationError(
                "Identity provider not configured",
                "SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set",
            )

    async def get_user(self, token: str | None) -> Caller:
        """
        Resolve the caller behind ``token``.

        Raises:
            Unauthenticated: token missing or rejected by the provider
            ConfigurationError: provider URL or service credential missing
        """
        if not token:
            raise Unauthenticated("Authorization header is required")

        self._ensure_configured()

        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)

        try:
            response = await self._client.get(
                f"{self._base_url}/auth/v1/user",
                headers={
                    "apikey": self._service_key,
                    "Authorization": f"Bearer {token}",
                },
            )
        except httpx.HTTPError as e:
            logger.warning(f"Identity provider unreachable: {type(e).__name__}")
            raise Unauthenticated("Unauthorized", f"Identity provider unreachable: {e}") from e

        if response.status_code != 200:
            raise Unauthenticated("Unauthorized", _provider_message(response))

        try:
            user = response.json()
        except ValueError as e:
            raise Unauthenticated("Unauthorized", "Identity provider returned invalid JSON") from e

        if not isinstance(user, dict) or not user.get("id"):
            raise Unauthenticated("Unauthorized", "User not found")

        return Caller(id=str(user["id"]), email=user.get("email"))


def _provider_message(response: httpx.Response) -> str:
    """Pull the provider's detail string out of an error response."""
    try:
        body = response.json()
    except ValueError:
        return response.text or f"Status {response.status_code}"
    if isinstance(body, dict):
        for key in ("msg", "message", "error_description", "error"):
            if body.get(key):
                return str(body[key])
    return f"Status {response.status_code}"

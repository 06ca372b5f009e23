"""Provider credential resolution: environment first, then the api_keys table."""

import logging
from dataclasses import dataclass

from sintillio.apikeys.repository import APIKeyRepository
from sintillio.config.settings import Settings, get_settings
from sintillio.errors import ConfigurationError
from sintillio.ingestion.schemas import Source

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CredentialSpec:
    settings_field: str
    service: str
    label: str
    env_var: str


CREDENTIALS: dict[Source, CredentialSpec] = {
    Source.FIRECRAWL: CredentialSpec("firecrawl_api_key", "firecrawl", "Firecrawl", "FIRECRAWL_API_KEY"),
    Source.CRYPTOPANIC: CredentialSpec("cryptopanic_api_key", "cryptopanic", "CryptoPanic", "CRYPTOPANIC_API_KEY"),
    Source.TWITTER: CredentialSpec("rapidapi_key", "twitter", "RapidAPI", "RAPIDAPI_KEY"),
}


class SecretResolver:
    """
    Looks up the credential a connector needs.

    Resolution happens per request so a key added through the admin panel
    takes effect without a restart.
    """

    def __init__(
        self,
        repository: APIKeyRepository | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._repository = repository
        self._settings = settings or get_settings()

    async def resolve(self, source: Source) -> str:
        """
        Return the credential for ``source``.

        Raises:
            ConfigurationError: neither the environment nor the store has a key
        """
        spec = CREDENTIALS[source]

        value = getattr(self._settings, spec.settings_field, None)
        if value:
            return value

        if self._repository is not None:
            stored = await self._repository.get_key(spec.service)
            if stored:
                logger.debug(f"Using stored api key for {spec.service}")
                return stored

        logger.warning(f"{spec.label} API key not configured")
        raise ConfigurationError(
            f"{spec.label} API key not configured",
            f"The {spec.env_var} environment variable is not set",
        )

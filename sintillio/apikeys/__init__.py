"""Stored provider credentials."""

from sintillio.apikeys.repository import APIKey, APIKeyRepository
from sintillio.apikeys.resolver import CREDENTIALS, SecretResolver

__all__ = ["APIKey", "APIKeyRepository", "CREDENTIALS", "SecretResolver"]

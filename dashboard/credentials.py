"""Credential providers injected into the back-office API client."""
import logging
import os
from abc import ABC, abstractmethod
from typing import Optional

logger = logging.getLogger(__name__)


def looks_like_jwt(token: str) -> bool:
    parts = token.split(".")
    return len(parts) == 3 and all(parts)


class CredentialProvider(ABC):
    """Supplies the bearer token for each request."""

    @abstractmethod
    def get_token(self) -> Optional[str]:
        raise NotImplementedError


class StaticCredentials(CredentialProvider):
    def __init__(self, token: Optional[str]):
        self._token = token

    def get_token(self) -> Optional[str]:
        if not self._token:
            return None
        if not looks_like_jwt(self._token):
            logger.error("Invalid token format - JWT should have 3 parts")
            return None
        return self._token


class EnvCredentials(CredentialProvider):
    """Reads the token from an environment variable on every call."""

    def __init__(self, var: str = "BACKOFFICE_TOKEN"):
        self.var = var

    def get_token(self) -> Optional[str]:
        token = os.getenv(self.var)
        if not token:
            logger.warning("No authentication token found in $%s", self.var)
            return None
        return StaticCredentials(token).get_token()

"""Caller identity resolution."""

import logging
from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

logger = logging.getLogger(__name__)

_BEARER_PREFIX = "bearer "


class IdentityProvider(Protocol):
    """Interface for the service that validates bearer tokens."""

    def resolve(self, token: str) -> UUID | None:
        """Return the user id for a valid token, or None."""


@dataclass
class AuthService:
    """Resolves the calling user from an Authorization header."""

    provider: IdentityProvider

    def authenticate(self, authorization: str | None) -> UUID | None:
        """Return the caller's user id for a bearer header, if valid."""
        token = _extract_bearer_token(authorization)
        if token is None:
            return None
        user_id = self.provider.resolve(token)
        if user_id is None:
            logger.info("Rejected bearer token")
        return user_id


def _extract_bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    value = authorization.strip()
    if not value.lower().startswith(_BEARER_PREFIX):
        return None
    token = value[len(_BEARER_PREFIX) :].strip()
    return token or None
